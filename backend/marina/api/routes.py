from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from marina.config import settings
from marina.database import get_db
from marina.models.base import (
    BerthStatusEnum, BookingStatusEnum, DamageStatusEnum, ViolationStatusEnum,
)
from marina.models.profile import Profile
from marina.modules.change_feed import MarinaState
from marina.modules.errors import (
    BerthInUseError, BookingConflictError, InvalidTransitionError, MarinaError, NotFoundError,
    PermissionDenied, ValidationFailed,
)
from marina.modules.rbac import (
    ROLE_LABELS, has_permission, nav_items_for_role, permissions_for_role,
)
from marina.schemas.berth import (
    BerthCreateRequest, BerthRead, BerthUpdateRequest, PlacementCreateRequest,
    PlacementRead, PositionUpdateRequest,
)
from marina.schemas.booking import (
    BookingCreate, BookingRead, BookingStatusUpdate, BookingUpdate, PaymentCreate,
    PaymentRead, PricingQuoteRequest,
)
from marina.schemas.inspection import InspectionCreate, InspectionRead
from marina.schemas.tickets import (
    DamageReportCreate, DamageReportRead, DamageStatusUpdate, ViolationCreate,
    ViolationRead, ViolationStatusUpdate,
)
from marina.utils.clock import utc_today

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies & helpers
# ---------------------------------------------------------------------------

def get_marina_state(request: Request) -> MarinaState:
    """Feed + view cache created in the app lifespan."""
    state = getattr(request.app.state, "marina", None)
    if state is None:
        raise HTTPException(status_code=503, detail="Marina state not initialised")
    return state


def get_current_profile(
    x_user_id: Optional[int] = Header(None),
    db: Session = Depends(get_db),
) -> Profile:
    """Resolve the caller from the X-User-Id header. Sign-in itself happens upstream."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    profile = db.query(Profile).filter(Profile.profile_id == x_user_id).first()
    if profile is None or not profile.is_active:
        raise HTTPException(status_code=401, detail="Unknown or inactive user")
    return profile


def require_permission(permission: str) -> Callable[..., Profile]:
    """Dependency factory: the caller's role must hold ``permission``."""
    def _check(profile: Profile = Depends(get_current_profile)) -> Profile:
        if not has_permission(profile.role, permission):
            raise HTTPException(
                status_code=403,
                detail=f"Role '{profile.role.value}' lacks permission {permission}",
            )
        return profile
    return _check


def _http_error(exc: MarinaError) -> HTTPException:
    """Translate a domain error into the matching HTTP status."""
    if isinstance(exc, ValidationFailed):
        detail = {"detail": str(exc), "field": exc.field} if exc.field else str(exc)
        return HTTPException(status_code=422, detail=detail)
    if isinstance(exc, BookingConflictError):
        return HTTPException(
            status_code=409, detail={"detail": str(exc), "conflicting_ids": exc.conflicting_ids},
        )
    if isinstance(exc, BerthInUseError):
        return HTTPException(status_code=409, detail={"detail": str(exc), "references": exc.references})
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, PermissionDenied):
        return HTTPException(status_code=403, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _audit_log(db: Session, action: str, entity_type: str, entity_id: int = None,
               details: dict = None, request: Request = None, user: Profile = None) -> None:
    """Record a staff action for the audit trail."""
    from marina.models.audit_log import AuditLog
    log = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        user_id=user.profile_id if user is not None else None,
        user_agent=request.headers.get("user-agent") if request else None,
        ip_address=request.client.host if request and request.client else None,
    )
    db.add(log)


def _get_or_404(db: Session, model, pk_attr: str, pk: int, label: str):
    obj = db.query(model).filter(getattr(model, pk_attr) == pk).first()
    if obj is None:
        raise HTTPException(status_code=404, detail=f"{label} {pk} not found")
    return obj


def _today() -> date:
    return utc_today()


def _load_board(db: Session, as_of: date) -> list[dict]:
    from marina.models.berth import Berth
    from marina.models.boat_placement import BoatPlacement
    from marina.models.inspection import Inspection
    from marina.modules.berth_status import build_berth_board
    from marina.modules.bookings import bookings_for_day

    berths = db.query(Berth).order_by(Berth.code).all()
    start = datetime.combine(as_of, datetime.min.time())
    inspections = db.query(Inspection).filter(
        Inspection.inspected_at >= start,
        Inspection.inspected_at < start + timedelta(days=1),
    ).all()
    return build_berth_board(
        berths,
        bookings_for_day(db, as_of),
        as_of,
        placements=db.query(BoatPlacement).all(),
        inspections=inspections,
    )


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

@router.get("/me", tags=["auth"])
def me(profile: Profile = Depends(get_current_profile)):
    """Profile, role label, permission keys and navigation for the caller."""
    return {
        "profile_id": profile.profile_id,
        "full_name": profile.full_name,
        "role": profile.role.value,
        "role_label": ROLE_LABELS[profile.role],
        "permissions": permissions_for_role(profile.role),
        "navigation": [
            {"label": n.label, "href": n.href, "icon": n.icon}
            for n in nav_items_for_role(profile.role)
        ],
    }


# ---------------------------------------------------------------------------
# Berths & board
# ---------------------------------------------------------------------------

@router.get("/berths", tags=["berths"])
def list_berths(
    pontoon: Optional[str] = None,
    status: Optional[BerthStatusEnum] = None,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("VIEW_MAP")),
):
    from marina.models.berth import Berth

    q = db.query(Berth).order_by(Berth.code)
    if pontoon:
        q = q.filter(Berth.code.like(f"{pontoon.upper()}-%"))
    if status:
        q = q.filter(Berth.status == status)
    berths = q.all()
    return {
        "items": [BerthRead.model_validate(b).model_dump(mode="json") for b in berths],
        "total": len(berths),
    }


@router.post("/berths", tags=["berths"], status_code=201)
def create_berth(
    body: BerthCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("MANAGE_BERTHS")),
):
    """Place a new berth marker; the pontoon is derived from the code prefix."""
    from marina.modules import berths as berth_service

    attrs = body.model_dump(exclude={"code"})
    try:
        berth = berth_service.create_berth(db, body.code, **attrs)
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "create", "berth", berth.berth_id, details={"code": berth.code}, request=request, user=profile)
    db.commit()
    return BerthRead.model_validate(berth).model_dump(mode="json")


@router.get("/berths/{berth_id}", tags=["berths"])
def get_berth(
    berth_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("VIEW_MAP")),
):
    from marina.models.berth import Berth

    berth = _get_or_404(db, Berth, "berth_id", berth_id, "Berth")
    return BerthRead.model_validate(berth).model_dump(mode="json")


@router.patch("/berths/{berth_id}", tags=["berths"])
def update_berth(
    berth_id: int,
    body: BerthUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("MANAGE_BERTHS")),
):
    """Edit berth attributes. A new code is propagated to every linked row."""
    from marina.models.berth import Berth
    from marina.modules import berths as berth_service

    berth = _get_or_404(db, Berth, "berth_id", berth_id, "Berth")
    updates = body.model_dump(exclude_unset=True)
    new_code = updates.pop("code", None)
    try:
        if new_code:
            berth_service.rename_berth(db, berth, new_code)
        if updates:
            berth_service.update_berth(db, berth, updates)
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "update", "berth", berth.berth_id, details=body.model_dump(mode="json", exclude_unset=True),
               request=request, user=profile)
    db.commit()
    return BerthRead.model_validate(berth).model_dump(mode="json")


@router.post("/berths/{berth_id}/position", tags=["berths"])
def move_berth(
    berth_id: int,
    body: PositionUpdateRequest,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("MANAGE_BERTHS")),
):
    from marina.models.berth import Berth
    from marina.modules.berths import move_berth_marker

    berth = _get_or_404(db, Berth, "berth_id", berth_id, "Berth")
    move_berth_marker(db, berth, body.latitude, body.longitude)
    db.commit()
    return {"berth_id": berth.berth_id, "latitude": berth.latitude, "longitude": berth.longitude}


@router.delete("/berths/{berth_id}", tags=["berths"])
def delete_berth(
    berth_id: int,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("MANAGE_BERTHS")),
):
    from marina.models.berth import Berth
    from marina.modules.berths import remove_berth

    berth = _get_or_404(db, Berth, "berth_id", berth_id, "Berth")
    code = berth.code
    try:
        remove_berth(db, berth)
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "delete", "berth", berth_id, details={"code": code}, request=request, user=profile)
    db.commit()
    return {"berth_id": berth_id, "status": "deleted"}


@router.get("/berths/{berth_id}/status", tags=["berths"])
def berth_status(
    berth_id: int,
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("VIEW_OCCUPANCY")),
):
    """Resolved occupancy of one berth plus the inspection choices it allows."""
    from marina.models.berth import Berth
    from marina.modules.berth_status import occupancy_to_dict
    from marina.modules.inspection_workflow import allowed_choices, resolve_for_inspection

    berth = _get_or_404(db, Berth, "berth_id", berth_id, "Berth")
    occupancy = resolve_for_inspection(db, berth, as_of or _today())
    result = occupancy_to_dict(occupancy)
    result["code"] = berth.code
    result["inspection_choices"] = sorted(c.value for c in allowed_choices(occupancy))
    return result


@router.get("/board", tags=["berths"])
def berth_board(
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
    state: MarinaState = Depends(get_marina_state),
    profile: Profile = Depends(require_permission("VIEW_OCCUPANCY")),
):
    """Every berth resolved for one day; shared by the map and the table view."""
    from marina.modules.berth_status import summarize_board

    day = as_of or _today()
    board = state.views.get_or_compute("berth_board", day, lambda: _load_board(db, day))
    return {
        "as_of": day.isoformat(),
        "sequence": state.feed.latest_sequence,
        "summary": summarize_board(board),
        "berths": board,
    }


# ---------------------------------------------------------------------------
# Boat placements
# ---------------------------------------------------------------------------

@router.get("/placements", tags=["placements"])
def list_placements(
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("VIEW_MAP")),
):
    from marina.models.boat_placement import BoatPlacement

    placements = db.query(BoatPlacement).order_by(BoatPlacement.placement_id).all()
    return {
        "items": [PlacementRead.model_validate(p).model_dump(mode="json") for p in placements],
        "total": len(placements),
    }


@router.post("/placements", tags=["placements"], status_code=201)
def create_placement(
    body: PlacementCreateRequest,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("RECORD_OCCUPANCY")),
):
    from marina.models.berth import Berth
    from marina.modules.berths import place_boat

    berth = _get_or_404(db, Berth, "berth_id", body.berth_id, "Berth") if body.berth_id else None
    placement = place_boat(
        db, body.latitude, body.longitude, berth=berth, placed_by=profile.profile_id,
        **body.model_dump(exclude={"latitude", "longitude", "berth_id"}),
    )
    db.commit()
    return PlacementRead.model_validate(placement).model_dump(mode="json")


@router.patch("/placements/{placement_id}/position", tags=["placements"])
def move_placement(
    placement_id: int,
    body: PositionUpdateRequest,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("RECORD_OCCUPANCY")),
):
    from marina.models.berth import Berth
    from marina.models.boat_placement import BoatPlacement
    from marina.modules.berths import move_boat

    placement = _get_or_404(db, BoatPlacement, "placement_id", placement_id, "Placement")
    berth = _get_or_404(db, Berth, "berth_id", body.berth_id, "Berth") if body.berth_id else None
    move_boat(db, placement, body.latitude, body.longitude, rotation=body.rotation, berth=berth)
    db.commit()
    return PlacementRead.model_validate(placement).model_dump(mode="json")


@router.delete("/placements/{placement_id}", tags=["placements"])
def delete_placement(
    placement_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("EDIT_OCCUPANCY")),
):
    from marina.models.boat_placement import BoatPlacement
    from marina.modules.berths import remove_boat

    placement = _get_or_404(db, BoatPlacement, "placement_id", placement_id, "Placement")
    remove_boat(db, placement)
    db.commit()
    return {"placement_id": placement_id, "status": "deleted"}


# ---------------------------------------------------------------------------
# Bookings & payments
# ---------------------------------------------------------------------------

@router.get("/bookings", tags=["bookings"])
def list_bookings(
    berth_id: Optional[int] = None,
    status: Optional[BookingStatusEnum] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("VIEW_BOOKINGS")),
):
    """List bookings; date_from/date_to select stays overlapping that window."""
    from marina.models.booking import Booking

    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=422, detail="date_from must be <= date_to")
    limit = min(limit, settings.MAX_QUERY_LIMIT)
    q = db.query(Booking).order_by(Booking.check_in_date.desc(), Booking.booking_id.desc())
    if berth_id is not None:
        q = q.filter(Booking.berth_id == berth_id)
    if status:
        q = q.filter(Booking.status == status)
    if date_from:
        q = q.filter(Booking.check_out_date > date_from)
    if date_to:
        q = q.filter(Booking.check_in_date <= date_to)
    total = q.count()
    bookings = q.offset(skip).limit(limit).all()
    return {
        "items": [BookingRead.model_validate(b).model_dump(mode="json") for b in bookings],
        "total": total,
    }


@router.post("/bookings", tags=["bookings"], status_code=201)
def create_booking(
    body: BookingCreate,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("EDIT_BOOKINGS")),
):
    """Create a pending booking. Overlap with an active booking on the berth is a 409."""
    from marina.models.berth import Berth
    from marina.modules.bookings import create_booking as create

    berth = _get_or_404(db, Berth, "berth_id", body.berth_id, "Berth")
    try:
        booking = create(db, berth, body.model_dump(exclude={"berth_id"}), created_by=profile.profile_id)
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "create", "booking", booking.booking_id, details={
        "berth_code": berth.code,
        "check_in_date": booking.check_in_date.isoformat(),
        "check_out_date": booking.check_out_date.isoformat(),
        "total_amount": booking.total_amount,
    }, request=request, user=profile)
    db.commit()
    return BookingRead.model_validate(booking).model_dump(mode="json")


@router.get("/bookings/{booking_id}", tags=["bookings"])
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("VIEW_BOOKINGS")),
):
    from marina.models.booking import Booking

    booking = _get_or_404(db, Booking, "booking_id", booking_id, "Booking")
    return BookingRead.model_validate(booking).model_dump(mode="json")


@router.patch("/bookings/{booking_id}", tags=["bookings"])
def update_booking(
    booking_id: int,
    body: BookingUpdate,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("EDIT_BOOKINGS")),
):
    from marina.models.booking import Booking
    from marina.modules.bookings import update_booking as update

    booking = _get_or_404(db, Booking, "booking_id", booking_id, "Booking")
    updates = body.model_dump(exclude_unset=True)
    try:
        update(db, booking, updates)
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "update", "booking", booking_id, details=body.model_dump(mode="json", exclude_unset=True),
               request=request, user=profile)
    db.commit()
    return BookingRead.model_validate(booking).model_dump(mode="json")


@router.post("/bookings/{booking_id}/status", tags=["bookings"])
def update_booking_status(
    booking_id: int,
    body: BookingStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("EDIT_BOOKINGS")),
):
    from marina.models.booking import Booking
    from marina.modules.bookings import change_booking_status

    booking = _get_or_404(db, Booking, "booking_id", booking_id, "Booking")
    old_status = booking.status.value
    try:
        change_booking_status(db, booking, body.status, reason=body.reason)
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "status_change", "booking", booking_id, details={
        "old_status": old_status, "new_status": body.status.value, "reason": body.reason,
    }, request=request, user=profile)
    db.commit()
    return BookingRead.model_validate(booking).model_dump(mode="json")


@router.get("/bookings/{booking_id}/payments", tags=["payments"])
def list_payments(
    booking_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("VIEW_PAYMENT_DETAILS")),
):
    from marina.models.booking import Booking

    booking = _get_or_404(db, Booking, "booking_id", booking_id, "Booking")
    return {
        "booking_id": booking_id,
        "total_amount": booking.total_amount,
        "amount_paid": booking.amount_paid,
        "payment_status": booking.payment_status.value,
        "payments": [PaymentRead.model_validate(p).model_dump(mode="json") for p in booking.payments],
    }


@router.post("/bookings/{booking_id}/payments", tags=["payments"], status_code=201)
def add_payment(
    booking_id: int,
    body: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("EDIT_PAYMENTS")),
):
    """Append a payment; amount_paid and payment_status are recomputed from all payments."""
    from marina.models.booking import Booking
    from marina.modules.bookings import record_payment

    booking = _get_or_404(db, Booking, "booking_id", booking_id, "Booking")
    try:
        payment = record_payment(
            db, booking, body.amount,
            payment_method=body.payment_method,
            payment_date=body.payment_date,
            reference_number=body.reference_number,
            notes=body.notes,
            recorded_by=profile.profile_id,
        )
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "payment", "booking", booking_id, details={
        "amount": body.amount, "payment_status": booking.payment_status.value,
    }, request=request, user=profile)
    db.commit()
    return {
        "payment": PaymentRead.model_validate(payment).model_dump(mode="json"),
        "amount_paid": booking.amount_paid,
        "payment_status": booking.payment_status.value,
    }


@router.post("/pricing/quote", tags=["bookings"])
def pricing_quote(
    body: PricingQuoteRequest,
    profile: Profile = Depends(require_permission("VIEW_BOOKINGS")),
):
    """Price a stay without saving it (booking form preview)."""
    from marina.modules.pricing import calculate_booking_total, nights_between

    nights = nights_between(body.check_in_date, body.check_out_date)
    tax = body.tax_percent if body.tax_percent is not None else settings.DEFAULT_TAX_PERCENT
    return {
        "total_nights": nights,
        "price_per_day": body.price_per_day,
        "discount_percent": body.discount_percent,
        "tax_percent": tax,
        **calculate_booking_total(body.price_per_day, nights, body.discount_percent, tax),
    }


# ---------------------------------------------------------------------------
# Inspections
# ---------------------------------------------------------------------------

@router.post("/inspections", tags=["inspections"], status_code=201)
def create_inspection(
    body: InspectionCreate,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("RECORD_INSPECTION")),
):
    """Record an inspection and its effects (violation, check-in) atomically."""
    from marina.models.berth import Berth
    from marina.modules.berth_status import occupancy_to_dict
    from marina.modules.inspection_workflow import (
        InspectionSubmission, resolve_for_inspection, submit_inspection,
    )

    berth = _get_or_404(db, Berth, "berth_id", body.berth_id, "Berth")
    submission = InspectionSubmission(
        status=body.status,
        found_vessel_name=body.found_vessel_name,
        found_vessel_registration=body.found_vessel_registration,
        notes=body.notes,
        photo_url=body.photo_url,
    )
    try:
        outcome = submit_inspection(db, berth, submission, inspector=profile)
        _audit_log(db, "inspect", "berth", berth.berth_id, details={
            "inspection_id": outcome.inspection.inspection_id,
            "status": outcome.inspection.status.value,
            "violation_id": outcome.violation.violation_id if outcome.violation else None,
            "checked_in_booking_id": outcome.checked_in_booking_id,
        }, request=request, user=profile)
        db.commit()
    except MarinaError as e:
        db.rollback()
        raise _http_error(e)
    except Exception:
        db.rollback()
        raise

    after = resolve_for_inspection(db, berth, outcome.inspection.inspected_at.date())
    return {
        "inspection": InspectionRead.model_validate(outcome.inspection).model_dump(mode="json"),
        "violation": (
            ViolationRead.model_validate(outcome.violation).model_dump(mode="json")
            if outcome.violation is not None else None
        ),
        "checked_in_booking_id": outcome.checked_in_booking_id,
        "occupancy": occupancy_to_dict(after),
    }


@router.get("/inspections", tags=["inspections"])
def list_inspections(
    berth_id: Optional[int] = None,
    day: Optional[date] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("VIEW_INSPECTION")),
):
    from marina.models.inspection import Inspection

    limit = min(limit, settings.MAX_QUERY_LIMIT)
    q = db.query(Inspection).order_by(Inspection.inspected_at.desc(), Inspection.inspection_id.desc())
    if berth_id is not None:
        q = q.filter(Inspection.berth_id == berth_id)
    if day is not None:
        start = datetime.combine(day, datetime.min.time())
        q = q.filter(Inspection.inspected_at >= start, Inspection.inspected_at < start + timedelta(days=1))
    total = q.count()
    rows = q.offset(skip).limit(limit).all()
    return {
        "items": [InspectionRead.model_validate(i).model_dump(mode="json") for i in rows],
        "total": total,
    }


# ---------------------------------------------------------------------------
# Violations
# ---------------------------------------------------------------------------

@router.get("/violations", tags=["violations"])
def list_violations(
    status: Optional[ViolationStatusEnum] = None,
    berth_id: Optional[int] = None,
    open_only: bool = False,
    db: Session = Depends(get_db),
    state: MarinaState = Depends(get_marina_state),
    profile: Profile = Depends(require_permission("VIEW_VIOLATIONS")),
):
    """All violations, or the cached open queue when open_only is set."""
    from marina.models.violation import Violation
    from marina.modules.tickets import open_violations

    if open_only:
        items = state.views.get_or_compute(
            "violation_queue", None,
            lambda: [ViolationRead.model_validate(v).model_dump(mode="json") for v in open_violations(db)],
        )
        return {"items": items, "total": len(items)}

    q = db.query(Violation).order_by(Violation.created_at.desc(), Violation.violation_id.desc())
    if status:
        q = q.filter(Violation.status == status)
    if berth_id is not None:
        q = q.filter(Violation.berth_id == berth_id)
    rows = q.limit(settings.MAX_QUERY_LIMIT).all()
    return {
        "items": [ViolationRead.model_validate(v).model_dump(mode="json") for v in rows],
        "total": len(rows),
    }


@router.post("/violations", tags=["violations"], status_code=201)
def create_violation(
    body: ViolationCreate,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("RECORD_INSPECTION")),
):
    from marina.models.berth import Berth
    from marina.modules.tickets import report_violation

    berth = _get_or_404(db, Berth, "berth_id", body.berth_id, "Berth") if body.berth_id else None
    try:
        violation = report_violation(
            db, body.violation_type, body.description,
            berth=berth,
            vessel_name=body.vessel_name,
            vessel_registration=body.vessel_registration,
            vessel_description=body.vessel_description,
            location_description=body.location_description,
            photo_urls=body.photo_urls,
            reporter=profile,
        )
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "create", "violation", violation.violation_id,
               details={"violation_type": body.violation_type.value}, request=request, user=profile)
    db.commit()
    return ViolationRead.model_validate(violation).model_dump(mode="json")


@router.post("/violations/{violation_id}/status", tags=["violations"])
def update_violation_status(
    violation_id: int,
    body: ViolationStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("EDIT_VIOLATIONS")),
):
    from marina.models.violation import Violation
    from marina.modules.tickets import change_violation_status

    violation = _get_or_404(db, Violation, "violation_id", violation_id, "Violation")
    old_status = violation.status.value
    try:
        change_violation_status(db, violation, body.status, actor=profile, resolution_notes=body.resolution_notes)
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "status_change", "violation", violation_id, details={
        "old_status": old_status, "new_status": body.status.value,
    }, request=request, user=profile)
    db.commit()
    return ViolationRead.model_validate(violation).model_dump(mode="json")


# ---------------------------------------------------------------------------
# Damage reports
# ---------------------------------------------------------------------------

@router.get("/damage-reports", tags=["damage"])
def list_damage_reports(
    status: Optional[DamageStatusEnum] = None,
    open_only: bool = False,
    db: Session = Depends(get_db),
    state: MarinaState = Depends(get_marina_state),
    profile: Profile = Depends(require_permission("REPORT_DAMAGE")),
):
    """All damage reports, or the cached open queue (most severe first)."""
    from marina.models.damage_report import DamageReport
    from marina.modules.tickets import open_damage_reports

    if open_only:
        items = state.views.get_or_compute(
            "damage_queue", None,
            lambda: [DamageReportRead.model_validate(r).model_dump(mode="json") for r in open_damage_reports(db)],
        )
        return {"items": items, "total": len(items)}

    q = db.query(DamageReport).order_by(DamageReport.created_at.desc(), DamageReport.report_id.desc())
    if status:
        q = q.filter(DamageReport.status == status)
    rows = q.limit(settings.MAX_QUERY_LIMIT).all()
    return {
        "items": [DamageReportRead.model_validate(r).model_dump(mode="json") for r in rows],
        "total": len(rows),
    }


@router.post("/damage-reports", tags=["damage"], status_code=201)
def create_damage_report(
    body: DamageReportCreate,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("REPORT_DAMAGE")),
):
    from marina.models.berth import Berth
    from marina.modules.tickets import report_damage

    berth = _get_or_404(db, Berth, "berth_id", body.berth_id, "Berth") if body.berth_id else None
    try:
        report = report_damage(
            db, body.title, body.description, body.category, body.location_description,
            location_type=body.location_type,
            severity=body.severity,
            berth=berth,
            photo_urls=body.photo_urls,
            reporter=profile,
        )
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "create", "damage_report", report.report_id,
               details={"severity": body.severity.value, "category": body.category.value},
               request=request, user=profile)
    db.commit()
    return DamageReportRead.model_validate(report).model_dump(mode="json")


@router.post("/damage-reports/{report_id}/status", tags=["damage"])
def update_damage_status(
    report_id: int,
    body: DamageStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("REPORT_DAMAGE")),
):
    from marina.models.damage_report import DamageReport
    from marina.modules.tickets import change_damage_status

    report = _get_or_404(db, DamageReport, "report_id", report_id, "Damage report")
    old_status = report.status.value
    try:
        change_damage_status(
            db, report, body.status, actor=profile,
            resolution_notes=body.resolution_notes, assigned_to=body.assigned_to,
        )
    except MarinaError as e:
        raise _http_error(e)
    _audit_log(db, "status_change", "damage_report", report_id, details={
        "old_status": old_status, "new_status": body.status.value,
    }, request=request, user=profile)
    db.commit()
    return DamageReportRead.model_validate(report).model_dump(mode="json")


# ---------------------------------------------------------------------------
# Reports, change feed, audit log
# ---------------------------------------------------------------------------

@router.get("/reports/daily", tags=["reports"])
def daily_report(
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
    state: MarinaState = Depends(get_marina_state),
    profile: Profile = Depends(require_permission("VIEW_REPORTS")),
):
    """Arrivals, departures, current guests, occupancy and revenue for one day."""
    from marina.models.berth import Berth
    from marina.models.booking import Booking
    from marina.modules.reports import daily_report as build_report

    day = as_of or _today()

    def _compute() -> dict:
        berths = db.query(Berth).order_by(Berth.code).all()
        return build_report(berths, db.query(Booking).all(), day)

    return state.views.get_or_compute("daily_report", day, _compute)


@router.get("/changes", tags=["realtime"])
def list_changes(
    since: int = Query(0, ge=0),
    state: MarinaState = Depends(get_marina_state),
    profile: Profile = Depends(get_current_profile),
):
    """Committed changes after ``since``. ``complete`` false means: refetch everything."""
    events, complete = state.feed.events_since(since)
    return {
        "latest": state.feed.latest_sequence,
        "complete": complete,
        "events": [e.to_dict() for e in events],
    }


@router.get("/audit-log", tags=["admin"])
def list_audit_logs(
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    user_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_permission("VIEW_AUDIT_LOG")),
):
    """List audit log entries, newest first."""
    from marina.models.audit_log import AuditLog
    q = db.query(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.audit_id.desc())
    if action:
        q = q.filter(AuditLog.action == action)
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)
    total = q.count()
    logs = q.offset(skip).limit(limit).all()
    return {
        "total": total,
        "logs": [
            {
                "audit_id": l.audit_id,
                "action": l.action,
                "entity_type": l.entity_type,
                "entity_id": l.entity_id,
                "user_id": l.user_id,
                "details": l.details,
                "created_at": l.created_at.isoformat() if l.created_at else None,
            }
            for l in logs
        ],
    }

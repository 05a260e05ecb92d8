"""Inspection workflow: one inspector visit to one berth.

The inspector's choice depends on whether the resolver found an expected
vessel for the berth today:

    expected vessel   → correct | wrong_vessel | missing_vessel
    no expected vessel → empty_ok | illegal_mooring

Effects of each choice (plan_inspection_effects):

    correct          inspection; covering booking → checked_in
    missing_vessel   inspection only (logged as an anomaly)
    empty_ok         inspection only
    wrong_vessel     inspection + violation(wrong_berth); found registration required
    illegal_mooring  inspection + violation(illegal_mooring); found registration required

submit_inspection() writes all effects in the caller's transaction: it only
flushes, so if any write fails the route's rollback discards the inspection,
the violation and the booking change together.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from marina.models.base import BookingStatusEnum, InspectionStatusEnum, ViolationTypeEnum
from marina.models.berth import Berth
from marina.models.boat_placement import BoatPlacement
from marina.models.inspection import Inspection
from marina.models.violation import Violation
from marina.modules.berth_status import BerthOccupancy, latest_placement_for, resolve_berth_status
from marina.modules.bookings import bookings_for_day, change_booking_status
from marina.modules.errors import InspectionValidationError
from marina.utils.enums import require_exhaustive
from marina.utils.clock import utcnow

logger = logging.getLogger(__name__)

CHOICES_WITH_EXPECTED_VESSEL = frozenset({
    InspectionStatusEnum.CORRECT,
    InspectionStatusEnum.WRONG_VESSEL,
    InspectionStatusEnum.MISSING_VESSEL,
})
CHOICES_WITHOUT_EXPECTED_VESSEL = frozenset({
    InspectionStatusEnum.EMPTY_OK,
    InspectionStatusEnum.ILLEGAL_MOORING,
})


@dataclass(frozen=True)
class InspectionEffects:
    violation_type: Optional[ViolationTypeEnum]
    check_in_booking: bool
    requires_found_vessel: bool
    is_anomaly: bool = False


_EFFECTS: dict[InspectionStatusEnum, InspectionEffects] = {
    InspectionStatusEnum.CORRECT: InspectionEffects(
        violation_type=None, check_in_booking=True, requires_found_vessel=False,
    ),
    InspectionStatusEnum.MISSING_VESSEL: InspectionEffects(
        violation_type=None, check_in_booking=False, requires_found_vessel=False, is_anomaly=True,
    ),
    InspectionStatusEnum.EMPTY_OK: InspectionEffects(
        violation_type=None, check_in_booking=False, requires_found_vessel=False,
    ),
    InspectionStatusEnum.WRONG_VESSEL: InspectionEffects(
        violation_type=ViolationTypeEnum.WRONG_BERTH, check_in_booking=False, requires_found_vessel=True,
    ),
    InspectionStatusEnum.ILLEGAL_MOORING: InspectionEffects(
        violation_type=ViolationTypeEnum.ILLEGAL_MOORING, check_in_booking=False, requires_found_vessel=True,
    ),
}
require_exhaustive(_EFFECTS, InspectionStatusEnum, "inspection effects")

INSPECTION_STATUS_LABELS: dict[InspectionStatusEnum, str] = {
    InspectionStatusEnum.CORRECT: "Correct vessel",
    InspectionStatusEnum.WRONG_VESSEL: "Wrong vessel",
    InspectionStatusEnum.ILLEGAL_MOORING: "Illegal mooring",
    InspectionStatusEnum.MISSING_VESSEL: "Vessel missing",
    InspectionStatusEnum.EMPTY_OK: "Empty, OK",
}
require_exhaustive(INSPECTION_STATUS_LABELS, InspectionStatusEnum, "INSPECTION_STATUS_LABELS")


@dataclass
class InspectionSubmission:
    status: InspectionStatusEnum | str
    found_vessel_name: Optional[str] = None
    found_vessel_registration: Optional[str] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None


@dataclass
class InspectionOutcome:
    inspection: Inspection
    violation: Optional[Violation]
    checked_in_booking_id: Optional[int]
    occupancy: BerthOccupancy


def allowed_choices(occupancy: BerthOccupancy) -> frozenset[InspectionStatusEnum]:
    if occupancy.has_expected_vessel:
        return CHOICES_WITH_EXPECTED_VESSEL
    return CHOICES_WITHOUT_EXPECTED_VESSEL


def plan_inspection_effects(status, occupancy: BerthOccupancy) -> InspectionEffects:
    """Pure transition function: which writes does this choice imply for this berth state?"""
    choice = InspectionStatusEnum(status)
    if choice not in allowed_choices(occupancy):
        expected = "an expected vessel" if occupancy.has_expected_vessel else "no expected vessel"
        raise InspectionValidationError(
            f"'{choice.value}' is not a valid result for a berth with {expected}; "
            f"choose one of {sorted(c.value for c in allowed_choices(occupancy))}",
            field="status",
        )
    effects = _EFFECTS[choice]
    # A placement-only expectation has no booking to check in.
    if effects.check_in_booking and occupancy.covering_booking is None:
        return InspectionEffects(
            violation_type=effects.violation_type,
            check_in_booking=False,
            requires_found_vessel=effects.requires_found_vessel,
            is_anomaly=effects.is_anomaly,
        )
    return effects


def validate_submission(submission: InspectionSubmission, occupancy: BerthOccupancy) -> InspectionEffects:
    """All local checks; raises before anything is written."""
    try:
        InspectionStatusEnum(submission.status)
    except ValueError:
        raise InspectionValidationError(
            f"Unknown inspection status '{submission.status}'", field="status",
        ) from None
    effects = plan_inspection_effects(submission.status, occupancy)
    if effects.requires_found_vessel and not (submission.found_vessel_registration or "").strip():
        raise InspectionValidationError(
            "found_vessel_registration is required when reporting a wrong or illegally moored vessel",
            field="found_vessel_registration",
        )
    return effects


def resolve_for_inspection(db: Session, berth: Berth, as_of: date) -> BerthOccupancy:
    """Current resolver output for one berth, read inside the writing transaction."""
    bookings = bookings_for_day(db, as_of, berth_ids=[berth.berth_id])
    placements = db.query(BoatPlacement).filter(BoatPlacement.berth_id == berth.berth_id).all()
    return resolve_berth_status(
        berth.berth_id, bookings, as_of, placement=latest_placement_for(placements, berth.berth_id),
    )


def _violation_description(status: InspectionStatusEnum, berth: Berth, submission: InspectionSubmission) -> str:
    if submission.notes:
        return submission.notes
    registration = submission.found_vessel_registration.strip()
    if status == InspectionStatusEnum.ILLEGAL_MOORING:
        return f"Vessel moored without a booking at berth {berth.code}. Registration: {registration}"
    return f"Wrong vessel found at berth {berth.code}. Registration: {registration}"


def submit_inspection(
    db: Session,
    berth: Berth,
    submission: InspectionSubmission,
    inspector=None,
    as_of: Optional[date] = None,
    now: Optional[datetime] = None,
) -> InspectionOutcome:
    """Record one inspection and its side effects. Flushes; the caller commits.

    The expected-vessel fields are copied from the resolver now, so editing
    the booking later never rewrites what the inspector was told to expect.
    Repeat inspections of the same berth on the same day are allowed; each
    call adds a new row.
    """
    now = now or utcnow()
    as_of = as_of or now.date()

    occupancy = resolve_for_inspection(db, berth, as_of)
    effects = validate_submission(submission, occupancy)
    status = InspectionStatusEnum(submission.status)

    expected = occupancy.expected_vessel
    covering = occupancy.covering_booking
    found_registration = (submission.found_vessel_registration or "").strip() or None

    inspection = Inspection(
        berth_id=berth.berth_id,
        berth_code=berth.code,
        booking_id=covering.booking_id if covering is not None else None,
        inspector_id=getattr(inspector, "profile_id", None),
        inspector_name=getattr(inspector, "full_name", None),
        status=status,
        expected_vessel_name=expected.name if expected else None,
        expected_vessel_registration=expected.registration if expected else None,
        found_vessel_name=submission.found_vessel_name or None,
        found_vessel_registration=found_registration,
        notes=submission.notes or None,
        photo_url=submission.photo_url or None,
        inspected_at=now,
    )
    db.add(inspection)
    db.flush()

    violation = None
    if effects.violation_type is not None:
        violation = Violation(
            inspection_id=inspection.inspection_id,
            berth_id=berth.berth_id,
            berth_code=berth.code,
            violation_type=effects.violation_type,
            vessel_name=submission.found_vessel_name or None,
            vessel_registration=found_registration,
            description=_violation_description(status, berth, submission),
            photo_urls=[submission.photo_url] if submission.photo_url else None,
            reported_by=getattr(inspector, "profile_id", None),
            reported_by_name=getattr(inspector, "full_name", None),
            created_at=now,
        )
        db.add(violation)
        db.flush()
        logger.info(
            "Inspection %s at berth %s opened %s violation %s (found %s)",
            inspection.inspection_id, berth.code, effects.violation_type.value,
            violation.violation_id, found_registration,
        )

    checked_in_id = None
    if effects.check_in_booking and BookingStatusEnum(covering.status) != BookingStatusEnum.CHECKED_IN:
        change_booking_status(db, covering, BookingStatusEnum.CHECKED_IN, now=now)
        checked_in_id = covering.booking_id

    if effects.is_anomaly:
        logger.warning(
            "Inspection %s: expected vessel %s missing from berth %s",
            inspection.inspection_id, expected.registration if expected else None, berth.code,
        )

    return InspectionOutcome(
        inspection=inspection,
        violation=violation,
        checked_in_booking_id=checked_in_id,
        occupancy=occupancy,
    )

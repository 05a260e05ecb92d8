"""Transit booking service: creation, edits, lifecycle and payments.

All functions flush but never commit: the caller (API route or CLI command)
owns the transaction, so a failure anywhere in a request rolls back every
write it made.

Overlap rule: at most one active (pending/confirmed/checked_in) booking may
cover any night of a berth. The query below runs inside the writing
transaction; on PostgreSQL the exclusion constraint installed by
marina.database closes the race between two concurrent creators (the loser
gets an IntegrityError, surfaced as HTTP 409).
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from marina.config import settings
from marina.models.base import (
    ACTIVE_BOOKING_STATUSES, BerthStatusEnum, BookingStatusEnum, PaymentStatusEnum,
)
from marina.models.berth import Berth
from marina.models.booking import Booking, BookingPayment
from marina.modules.errors import BookingConflictError, InvalidTransitionError, ValidationFailed
from marina.modules.pricing import aggregate_payments, calculate_booking_total, nights_between
from marina.utils.enums import require_exhaustive
from marina.utils.clock import utc_today, utcnow

logger = logging.getLogger(__name__)

BOOKING_TRANSITIONS: dict[BookingStatusEnum, frozenset[BookingStatusEnum]] = {
    BookingStatusEnum.PENDING: frozenset({
        BookingStatusEnum.CONFIRMED,
        BookingStatusEnum.CHECKED_IN,
        BookingStatusEnum.CANCELLED,
        BookingStatusEnum.NO_SHOW,
    }),
    BookingStatusEnum.CONFIRMED: frozenset({
        BookingStatusEnum.CHECKED_IN,
        BookingStatusEnum.CANCELLED,
        BookingStatusEnum.NO_SHOW,
    }),
    BookingStatusEnum.CHECKED_IN: frozenset({BookingStatusEnum.CHECKED_OUT}),
    BookingStatusEnum.CHECKED_OUT: frozenset(),
    BookingStatusEnum.CANCELLED: frozenset(),
    BookingStatusEnum.NO_SHOW: frozenset(),
}
require_exhaustive(BOOKING_TRANSITIONS, BookingStatusEnum, "BOOKING_TRANSITIONS")

CLOSED_BOOKING_STATUSES = frozenset({
    BookingStatusEnum.CHECKED_OUT,
    BookingStatusEnum.CANCELLED,
    BookingStatusEnum.NO_SHOW,
})

# Fields a booking edit may touch; anything else (status, payment aggregate)
# goes through its own function.
EDITABLE_FIELDS = frozenset({
    "check_in_date", "check_out_date",
    "guest_name", "guest_email", "guest_phone", "guest_country",
    "vessel_name", "vessel_registration", "vessel_type", "vessel_length",
    "vessel_width", "vessel_draft", "vessel_flag", "vessel_image_url",
    "price_per_day", "discount_percent", "tax_percent",
    "notes", "internal_notes", "source",
})
_REPRICE_FIELDS = frozenset({
    "check_in_date", "check_out_date", "price_per_day", "discount_percent", "tax_percent",
})


def validate_stay(check_in: date, check_out: date) -> None:
    if check_out <= check_in:
        raise ValidationFailed("check_out_date must be after check_in_date", field="check_out_date")


def _check_vessel_fits(berth: Berth, vessel_length: Optional[float], vessel_width: Optional[float]) -> None:
    if vessel_length and berth.max_vessel_length and vessel_length > berth.max_vessel_length:
        raise ValidationFailed(
            f"Vessel length {vessel_length}m exceeds berth {berth.code} limit of {berth.max_vessel_length}m",
            field="vessel_length",
        )
    if vessel_width and berth.max_vessel_width and vessel_width > berth.max_vessel_width:
        raise ValidationFailed(
            f"Vessel width {vessel_width}m exceeds berth {berth.code} limit of {berth.max_vessel_width}m",
            field="vessel_width",
        )


def find_overlapping_bookings(
    db: Session,
    berth_id: int,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[int] = None,
) -> list[Booking]:
    """Active bookings of the berth whose stay shares at least one night with [check_in, check_out)."""
    q = db.query(Booking).filter(
        Booking.berth_id == berth_id,
        Booking.status.in_(list(ACTIVE_BOOKING_STATUSES)),
        Booking.check_in_date < check_out,
        Booking.check_out_date > check_in,
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.booking_id != exclude_booking_id)
    return q.all()


def _ensure_no_overlap(db: Session, booking: Booking) -> None:
    clashes = find_overlapping_bookings(
        db, booking.berth_id, booking.check_in_date, booking.check_out_date,
        exclude_booking_id=booking.booking_id,
    )
    if clashes:
        ids = [b.booking_id for b in clashes]
        raise BookingConflictError(
            f"Berth {booking.berth_code} is already booked for part of "
            f"{booking.check_in_date.isoformat()} – {booking.check_out_date.isoformat()} "
            f"(booking {', '.join(str(i) for i in ids)})",
            conflicting_ids=ids,
        )


def bookings_for_day(db: Session, as_of: date, berth_ids: Optional[list[int]] = None) -> list[Booking]:
    """Active bookings covering ``as_of``: the resolver's input for one day."""
    q = db.query(Booking).filter(
        Booking.check_in_date <= as_of,
        Booking.check_out_date > as_of,
        Booking.status.in_(list(ACTIVE_BOOKING_STATUSES)),
    )
    if berth_ids is not None:
        q = q.filter(Booking.berth_id.in_(berth_ids))
    return q.all()


def _apply_pricing(booking: Booking) -> None:
    nights = nights_between(booking.check_in_date, booking.check_out_date)
    totals = calculate_booking_total(
        booking.price_per_day, nights, booking.discount_percent or 0, booking.tax_percent or 0,
    )
    booking.total_nights = nights
    booking.subtotal = totals["subtotal"]
    booking.discount_amount = totals["discount_amount"]
    booking.tax_amount = totals["tax_amount"]
    booking.total_amount = totals["total_amount"]


def _refresh_payment_aggregate(booking: Booking) -> None:
    booking.amount_paid, booking.payment_status = aggregate_payments(
        booking.total_amount, [p.amount for p in booking.payments]
    )


def create_booking(db: Session, berth: Berth, data: dict, created_by: Optional[int] = None) -> Booking:
    """Create a pending, unpaid booking after validation and overlap check.

    ``data`` carries the form fields (see schemas.booking.BookingCreate).
    Price defaults to the berth's daily rate, then DEFAULT_DAILY_RATE.
    """
    check_in = data["check_in_date"]
    check_out = data["check_out_date"]
    validate_stay(check_in, check_out)

    if BerthStatusEnum(berth.status) != BerthStatusEnum.ACTIVE:
        raise ValidationFailed(
            f"Berth {berth.code} is not available for booking (status: {BerthStatusEnum(berth.status).value})",
            field="berth_id",
        )
    _check_vessel_fits(berth, data.get("vessel_length"), data.get("vessel_width"))

    price_per_day = data.get("price_per_day")
    if price_per_day is None:
        price_per_day = berth.daily_rate if berth.daily_rate is not None else settings.DEFAULT_DAILY_RATE
    tax_percent = data.get("tax_percent")
    if tax_percent is None:
        tax_percent = settings.DEFAULT_TAX_PERCENT

    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}
    fields.update({
        "price_per_day": price_per_day,
        "tax_percent": tax_percent,
        "discount_percent": data.get("discount_percent") or 0,
    })
    booking = Booking(
        berth_id=berth.berth_id,
        berth_code=berth.code,
        status=BookingStatusEnum.PENDING,
        payment_status=PaymentStatusEnum.UNPAID,
        amount_paid=0.0,
        created_by=created_by,
        created_at=utcnow(),
        **fields,
    )
    _apply_pricing(booking)
    _ensure_no_overlap(db, booking)

    db.add(booking)
    db.flush()
    logger.info(
        "Booking %s created for berth %s (%s – %s, total %.2f)",
        booking.booking_id, berth.code, check_in, check_out, booking.total_amount,
    )
    return booking


def update_booking(db: Session, booking: Booking, updates: dict) -> Booking:
    """Edit form fields; re-price and re-check overlap when the stay or rate changes."""
    if BookingStatusEnum(booking.status) in CLOSED_BOOKING_STATUSES:
        raise InvalidTransitionError(
            f"Booking {booking.booking_id} is {BookingStatusEnum(booking.status).value} and can no longer be edited"
        )
    unknown = set(updates) - EDITABLE_FIELDS
    if unknown:
        raise ValidationFailed(f"Fields not editable: {sorted(unknown)}")

    for key, value in updates.items():
        setattr(booking, key, value)

    if "vessel_length" in updates or "vessel_width" in updates:
        _check_vessel_fits(booking.berth, booking.vessel_length, booking.vessel_width)

    if _REPRICE_FIELDS & set(updates):
        validate_stay(booking.check_in_date, booking.check_out_date)
        _ensure_no_overlap(db, booking)
        _apply_pricing(booking)
        _refresh_payment_aggregate(booking)

    db.flush()
    return booking


def change_booking_status(
    db: Session,
    booking: Booking,
    new_status: BookingStatusEnum | str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """Move a booking forward through its lifecycle, stamping the matching timestamp."""
    current = BookingStatusEnum(booking.status)
    target = BookingStatusEnum(new_status)
    if target not in BOOKING_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Booking {booking.booking_id} cannot go from {current.value} to {target.value}"
        )

    now = now or utcnow()
    booking.status = target
    if target == BookingStatusEnum.CONFIRMED:
        booking.confirmed_at = now
    elif target == BookingStatusEnum.CHECKED_IN:
        booking.actual_check_in = now
    elif target == BookingStatusEnum.CHECKED_OUT:
        booking.actual_check_out = now
    elif target in (BookingStatusEnum.CANCELLED, BookingStatusEnum.NO_SHOW):
        booking.cancelled_at = now
        booking.cancellation_reason = reason

    db.flush()
    logger.info("Booking %s: %s → %s", booking.booking_id, current.value, target.value)
    return booking


def record_payment(
    db: Session,
    booking: Booking,
    amount: float,
    payment_method=None,
    payment_date: Optional[date] = None,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
    recorded_by: Optional[int] = None,
) -> BookingPayment:
    """Append a payment and recompute amount_paid / payment_status from all payments."""
    if amount is None or amount <= 0:
        raise ValidationFailed("Payment amount must be positive", field="amount")
    status = BookingStatusEnum(booking.status)
    if status in (BookingStatusEnum.CANCELLED, BookingStatusEnum.NO_SHOW):
        raise InvalidTransitionError(
            f"Cannot record a payment on a {status.value} booking"
        )

    payment = BookingPayment(
        amount=amount,
        payment_date=payment_date or utc_today(),
        payment_method=payment_method,
        reference_number=reference_number,
        notes=notes,
        recorded_by=recorded_by,
        created_at=utcnow(),
    )
    booking.payments.append(payment)
    _refresh_payment_aggregate(booking)
    db.flush()
    logger.info(
        "Payment %.2f recorded on booking %s (paid %.2f / %.2f, %s)",
        amount, booking.booking_id, booking.amount_paid, booking.total_amount,
        booking.payment_status.value,
    )
    return payment

"""Daily operations report.

Occupancy figures come from the berth status resolver, so the report and the
map board always agree for the same day and the same rows.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable, Sequence

from marina.models.base import BookingStatusEnum, PaymentStatusEnum
from marina.modules.berth_status import OccupancyStatus, resolve_berth_status
from marina.modules.pricing import round_currency

# Revenue never counts bookings that will not be paid.
NON_REVENUE_STATUSES = frozenset({BookingStatusEnum.CANCELLED, BookingStatusEnum.NO_SHOW})
_SETTLED_STATUSES = NON_REVENUE_STATUSES | {BookingStatusEnum.CHECKED_OUT}


def _booking_summary(booking) -> dict:
    return {
        "booking_id": booking.booking_id,
        "berth_code": booking.berth_code,
        "guest_name": booking.guest_name,
        "vessel_name": booking.vessel_name,
        "vessel_registration": booking.vessel_registration,
        "check_in_date": booking.check_in_date.isoformat(),
        "check_out_date": booking.check_out_date.isoformat(),
        "status": BookingStatusEnum(booking.status).value,
        "total_amount": booking.total_amount,
        "amount_paid": booking.amount_paid,
    }


def daily_report(berths: Sequence, bookings: Iterable, as_of: date) -> dict:
    bookings = list(bookings)
    by_berth: dict[int, list] = defaultdict(list)
    for b in bookings:
        by_berth[b.berth_id].append(b)

    counts = {s.value: 0 for s in OccupancyStatus}
    current_guests = []
    for berth in berths:
        occupancy = resolve_berth_status(berth.berth_id, by_berth.get(berth.berth_id, []), as_of)
        counts[occupancy.status.value] += 1
        if occupancy.status == OccupancyStatus.OCCUPIED:
            current_guests.append(_booking_summary(occupancy.covering_booking))

    arrivals = [
        _booking_summary(b) for b in bookings
        if b.check_in_date == as_of
        and BookingStatusEnum(b.status) in (BookingStatusEnum.PENDING, BookingStatusEnum.CONFIRMED)
    ]
    departures = [
        _booking_summary(b) for b in bookings
        if b.check_out_date == as_of and BookingStatusEnum(b.status) == BookingStatusEnum.CHECKED_IN
    ]
    pending_payments = [
        _booking_summary(b) for b in bookings
        if PaymentStatusEnum(b.payment_status) != PaymentStatusEnum.PAID
        and BookingStatusEnum(b.status) not in _SETTLED_STATUSES
    ]

    revenue_rows = [b for b in bookings if BookingStatusEnum(b.status) not in NON_REVENUE_STATUSES]
    total_revenue = round_currency(sum(b.total_amount or 0 for b in revenue_rows))
    collected = round_currency(sum(b.amount_paid or 0 for b in revenue_rows))

    per_berth: dict[str, dict] = {}
    for b in revenue_rows:
        row = per_berth.setdefault(b.berth_code, {"bookings": 0, "revenue": 0.0, "paid": 0.0})
        row["bookings"] += 1
        row["revenue"] = round_currency(row["revenue"] + (b.total_amount or 0))
        row["paid"] = round_currency(row["paid"] + (b.amount_paid or 0))

    total_berths = len(berths)
    taken = counts[OccupancyStatus.OCCUPIED.value] + counts[OccupancyStatus.RESERVED.value]
    return {
        "as_of": as_of.isoformat(),
        "arrivals": arrivals,
        "departures": departures,
        "current_guests": current_guests,
        "pending_payments": pending_payments,
        "occupancy": {
            "total_berths": total_berths,
            **counts,
            "occupancy_rate": round(taken * 100 / total_berths) if total_berths else 0,
        },
        "revenue": {
            "total": total_revenue,
            "collected": collected,
            "outstanding": round_currency(total_revenue - collected),
            "by_berth": dict(sorted(per_berth.items(), key=lambda kv: kv[1]["revenue"], reverse=True)),
        },
    }

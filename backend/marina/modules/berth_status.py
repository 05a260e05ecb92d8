"""Berth Status Resolver: derives free/occupied/reserved from bookings.

A berth's occupancy is never stored. It is recomputed from three independent
signals:

  - bookings: the unique *active* booking whose [check_in, check_out) range
    contains the day (the "covering booking") decides the status
  - boat placements: a vessel marker dropped on the map supplies the expected
    vessel when no booking covers the day; it never changes the status
  - inspections: the most recent inspection of the day is attached for display
    ("already inspected today"); it is not a constraint

Everything here is pure (no session, no clock), so the map board, table
views and reports all agree for the same inputs and can be recomputed locally
whenever the change feed reports new rows.
"""
from __future__ import annotations

import enum
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Optional, Sequence

from marina.models.base import ACTIVE_BOOKING_STATUSES, BookingStatusEnum
from marina.utils.enums import require_exhaustive, require_keys

logger = logging.getLogger(__name__)


class OccupancyStatus(str, enum.Enum):
    FREE = "free"
    OCCUPIED = "occupied"
    RESERVED = "reserved"


# Only active booking statuses appear here; anything else never covers a day.
OCCUPANCY_BY_BOOKING_STATUS: dict[BookingStatusEnum, OccupancyStatus] = {
    BookingStatusEnum.CHECKED_IN: OccupancyStatus.OCCUPIED,
    BookingStatusEnum.CONFIRMED: OccupancyStatus.RESERVED,
    BookingStatusEnum.PENDING: OccupancyStatus.RESERVED,
}
require_keys(OCCUPANCY_BY_BOOKING_STATUS, ACTIVE_BOOKING_STATUSES, "OCCUPANCY_BY_BOOKING_STATUS")

OCCUPANCY_DISPLAY: dict[OccupancyStatus, dict[str, str]] = {
    OccupancyStatus.FREE: {"label": "Free", "color": "#22c55e"},
    OccupancyStatus.OCCUPIED: {"label": "Occupied", "color": "#ef4444"},
    OccupancyStatus.RESERVED: {"label": "Reserved", "color": "#f59e0b"},
}
require_exhaustive(OCCUPANCY_DISPLAY, OccupancyStatus, "OCCUPANCY_DISPLAY")


@dataclass(frozen=True)
class ExpectedVessel:
    """Vessel an inspector should find at the berth."""
    name: Optional[str]
    registration: Optional[str]
    source: str  # "booking" or "placement"


@dataclass(frozen=True)
class BerthOccupancy:
    berth_id: int
    as_of: date
    status: OccupancyStatus
    covering_booking: Any = None
    expected_vessel: Optional[ExpectedVessel] = None
    # Non-empty only when several active bookings overlap the day (data fault)
    conflicting_booking_ids: tuple[int, ...] = ()

    @property
    def has_conflict(self) -> bool:
        return len(self.conflicting_booking_ids) > 1

    @property
    def has_expected_vessel(self) -> bool:
        return self.expected_vessel is not None


def _booking_status(booking) -> BookingStatusEnum:
    return BookingStatusEnum(booking.status)


def booking_covers(booking, as_of: date) -> bool:
    """True if the booking is active and its half-open stay contains ``as_of``.

    Check-out day is exclusive: it is a free day that can be resold.
    """
    if _booking_status(booking) not in ACTIVE_BOOKING_STATUSES:
        return False
    return booking.check_in_date <= as_of < booking.check_out_date


def covering_bookings(berth_id: int, bookings: Iterable, as_of: date) -> list:
    return [
        b for b in bookings
        if b.berth_id == berth_id and booking_covers(b, as_of)
    ]


def _recency_key(booking) -> tuple[datetime, int]:
    return (booking.created_at or datetime.min, booking.booking_id or 0)


def _vessel_from_booking(booking) -> ExpectedVessel:
    return ExpectedVessel(
        name=booking.vessel_name,
        registration=booking.vessel_registration,
        source="booking",
    )


def _vessel_from_placement(placement) -> Optional[ExpectedVessel]:
    if placement is None:
        return None
    if not (placement.vessel_name or placement.vessel_registration):
        return None
    return ExpectedVessel(
        name=placement.vessel_name,
        registration=placement.vessel_registration,
        source="placement",
    )


def resolve_berth_status(
    berth_id: int,
    bookings: Iterable,
    as_of: date,
    placement=None,
) -> BerthOccupancy:
    """Compute the canonical occupancy of one berth on one day.

    ``bookings`` may contain rows for other berths and any status; they are
    filtered here. When more than one active booking covers the day (an
    overlap the booking service and the storage constraint should prevent),
    the most recently created one wins (ties: highest id) and the overlap is
    logged and reported on ``conflicting_booking_ids``.
    """
    matches = covering_bookings(berth_id, bookings, as_of)

    if not matches:
        return BerthOccupancy(
            berth_id=berth_id,
            as_of=as_of,
            status=OccupancyStatus.FREE,
            expected_vessel=_vessel_from_placement(placement),
        )

    conflict_ids: tuple[int, ...] = ()
    if len(matches) > 1:
        matches = sorted(matches, key=_recency_key, reverse=True)
        conflict_ids = tuple(b.booking_id for b in matches)
        logger.warning(
            "Berth %s has %d overlapping active bookings on %s: %s; using booking %s",
            berth_id, len(matches), as_of.isoformat(), list(conflict_ids), matches[0].booking_id,
        )

    covering = matches[0]
    return BerthOccupancy(
        berth_id=berth_id,
        as_of=as_of,
        status=OCCUPANCY_BY_BOOKING_STATUS[_booking_status(covering)],
        covering_booking=covering,
        expected_vessel=_vessel_from_booking(covering),
        conflicting_booking_ids=conflict_ids,
    )


def latest_inspection_on(inspections: Iterable, berth_id: int, day: date):
    """Most recent inspection of the berth on ``day``, or None."""
    todays = [
        i for i in inspections
        if i.berth_id == berth_id and i.inspected_at and i.inspected_at.date() == day
    ]
    if not todays:
        return None
    return max(todays, key=lambda i: (i.inspected_at, i.inspection_id or 0))


def latest_placement_for(placements: Iterable, berth_id: int):
    candidates = [p for p in placements if p.berth_id == berth_id]
    if not candidates:
        return None
    return max(candidates, key=lambda p: (p.created_at or datetime.min, p.placement_id or 0))


def occupancy_to_dict(occupancy: BerthOccupancy) -> dict:
    booking = occupancy.covering_booking
    vessel = occupancy.expected_vessel
    return {
        "berth_id": occupancy.berth_id,
        "as_of": occupancy.as_of.isoformat(),
        "status": occupancy.status.value,
        "label": OCCUPANCY_DISPLAY[occupancy.status]["label"],
        "color": OCCUPANCY_DISPLAY[occupancy.status]["color"],
        "covering_booking": {
            "booking_id": booking.booking_id,
            "status": _booking_status(booking).value,
            "guest_name": booking.guest_name,
            "check_in_date": booking.check_in_date.isoformat(),
            "check_out_date": booking.check_out_date.isoformat(),
        } if booking is not None else None,
        "expected_vessel": {
            "name": vessel.name,
            "registration": vessel.registration,
            "source": vessel.source,
        } if vessel is not None else None,
        "has_conflict": occupancy.has_conflict,
        "conflicting_booking_ids": list(occupancy.conflicting_booking_ids),
    }


def build_berth_board(
    berths: Sequence,
    bookings: Iterable,
    as_of: date,
    placements: Iterable = (),
    inspections: Iterable = (),
) -> list[dict]:
    """Resolve every berth for one day: the shared input of map and table views."""
    bookings_by_berth: dict[int, list] = defaultdict(list)
    for b in bookings:
        bookings_by_berth[b.berth_id].append(b)
    placements = list(placements)
    inspections = list(inspections)

    board = []
    for berth in berths:
        occupancy = resolve_berth_status(
            berth.berth_id,
            bookings_by_berth.get(berth.berth_id, []),
            as_of,
            placement=latest_placement_for(placements, berth.berth_id),
        )
        last = latest_inspection_on(inspections, berth.berth_id, as_of)
        entry = occupancy_to_dict(occupancy)
        entry.update({
            "code": berth.code,
            "pontoon": berth.code.split("-")[0] if berth.code else "",
            "latitude": berth.latitude,
            "longitude": berth.longitude,
            "lifecycle_status": getattr(berth.status, "value", berth.status),
            "inspected_today": last is not None,
            "last_inspection": {
                "inspection_id": last.inspection_id,
                "status": getattr(last.status, "value", last.status),
                "inspected_at": last.inspected_at.isoformat(),
            } if last is not None else None,
        })
        board.append(entry)
    return board


def summarize_board(board: Iterable[dict]) -> dict:
    counts = {s.value: 0 for s in OccupancyStatus}
    conflicts = []
    total = 0
    for entry in board:
        total += 1
        counts[entry["status"]] += 1
        if entry["has_conflict"]:
            conflicts.append(entry["code"])
    return {"total": total, **counts, "conflicts": conflicts}

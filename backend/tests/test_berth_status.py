"""Tests for the berth status resolver (pure functions, no database)."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from marina.models.base import BookingStatusEnum
from marina.modules.berth_status import (
    OCCUPANCY_BY_BOOKING_STATUS,
    OccupancyStatus,
    booking_covers,
    build_berth_board,
    latest_inspection_on,
    resolve_berth_status,
    summarize_board,
)

DAY = date(2025, 7, 10)


def _booking(booking_id=1, berth_id=1, check_in=DAY, nights=3, status=BookingStatusEnum.CONFIRMED,
             created_at=None, vessel_name="Bura", registration="ST-1234"):
    return SimpleNamespace(
        booking_id=booking_id,
        berth_id=berth_id,
        check_in_date=check_in,
        check_out_date=check_in + timedelta(days=nights),
        status=status,
        created_at=created_at or datetime(2025, 7, 1, 9, 0),
        guest_name="Ana Horvat",
        vessel_name=vessel_name,
        vessel_registration=registration,
    )


def _berth(berth_id, code):
    return SimpleNamespace(berth_id=berth_id, code=code, latitude=43.5, longitude=16.4, status="active")


class TestHalfOpenInterval:
    """Check-in day is covered, check-out day is not."""

    def test_check_in_day_is_covered(self):
        assert booking_covers(_booking(), DAY)

    def test_last_night_is_covered(self):
        assert booking_covers(_booking(nights=3), DAY + timedelta(days=2))

    def test_check_out_day_is_free(self):
        occupancy = resolve_berth_status(1, [_booking(nights=3)], DAY + timedelta(days=3))
        assert occupancy.status == OccupancyStatus.FREE
        assert occupancy.covering_booking is None

    def test_day_before_check_in_is_free(self):
        assert not booking_covers(_booking(), DAY - timedelta(days=1))

    def test_back_to_back_stays_hand_over_on_changeover_day(self):
        first = _booking(booking_id=1, check_in=DAY, nights=2, status=BookingStatusEnum.CHECKED_IN)
        second = _booking(booking_id=2, check_in=DAY + timedelta(days=2), nights=2)
        occupancy = resolve_berth_status(1, [first, second], DAY + timedelta(days=2))
        assert occupancy.covering_booking is second
        assert not occupancy.has_conflict


class TestStatusMapping:

    @pytest.mark.parametrize("status, expected", [
        (BookingStatusEnum.CHECKED_IN, OccupancyStatus.OCCUPIED),
        (BookingStatusEnum.CONFIRMED, OccupancyStatus.RESERVED),
        (BookingStatusEnum.PENDING, OccupancyStatus.RESERVED),
    ])
    def test_active_statuses(self, status, expected):
        assert resolve_berth_status(1, [_booking(status=status)], DAY).status == expected

    @pytest.mark.parametrize("status", [
        BookingStatusEnum.CANCELLED,
        BookingStatusEnum.NO_SHOW,
        BookingStatusEnum.CHECKED_OUT,
    ])
    def test_closed_bookings_never_cover(self, status):
        occupancy = resolve_berth_status(1, [_booking(status=status)], DAY)
        assert occupancy.status == OccupancyStatus.FREE
        assert occupancy.expected_vessel is None

    def test_string_status_values_are_accepted(self):
        assert resolve_berth_status(1, [_booking(status="checked_in")], DAY).status == OccupancyStatus.OCCUPIED

    def test_mapping_covers_exactly_the_active_statuses(self):
        assert set(OCCUPANCY_BY_BOOKING_STATUS) == {
            BookingStatusEnum.PENDING, BookingStatusEnum.CONFIRMED, BookingStatusEnum.CHECKED_IN,
        }

    def test_other_berths_bookings_are_ignored(self):
        assert resolve_berth_status(2, [_booking(berth_id=1)], DAY).status == OccupancyStatus.FREE


class TestExpectedVessel:

    def test_expected_vessel_comes_from_covering_booking(self):
        occupancy = resolve_berth_status(1, [_booking()], DAY)
        assert occupancy.has_expected_vessel
        assert occupancy.expected_vessel.registration == "ST-1234"
        assert occupancy.expected_vessel.source == "booking"

    def test_placement_supplies_vessel_when_no_booking(self):
        placement = SimpleNamespace(berth_id=1, vessel_name="Maestral", vessel_registration="ZD-77",
                                    created_at=datetime(2025, 7, 9), placement_id=1)
        occupancy = resolve_berth_status(1, [], DAY, placement=placement)
        assert occupancy.status == OccupancyStatus.FREE
        assert occupancy.expected_vessel.source == "placement"
        assert occupancy.expected_vessel.name == "Maestral"

    def test_booking_wins_over_placement(self):
        placement = SimpleNamespace(berth_id=1, vessel_name="Maestral", vessel_registration="ZD-77")
        occupancy = resolve_berth_status(1, [_booking()], DAY, placement=placement)
        assert occupancy.expected_vessel.source == "booking"

    def test_placement_without_vessel_details_is_ignored(self):
        placement = SimpleNamespace(berth_id=1, vessel_name=None, vessel_registration=None)
        assert resolve_berth_status(1, [], DAY, placement=placement).expected_vessel is None


class TestDeterminism:

    def test_same_inputs_same_output(self):
        bookings = [_booking(), _booking(booking_id=2, berth_id=2)]
        assert resolve_berth_status(1, bookings, DAY) == resolve_berth_status(1, bookings, DAY)

    def test_input_order_does_not_change_result(self):
        older = _booking(booking_id=1, created_at=datetime(2025, 7, 1))
        newer = _booking(booking_id=2, created_at=datetime(2025, 7, 2), registration="ST-9999")
        a = resolve_berth_status(1, [older, newer], DAY)
        b = resolve_berth_status(1, [newer, older], DAY)
        assert a.covering_booking is b.covering_booking is newer

    def test_overlap_is_reported_and_newest_wins(self, caplog):
        older = _booking(booking_id=1, created_at=datetime(2025, 7, 1))
        newer = _booking(booking_id=2, created_at=datetime(2025, 7, 2))
        with caplog.at_level("WARNING"):
            occupancy = resolve_berth_status(1, [older, newer], DAY)
        assert occupancy.has_conflict
        assert occupancy.conflicting_booking_ids == (2, 1)
        assert "overlapping" in caplog.text

    def test_created_at_tie_breaks_on_highest_id(self):
        same = datetime(2025, 7, 1)
        a = _booking(booking_id=5, created_at=same)
        b = _booking(booking_id=9, created_at=same)
        assert resolve_berth_status(1, [a, b], DAY).covering_booking is b


class TestBoard:

    def test_board_resolves_every_berth(self):
        berths = [_berth(1, "A-01"), _berth(2, "A-02"), _berth(3, "B-01")]
        bookings = [
            _booking(booking_id=1, berth_id=1, status=BookingStatusEnum.CHECKED_IN),
            _booking(booking_id=2, berth_id=2),
        ]
        board = build_berth_board(berths, bookings, DAY)
        assert [row["status"] for row in board] == ["occupied", "reserved", "free"]
        assert board[2]["pontoon"] == "B"
        assert summarize_board(board) == {
            "total": 3, "free": 1, "occupied": 1, "reserved": 1, "conflicts": [],
        }

    def test_board_marks_inspected_today(self):
        inspection = SimpleNamespace(berth_id=1, inspection_id=4, status="correct",
                                     inspected_at=datetime(2025, 7, 10, 8, 30))
        board = build_berth_board([_berth(1, "A-01")], [], DAY, inspections=[inspection])
        assert board[0]["inspected_today"] is True
        assert board[0]["last_inspection"]["inspection_id"] == 4

    def test_latest_inspection_ignores_other_days(self):
        yesterday = SimpleNamespace(berth_id=1, inspection_id=1, inspected_at=datetime(2025, 7, 9, 18, 0))
        assert latest_inspection_on([yesterday], 1, DAY) is None

    def test_summary_lists_conflicting_berths(self):
        bookings = [_booking(booking_id=1), _booking(booking_id=2, created_at=datetime(2025, 7, 3))]
        board = build_berth_board([_berth(1, "A-01")], bookings, DAY)
        assert summarize_board(board)["conflicts"] == ["A-01"]

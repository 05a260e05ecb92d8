"""Tests for the daily operations report."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from types import SimpleNamespace

from marina.models.base import BookingStatusEnum, PaymentStatusEnum
from marina.modules.berth_status import build_berth_board, summarize_board
from marina.modules.reports import daily_report

DAY = date(2025, 7, 10)


def _berth(berth_id, code):
    return SimpleNamespace(berth_id=berth_id, code=code, latitude=None, longitude=None, status="active")


def _booking(booking_id, berth_id, code, start, nights, status, total, paid=0.0):
    if paid >= total:
        payment_status = PaymentStatusEnum.PAID
    elif paid > 0:
        payment_status = PaymentStatusEnum.PARTIAL
    else:
        payment_status = PaymentStatusEnum.UNPAID
    return SimpleNamespace(
        booking_id=booking_id, berth_id=berth_id, berth_code=code,
        check_in_date=DAY + timedelta(days=start),
        check_out_date=DAY + timedelta(days=start + nights),
        status=status, created_at=datetime(2025, 7, 1, booking_id),
        guest_name=f"Guest {booking_id}", vessel_name=f"Vessel {booking_id}",
        vessel_registration=f"REG-{booking_id}",
        total_amount=total, amount_paid=paid, payment_status=payment_status,
    )


BERTHS = [_berth(1, "A-01"), _berth(2, "A-02"), _berth(3, "B-01"), _berth(4, "B-02")]
BOOKINGS = [
    # staying, leaves tomorrow, fully paid
    _booking(1, 1, "A-01", -2, 3, BookingStatusEnum.CHECKED_IN, 150.0, 150.0),
    # arriving today, half paid
    _booking(2, 2, "A-02", 0, 2, BookingStatusEnum.CONFIRMED, 100.0, 50.0),
    # departing today (checkout day is free)
    _booking(3, 3, "B-01", -3, 3, BookingStatusEnum.CHECKED_IN, 90.0),
    # cancelled stay on B-02 never counts
    _booking(4, 4, "B-02", 0, 4, BookingStatusEnum.CANCELLED, 200.0),
]


class TestDailyReport:

    def setup_method(self):
        self.report = daily_report(BERTHS, BOOKINGS, DAY)

    def test_arrivals_and_departures(self):
        assert [b["booking_id"] for b in self.report["arrivals"]] == [2]
        assert [b["booking_id"] for b in self.report["departures"]] == [3]

    def test_current_guests_are_occupied_berths(self):
        assert [b["booking_id"] for b in self.report["current_guests"]] == [1]

    def test_occupancy_counts(self):
        assert self.report["occupancy"] == {
            "total_berths": 4, "free": 2, "occupied": 1, "reserved": 1, "occupancy_rate": 50,
        }

    def test_pending_payments_skip_cancelled_and_paid(self):
        assert sorted(b["booking_id"] for b in self.report["pending_payments"]) == [2, 3]

    def test_revenue_excludes_cancelled(self):
        revenue = self.report["revenue"]
        assert revenue["total"] == 340.0
        assert revenue["collected"] == 200.0
        assert revenue["outstanding"] == 140.0
        assert "B-02" not in revenue["by_berth"]
        assert list(revenue["by_berth"]) == ["A-01", "A-02", "B-01"]
        assert revenue["by_berth"]["A-02"] == {"bookings": 1, "revenue": 100.0, "paid": 50.0}

    def test_report_agrees_with_board(self):
        summary = summarize_board(build_berth_board(BERTHS, BOOKINGS, DAY))
        occupancy = self.report["occupancy"]
        assert (summary["free"], summary["occupied"], summary["reserved"]) == (
            occupancy["free"], occupancy["occupied"], occupancy["reserved"],
        )

    def test_empty_marina(self):
        report = daily_report([], [], DAY)
        assert report["occupancy"]["occupancy_rate"] == 0
        assert report["revenue"]["total"] == 0.0

"""Tests for transaction ownership and schema indexes.

Service functions only flush; the route that called them owns the commit.
A failure halfway through an inspection must leave no inspection, no
violation and no booking change behind.
"""
from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import inspect

from marina.models.base import BookingStatusEnum, RoleEnum
from marina.models.berth import Berth
from marina.models.booking import Booking
from marina.models.inspection import Inspection
from marina.models.violation import Violation
from marina.utils.clock import utc_today


# ══════════════════════════════════════════════════════════════════════════════
# Services flush, never commit
# ══════════════════════════════════════════════════════════════════════════════


class TestServicesDoNotCommit:

    def test_report_violation_flushes_only(self):
        from marina.modules.tickets import report_violation

        mock_db = MagicMock()
        report_violation(mock_db, "other", "Loud generator after 22h", location_description="Pontoon C")
        mock_db.flush.assert_called_once()
        mock_db.commit.assert_not_called()

    def test_report_damage_flushes_only(self):
        from marina.modules.tickets import report_damage

        mock_db = MagicMock()
        report_damage(mock_db, "Leak", "Tap drips", "plumbing", "Shower block")
        mock_db.commit.assert_not_called()

    def test_move_berth_marker_flushes_only(self):
        from marina.modules.berths import move_berth_marker

        mock_db = MagicMock()
        berth = MagicMock()
        move_berth_marker(mock_db, berth, 43.51, 16.44)
        assert (berth.latitude, berth.longitude) == (43.51, 16.44)
        mock_db.commit.assert_not_called()

    def test_seed_flushes_only(self, db):
        from marina.modules.seed import seed_marina

        seed_marina(db, {"berths": [{"code": "A-01", "latitude": 43.5, "longitude": 16.4}]})
        db.rollback()
        assert db.query(Booking).count() == 0
        assert db.query(Berth).count() == 0


# ══════════════════════════════════════════════════════════════════════════════
# Inspection endpoint rolls back as a unit
# ══════════════════════════════════════════════════════════════════════════════


class TestInspectionRollback:

    def test_failed_check_in_leaves_nothing_behind(self, api_client, auth, berth, make_booking, db):
        today = utc_today()
        booking = make_booking(berth, today, today + timedelta(days=2), status=BookingStatusEnum.CONFIRMED)

        with patch(
            "marina.modules.inspection_workflow.change_booking_status",
            side_effect=RuntimeError("database connection lost"),
        ):
            with pytest.raises(RuntimeError):
                api_client.post("/api/v1/inspections", headers=auth(RoleEnum.INSPECTOR), json={
                    "berth_id": berth.berth_id, "status": "correct",
                })

        assert db.query(Inspection).count() == 0
        assert db.query(Violation).count() == 0
        db.refresh(booking)
        assert booking.status == BookingStatusEnum.CONFIRMED

    def test_rollback_publishes_no_changes(self, api_client, auth, berth, make_booking, db):
        today = utc_today()
        make_booking(berth, today, today + timedelta(days=2), status=BookingStatusEnum.CONFIRMED)
        headers = auth(RoleEnum.INSPECTOR)
        before = api_client.get("/api/v1/changes", headers=headers).json()["latest"]

        with patch(
            "marina.modules.inspection_workflow.change_booking_status",
            side_effect=RuntimeError("database connection lost"),
        ):
            with pytest.raises(RuntimeError):
                api_client.post("/api/v1/inspections", headers=headers, json={
                    "berth_id": berth.berth_id, "status": "correct",
                })

        assert api_client.get("/api/v1/changes", headers=headers).json()["latest"] == before


# ══════════════════════════════════════════════════════════════════════════════
# Indexes the board and overlap queries rely on
# ══════════════════════════════════════════════════════════════════════════════


class TestIndexes:

    def test_booking_berth_dates_index(self, engine):
        names = {ix["name"] for ix in inspect(engine).get_indexes("berth_bookings")}
        assert "ix_berth_bookings_berth_dates" in names

    def test_inspection_time_index(self, engine):
        columns = {tuple(ix["column_names"]) for ix in inspect(engine).get_indexes("inspections")}
        assert ("inspected_at",) in columns

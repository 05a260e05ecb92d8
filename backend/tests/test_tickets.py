"""Tests for manual violation reports and damage tickets."""
from __future__ import annotations

from datetime import datetime

import pytest

from marina.models.base import (
    DamageSeverityEnum, DamageStatusEnum, LocationTypeEnum, RoleEnum,
    ViolationStatusEnum, ViolationTypeEnum,
)
from marina.modules.errors import InvalidTransitionError, ValidationFailed
from marina.modules.tickets import (
    change_damage_status,
    change_violation_status,
    open_damage_reports,
    open_violations,
    report_damage,
    report_violation,
)


def _damage(db, title="Broken cleat", severity=DamageSeverityEnum.MEDIUM, **kwargs):
    kwargs.setdefault("now", datetime(2025, 7, 10, 9, 0))
    return report_damage(
        db, title, "Cleat sheared off the pontoon", "equipment", "Pontoon A, south end",
        severity=severity, **kwargs,
    )


class TestViolations:

    def test_report_at_berth(self, db, berth, profiles):
        manager = profiles[RoleEnum.MANAGER]
        v = report_violation(db, "overstay", "Stayed two nights past checkout", berth=berth, reporter=manager)
        assert v.status == ViolationStatusEnum.OPEN
        assert v.berth_code == "A-01"
        assert v.violation_type == ViolationTypeEnum.OVERSTAY
        assert v.reported_by == manager.profile_id

    def test_location_required_without_berth(self, db):
        with pytest.raises(ValidationFailed) as exc:
            report_violation(db, "other", "Jet ski speeding")
        assert exc.value.field == "location_description"

    def test_description_required(self, db, berth):
        with pytest.raises(ValidationFailed):
            report_violation(db, "other", "   ", berth=berth)

    def test_resolution_stamps_actor(self, db, berth, profiles):
        manager = profiles[RoleEnum.MANAGER]
        v = report_violation(db, "unpaid", "No payment on departure", berth=berth)
        change_violation_status(db, v, "in_progress", actor=manager)
        assert v.resolved_at is None
        change_violation_status(db, v, ViolationStatusEnum.RESOLVED, actor=manager, resolution_notes="Paid in cash")
        assert v.resolved_by == manager.profile_id
        assert v.resolved_at is not None
        assert v.resolution_notes == "Paid in cash"

    def test_closed_violation_cannot_reopen(self, db, berth):
        v = report_violation(db, "other", "Loud music", berth=berth)
        change_violation_status(db, v, "dismissed")
        with pytest.raises(InvalidTransitionError):
            change_violation_status(db, v, "open")

    def test_open_queue_excludes_closed(self, db, berth):
        first = report_violation(db, "other", "One", berth=berth, now=datetime(2025, 7, 1))
        second = report_violation(db, "other", "Two", berth=berth, now=datetime(2025, 7, 2))
        closed = report_violation(db, "other", "Three", berth=berth)
        change_violation_status(db, closed, "resolved")
        assert open_violations(db) == [first, second]


class TestDamageReports:

    def test_berth_forces_location_type(self, db, berth):
        report = _damage(db, berth=berth, location_type="facility")
        assert report.location_type == LocationTypeEnum.BERTH
        assert report.berth_code == "A-01"
        assert report.status == DamageStatusEnum.REPORTED

    @pytest.mark.parametrize("field", ["title", "location_description"])
    def test_required_fields(self, db, field):
        args = {"title": "Leak", "location_description": "Toilet block"}
        args[field] = ""
        with pytest.raises(ValidationFailed) as exc:
            report_damage(db, args["title"], "Water on floor", "plumbing", args["location_description"])
        assert exc.value.field == field

    def test_critical_damage_is_logged_as_warning(self, db, caplog):
        with caplog.at_level("WARNING"):
            _damage(db, title="Exposed live wire", severity="critical")
        assert "Critical damage" in caplog.text

    def test_completion_stamps_actor(self, db, profiles):
        worker = profiles[RoleEnum.OPERATOR]
        report = _damage(db)
        change_damage_status(db, report, "acknowledged", assigned_to=worker.profile_id)
        assert report.assigned_to == worker.profile_id
        change_damage_status(db, report, "completed", actor=worker, resolution_notes="Replaced cleat")
        assert report.completed_by == worker.profile_id
        assert report.completed_at is not None

    def test_no_transition_out_of_completed(self, db):
        report = _damage(db)
        change_damage_status(db, report, "completed")
        with pytest.raises(InvalidTransitionError):
            change_damage_status(db, report, "in_progress")

    def test_open_queue_most_severe_first(self, db):
        low = _damage(db, title="Scuffed paint", severity="low", now=datetime(2025, 7, 1))
        high = _damage(db, title="Loose plank", severity="high", now=datetime(2025, 7, 3))
        critical = _damage(db, title="Live wire", severity="critical", now=datetime(2025, 7, 5))
        older_high = _damage(db, title="Broken ladder", severity="high", now=datetime(2025, 7, 2))
        done = _damage(db, title="Bulb out", severity="critical")
        change_damage_status(db, done, "cancelled")
        assert open_damage_reports(db) == [critical, older_high, high, low]

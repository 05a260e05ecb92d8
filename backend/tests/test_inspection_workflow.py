"""Tests for the inspection workflow: choices, effects, snapshots and atomicity."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from unittest.mock import patch

import pytest

from marina.models.base import (
    BookingStatusEnum, InspectionStatusEnum, ViolationStatusEnum, ViolationTypeEnum,
)
from marina.models.inspection import Inspection
from marina.models.violation import Violation
from marina.modules.berth_status import BerthOccupancy, ExpectedVessel, OccupancyStatus
from marina.modules.berths import place_boat
from marina.modules.bookings import update_booking
from marina.modules.errors import InspectionValidationError
from marina.modules.inspection_workflow import (
    InspectionSubmission,
    allowed_choices,
    plan_inspection_effects,
    resolve_for_inspection,
    submit_inspection,
)

DAY = date(2025, 7, 10)
NOON = datetime(2025, 7, 10, 12, 0)


def _submit(db, berth, inspector=None, **fields):
    return submit_inspection(db, berth, InspectionSubmission(**fields), inspector=inspector, now=NOON)


@pytest.fixture
def confirmed_stay(berth, make_booking):
    return make_booking(berth, DAY - timedelta(days=1), DAY + timedelta(days=2), status=BookingStatusEnum.CONFIRMED)


class TestPlanEffects:
    """Pure transition table."""

    def _occupancy(self, expected=True, booking=object()):
        return BerthOccupancy(
            berth_id=1, as_of=DAY,
            status=OccupancyStatus.RESERVED if expected else OccupancyStatus.FREE,
            covering_booking=booking if expected else None,
            expected_vessel=ExpectedVessel("Bura", "ST-1234", "booking") if expected else None,
        )

    def test_choices_depend_on_expected_vessel(self):
        assert allowed_choices(self._occupancy(True)) == {
            InspectionStatusEnum.CORRECT, InspectionStatusEnum.WRONG_VESSEL, InspectionStatusEnum.MISSING_VESSEL,
        }
        assert allowed_choices(self._occupancy(False)) == {
            InspectionStatusEnum.EMPTY_OK, InspectionStatusEnum.ILLEGAL_MOORING,
        }

    def test_correct_checks_in(self):
        effects = plan_inspection_effects("correct", self._occupancy())
        assert effects.check_in_booking and effects.violation_type is None

    def test_wrong_vessel_opens_wrong_berth_violation(self):
        effects = plan_inspection_effects("wrong_vessel", self._occupancy())
        assert effects.violation_type == ViolationTypeEnum.WRONG_BERTH
        assert effects.requires_found_vessel
        assert not effects.check_in_booking

    def test_illegal_mooring_needs_empty_berth(self):
        with pytest.raises(InspectionValidationError):
            plan_inspection_effects("illegal_mooring", self._occupancy(True))

    def test_empty_ok_not_allowed_when_vessel_expected(self):
        with pytest.raises(InspectionValidationError):
            plan_inspection_effects("empty_ok", self._occupancy(True))

    def test_placement_only_expectation_never_checks_in(self):
        occupancy = BerthOccupancy(
            berth_id=1, as_of=DAY, status=OccupancyStatus.FREE,
            expected_vessel=ExpectedVessel("Maestral", "ZD-77", "placement"),
        )
        assert not plan_inspection_effects("correct", occupancy).check_in_booking


class TestValidationRejectsBeforeWrites:

    def test_wrong_vessel_without_registration(self, db, berth, confirmed_stay):
        with pytest.raises(InspectionValidationError) as exc:
            _submit(db, berth, status="wrong_vessel", found_vessel_name="Unknown")
        assert exc.value.field == "found_vessel_registration"
        assert db.query(Inspection).count() == 0
        assert db.query(Violation).count() == 0

    def test_illegal_mooring_with_blank_registration(self, db, berth):
        with pytest.raises(InspectionValidationError):
            _submit(db, berth, status="illegal_mooring", found_vessel_registration="   ")
        assert db.query(Inspection).count() == 0

    def test_unknown_status(self, db, berth):
        with pytest.raises(InspectionValidationError, match="Unknown inspection status"):
            _submit(db, berth, status="sunk")
        assert db.query(Inspection).count() == 0


class TestCorrect:

    def test_correct_checks_in_and_berth_becomes_occupied(self, db, berth, confirmed_stay, profiles):
        inspector = profiles[next(iter(profiles))]
        outcome = _submit(db, berth, inspector=inspector, status="correct")
        db.commit()

        assert outcome.violation is None
        assert outcome.checked_in_booking_id == confirmed_stay.booking_id
        assert confirmed_stay.status == BookingStatusEnum.CHECKED_IN
        assert confirmed_stay.actual_check_in == NOON
        assert resolve_for_inspection(db, berth, DAY).status == OccupancyStatus.OCCUPIED

        inspection = outcome.inspection
        assert inspection.booking_id == confirmed_stay.booking_id
        assert inspection.inspector_id == inspector.profile_id
        assert inspection.expected_vessel_registration == "ST-1234"

    def test_correct_on_checked_in_booking_leaves_it_alone(self, db, berth, make_booking):
        booking = make_booking(berth, DAY, DAY + timedelta(days=2), status=BookingStatusEnum.CHECKED_IN)
        outcome = _submit(db, berth, status="correct")
        assert outcome.checked_in_booking_id is None
        assert booking.status == BookingStatusEnum.CHECKED_IN

    def test_repeat_inspection_same_day_adds_rows(self, db, berth, confirmed_stay):
        _submit(db, berth, status="correct")
        _submit(db, berth, status="correct")
        assert db.query(Inspection).count() == 2


class TestWrongVessel:

    def test_one_inspection_one_violation_booking_untouched(self, db, berth, confirmed_stay):
        outcome = _submit(
            db, berth, status="wrong_vessel",
            found_vessel_name="Jugo", found_vessel_registration=" RI-555 ",
        )
        db.commit()

        assert db.query(Inspection).count() == 1
        violations = db.query(Violation).all()
        assert len(violations) == 1
        violation = violations[0]
        assert violation.violation_type == ViolationTypeEnum.WRONG_BERTH
        assert violation.status == ViolationStatusEnum.OPEN
        assert violation.inspection_id == outcome.inspection.inspection_id
        assert violation.vessel_registration == "RI-555"
        assert "A-01" in violation.description
        assert confirmed_stay.status == BookingStatusEnum.CONFIRMED

    def test_missing_vessel_writes_inspection_only(self, db, berth, confirmed_stay, caplog):
        with caplog.at_level("WARNING"):
            outcome = _submit(db, berth, status="missing_vessel")
        assert outcome.violation is None
        assert db.query(Violation).count() == 0
        assert confirmed_stay.status == BookingStatusEnum.CONFIRMED
        assert "missing" in caplog.text


class TestFreeBerth:

    def test_illegal_mooring_opens_violation(self, db, berth):
        outcome = _submit(db, berth, status="illegal_mooring", found_vessel_registration="SI-4242",
                          notes="No lines, moored stern-to")
        assert outcome.violation.violation_type == ViolationTypeEnum.ILLEGAL_MOORING
        assert outcome.violation.description == "No lines, moored stern-to"
        assert outcome.inspection.booking_id is None
        assert outcome.inspection.expected_vessel_name is None

    def test_empty_ok(self, db, berth):
        outcome = _submit(db, berth, status="empty_ok")
        assert outcome.violation is None
        assert outcome.inspection.status == InspectionStatusEnum.EMPTY_OK

    def test_correct_is_rejected_on_free_berth(self, db, berth):
        with pytest.raises(InspectionValidationError):
            _submit(db, berth, status="correct")

    def test_placement_provides_expected_vessel(self, db, berth):
        place_boat(db, 43.5, 16.4, berth=berth, vessel_name="Maestral", vessel_registration="ZD-77")
        outcome = _submit(db, berth, status="correct")
        assert outcome.checked_in_booking_id is None
        assert outcome.inspection.expected_vessel_registration == "ZD-77"


class TestSnapshot:

    def test_booking_edit_does_not_rewrite_inspection(self, db, berth, confirmed_stay):
        outcome = _submit(db, berth, status="missing_vessel")
        db.commit()
        update_booking(db, confirmed_stay, {"vessel_registration": "ST-9999", "vessel_name": "Bonaca"})
        db.commit()
        db.refresh(outcome.inspection)
        assert outcome.inspection.expected_vessel_registration == "ST-1234"
        assert outcome.inspection.expected_vessel_name == "Bura"


class TestAtomicity:

    def test_failed_check_in_rolls_back_inspection(self, db, berth, confirmed_stay):
        with patch(
            "marina.modules.inspection_workflow.change_booking_status",
            side_effect=RuntimeError("connection lost"),
        ):
            with pytest.raises(RuntimeError):
                _submit(db, berth, status="correct")
        db.rollback()
        assert db.query(Inspection).count() == 0
        db.refresh(confirmed_stay)
        assert confirmed_stay.status == BookingStatusEnum.CONFIRMED

    def test_submit_does_not_commit(self, db, berth):
        _submit(db, berth, status="empty_ok")
        db.rollback()
        assert db.query(Inspection).count() == 0

"""Violation and damage-report tickets.

Both ticket kinds only move forward. Violations are usually opened by
inspection_workflow; this module covers manual reports and the follow-up
lifecycle handled by managers and maintenance staff.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from marina.models.base import (
    DamageCategoryEnum, DamageSeverityEnum, DamageStatusEnum, LocationTypeEnum,
    ViolationStatusEnum, ViolationTypeEnum,
)
from marina.models.berth import Berth
from marina.models.damage_report import DamageReport
from marina.models.violation import Violation
from marina.modules.errors import InvalidTransitionError, ValidationFailed
from marina.utils.enums import require_exhaustive
from marina.utils.clock import utcnow

logger = logging.getLogger(__name__)

VIOLATION_TRANSITIONS: dict[ViolationStatusEnum, frozenset[ViolationStatusEnum]] = {
    ViolationStatusEnum.OPEN: frozenset({
        ViolationStatusEnum.IN_PROGRESS,
        ViolationStatusEnum.RESOLVED,
        ViolationStatusEnum.DISMISSED,
    }),
    ViolationStatusEnum.IN_PROGRESS: frozenset({
        ViolationStatusEnum.RESOLVED,
        ViolationStatusEnum.DISMISSED,
    }),
    ViolationStatusEnum.RESOLVED: frozenset(),
    ViolationStatusEnum.DISMISSED: frozenset(),
}
require_exhaustive(VIOLATION_TRANSITIONS, ViolationStatusEnum, "VIOLATION_TRANSITIONS")

DAMAGE_TRANSITIONS: dict[DamageStatusEnum, frozenset[DamageStatusEnum]] = {
    DamageStatusEnum.REPORTED: frozenset({
        DamageStatusEnum.ACKNOWLEDGED,
        DamageStatusEnum.IN_PROGRESS,
        DamageStatusEnum.COMPLETED,
        DamageStatusEnum.CANCELLED,
    }),
    DamageStatusEnum.ACKNOWLEDGED: frozenset({
        DamageStatusEnum.IN_PROGRESS,
        DamageStatusEnum.COMPLETED,
        DamageStatusEnum.CANCELLED,
    }),
    DamageStatusEnum.IN_PROGRESS: frozenset({
        DamageStatusEnum.COMPLETED,
        DamageStatusEnum.CANCELLED,
    }),
    DamageStatusEnum.COMPLETED: frozenset(),
    DamageStatusEnum.CANCELLED: frozenset(),
}
require_exhaustive(DAMAGE_TRANSITIONS, DamageStatusEnum, "DAMAGE_TRANSITIONS")

_CLOSING_VIOLATION_STATUSES = frozenset({ViolationStatusEnum.RESOLVED, ViolationStatusEnum.DISMISSED})

SEVERITY_ORDER: dict[DamageSeverityEnum, int] = {
    DamageSeverityEnum.CRITICAL: 0,
    DamageSeverityEnum.HIGH: 1,
    DamageSeverityEnum.MEDIUM: 2,
    DamageSeverityEnum.LOW: 3,
}
require_exhaustive(SEVERITY_ORDER, DamageSeverityEnum, "SEVERITY_ORDER")


def _actor_fields(actor) -> tuple[Optional[int], Optional[str]]:
    return getattr(actor, "profile_id", None), getattr(actor, "full_name", None)


# ---------------------------------------------------------------------------
# Violations
# ---------------------------------------------------------------------------

def report_violation(
    db: Session,
    violation_type,
    description: str,
    berth: Optional[Berth] = None,
    vessel_name: Optional[str] = None,
    vessel_registration: Optional[str] = None,
    vessel_description: Optional[str] = None,
    location_description: Optional[str] = None,
    photo_urls: Optional[list[str]] = None,
    reporter=None,
    now: Optional[datetime] = None,
) -> Violation:
    if not (description or "").strip():
        raise ValidationFailed("description is required", field="description")
    if berth is None and not (location_description or "").strip():
        raise ValidationFailed(
            "Either a berth or a location description is required", field="location_description",
        )
    reporter_id, reporter_name = _actor_fields(reporter)
    violation = Violation(
        berth_id=berth.berth_id if berth is not None else None,
        berth_code=berth.code if berth is not None else None,
        location_description=location_description,
        violation_type=ViolationTypeEnum(violation_type),
        vessel_name=vessel_name,
        vessel_registration=vessel_registration,
        vessel_description=vessel_description,
        description=description.strip(),
        photo_urls=photo_urls or None,
        status=ViolationStatusEnum.OPEN,
        reported_by=reporter_id,
        reported_by_name=reporter_name,
        created_at=now or utcnow(),
    )
    db.add(violation)
    db.flush()
    logger.info("Violation %s (%s) reported", violation.violation_id, violation.violation_type.value)
    return violation


def change_violation_status(
    db: Session,
    violation: Violation,
    new_status,
    actor=None,
    resolution_notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Violation:
    current = ViolationStatusEnum(violation.status)
    target = ViolationStatusEnum(new_status)
    if target not in VIOLATION_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Violation {violation.violation_id} cannot go from {current.value} to {target.value}"
        )
    violation.status = target
    if resolution_notes:
        violation.resolution_notes = resolution_notes
    if target in _CLOSING_VIOLATION_STATUSES:
        violation.resolved_by = getattr(actor, "profile_id", None)
        violation.resolved_at = now or utcnow()
    db.flush()
    logger.info("Violation %s: %s → %s", violation.violation_id, current.value, target.value)
    return violation


def open_violations(db: Session) -> list[Violation]:
    """Queue shown to managers: open and in-progress, oldest first."""
    return (
        db.query(Violation)
        .filter(Violation.status.in_([ViolationStatusEnum.OPEN, ViolationStatusEnum.IN_PROGRESS]))
        .order_by(Violation.created_at.asc(), Violation.violation_id.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# Damage reports
# ---------------------------------------------------------------------------

def report_damage(
    db: Session,
    title: str,
    description: str,
    category,
    location_description: str,
    location_type=LocationTypeEnum.OTHER,
    severity=DamageSeverityEnum.MEDIUM,
    berth: Optional[Berth] = None,
    photo_urls: Optional[list[str]] = None,
    reporter=None,
    now: Optional[datetime] = None,
) -> DamageReport:
    for field, value in (
        ("title", title), ("description", description), ("location_description", location_description),
    ):
        if not (value or "").strip():
            raise ValidationFailed(f"{field} is required", field=field)

    location_type = LocationTypeEnum(location_type)
    if berth is not None:
        location_type = LocationTypeEnum.BERTH
    reporter_id, reporter_name = _actor_fields(reporter)
    report = DamageReport(
        location_type=location_type,
        berth_id=berth.berth_id if berth is not None else None,
        berth_code=berth.code if berth is not None else None,
        location_description=location_description.strip(),
        category=DamageCategoryEnum(category),
        severity=DamageSeverityEnum(severity),
        title=title.strip(),
        description=description.strip(),
        photo_urls=photo_urls or None,
        status=DamageStatusEnum.REPORTED,
        reported_by=reporter_id,
        reported_by_name=reporter_name,
        created_at=now or utcnow(),
    )
    db.add(report)
    db.flush()
    if report.severity == DamageSeverityEnum.CRITICAL:
        logger.warning("Critical damage reported at %s: %s", report.location_description, report.title)
    else:
        logger.info("Damage report %s filed (%s)", report.report_id, report.severity.value)
    return report


def change_damage_status(
    db: Session,
    report: DamageReport,
    new_status,
    actor=None,
    resolution_notes: Optional[str] = None,
    assigned_to: Optional[int] = None,
    now: Optional[datetime] = None,
) -> DamageReport:
    current = DamageStatusEnum(report.status)
    target = DamageStatusEnum(new_status)
    if target not in DAMAGE_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Damage report {report.report_id} cannot go from {current.value} to {target.value}"
        )
    report.status = target
    if assigned_to is not None:
        report.assigned_to = assigned_to
    if resolution_notes:
        report.resolution_notes = resolution_notes
    if target == DamageStatusEnum.COMPLETED:
        report.completed_by = getattr(actor, "profile_id", None)
        report.completed_at = now or utcnow()
    db.flush()
    logger.info("Damage report %s: %s → %s", report.report_id, current.value, target.value)
    return report


def open_damage_reports(db: Session) -> list[DamageReport]:
    """Unfinished reports, most severe first, then oldest."""
    reports = (
        db.query(DamageReport)
        .filter(DamageReport.status.notin_([DamageStatusEnum.COMPLETED, DamageStatusEnum.CANCELLED]))
        .all()
    )
    return sorted(
        reports,
        key=lambda r: (SEVERITY_ORDER[DamageSeverityEnum(r.severity)], r.created_at, r.report_id),
    )

"""Berth markers, pontoons and boat placements.

A berth is created when a manager drops a marker on the map; its pontoon is
the code prefix before "-" (``A-05`` → ``A``) and is created on demand.
Bookings, inspections, violations and placements join on ``berth_id`` and
keep ``berth_code`` only as a display copy, refreshed by rename_berth().
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy.orm import Session

from marina.models.berth import Berth
from marina.models.boat_placement import BoatPlacement
from marina.models.booking import Booking
from marina.models.damage_report import DamageReport
from marina.models.inspection import Inspection
from marina.models.pontoon import Pontoon
from marina.models.violation import Violation
from marina.modules.errors import BerthInUseError, ValidationFailed
from marina.utils.clock import utcnow

logger = logging.getLogger(__name__)

BERTH_CODE_RE = re.compile(r"^[A-Z0-9]+-[A-Z0-9]+$")

BERTH_FIELDS = frozenset({
    "latitude", "longitude", "width", "length", "max_draft",
    "max_vessel_length", "max_vessel_width", "daily_rate",
    "has_water", "has_electricity", "status",
})

# Tables carrying a display copy of Berth.code
_BERTH_CODE_COPIES = (Booking, Inspection, Violation, BoatPlacement, DamageReport)

# History that outlives a berth marker; placements are removed with it
_BERTH_HISTORY = {
    "bookings": Booking,
    "inspections": Inspection,
    "violations": Violation,
    "damage reports": DamageReport,
}


def normalize_berth_code(code: str) -> str:
    normalized = (code or "").strip().upper()
    if not BERTH_CODE_RE.match(normalized):
        raise ValidationFailed(
            f"Berth code '{code}' must look like PONTOON-NUMBER, e.g. A-05", field="code",
        )
    return normalized


def derive_pontoon_code(code: str) -> str:
    return code.split("-")[0]


def get_or_create_pontoon(db: Session, pontoon_code: str) -> Pontoon:
    pontoon = db.query(Pontoon).filter(Pontoon.code == pontoon_code).first()
    if pontoon is None:
        pontoon = Pontoon(code=pontoon_code, name=f"Pontoon {pontoon_code}")
        db.add(pontoon)
        db.flush()
        logger.info("Created pontoon %s", pontoon_code)
    return pontoon


def create_berth(db: Session, code: str, **attrs) -> Berth:
    code = normalize_berth_code(code)
    if db.query(Berth).filter(Berth.code == code).first() is not None:
        raise ValidationFailed(f"Berth {code} already exists", field="code")
    unknown = set(attrs) - BERTH_FIELDS
    if unknown:
        raise ValidationFailed(f"Unknown berth fields: {sorted(unknown)}")

    pontoon = get_or_create_pontoon(db, derive_pontoon_code(code))
    berth = Berth(
        code=code,
        pontoon_id=pontoon.pontoon_id,
        **{k: v for k, v in attrs.items() if v is not None},
    )
    db.add(berth)
    db.flush()
    return berth


def update_berth(db: Session, berth: Berth, updates: dict) -> Berth:
    unknown = set(updates) - BERTH_FIELDS
    if unknown:
        raise ValidationFailed(f"Unknown berth fields: {sorted(unknown)}")
    for key, value in updates.items():
        setattr(berth, key, value)
    db.flush()
    return berth


def move_berth_marker(db: Session, berth: Berth, latitude: float, longitude: float) -> Berth:
    berth.latitude = latitude
    berth.longitude = longitude
    db.flush()
    return berth


def rename_berth(db: Session, berth: Berth, new_code: str) -> Berth:
    """Change a berth code and refresh every denormalised copy of it.

    History stays attached through berth_id, so renaming never orphans
    bookings or inspections. Copies are updated row by row so each one
    reaches the change feed.
    """
    new_code = normalize_berth_code(new_code)
    if new_code == berth.code:
        return berth
    if db.query(Berth).filter(Berth.code == new_code).first() is not None:
        raise ValidationFailed(f"Berth {new_code} already exists", field="code")

    old_code = berth.code
    berth.code = new_code
    berth.pontoon_id = get_or_create_pontoon(db, derive_pontoon_code(new_code)).pontoon_id
    for model in _BERTH_CODE_COPIES:
        for row in db.query(model).filter(model.berth_id == berth.berth_id).all():
            row.berth_code = new_code
    db.flush()
    logger.info("Berth %s renamed to %s", old_code, new_code)
    return berth


def berth_references(db: Session, berth: Berth) -> dict[str, int]:
    """Rows that keep a berth from being removed, counted per kind (zero counts omitted)."""
    counts = {
        name: db.query(model).filter(model.berth_id == berth.berth_id).count()
        for name, model in _BERTH_HISTORY.items()
    }
    return {name: n for name, n in counts.items() if n}


def remove_berth(db: Session, berth: Berth) -> None:
    """Hard-remove a berth marker and its boat placements.

    Refused while bookings, inspections, violations or damage reports
    reference the berth; those keep their history and the berth should be
    set inactive instead.
    """
    references = berth_references(db, berth)
    if references:
        summary = ", ".join(f"{n} {name}" for name, n in references.items())
        raise BerthInUseError(
            f"Cannot remove berth {berth.code}: referenced by {summary}. "
            "Set its status to inactive instead.",
            references=references,
        )
    for placement in db.query(BoatPlacement).filter(BoatPlacement.berth_id == berth.berth_id).all():
        db.delete(placement)
    db.delete(berth)
    db.flush()
    logger.info("Berth %s removed", berth.code)


# ---------------------------------------------------------------------------
# Boat placements
# ---------------------------------------------------------------------------

def place_boat(
    db: Session,
    latitude: float,
    longitude: float,
    berth: Optional[Berth] = None,
    placed_by: Optional[int] = None,
    **attrs,
) -> BoatPlacement:
    placement = BoatPlacement(
        latitude=latitude,
        longitude=longitude,
        berth_id=berth.berth_id if berth is not None else None,
        berth_code=berth.code if berth is not None else None,
        placed_by=placed_by,
        created_at=utcnow(),
        **{k: v for k, v in attrs.items() if v is not None},
    )
    db.add(placement)
    db.flush()
    return placement


def move_boat(
    db: Session,
    placement: BoatPlacement,
    latitude: float,
    longitude: float,
    rotation: Optional[float] = None,
    berth: Optional[Berth] = None,
) -> BoatPlacement:
    placement.latitude = latitude
    placement.longitude = longitude
    if rotation is not None:
        placement.rotation = rotation
    if berth is not None:
        placement.berth_id = berth.berth_id
        placement.berth_code = berth.code
    db.flush()
    return placement


def remove_boat(db: Session, placement: BoatPlacement) -> None:
    db.delete(placement)
    db.flush()

"""Seed pontoons, berths and staff profiles from config/berths.yaml.

Usage:
    from marina.database import SessionLocal
    from marina.modules.seed import load_seed_config, seed_marina
    db = SessionLocal()
    seed_marina(db, load_seed_config(path))
    db.commit()

Everything here is idempotent (existing codes and names are skipped) and
only flushes; the caller commits.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

import yaml
from sqlalchemy.orm import Session

from marina.models.base import BookingStatusEnum, PaymentMethodEnum, RoleEnum
from marina.models.berth import Berth
from marina.models.booking import Booking
from marina.models.pontoon import Pontoon
from marina.models.profile import Profile
from marina.modules import berths as berth_service
from marina.modules.bookings import change_booking_status, create_booking, record_payment
from marina.utils.clock import utc_today, utcnow

logger = logging.getLogger(__name__)


def find_config(path: str) -> Optional[Path]:
    """Resolve a config path from the repo root or from backend/."""
    for candidate in (Path(path), Path("..") / path):
        if candidate.exists():
            return candidate
    return None


def load_seed_config(path: Path) -> dict:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    for section in ("pontoons", "berths", "profiles"):
        data.setdefault(section, [])
    return data


def seed_marina(db: Session, config: dict) -> dict:
    """Insert pontoons, berths and profiles that do not exist yet."""
    pontoons = 0
    for entry in config.get("pontoons", []):
        code = str(entry["code"]).upper()
        if db.query(Pontoon).filter(Pontoon.code == code).first() is None:
            db.add(Pontoon(code=code, name=entry.get("name") or f"Pontoon {code}"))
            pontoons += 1
    db.flush()

    berths = 0
    for entry in config.get("berths", []):
        attrs = dict(entry)
        code = berth_service.normalize_berth_code(attrs.pop("code"))
        if db.query(Berth).filter(Berth.code == code).first() is not None:
            continue
        berth_service.create_berth(db, code, **attrs)
        berths += 1

    profiles = 0
    for entry in config.get("profiles", []):
        name = entry["full_name"]
        if db.query(Profile).filter(Profile.full_name == name).first() is None:
            db.add(Profile(full_name=name, role=RoleEnum(entry.get("role", "inspector")), phone=entry.get("phone")))
            profiles += 1
    db.flush()

    logger.info("Seeded %d pontoons, %d berths, %d profiles", pontoons, berths, profiles)
    return {"pontoons": pontoons, "berths": berths, "profiles": profiles}


# (berth offset, nights, starts days from today, guest, vessel, registration, target status, paid fraction)
_DEMO_STAYS = [
    (0, 3, -1, "Ana Horvat", "Bura", "ST-1234", BookingStatusEnum.CHECKED_IN, 1.0),
    (1, 2, 0, "Jonas Meyer", "Seewind", "DE-88121", BookingStatusEnum.CONFIRMED, 0.5),
    (2, 4, 1, "Claire Dubois", "Mistral", "FR-55210", BookingStatusEnum.PENDING, 0.0),
    (4, 5, -2, "Marco Rossi", "Libeccio", "IT-30917", BookingStatusEnum.CHECKED_IN, 0.0),
    (5, 2, -4, "Sara Lind", "Havsorn", "SE-7781", BookingStatusEnum.CANCELLED, 0.0),
]


def load_demo_bookings(db: Session, today: Optional[date] = None) -> int:
    """Create a handful of bookings around today so the board is not empty."""
    if db.query(Booking).count() > 0:
        logger.info("Skipping demo bookings: bookings already present")
        return 0
    today = today or utc_today()
    berths = db.query(Berth).order_by(Berth.code).all()
    created = 0
    for offset, nights, start, guest, vessel, registration, target, paid in _DEMO_STAYS:
        if offset >= len(berths):
            continue
        check_in = today + timedelta(days=start)
        booking = create_booking(db, berths[offset], {
            "check_in_date": check_in,
            "check_out_date": check_in + timedelta(days=nights),
            "guest_name": guest,
            "vessel_name": vessel,
            "vessel_registration": registration,
        })
        if target == BookingStatusEnum.CHECKED_IN:
            change_booking_status(db, booking, BookingStatusEnum.CONFIRMED)
        if target != BookingStatusEnum.PENDING:
            change_booking_status(db, booking, target, now=utcnow())
        if paid:
            record_payment(
                db, booking, round(booking.total_amount * paid, 2),
                payment_method=PaymentMethodEnum.CARD,
            )
        created += 1
    return created

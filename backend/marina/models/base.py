"""Shared declarative base and enums for all models."""
from __future__ import annotations

import enum

from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def enum_column(enum_cls: type[enum.Enum]) -> SAEnum:
    """Store enum *values* (lower-case strings) rather than member names.

    Non-native so SQLite and PostgreSQL share the same schema and raw SQL
    (e.g. the booking overlap constraint) can compare against the values.
    """
    return SAEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        validate_strings=True,
        length=32,
    )


class RoleEnum(str, enum.Enum):
    INSPECTOR = "inspector"
    OPERATOR = "operator"
    MANAGER = "manager"
    ADMIN = "admin"


class BerthStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class BookingStatusEnum(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Bookings in these states block the berth for their date range.
ACTIVE_BOOKING_STATUSES: frozenset[BookingStatusEnum] = frozenset({
    BookingStatusEnum.PENDING,
    BookingStatusEnum.CONFIRMED,
    BookingStatusEnum.CHECKED_IN,
})


class PaymentStatusEnum(str, enum.Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class PaymentMethodEnum(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    ONLINE = "online"
    OTHER = "other"


class BookingSourceEnum(str, enum.Enum):
    DIRECT = "direct"
    PHONE = "phone"
    EMAIL = "email"
    ONLINE = "online"
    AGENT = "agent"
    WALK_IN = "walk_in"


class VesselTypeEnum(str, enum.Enum):
    SAILBOAT = "sailboat"
    MOTORBOAT = "motorboat"
    YACHT = "yacht"
    CATAMARAN = "catamaran"
    OTHER = "other"


class InspectionStatusEnum(str, enum.Enum):
    CORRECT = "correct"
    WRONG_VESSEL = "wrong_vessel"
    ILLEGAL_MOORING = "illegal_mooring"
    MISSING_VESSEL = "missing_vessel"
    EMPTY_OK = "empty_ok"


class ViolationTypeEnum(str, enum.Enum):
    ILLEGAL_MOORING = "illegal_mooring"
    WRONG_BERTH = "wrong_berth"
    OVERSTAY = "overstay"
    UNPAID = "unpaid"
    DAMAGE = "damage"
    RULES_VIOLATION = "rules_violation"
    OTHER = "other"


class ViolationStatusEnum(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class LocationTypeEnum(str, enum.Enum):
    BERTH = "berth"
    PONTOON = "pontoon"
    DOCK = "dock"
    FACILITY = "facility"
    ELECTRICAL = "electrical"
    WATER = "water"
    OTHER = "other"


class DamageCategoryEnum(str, enum.Enum):
    ELECTRICAL = "electrical"
    PLUMBING = "plumbing"
    STRUCTURAL = "structural"
    SAFETY = "safety"
    CLEANLINESS = "cleanliness"
    EQUIPMENT = "equipment"
    OTHER = "other"


class DamageSeverityEnum(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DamageStatusEnum(str, enum.Enum):
    REPORTED = "reported"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BoatSizeEnum(str, enum.Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    XLARGE = "xlarge"

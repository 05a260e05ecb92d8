"""Import all models to register them with SQLAlchemy metadata."""
from marina.models.base import Base
from marina.models.profile import Profile
from marina.models.pontoon import Pontoon
from marina.models.berth import Berth
from marina.models.booking import Booking, BookingPayment
from marina.models.inspection import Inspection
from marina.models.violation import Violation
from marina.models.damage_report import DamageReport
from marina.models.boat_placement import BoatPlacement
from marina.models.audit_log import AuditLog

__all__ = [
    "Base",
    "Profile",
    "Pontoon",
    "Berth",
    "Booking",
    "BookingPayment",
    "Inspection",
    "Violation",
    "DamageReport",
    "BoatPlacement",
    "AuditLog",
]

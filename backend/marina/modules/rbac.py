"""Role hierarchy and static permission table.

Roles are totally ordered: inspector < operator < manager < admin. Each
permission key maps to the explicit set of roles allowed; the table, not the
hierarchy, is authoritative for permission checks.
"""
from __future__ import annotations

from dataclasses import dataclass

from marina.models.base import RoleEnum
from marina.utils.enums import require_exhaustive

ROLE_HIERARCHY: dict[RoleEnum, int] = {
    RoleEnum.INSPECTOR: 1,
    RoleEnum.OPERATOR: 2,
    RoleEnum.MANAGER: 3,
    RoleEnum.ADMIN: 4,
}
require_exhaustive(ROLE_HIERARCHY, RoleEnum, "ROLE_HIERARCHY")

ROLE_LABELS: dict[RoleEnum, str] = {
    RoleEnum.INSPECTOR: "Inspector (field)",
    RoleEnum.OPERATOR: "Operator (billing)",
    RoleEnum.MANAGER: "Manager (contracts)",
    RoleEnum.ADMIN: "Administrator",
}
require_exhaustive(ROLE_LABELS, RoleEnum, "ROLE_LABELS")

_ALL = frozenset(RoleEnum)
_OPERATOR_UP = frozenset({RoleEnum.OPERATOR, RoleEnum.MANAGER, RoleEnum.ADMIN})
_MANAGER_UP = frozenset({RoleEnum.MANAGER, RoleEnum.ADMIN})
_ADMIN = frozenset({RoleEnum.ADMIN})

PERMISSIONS: dict[str, frozenset[RoleEnum]] = {
    # Map & berths
    "VIEW_MAP": _ALL,
    "EDIT_BERTH_POLYGON": _ADMIN,
    "MANAGE_BERTHS": _MANAGER_UP,
    # Occupancy
    "VIEW_OCCUPANCY": _ALL,
    "RECORD_OCCUPANCY": _ALL,
    "EDIT_OCCUPANCY": _OPERATOR_UP,
    # Vessels
    "VIEW_VESSELS": _OPERATOR_UP,
    "EDIT_VESSELS": _MANAGER_UP,
    # Contracts
    "VIEW_CONTRACTS": _MANAGER_UP,
    "EDIT_CONTRACTS": _MANAGER_UP,
    # Transit bookings
    "VIEW_BOOKINGS": _OPERATOR_UP,
    "EDIT_BOOKINGS": _OPERATOR_UP,
    # Payments
    "VIEW_PAYMENTS": _OPERATOR_UP,
    "VIEW_PAYMENT_DETAILS": _MANAGER_UP,
    "EDIT_PAYMENTS": _MANAGER_UP,
    # Reports
    "VIEW_REPORTS": _OPERATOR_UP,
    "EXPORT_REPORTS": _MANAGER_UP,
    # Violations
    "VIEW_VIOLATIONS": _OPERATOR_UP,
    "EDIT_VIOLATIONS": _MANAGER_UP,
    # Field inspection & maintenance
    "VIEW_INSPECTION": _ALL,
    "RECORD_INSPECTION": _ALL,
    "REPORT_DAMAGE": _ALL,
    # Admin
    "MANAGE_USERS": _ADMIN,
    "MANAGE_MARINA": _ADMIN,
    "VIEW_AUDIT_LOG": _ADMIN,
}


def _as_role(role) -> RoleEnum:
    return RoleEnum(role)


def has_minimum_role(role, required) -> bool:
    return ROLE_HIERARCHY[_as_role(role)] >= ROLE_HIERARCHY[_as_role(required)]


def is_manager(role) -> bool:
    return has_minimum_role(role, RoleEnum.MANAGER)


def is_admin(role) -> bool:
    return _as_role(role) == RoleEnum.ADMIN


def has_permission(role, permission: str) -> bool:
    """Unknown permission keys raise KeyError; they are programming errors."""
    return _as_role(role) in PERMISSIONS[permission]


def permissions_for_role(role) -> list[str]:
    r = _as_role(role)
    return sorted(key for key, roles in PERMISSIONS.items() if r in roles)


@dataclass(frozen=True)
class NavItem:
    label: str
    href: str
    icon: str
    permission: str


NAV_ITEMS: tuple[NavItem, ...] = (
    NavItem("Map", "/map", "map", "VIEW_MAP"),
    NavItem("Berths", "/berths", "anchor", "VIEW_MAP"),
    NavItem("Inspection", "/inspection", "clipboard-check", "VIEW_INSPECTION"),
    NavItem("Bookings", "/bookings", "calendar", "VIEW_BOOKINGS"),
    NavItem("Vessels", "/vessels", "ship", "VIEW_VESSELS"),
    NavItem("Contracts", "/contracts", "file-text", "VIEW_CONTRACTS"),
    NavItem("Payments", "/payments", "credit-card", "VIEW_PAYMENTS"),
    NavItem("Violations", "/violations", "alert-triangle", "VIEW_VIOLATIONS"),
    NavItem("Damage reports", "/damage-reports", "wrench", "REPORT_DAMAGE"),
    NavItem("Reports", "/reports", "bar-chart", "VIEW_REPORTS"),
    NavItem("Users", "/admin/users", "users", "MANAGE_USERS"),
    NavItem("Settings", "/admin/settings", "settings", "MANAGE_MARINA"),
    NavItem("Audit Log", "/admin/audit", "scroll", "VIEW_AUDIT_LOG"),
)


def nav_items_for_role(role) -> list[NavItem]:
    return [item for item in NAV_ITEMS if has_permission(role, item.permission)]

"""Domain exceptions raised by marina modules and translated by the API layer."""
from __future__ import annotations


class MarinaError(Exception):
    """Base class for expected, user-facing domain failures."""


class ValidationFailed(MarinaError, ValueError):
    """Input rejected before any write. ``field`` names the offending input."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class InspectionValidationError(ValidationFailed):
    pass


class NotFoundError(MarinaError):
    pass


class BookingConflictError(MarinaError):
    """Another active booking already covers part of the requested stay."""

    def __init__(self, message: str, conflicting_ids: list[int] | None = None):
        super().__init__(message)
        self.conflicting_ids = conflicting_ids or []


class InvalidTransitionError(MarinaError):
    """Lifecycle change not allowed from the current status."""


class PermissionDenied(MarinaError):
    pass


class BerthInUseError(MarinaError):
    """Berth still referenced by bookings or field history. ``references`` counts rows per kind."""

    def __init__(self, message: str, references: dict[str, int] | None = None):
        super().__init__(message)
        self.references = references or {}

"""UTC clock shared by the API, the CLI and the services.

Timestamp columns are naive ``DateTime`` holding UTC, so ``utcnow`` drops
the tzinfo after reading the aware clock.
"""
from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> date:
    """The marina day. Boards and reports resolve against this date everywhere."""
    return utcnow().date()

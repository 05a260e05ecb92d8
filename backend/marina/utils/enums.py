"""Helpers for enum-keyed lookup tables."""
from __future__ import annotations

import enum
from typing import Mapping


def require_exhaustive(table: Mapping, enum_cls: type[enum.Enum], name: str) -> None:
    """Fail at import time if ``table`` does not cover every member of ``enum_cls``.

    Adding a status without updating its label/colour/effect table is then an
    ImportError-style crash on startup instead of a KeyError in production.
    """
    missing = [m.value for m in enum_cls if m not in table]
    extra = [k for k in table if k not in set(enum_cls)]
    if missing or extra:
        raise RuntimeError(
            f"{name} is not exhaustive over {enum_cls.__name__}: "
            f"missing={missing} unexpected={extra}"
        )


def require_keys(table: Mapping, members, name: str) -> None:
    """Like :func:`require_exhaustive`, against an explicit subset of members."""
    expected = set(members)
    missing = sorted(m.value for m in expected if m not in table)
    extra = sorted(str(k) for k in table if k not in expected)
    if missing or extra:
        raise RuntimeError(f"{name} does not match its key set: missing={missing} unexpected={extra}")

"""Change feed and derived-view cache.

Every committed insert, update or delete on a marina table becomes a typed
ChangeEvent. Clients on other devices poll ``GET /changes?since=N`` and
re-fetch what changed; inside the process the DerivedViewCache drops only
the views that read from the changed table.

Events are collected on the session at flush time and published after the
commit succeeds. A rollback discards them, so subscribers never see writes
that did not persist.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import event, inspect as sa_inspect

from marina.config import settings
from marina.utils.clock import utcnow

logger = logging.getLogger(__name__)

_PENDING_KEY = "marina_pending_changes"


@dataclass(frozen=True)
class ChangeEvent:
    sequence: int
    table: str
    action: str  # "insert" | "update" | "delete"
    row_id: Optional[int]
    occurred_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "table": self.table,
            "action": self.action,
            "row_id": self.row_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


class ChangeFeed:
    """In-process publish/subscribe with a bounded replay buffer."""

    def __init__(self, buffer_size: Optional[int] = None):
        self._lock = threading.Lock()
        self._sequence = 0
        self._buffer: deque[ChangeEvent] = deque(maxlen=buffer_size or settings.CHANGE_FEED_BUFFER)
        self._subscribers: list[Callable[[ChangeEvent], None]] = []

    @property
    def latest_sequence(self) -> int:
        return self._sequence

    def subscribe(self, callback: Callable[[ChangeEvent], None]) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, table: str, action: str, row_id: Optional[int] = None) -> ChangeEvent:
        with self._lock:
            self._sequence += 1
            change = ChangeEvent(self._sequence, table, action, row_id)
            self._buffer.append(change)
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(change)
        return change

    def events_since(self, sequence: int) -> tuple[list[ChangeEvent], bool]:
        """Events newer than ``sequence`` and whether the buffer still covers the gap.

        When the second value is False the client fell too far behind and
        must do a full refresh instead of applying the events.
        """
        with self._lock:
            events = [e for e in self._buffer if e.sequence > sequence]
            oldest = self._buffer[0].sequence if self._buffer else self._sequence + 1
        return events, sequence >= oldest - 1


# ---------------------------------------------------------------------------
# SQLAlchemy session hooks
# ---------------------------------------------------------------------------

def _row_id(obj) -> Optional[int]:
    identity = sa_inspect(obj).identity
    if identity and len(identity) == 1 and isinstance(identity[0], int):
        return identity[0]
    return None


def _collect(session) -> None:
    # new/dirty/deleted still hold the pre-flush state inside after_flush
    pending = session.info.setdefault(_PENDING_KEY, [])
    for action, objs in (("insert", session.new), ("update", session.dirty), ("delete", session.deleted)):
        for obj in objs:
            table = getattr(obj, "__tablename__", None)
            if table is None:
                continue
            if action == "update" and not session.is_modified(obj, include_collections=False):
                continue
            pending.append((table, action, obj))


def _make_listeners(feed: ChangeFeed):
    def after_flush(session, flush_context):
        _collect(session)

    def after_commit(session):
        pending = session.info.pop(_PENDING_KEY, [])
        seen = set()
        for table, action, obj in pending:
            row_id = _row_id(obj)
            key = (table, action, row_id)
            if key in seen:
                continue
            seen.add(key)
            feed.publish(table, action, row_id)

    def after_rollback(session):
        dropped = session.info.pop(_PENDING_KEY, [])
        if dropped:
            logger.debug("Discarded %d uncommitted change(s) after rollback", len(dropped))

    return {"after_flush": after_flush, "after_commit": after_commit, "after_rollback": after_rollback}


def install_change_tracking(target: Any, feed: ChangeFeed) -> Callable[[], None]:
    """Attach the feed to a Session class, sessionmaker or session.

    Returns a callable that removes the listeners again (used on app
    shutdown and in tests).
    """
    listeners = _make_listeners(feed)
    for name, fn in listeners.items():
        event.listen(target, name, fn)

    def _remove() -> None:
        for name, fn in listeners.items():
            if event.contains(target, name, fn):
                event.remove(target, name, fn)

    return _remove


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------

VIEW_DEPENDENCIES: dict[str, frozenset[str]] = {
    "berth_board": frozenset({"berths", "berth_bookings", "boat_placements", "inspections"}),
    "daily_report": frozenset({"berths", "berth_bookings", "booking_payments"}),
    "violation_queue": frozenset({"violations"}),
    "damage_queue": frozenset({"damage_reports"}),
}


class DerivedViewCache:
    """Memoised derived views keyed by (view, params), invalidated per source table.

    Each view carries a generation that every invalidation bumps. A value
    computed while its view was invalidated is returned to that caller but
    not stored, so the next request recomputes from committed data.
    """

    def __init__(self, dependencies: Optional[dict[str, frozenset[str]]] = None):
        self._dependencies = dependencies or VIEW_DEPENDENCIES
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, Any], Any] = {}
        self._generations: dict[str, int] = {view: 0 for view in self._dependencies}

    def get_or_compute(self, view: str, key: Any, compute: Callable[[], Any]) -> Any:
        if view not in self._dependencies:
            raise KeyError(f"Unknown derived view '{view}'")
        cache_key = (view, key)
        with self._lock:
            if cache_key in self._entries:
                return self._entries[cache_key]
            generation = self._generations[view]
        value = compute()
        with self._lock:
            if self._generations[view] == generation:
                self._entries[cache_key] = value
            else:
                logger.debug("Discarded %s computed across an invalidation", view)
        return value

    def views_for_table(self, table: str) -> list[str]:
        return [view for view, tables in self._dependencies.items() if table in tables]

    def invalidate_for(self, table: str) -> list[str]:
        views = set(self.views_for_table(table))
        if not views:
            return []
        with self._lock:
            for view in views:
                self._generations[view] += 1
            for cache_key in [k for k in self._entries if k[0] in views]:
                del self._entries[cache_key]
        return sorted(views)

    def on_change(self, change: ChangeEvent) -> None:
        dropped = self.invalidate_for(change.table)
        if dropped:
            logger.debug("Change #%d on %s invalidated %s", change.sequence, change.table, dropped)

    def clear(self) -> None:
        with self._lock:
            for view in self._generations:
                self._generations[view] += 1
            self._entries.clear()

    def __contains__(self, item: tuple[str, Any]) -> bool:
        return item in self._entries


class MarinaState:
    """Per-application state kept on ``app.state`` and injected into routes."""

    def __init__(self, buffer_size: Optional[int] = None):
        self.feed = ChangeFeed(buffer_size)
        self.views = DerivedViewCache()
        self._unsubscribe = self.feed.subscribe(self.views.on_change)
        self._uninstall: Optional[Callable[[], None]] = None

    def attach(self, target: Any) -> None:
        self._uninstall = install_change_tracking(target, self.feed)

    def close(self) -> None:
        if self._uninstall is not None:
            self._uninstall()
            self._uninstall = None
        self._unsubscribe()

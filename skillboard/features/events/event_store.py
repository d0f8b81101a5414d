"""
skillboard/features/events/event_store.py

Append-only command event store.
In-memory implementation; the SQL-backed store lives in event_store_sql.py
and exposes the identical query contract.
"""

import logging
import threading
from collections import Counter
from contextlib import contextmanager
from typing import Iterable, List, Optional, Set

from skillboard.models.command_event import CommandEvent, RiskLevel

logger = logging.getLogger("skillboard")


class InMemoryCommandEventStore:
    """
    Append-only command event log held in process memory.

    Query contract shared with SqlCommandEventStore:
    - count_events(user_id, category?, risk_level?)
    - distinct_commands(user_id, category?)
    - transaction() groups writes; a failure inside drops what was appended
    """

    def __init__(self) -> None:
        self._events: List[CommandEvent] = []
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self):
        """
        Hold the store for a group of writes.

        Yields None (there is no session to share). Events appended inside
        the block are removed again if the block raises.
        """
        with self._lock:
            mark = len(self._events)
            try:
                yield None
            except Exception:
                del self._events[mark:]
                raise

    def append_many(self, events: Iterable[CommandEvent], session=None) -> int:
        """Append events in order. Returns number appended."""
        batch = list(events)
        with self._lock:
            self._events.extend(batch)
        return len(batch)

    def _matching(
        self,
        user_id: str,
        category: Optional[str] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> List[CommandEvent]:
        with self._lock:
            return [
                e for e in self._events
                if e.user_id == user_id
                and (category is None or e.category == category)
                and (risk_level is None or e.risk_level == RiskLevel(risk_level))
            ]

    def count_events(
        self,
        user_id: str,
        category: Optional[str] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> int:
        return len(self._matching(user_id, category, risk_level))

    def distinct_commands(self, user_id: str, category: Optional[str] = None) -> Set[str]:
        return {e.command for e in self._matching(user_id, category)}

    def top_commands(self, user_id: str, limit: int, session=None) -> List[str]:
        """Most frequent commands first; ties keep first-seen order."""
        counts = Counter(e.command for e in self._matching(user_id))
        return [command for command, _ in counts.most_common(limit)]

    def recent_events(self, user_id: str, limit: int) -> List[CommandEvent]:
        """Newest first. Ties on created_at keep the later append first."""
        indexed = list(enumerate(self._matching(user_id)))
        indexed.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [event for _, event in indexed[:limit]]

    def count(self) -> int:
        """Return total number of events in store."""
        return len(self._events)

    def clear(self) -> None:
        """
        Clear all events.
        FOR TESTING ONLY.
        """
        with self._lock:
            self._events.clear()


# ============================================================================
# Store selection
# ============================================================================

def build_event_store():
    """
    Get the appropriate event store implementation.

    - Uses the SQL store if a database URL is configured and reachable
    - Falls back to in-memory otherwise
    - Scoring and API code are agnostic to the implementation
    """
    from skillboard.core.database import get_database_url

    if get_database_url():
        try:
            from skillboard.core.database import check_connection, create_all_tables
            from skillboard.features.events.event_store_sql import SqlCommandEventStore

            if check_connection():
                create_all_tables()
                return SqlCommandEventStore()
            logger.warning("[event_store] database unavailable, falling back to in-memory")
        except Exception as e:
            logger.warning(f"[event_store] failed to initialize SQL store: {e}; falling back to in-memory")

    return InMemoryCommandEventStore()


# Global store instance (lazy initialization)
_store_instance = None


def get_event_store():
    """
    Get the singleton event store instance.

    This is the primary API that all consumers should use.
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = build_event_store()
    return _store_instance


def set_event_store(store) -> None:
    """Install a specific store (tests, workers)."""
    global _store_instance
    _store_instance = store


def reset_event_store():
    """
    Reset the store instance.

    FOR TESTING ONLY - forces re-initialization on next get_event_store() call.
    """
    global _store_instance
    _store_instance = None

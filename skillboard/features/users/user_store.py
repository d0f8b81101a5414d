"""
User record store.

- get_user / get_or_create_user / set_access
- list_users_with_activity (leaderboard population)
- apply_sync / update_leaderboard_scores (derived snapshot fields)
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from skillboard.core.errors import NotFoundError
from skillboard.models.streak import StreakState
from skillboard.models.user import LeaderboardScores, UserRecord

logger = logging.getLogger("skillboard")


class InMemoryUserStore:
    """
    User records held in process memory, listed in creation order.

    Every read-modify-write runs under one lock so concurrent syncs and
    snapshot writes never drop each other's fields.
    """

    def __init__(self) -> None:
        self._users: Dict[str, UserRecord] = {}
        self._lock = threading.RLock()

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(user_id)

    def get_or_create_user(
        self,
        user_id: str,
        display_name: Optional[str] = None,
        has_access: bool = False,
    ) -> UserRecord:
        with self._lock:
            existing = self._users.get(user_id)
            if existing:
                return existing
            record = UserRecord(
                user_id=user_id,
                display_name=display_name,
                has_access=has_access,
                created_at=datetime.now(timezone.utc),
            )
            self._users[user_id] = record
            return record

    def set_access(self, user_id: str, has_access: bool) -> UserRecord:
        with self._lock:
            record = self._require(user_id)
            updated = replace(record, has_access=has_access)
            self._users[user_id] = updated
            return updated

    def list_users_with_activity(self) -> List[UserRecord]:
        with self._lock:
            return [u for u in self._users.values() if u.command_usage_count > 0]

    def apply_sync(
        self,
        user_id: str,
        *,
        synced_count: int,
        category_counts: Dict[str, int],
        streak: Optional[StreakState] = None,
        last_active_at: Optional[datetime] = None,
        favorite_commands: Optional[List[str]] = None,
        session=None,
    ) -> UserRecord:
        """Increment counters and overwrite streak/favorites when given."""
        with self._lock:
            record = self._require(user_id)
            prefs = dict(record.mode_preferences)
            for category, count in category_counts.items():
                prefs[category] = prefs.get(category, 0) + count
            updated = replace(
                record,
                command_usage_count=record.command_usage_count + synced_count,
                mode_preferences=prefs,
                learning_streak=streak if streak is not None else record.learning_streak,
                last_active_at=last_active_at if last_active_at is not None else record.last_active_at,
                favorite_commands=list(favorite_commands) if favorite_commands is not None else record.favorite_commands,
            )
            self._users[user_id] = updated
            return updated

    def update_leaderboard_scores(
        self,
        user_id: str,
        *,
        category_scores: Optional[Dict[str, int]] = None,
        overall_rank: Optional[int] = None,
    ) -> None:
        with self._lock:
            record = self._require(user_id)
            current = record.leaderboard_scores
            scores = dict(current.category_scores)
            if category_scores is not None:
                scores.update(category_scores)
            self._users[user_id] = replace(
                record,
                leaderboard_scores=LeaderboardScores(
                    category_scores=scores,
                    overall_rank=overall_rank if overall_rank is not None else current.overall_rank,
                ),
            )

    def clear(self) -> None:
        """FOR TESTING ONLY."""
        with self._lock:
            self._users.clear()

    def _require(self, user_id: str) -> UserRecord:
        record = self._users.get(user_id)
        if record is None:
            raise NotFoundError("User not found")
        return record


def build_user_store():
    """SQL store when a database is configured and reachable, else in-memory."""
    from skillboard.core.database import get_database_url

    if get_database_url():
        try:
            from skillboard.core.database import check_connection, create_all_tables
            from skillboard.features.users.user_store_sql import SqlUserStore

            if check_connection():
                create_all_tables()
                return SqlUserStore()
            logger.warning("[user_store] database unavailable, falling back to in-memory")
        except Exception as e:
            logger.warning(f"[user_store] failed to initialize SQL store: {e}; falling back to in-memory")

    return InMemoryUserStore()


_store_instance = None


def get_user_store():
    global _store_instance
    if _store_instance is None:
        _store_instance = build_user_store()
    return _store_instance


def set_user_store(store) -> None:
    global _store_instance
    _store_instance = store


def reset_user_store():
    """FOR TESTING ONLY - forces re-initialization on next get_user_store() call."""
    global _store_instance
    _store_instance = None

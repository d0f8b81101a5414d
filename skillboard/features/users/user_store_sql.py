"""
SQL-backed user store. Same interface as InMemoryUserStore.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from skillboard.core.database import get_db_session, session_scope, users as app_users
from skillboard.core.errors import NotFoundError, StoreError
from skillboard.models.streak import StreakState
from skillboard.models.user import LeaderboardScores, UserRecord


def _utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _row_to_user(row) -> UserRecord:
    return UserRecord(
        user_id=row.user_id,
        display_name=row.display_name,
        has_access=bool(row.has_access),
        command_usage_count=row.command_usage_count or 0,
        learning_streak=StreakState(current=row.streak_current or 0, longest=row.streak_longest or 0),
        last_active_at=_utc(row.last_active_at),
        favorite_commands=list(row.favorite_commands or []),
        mode_preferences=dict(row.mode_preferences or {}),
        leaderboard_scores=LeaderboardScores(
            category_scores=dict(row.category_scores or {}),
            overall_rank=row.overall_rank,
        ),
        created_at=_utc(row.created_at),
    )


class SqlUserStore:
    """User records persisted in app_users. Driver failures surface as StoreError."""

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        try:
            with get_db_session() as session:
                row = session.execute(select(app_users).where(app_users.c.user_id == user_id)).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read user: {e}") from e
        return _row_to_user(row) if row else None

    def get_or_create_user(
        self,
        user_id: str,
        display_name: Optional[str] = None,
        has_access: bool = False,
    ) -> UserRecord:
        existing = self.get_user(user_id)
        if existing:
            return existing

        now = datetime.now(timezone.utc)
        try:
            with get_db_session() as session:
                session.execute(
                    insert(app_users).values(
                        user_id=user_id,
                        display_name=display_name,
                        has_access=has_access,
                        command_usage_count=0,
                        streak_current=0,
                        streak_longest=0,
                        favorite_commands=[],
                        mode_preferences={},
                        category_scores={},
                        created_at=now,
                    )
                )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create user: {e}") from e
        return UserRecord(user_id=user_id, display_name=display_name, has_access=has_access, created_at=now)

    def set_access(self, user_id: str, has_access: bool) -> UserRecord:
        self._update(user_id, has_access=has_access)
        return self.get_user(user_id)

    def list_users_with_activity(self) -> List[UserRecord]:
        stmt = (
            select(app_users)
            .where(app_users.c.command_usage_count > 0)
            .order_by(app_users.c.created_at.asc(), app_users.c.user_id.asc())
        )
        try:
            with get_db_session() as session:
                return [_row_to_user(row) for row in session.execute(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list active users: {e}") from e

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
        """Pass `session` to join the caller's transaction (the event append)."""
        try:
            with session_scope(session) as active:
                row = active.execute(
                    select(app_users).where(app_users.c.user_id == user_id).with_for_update()
                ).first()
                if row is None:
                    raise NotFoundError("User not found")

                prefs = dict(row.mode_preferences or {})
                for category, count in category_counts.items():
                    prefs[category] = prefs.get(category, 0) + count

                values = {
                    "command_usage_count": app_users.c.command_usage_count + synced_count,
                    "mode_preferences": prefs,
                }
                if streak is not None:
                    values["streak_current"] = streak.current
                    values["streak_longest"] = streak.longest
                if last_active_at is not None:
                    values["last_active_at"] = last_active_at
                if favorite_commands is not None:
                    values["favorite_commands"] = list(favorite_commands)

                active.execute(update(app_users).where(app_users.c.user_id == user_id).values(**values))
                updated = active.execute(select(app_users).where(app_users.c.user_id == user_id)).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to apply sync: {e}") from e
        return _row_to_user(updated)

    def update_leaderboard_scores(
        self,
        user_id: str,
        *,
        category_scores: Optional[Dict[str, int]] = None,
        overall_rank: Optional[int] = None,
    ) -> None:
        try:
            with get_db_session() as session:
                row = session.execute(
                    select(app_users.c.category_scores).where(app_users.c.user_id == user_id)
                ).first()
                if row is None:
                    raise NotFoundError("User not found")

                values = {}
                if category_scores is not None:
                    merged = dict(row.category_scores or {})
                    merged.update(category_scores)
                    values["category_scores"] = merged
                if overall_rank is not None:
                    values["overall_rank"] = overall_rank
                if values:
                    session.execute(update(app_users).where(app_users.c.user_id == user_id).values(**values))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to update leaderboard scores: {e}") from e

    def clear(self) -> None:
        """FOR TESTING ONLY."""
        with get_db_session() as session:
            session.execute(app_users.delete())

    def _update(self, user_id: str, **values) -> None:
        try:
            with get_db_session() as session:
                result = session.execute(update(app_users).where(app_users.c.user_id == user_id).values(**values))
                if not result.rowcount:
                    raise NotFoundError("User not found")
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to update user: {e}") from e

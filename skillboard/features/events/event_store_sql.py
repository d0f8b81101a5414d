"""
skillboard/features/events/event_store_sql.py

SQLAlchemy-backed append-only command event store.

Maintains:
- Append-only semantics
- Deterministic ordering (created_at, then id)
- The same query contract as the in-memory store
"""

from contextlib import contextmanager
from datetime import timezone
from typing import Iterable, List, Optional, Set

from sqlalchemy import and_, func, insert, select
from sqlalchemy.exc import SQLAlchemyError

from skillboard.core.database import command_events, get_db_session, session_scope
from skillboard.core.errors import StoreError
from skillboard.models.command_event import CommandEvent, RiskLevel


def _filters(user_id: str, category: Optional[str] = None, risk_level: Optional[RiskLevel] = None):
    clauses = [command_events.c.user_id == user_id]
    if category is not None:
        clauses.append(command_events.c.category == category)
    if risk_level is not None:
        clauses.append(command_events.c.risk_level == RiskLevel(risk_level).value)
    return and_(*clauses)


def _row_to_event(row) -> CommandEvent:
    created_at = row.created_at
    if created_at.tzinfo is None:
        # SQLite drops tzinfo; all stored timestamps are UTC
        created_at = created_at.replace(tzinfo=timezone.utc)
    return CommandEvent(
        user_id=row.user_id,
        command=row.command,
        category=row.category,
        risk_level=row.risk_level,
        interaction_type=row.interaction_type,
        executed=bool(row.executed),
        created_at=created_at,
    )


class SqlCommandEventStore:
    """
    SQL-backed command event store.

    Maintains identical interface to InMemoryCommandEventStore. Driver
    failures surface as StoreError.
    """

    @contextmanager
    def transaction(self):
        """Open one session for a group of writes; commits on exit, rolls back on error."""
        try:
            with get_db_session() as session:
                yield session
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to commit transaction: {e}") from e

    def append_many(self, events: Iterable[CommandEvent], session=None) -> int:
        rows = [
            {
                "user_id": e.user_id,
                "command": e.command,
                "category": e.category,
                "risk_level": e.risk_level.value,
                "interaction_type": e.interaction_type.value,
                "executed": e.executed,
                "created_at": e.created_at,
            }
            for e in events
        ]
        if not rows:
            return 0
        try:
            with session_scope(session) as active:
                active.execute(insert(command_events), rows)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to append command events: {e}") from e
        return len(rows)

    def count_events(
        self,
        user_id: str,
        category: Optional[str] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> int:
        stmt = select(func.count()).select_from(command_events).where(_filters(user_id, category, risk_level))
        try:
            with get_db_session() as session:
                return int(session.execute(stmt).scalar() or 0)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count command events: {e}") from e

    def distinct_commands(self, user_id: str, category: Optional[str] = None) -> Set[str]:
        stmt = select(command_events.c.command).where(_filters(user_id, category)).distinct()
        try:
            with get_db_session() as session:
                return {row.command for row in session.execute(stmt)}
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read distinct commands: {e}") from e

    def top_commands(self, user_id: str, limit: int, session=None) -> List[str]:
        """Most frequent commands first; ties keep first-seen order."""
        uses = func.count().label("uses")
        first_id = func.min(command_events.c.id).label("first_id")
        stmt = (
            select(command_events.c.command, uses, first_id)
            .where(_filters(user_id))
            .group_by(command_events.c.command)
            .order_by(uses.desc(), first_id.asc())
            .limit(limit)
        )
        try:
            with session_scope(session) as active:
                return [row.command for row in active.execute(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read top commands: {e}") from e

    def recent_events(self, user_id: str, limit: int) -> List[CommandEvent]:
        stmt = (
            select(command_events)
            .where(_filters(user_id))
            .order_by(command_events.c.created_at.desc(), command_events.c.id.desc())
            .limit(limit)
        )
        try:
            with get_db_session() as session:
                return [_row_to_event(row) for row in session.execute(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read recent command events: {e}") from e

    def count(self) -> int:
        """Return total number of events in the table."""
        with get_db_session() as session:
            return int(session.execute(select(func.count()).select_from(command_events)).scalar() or 0)

    def clear(self) -> None:
        """
        Clear all events.
        FOR TESTING ONLY.
        """
        with get_db_session() as session:
            session.execute(command_events.delete())

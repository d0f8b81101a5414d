"""
Stats sync service.

- sync(user_id, records): validate + append command events, then refresh
  the user's denormalized activity state (usage count, mode preferences,
  favorites, streak)
- get_stats(user_id): read back the activity snapshot plus recent commands

Malformed records are skipped one by one; they never fail the batch and
are not reported back to the caller.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from skillboard.core.config import scoring_categories, settings
from skillboard.core.errors import InvalidCommandEvent, NotFoundError, ValidationError
from skillboard.features.streaks.service import update_streak
from skillboard.models.command_event import CommandEvent, InteractionType, RiskLevel
from skillboard.models.streak import StreakState

logger = logging.getLogger("skillboard")


@dataclass(frozen=True)
class SyncResult:
    synced: int
    streak: StreakState

    def to_dict(self) -> dict:
        return {"success": True, "synced": self.synced, "streak": self.streak.to_dict()}


def _parse_timestamp(value: Any, fallback: datetime) -> datetime:
    if value is None or value == "":
        return fallback
    if isinstance(value, bool):
        raise InvalidCommandEvent("timestamp must be ISO-8601 or epoch milliseconds")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidCommandEvent(f"timestamp out of range: {value}") from e
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidCommandEvent(f"unparseable timestamp: {value}") from e
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise InvalidCommandEvent("timestamp must be ISO-8601 or epoch milliseconds")


def _required_text(raw: Dict[str, Any], field: str) -> str:
    value = raw.get(field)
    if not isinstance(value, str) or not value.strip():
        raise InvalidCommandEvent(f"{field} is required")
    return value


def parse_sync_record(user_id: str, raw: Any, received_at: datetime) -> CommandEvent:
    """
    Turn one CLI record into a CommandEvent.

    Accepts {command, category, riskLevel?, interactionType?, executed?, timestamp?}.
    Raises InvalidCommandEvent for anything malformed.
    """
    if not isinstance(raw, dict):
        raise InvalidCommandEvent("record must be an object")

    command = _required_text(raw, "command")
    category = _required_text(raw, "category")

    try:
        risk_level = RiskLevel(raw.get("riskLevel") or RiskLevel.SAFE.value)
        interaction_type = InteractionType(raw.get("interactionType") or InteractionType.PREDICTION.value)
    except ValueError as e:
        raise InvalidCommandEvent(str(e)) from e

    try:
        return CommandEvent(
            user_id=user_id,
            command=command,
            category=category,
            risk_level=risk_level,
            interaction_type=interaction_type,
            executed=raw.get("executed") is True,
            created_at=_parse_timestamp(raw.get("timestamp"), received_at),
        )
    except PydanticValidationError as e:
        raise InvalidCommandEvent(str(e)) from e


class StatsSyncService:
    """Event ingestion and the derived per-user activity snapshot."""

    def __init__(self, event_store=None, user_store=None, categories: Optional[List[str]] = None):
        if event_store is None:
            from skillboard.features.events.event_store import get_event_store
            event_store = get_event_store()
        if user_store is None:
            from skillboard.features.users.user_store import get_user_store
            user_store = get_user_store()
        self._events = event_store
        self._users = user_store
        self._categories = categories if categories is not None else scoring_categories()

    def sync(self, user_id: str, records: Iterable[Any], now: Optional[datetime] = None) -> SyncResult:
        """
        Ingest a batch of command records for `user_id`.

        The streak advances on the server clock (`now`), not on record
        timestamps, and only when at least one record was valid.

        Raises:
            ValidationError: `records` is not a list
            NotFoundError: user has no record
            StoreError: event or user store write failed; no events from
                the batch are kept
        """
        if not isinstance(records, list):
            raise ValidationError("Invalid request. Expected 'commands' array")

        user = self._users.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        received_at = now or datetime.now(timezone.utc)
        events: List[CommandEvent] = []
        skipped = 0
        for raw in records:
            try:
                events.append(parse_sync_record(user_id, raw, received_at))
            except InvalidCommandEvent as e:
                skipped += 1
                logger.debug("sync.record_skipped", extra={"user_id": user_id, "reason": str(e)})

        category_counts = {category: 0 for category in self._categories}
        for event in events:
            # Other categories stay in the raw log only
            if event.category in category_counts:
                category_counts[event.category] += 1

        if not events:
            logger.info("sync.empty", extra={"user_id": user_id, "skipped": skipped})
            return SyncResult(synced=0, streak=user.learning_streak)

        streak = update_streak(user.learning_streak, user.last_active_at, received_at)

        # Events and the user snapshot commit together or not at all
        with self._events.transaction() as session:
            self._events.append_many(events, session=session)
            favorites = self._events.top_commands(user_id, settings.FAVORITE_COMMANDS_LIMIT, session=session)
            self._users.apply_sync(
                user_id,
                synced_count=len(events),
                category_counts=category_counts,
                streak=streak.state,
                last_active_at=streak.new_last_active_at,
                favorite_commands=favorites,
                session=session,
            )

        logger.info(
            "sync.complete",
            extra={"user_id": user_id, "synced": len(events), "skipped": skipped, "streak": streak.current},
        )
        return SyncResult(synced=len(events), streak=streak.state)

    def get_stats(self, user_id: str) -> Dict[str, Any]:
        """Activity snapshot plus the most recent commands (newest first)."""
        user = self._users.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        recent = self._events.recent_events(user_id, settings.RECENT_COMMANDS_LIMIT)
        return {
            "commandUsageCount": user.command_usage_count,
            "learningStreak": user.learning_streak.to_dict(),
            "lastActiveDate": user.last_active_at.isoformat() if user.last_active_at else None,
            "favoriteCommands": list(user.favorite_commands),
            "modePreferences": {cat: user.mode_preferences.get(cat, 0) for cat in self._categories},
            "leaderboardScores": user.leaderboard_scores.to_dict(self._categories),
            "recentCommands": [event.to_dict() for event in recent],
        }

"""
Skill Score Calculator

Derives a single non-negative integer score for a (user, optional
category) pair from event-store aggregates.

Scoring formula:
- Every recorded command counts 1 point
- Every distinct command adds a variety bonus of 2 points
- Every dangerous command costs a safety penalty of 5 points
- Final score clamped at 0

Pure read: never mutates the event log or the user record.
"""

from typing import Dict, List, Optional

from skillboard.core.config import scoring_categories
from skillboard.core.errors import NotFoundError
from skillboard.models.command_event import RiskLevel


class ScoreCalculator:
    """Deterministic skill scoring over the command event log."""

    VARIETY_WEIGHT = 2
    DANGER_PENALTY = 5

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

    @property
    def categories(self) -> List[str]:
        return list(self._categories)

    @staticmethod
    def score_from_aggregates(command_count: int, unique_commands: int, dangerous_count: int) -> int:
        """
        max(0, commands + 2 * unique - 5 * dangerous).

        Monotonic non-decreasing in command_count and unique_commands,
        non-increasing in dangerous_count.
        """
        variety_bonus = unique_commands * ScoreCalculator.VARIETY_WEIGHT
        safety_penalty = dangerous_count * ScoreCalculator.DANGER_PENALTY
        return max(0, command_count + variety_bonus - safety_penalty)

    def compute_score(self, user_id: str, category: Optional[str] = None) -> int:
        """
        Compute the score for a user, optionally filtered to one category.

        Args:
            user_id: User whose events are aggregated
            category: Opaque exact-match filter applied to every aggregate

        Returns:
            Non-negative integer score

        Raises:
            NotFoundError: user has no record in the user store
            StoreError: event store read failed (propagated, never partial)
        """
        if self._users.get_user(user_id) is None:
            raise NotFoundError("User not found")

        command_count = self._events.count_events(user_id, category=category)
        unique_commands = len(self._events.distinct_commands(user_id, category=category))
        dangerous_count = self._events.count_events(
            user_id, category=category, risk_level=RiskLevel.DANGEROUS
        )
        return self.score_from_aggregates(command_count, unique_commands, dangerous_count)

    def compute_category_scores(self, user_id: str) -> Dict[str, int]:
        """One independently computed score per fixed category, in configured order."""
        return {category: self.compute_score(user_id, category) for category in self._categories}

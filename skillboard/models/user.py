from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from skillboard.models.streak import StreakState


@dataclass(frozen=True)
class LeaderboardScores:
    """Denormalized leaderboard snapshot; the event log stays the source of truth."""

    category_scores: Dict[str, int] = field(default_factory=dict)
    overall_rank: Optional[int] = None  # absent until the first ranking pass

    def total(self, categories: List[str]) -> int:
        return sum(self.category_scores.get(cat, 0) for cat in categories)

    def to_dict(self, categories: List[str]) -> dict:
        payload = {f"{cat}Score": self.category_scores.get(cat, 0) for cat in categories}
        if self.overall_rank is not None:
            payload["overallRank"] = self.overall_rank
        return payload


@dataclass(frozen=True)
class UserRecord:
    """
    User record with its derived activity state. This service is the sole
    writer of every field below except display_name and has_access.
    """

    user_id: str
    display_name: Optional[str] = None
    has_access: bool = False
    command_usage_count: int = 0
    learning_streak: StreakState = field(default_factory=StreakState)
    last_active_at: Optional[datetime] = None
    favorite_commands: List[str] = field(default_factory=list)
    mode_preferences: Dict[str, int] = field(default_factory=dict)
    leaderboard_scores: LeaderboardScores = field(default_factory=LeaderboardScores)
    created_at: Optional[datetime] = None

    @property
    def name(self) -> str:
        return normalized_display_name(self.user_id, self.display_name)


def normalized_display_name(user_id: str, display_name: Optional[str] = None) -> str:
    if display_name and display_name.strip():
        return display_name.strip()
    # Deterministic fallback handle
    h = hashlib.sha1(user_id.encode("utf-8")).hexdigest()
    return f"@u_{h[-6:]}"

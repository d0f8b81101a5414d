"""
skillboard/models/leaderboard.py
Transient ranking and leaderboard models, computed fresh on every pass.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ScoreEntry:
    user_id: str
    name: str
    score: int


@dataclass(frozen=True)
class RankPosition:
    """Ordinal rank and percentile. rank == 0 means unranked (sentinel)."""

    rank: int
    percentile: int

    @property
    def is_ranked(self) -> bool:
        return self.rank > 0


UNRANKED = RankPosition(rank=0, percentile=0)


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    name: str
    score: int
    is_current_user: bool

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "name": self.name,
            "score": self.score,
            "isCurrentUser": self.is_current_user,
        }


@dataclass(frozen=True)
class CurrentUserSummary:
    rank: int
    percentile: int
    score: int
    name: Optional[str]
    category_scores: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "percentile": self.percentile,
            "score": self.score,
            "name": self.name,
            "categoryScores": dict(self.category_scores),
        }


@dataclass(frozen=True)
class LeaderboardView:
    entries: List[LeaderboardEntry]
    current_user: CurrentUserSummary
    total_users: int
    category: Optional[str] = None  # None = overall

    def to_dict(self) -> dict:
        """Serialize to dict for JSON response."""
        return {
            "leaderboard": [entry.to_dict() for entry in self.entries],
            "currentUser": self.current_user.to_dict(),
            "totalUsers": self.total_users,
            "category": self.category or "overall",
        }

"""
Leaderboard assembly.

Pure function: same population + same requester => identical view.
Anonymity rule: only the requester's own entry carries a real name.
"""

from typing import Dict, List, Optional, Sequence

from skillboard.features.ranking.engine import position_for, rank_population, sort_population
from skillboard.models.leaderboard import (
    CurrentUserSummary,
    LeaderboardEntry,
    LeaderboardView,
    ScoreEntry,
)


def assemble_leaderboard(
    population: Sequence[ScoreEntry],
    requesting_user_id: str,
    *,
    limit: int,
    anonymous_name: str,
    category: Optional[str] = None,
    category_scores: Optional[Dict[str, int]] = None,
    requesting_user_name: Optional[str] = None,
) -> LeaderboardView:
    """
    Build the top-`limit` view plus the requester's summary.

    The requester's summary is looked up from the full ranking, not the
    slice, so it is populated even when they fall outside the top entries.
    `requesting_user_name` names the summary when the requester is not in
    the population at all.
    """
    ordered: List[ScoreEntry] = sort_population(population)
    ranking = rank_population(ordered)

    entries = [
        LeaderboardEntry(
            rank=index,
            name=entry.name if entry.user_id == requesting_user_id else anonymous_name,
            score=entry.score,
            is_current_user=entry.user_id == requesting_user_id,
        )
        for index, entry in enumerate(ordered[:max(limit, 0)], start=1)
    ]

    own = next((entry for entry in ordered if entry.user_id == requesting_user_id), None)
    position = position_for(ranking, requesting_user_id)
    current_user = CurrentUserSummary(
        rank=position.rank,
        percentile=position.percentile,
        score=own.score if own else 0,
        name=own.name if own else requesting_user_name,
        category_scores=dict(category_scores or {}),
    )

    return LeaderboardView(
        entries=entries,
        current_user=current_user,
        total_users=len(ordered),
        category=category,
    )

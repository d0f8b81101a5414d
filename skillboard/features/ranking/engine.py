"""
Percentile / rank engine.

Ordinal ranking over a scored population:
- Sort by score descending; ties keep input order (stable sort, no secondary key)
- rank = 1-based position in that order, so equal scores get distinct
  sequential ranks
- percentile = max(1, round_half_up((N - rank + 1) / N * 100))

Absent users are unranked: rank 0, percentile 0 (sentinel, not a real rank).
"""

from typing import Dict, Iterable, List, Sequence, Tuple, Union

from skillboard.models.leaderboard import RankPosition, ScoreEntry, UNRANKED

Scored = Union[ScoreEntry, Tuple[str, int]]


def _key(entry: Scored) -> Tuple[str, int]:
    if isinstance(entry, ScoreEntry):
        return entry.user_id, entry.score
    user_id, score = entry
    return user_id, score


def sort_population(entries: Iterable[Scored]) -> List[Scored]:
    """Score descending; Python's sort is stable so ties keep input order."""
    return sorted(entries, key=lambda e: _key(e)[1], reverse=True)


def percentile_for(rank: int, total: int) -> int:
    """
    Integer percentile for an ordinal rank in a population of `total`.

    Half-up rounding done in integer arithmetic:
    floor(100 * (N - rank + 1) / N + 0.5) == (200 * (N - rank + 1) + N) // (2 * N)
    An empty population yields 100 for a would-be entrant. A ranked user
    never drops below 1 (N > 200 would round the last place to 0, which is
    the unranked sentinel).
    """
    if total <= 0:
        return 100
    if rank <= 0:
        return 0
    return max(1, (200 * (total - rank + 1) + total) // (2 * total))


def rank_population(entries: Sequence[Scored]) -> Dict[str, RankPosition]:
    """Map user_id -> RankPosition for every member of the population."""
    ordered = sort_population(entries)
    total = len(ordered)
    ranking: Dict[str, RankPosition] = {}
    for index, entry in enumerate(ordered, start=1):
        user_id, _ = _key(entry)
        # A duplicated user_id keeps its best (first) position
        if user_id not in ranking:
            ranking[user_id] = RankPosition(rank=index, percentile=percentile_for(index, total))
    return ranking


def position_for(ranking: Dict[str, RankPosition], user_id: str) -> RankPosition:
    """Rank lookup with the unranked sentinel for absent users."""
    return ranking.get(user_id, UNRANKED)

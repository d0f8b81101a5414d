"""
Leaderboard recalculation job.

Two explicit phases:
1. Recompute and persist fixed-category scores for every active user.
2. Re-read the persisted snapshots, total the fixed categories, and assign
   1-based overall ranks (stable order for ties).

Phase 2 starts only after phase 1 has finished. There is no transaction
around the two phases: syncs landing mid-run can leave ranks computed from
a mix of old and fresh scores until the next run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from skillboard.core.config import RECALC_FAILURE_POLICIES, settings
from skillboard.features.ranking.engine import sort_population
from skillboard.features.scoring.scoring_engine import ScoreCalculator

logger = logging.getLogger("skillboard.jobs.recalculate")


@dataclass(frozen=True)
class RecalculationResult:
    users_updated: int
    total_users: int
    users_failed: int = 0
    cancelled: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "usersUpdated": self.users_updated,
            "totalUsers": self.total_users,
            "usersFailed": self.users_failed,
            "cancelled": self.cancelled,
        }


class RecalculationJob:
    """Full-population recompute of category scores and overall ranks."""

    def __init__(
        self,
        event_store=None,
        user_store=None,
        calculator: Optional[ScoreCalculator] = None,
        failure_policy: Optional[str] = None,
    ):
        if user_store is None:
            from skillboard.features.users.user_store import get_user_store
            user_store = get_user_store()
        self._users = user_store
        self._calculator = calculator or ScoreCalculator(event_store=event_store, user_store=user_store)
        policy = failure_policy or settings.RECALC_FAILURE_POLICY
        if policy not in RECALC_FAILURE_POLICIES:
            raise ValueError(f"Unknown failure policy: {policy}")
        self._failure_policy = policy

    def run(self, should_stop: Optional[Callable[[], bool]] = None) -> RecalculationResult:
        """
        Run both phases.

        Args:
            should_stop: Polled between users (e.g. threading.Event().is_set);
                when it returns True the run stops and phase 2 is skipped.
        """
        started_at = datetime.now(timezone.utc)
        stop = should_stop or (lambda: False)

        updated, failed, cancelled = self._rescore_all(stop)
        if cancelled:
            logger.warning(
                "[recalculate] cancelled during scoring",
                extra={"users_updated": updated, "users_failed": failed},
            )
            return RecalculationResult(
                users_updated=updated,
                total_users=0,
                users_failed=failed,
                cancelled=True,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc),
            )

        ranked, cancelled = self._assign_ranks(stop)
        result = RecalculationResult(
            users_updated=updated,
            total_users=ranked,
            users_failed=failed,
            cancelled=cancelled,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
        )
        logger.info(
            "[recalculate] leaderboard recalculated",
            extra={"users_updated": updated, "users_failed": failed, "total_users": ranked, "cancelled": cancelled},
        )
        return result

    def _rescore_all(self, stop: Callable[[], bool]) -> Tuple[int, int, bool]:
        updated = 0
        failed = 0
        for user in self._users.list_users_with_activity():
            if stop():
                return updated, failed, True
            try:
                scores = self._calculator.compute_category_scores(user.user_id)
                self._users.update_leaderboard_scores(user.user_id, category_scores=scores)
            except Exception:
                if self._failure_policy == "abort":
                    raise
                failed += 1
                logger.exception("[recalculate] failed to rescore user", extra={"user_id": user.user_id})
                continue
            updated += 1
        return updated, failed, False

    def _assign_ranks(self, stop: Callable[[], bool]) -> Tuple[int, bool]:
        categories: List[str] = self._calculator.categories
        totals = [
            (user.user_id, user.leaderboard_scores.total(categories))
            for user in self._users.list_users_with_activity()
        ]
        ranked = sort_population(totals)
        for position, (user_id, _) in enumerate(ranked, start=1):
            if stop():
                return len(ranked), True
            try:
                self._users.update_leaderboard_scores(user_id, overall_rank=position)
            except Exception:
                if self._failure_policy == "abort":
                    raise
                logger.exception("[recalculate] failed to write rank", extra={"user_id": user_id})
        return len(ranked), False


def recalculate_all(should_stop: Optional[Callable[[], bool]] = None) -> RecalculationResult:
    """Run the job against the configured stores."""
    return RecalculationJob().run(should_stop=should_stop)

"""
Leaderboard Service

Scores the active population, assembles the view, and dispatches the
denormalized snapshot write as a fire-and-forget task. The read path never
depends on that task's outcome.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

from skillboard.core.config import settings
from skillboard.core.errors import NotFoundError
from skillboard.core.logging import log_event
from skillboard.features.leaderboard.assembler import assemble_leaderboard
from skillboard.features.scoring.scoring_engine import ScoreCalculator
from skillboard.models.leaderboard import LeaderboardView, ScoreEntry

logger = logging.getLogger("skillboard")

Dispatch = Callable[..., None]

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def _background_dispatch(fn, *args, **kwargs) -> None:
    """
    Default dispatcher for callers outside a request (workers, scripts).

    Best-effort: a write still queued when the process is killed is lost.
    Call shutdown_background_dispatch() on orderly exit to drain the queue.
    """
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="skillboard-persist")
        _executor.submit(fn, *args, **kwargs)


def shutdown_background_dispatch(wait: bool = True) -> None:
    """Stop the pool; with wait=True, block until queued snapshot writes finish."""
    global _executor
    with _executor_lock:
        executor, _executor = _executor, None
    if executor is not None:
        executor.shutdown(wait=wait)
        logger.debug("leaderboard.dispatch_shutdown", extra={"waited": wait})


def persist_leaderboard_snapshot(
    user_store,
    user_id: str,
    category_scores: Dict[str, int],
    overall_rank: Optional[int] = None,
    request_id: Optional[str] = None,
) -> bool:
    """
    Write category scores (and rank when given) onto the user record.

    Failures are logged and swallowed; returns False on failure.
    """
    try:
        user_store.update_leaderboard_scores(
            user_id,
            category_scores=category_scores,
            overall_rank=overall_rank,
        )
        return True
    except Exception as e:
        log_event(
            "error",
            "leaderboard.persist_failed",
            request_id=request_id,
            user_id=user_id,
            error_code=getattr(e, "code", "persist_failed"),
            extra={"error": e},
        )
        return False


class LeaderboardService:
    """Top-N leaderboard plus current-user summary."""

    def __init__(self, event_store=None, user_store=None, calculator: Optional[ScoreCalculator] = None):
        if user_store is None:
            from skillboard.features.users.user_store import get_user_store
            user_store = get_user_store()
        self._users = user_store
        self._calculator = calculator or ScoreCalculator(event_store=event_store, user_store=user_store)

    def score_population(self, category: Optional[str] = None) -> List[ScoreEntry]:
        """Score every user with recorded activity, in store order."""
        return [
            ScoreEntry(
                user_id=user.user_id,
                name=user.name,
                score=self._calculator.compute_score(user.user_id, category),
            )
            for user in self._users.list_users_with_activity()
        ]

    def get_leaderboard(
        self,
        user_id: str,
        category: Optional[str] = None,
        limit: Optional[int] = None,
        dispatch: Optional[Dispatch] = None,
        request_id: Optional[str] = None,
    ) -> LeaderboardView:
        """
        Assemble the leaderboard for `user_id`.

        Args:
            user_id: Requesting user (must exist)
            category: Optional category filter for the ranked score
            limit: Top-N size (defaults to LEADERBOARD_DEFAULT_LIMIT)
            dispatch: Callable(fn, *args) scheduling the snapshot write;
                FastAPI's BackgroundTasks.add_task in the API layer
            request_id: Correlation id for the background task's logs

        Raises:
            NotFoundError: requesting user has no record
            StoreError: a score read failed
        """
        requester = self._users.get_user(user_id)
        if requester is None:
            raise NotFoundError("User not found")

        top_n = limit if limit is not None else settings.LEADERBOARD_DEFAULT_LIMIT
        population = self.score_population(category)
        category_scores = self._calculator.compute_category_scores(user_id)

        view = assemble_leaderboard(
            population,
            user_id,
            limit=top_n,
            anonymous_name=settings.LEADERBOARD_ANONYMOUS_NAME,
            category=category,
            category_scores=category_scores,
            requesting_user_name=requester.name,
        )

        # Only the unfiltered board defines the overall rank
        overall_rank = None
        if category is None and view.current_user.rank > 0:
            overall_rank = view.current_user.rank

        (dispatch or _background_dispatch)(
            persist_leaderboard_snapshot,
            self._users,
            user_id,
            category_scores,
            overall_rank,
            request_id,
        )

        logger.info(
            "leaderboard.assembled",
            extra={"user_id": user_id, "category": category or "overall", "total_users": view.total_users},
        )
        return view

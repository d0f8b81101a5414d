"""
skillboard/api/leaderboard.py

GET  /api/leaderboard               - top-N view + current user summary (Premium)
POST /api/leaderboard/recalculate   - full recompute of scores and ranks (admin)
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from skillboard.core.auth import AdminActor, get_current_user_id, require_admin
from skillboard.core.config import settings
from skillboard.core.errors import NotFoundError
from skillboard.core.logging import get_request_id
from skillboard.features.entitlements.service import require_premium
from skillboard.features.leaderboard.recalculate_job import RecalculationJob
from skillboard.features.leaderboard.service import LeaderboardService
from skillboard.features.users.user_store import get_user_store

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("", response_model=Dict[str, Any])
def get_leaderboard(
    background_tasks: BackgroundTasks,
    category: Optional[str] = Query(None, description="Optional category filter: git, docker, aws, k8s, ..."),
    limit: Optional[int] = Query(None, ge=1, le=settings.LEADERBOARD_MAX_LIMIT, description="Top-N size"),
    user_id: str = Depends(get_current_user_id),
) -> Dict[str, Any]:
    """
    Global leaderboard and the caller's rank.

    Returns:
        {
            "leaderboard": [{"rank": 1, "name": "Anonymous", "score": 120, "isCurrentUser": false}, ...],
            "currentUser": {"rank": 7, "percentile": 88, "score": 64, "name": "ada",
                            "categoryScores": {"git": 40, "docker": 12, "aws": 0, "k8s": 8}},
            "totalUsers": 52,
            "category": "overall"
        }

    The snapshot write onto the caller's record runs after the response
    is sent and never affects it.
    """
    users = get_user_store()
    user = users.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    require_premium(user, "leaderboard")

    view = LeaderboardService(user_store=users).get_leaderboard(
        user_id,
        category=category or None,
        limit=limit,
        dispatch=background_tasks.add_task,
        request_id=get_request_id(),
    )
    return view.to_dict()


@router.post("/recalculate", response_model=Dict[str, Any])
def recalculate_leaderboard(admin: AdminActor = Depends(require_admin)) -> Dict[str, Any]:
    """Recompute category scores and overall ranks for every active user."""
    result = RecalculationJob().run()
    return {
        "success": True,
        "message": f"Recalculated leaderboard for {result.users_updated} users",
        **result.to_dict(),
    }

"""
skillboard/api/stats.py

POST /api/stats/sync - ingest command usage from the CLI (Premium)
GET  /api/stats/sync - read back the caller's activity snapshot (Premium)
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from skillboard.core.auth import get_current_user_id
from skillboard.core.errors import NotFoundError, ValidationError
from skillboard.features.entitlements.service import require_premium
from skillboard.features.stats.service import StatsSyncService
from skillboard.features.users.user_store import get_user_store

router = APIRouter(prefix="/api/stats", tags=["stats"])


def _entitled_user(user_id: str, feature: str):
    user = get_user_store().get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    require_premium(user, feature)
    return user


@router.post("/sync", response_model=Dict[str, Any])
def sync_stats(
    payload: Any = Body(..., description='{"commands": [{"command", "category", "riskLevel?", ...}]}'),
    user_id: str = Depends(get_current_user_id),
) -> Dict[str, Any]:
    """
    Sync a batch of command records.

    Records missing a command or category (or carrying an unknown risk
    level / interaction type) are skipped silently; `synced` counts only
    the stored ones.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid request. Expected 'commands' array")
    _entitled_user(user_id, "cloud_sync")

    result = StatsSyncService().sync(user_id, payload.get("commands"))
    return result.to_dict()


@router.get("/sync", response_model=Dict[str, Any])
def get_stats(user_id: str = Depends(get_current_user_id)) -> Dict[str, Any]:
    _entitled_user(user_id, "stats")
    return StatsSyncService().get_stats(user_id)

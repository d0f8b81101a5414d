"""
Premium entitlement gate.

Applied by the API layer before any engine call. The flag itself
(has_access) is owned by billing, which lives outside this service.
"""

import logging

from skillboard.core.config import settings
from skillboard.core.errors import UpgradeRequiredError
from skillboard.models.user import UserRecord

logger = logging.getLogger("skillboard")

# feature key -> user-facing message
PREMIUM_FEATURES = {
    "leaderboard": "Leaderboard access requires Premium.",
    "cloud_sync": "Premium subscription required for cloud sync.",
    "stats": "Premium subscription required.",
}


def require_premium(user: UserRecord, feature: str) -> None:
    """
    Raise UpgradeRequiredError unless the user holds premium access.

    Distinct from generic 403s so clients can render upgrade messaging.
    """
    if user.has_access:
        return
    message = PREMIUM_FEATURES.get(feature, "Premium subscription required.")
    logger.info("entitlement.denied", extra={"user_id": user.user_id, "feature": feature})
    raise UpgradeRequiredError(f"{message} Upgrade at {settings.UPGRADE_URL}")

"""
Caller identity for the Skillboard API.

Session validation happens upstream; the gateway forwards the verified
user id in X-User-Id. Admin operations use a shared X-Admin-Key.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, Request

from skillboard.core.config import settings
from skillboard.core.errors import PermissionError, UnauthorizedError

logger = logging.getLogger("skillboard")


@dataclass
class AdminActor:
    """Represents an authenticated admin actor."""
    actor_id: str  # "admin_key:<hash>"


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, description="Verified user id forwarded by the gateway"),
) -> str:
    """
    Extract current user ID from request headers.

    Raises:
        UnauthorizedError: header missing or blank
    """
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    raise UnauthorizedError("Missing X-User-Id header")


def require_admin(request: Request) -> AdminActor:
    """
    FastAPI dependency: validate X-Admin-Key against settings.ADMIN_KEY.

    Raises:
        PermissionError: admin key unset, missing, or wrong
    """
    expected_key = settings.ADMIN_KEY
    header_key = request.headers.get("X-Admin-Key", "").strip()
    if not expected_key or not header_key or not hmac.compare_digest(header_key, expected_key):
        logger.warning("admin.denied", extra={"path": request.url.path})
        raise PermissionError("Admin access required")

    key_hash = hashlib.sha256(header_key.encode()).hexdigest()[:16]
    return AdminActor(actor_id=f"admin_key:{key_hash}")

"""
Admin user provisioning.

PUT /api/admin/users/{user_id} - create the record on first sight and set
the premium flag mirrored from billing.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from skillboard.core.auth import AdminActor, require_admin
from skillboard.features.users.user_store import get_user_store

logger = logging.getLogger("skillboard")

router = APIRouter(prefix="/api/admin/users", tags=["admin"])


class UserProvisionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: Optional[str] = Field(default=None, alias="displayName")
    has_access: bool = Field(default=False, alias="hasAccess")


@router.put("/{user_id}", response_model=Dict[str, Any])
def provision_user(
    user_id: str,
    body: UserProvisionRequest,
    admin: AdminActor = Depends(require_admin),
) -> Dict[str, Any]:
    users = get_user_store()
    users.get_or_create_user(user_id, display_name=body.display_name)
    user = users.set_access(user_id, body.has_access)
    logger.info(
        "admin.user_provisioned",
        extra={"user_id": user_id, "actor": admin.actor_id, "has_access": body.has_access},
    )
    return {"userId": user.user_id, "name": user.name, "hasAccess": user.has_access}

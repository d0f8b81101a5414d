"""
skillboard/models/command_event.py

One recorded command interaction. Append-only: created once per
observed interaction and never updated or deleted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RiskLevel(str, Enum):
    """How destructive a command is; dangerous commands are penalized."""
    SAFE = "safe"
    CAUTION = "caution"
    DANGEROUS = "dangerous"


class InteractionType(str, Enum):
    PREDICTION = "prediction"
    SUGGESTION = "suggestion"
    ASK_MODE = "ask_mode"


class CommandEvent(BaseModel):
    """Immutable command event owned by a single user."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    command: str = Field(description="Command text, trimmed")
    category: str = Field(description="Lower-cased category tag (git, docker, ...)")
    risk_level: RiskLevel = RiskLevel.SAFE
    interaction_type: InteractionType = InteractionType.PREDICTION
    executed: bool = False
    created_at: datetime

    @field_validator("command")
    @classmethod
    def _strip_command(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("command must be non-empty")
        return value

    @field_validator("category")
    @classmethod
    def _normalize_category(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("category must be non-empty")
        return value

    @field_validator("created_at")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for JSON response."""
        return {
            "command": self.command,
            "category": self.category,
            "riskLevel": self.risk_level.value,
            "interactionType": self.interaction_type.value,
            "executed": self.executed,
            "createdAt": self.created_at.isoformat(),
        }

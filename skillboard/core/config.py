import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional

RECALC_FAILURE_POLICIES = ("continue", "abort")


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Scoring: fixed categories tracked in per-category score fields
    # and modePreferences counters. Order is preserved in responses.
    SCORING_CATEGORIES: List[str] = ["git", "docker", "aws", "k8s"]

    # Leaderboard
    LEADERBOARD_DEFAULT_LIMIT: int = 50
    LEADERBOARD_MAX_LIMIT: int = 500
    LEADERBOARD_ANONYMOUS_NAME: str = "Anonymous"

    # Stats
    FAVORITE_COMMANDS_LIMIT: int = 10
    RECENT_COMMANDS_LIMIT: int = 100

    # Recalculation job: "continue" skips failing users, "abort" stops the run
    RECALC_FAILURE_POLICY: str = "continue"

    # Entitlements
    UPGRADE_URL: str = "terminaltutor.dev/premium"

    # Admin access (recalculation, user provisioning)
    ADMIN_KEY: Optional[str] = None

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def scoring_categories(settings_obj: Optional[Settings] = None) -> List[str]:
    """Normalized fixed category set (lower-cased, de-duplicated, order kept)."""
    cfg = settings_obj or settings
    seen: List[str] = []
    for raw in cfg.SCORING_CATEGORIES:
        name = raw.strip().lower()
        if name and name not in seen:
            seen.append(name)
    return seen


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("skillboard")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    if cfg.ENV.lower() == "production" and not cfg.DATABASE_URL:
        problems.append("Missing required configuration: DATABASE_URL")
    if cfg.RECALC_FAILURE_POLICY not in RECALC_FAILURE_POLICIES:
        problems.append(
            f"RECALC_FAILURE_POLICY must be one of: {', '.join(RECALC_FAILURE_POLICIES)}"
        )
    if not scoring_categories(cfg):
        problems.append("SCORING_CATEGORIES must contain at least one category")
    if cfg.LEADERBOARD_DEFAULT_LIMIT < 1 or cfg.LEADERBOARD_DEFAULT_LIMIT > cfg.LEADERBOARD_MAX_LIMIT:
        problems.append("LEADERBOARD_DEFAULT_LIMIT must be between 1 and LEADERBOARD_MAX_LIMIT")

    for message in problems:
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return not problems

"""Tests for settings helpers and environment validation."""

import logging
from types import SimpleNamespace

import pytest

from skillboard.core.config import Settings, scoring_categories, validate_config
from skillboard.core.validation import EnvValidationError, validate_env


def make_settings(**overrides):
    defaults = dict(ENV="development", DATABASE_URL=None, TEST_DATABASE_URL=None)
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


@pytest.fixture(autouse=True)
def enforce_validation(monkeypatch):
    monkeypatch.delenv("SKIP_ENV_VALIDATION", raising=False)


def test_valid_production_config_passes():
    validate_env(settings_obj=make_settings(ENV="production", DATABASE_URL="postgresql://u:p@db:5432/skillboard"))


def test_sqlite_url_accepted():
    validate_env(settings_obj=make_settings(DATABASE_URL="sqlite:///./skillboard.db"))


def test_missing_database_url_in_production_fails():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(ENV="production"))


def test_invalid_database_url_format_fails():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(DATABASE_URL="not-a-url"))


def test_test_database_url_only_in_test_mode():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(TEST_DATABASE_URL="sqlite:///t.db"))
    assert validate_env(settings_obj=make_settings(ENV="test", TEST_DATABASE_URL="sqlite:///t.db"))


def test_skip_flag_bypasses_validation(monkeypatch):
    monkeypatch.setenv("SKIP_ENV_VALIDATION", "1")
    assert validate_env(settings_obj=make_settings(ENV="production"))


def test_scoring_categories_normalized():
    cfg = Settings(SCORING_CATEGORIES=[" Git", "docker", "GIT", "", "k8s"])
    assert scoring_categories(cfg) == ["git", "docker", "k8s"]


def test_validate_config_warns_on_bad_policy(caplog):
    cfg = Settings(RECALC_FAILURE_POLICY="retry")
    with caplog.at_level(logging.WARNING, logger="skillboard"):
        assert validate_config(strict=False, settings_obj=cfg) is False
    assert any("RECALC_FAILURE_POLICY" in r.getMessage() for r in caplog.records)


def test_validate_config_strict_raises():
    cfg = Settings(SCORING_CATEGORIES=[])
    with pytest.raises(RuntimeError):
        validate_config(strict=True, settings_obj=cfg)


def test_default_config_is_valid():
    assert validate_config(strict=True, settings_obj=Settings(ENV="development", DATABASE_URL=None))

# skillboard/conftest.py
import os
from datetime import datetime, timezone

import pytest

os.environ.setdefault("SKIP_ENV_VALIDATION", "1")

from skillboard.features.events.event_store import (
    InMemoryCommandEventStore,
    reset_event_store,
    set_event_store,
)
from skillboard.features.users.user_store import (
    InMemoryUserStore,
    reset_user_store,
    set_user_store,
)
from skillboard.models.command_event import CommandEvent, RiskLevel


@pytest.fixture(scope="function", autouse=True)
def memory_stores():
    """
    Install fresh in-memory stores for every test.

    Keeps tests independent of DATABASE_URL; SQL store tests opt in
    through the sqlite_db fixture.
    """
    events = InMemoryCommandEventStore()
    users = InMemoryUserStore()
    set_event_store(events)
    set_user_store(users)
    yield events, users
    reset_event_store()
    reset_user_store()


@pytest.fixture
def event_store(memory_stores):
    return memory_stores[0]


@pytest.fixture
def user_store(memory_stores):
    return memory_stores[1]


@pytest.fixture
def sqlite_db(tmp_path):
    """File-backed SQLite database with all tables created."""
    from skillboard.core.database import create_all_tables, dispose_engine, init_engine

    dispose_engine()
    init_engine(f"sqlite:///{tmp_path / 'skillboard.db'}")
    create_all_tables()
    yield
    dispose_engine()


@pytest.fixture
def admin_key(monkeypatch):
    from skillboard.core.config import settings

    monkeypatch.setattr(settings, "ADMIN_KEY", "test-admin-key")
    return "test-admin-key"


@pytest.fixture
def record_events(event_store, user_store):
    """Append events for a user (created on first use)."""

    def _record(user_id, commands, category="git", risk_level=RiskLevel.SAFE, display_name=None):
        user_store.get_or_create_user(user_id, display_name=display_name, has_access=True)
        now = datetime.now(timezone.utc)
        batch = [
            CommandEvent(
                user_id=user_id,
                command=command,
                category=category,
                risk_level=risk_level,
                created_at=now,
            )
            for command in commands
        ]
        event_store.append_many(batch)
        user_store.apply_sync(user_id, synced_count=len(batch), category_counts={category: len(batch)})
        return batch

    return _record

"""
SQL store parity tests.

Run against a throwaway SQLite file; the same contract is exercised for
the in-memory stores elsewhere.
"""

from datetime import datetime, timedelta, timezone

import pytest

from skillboard.core.errors import NotFoundError, StoreError
from skillboard.features.events.event_store_sql import SqlCommandEventStore
from skillboard.features.leaderboard.recalculate_job import RecalculationJob
from skillboard.features.leaderboard.service import LeaderboardService
from skillboard.features.stats.service import StatsSyncService
from skillboard.features.users.user_store_sql import SqlUserStore
from skillboard.models.command_event import CommandEvent, RiskLevel
from skillboard.models.streak import StreakState

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sql_events(sqlite_db):
    return SqlCommandEventStore()


@pytest.fixture
def sql_users(sqlite_db):
    return SqlUserStore()


def _event(command, category="git", risk=RiskLevel.SAFE, at=NOW, user_id="u1"):
    return CommandEvent(user_id=user_id, command=command, category=category, risk_level=risk, created_at=at)


class TestSqlEventStore:
    def test_aggregates(self, sql_events):
        sql_events.append_many([
            _event("git status"),
            _event("git status"),
            _event("git push --force", risk=RiskLevel.DANGEROUS),
            _event("docker ps", category="docker"),
            _event("git status", user_id="other"),
        ])
        assert sql_events.count() == 5
        assert sql_events.count_events("u1") == 4
        assert sql_events.count_events("u1", category="git") == 3
        assert sql_events.count_events("u1", risk_level=RiskLevel.DANGEROUS) == 1
        assert sql_events.distinct_commands("u1", category="git") == {"git status", "git push --force"}

    def test_top_commands_ties_keep_first_seen(self, sql_events):
        sql_events.append_many([_event("b"), _event("a"), _event("a"), _event("b"), _event("c")])
        assert sql_events.top_commands("u1", 2) == ["b", "a"]

    def test_recent_events_newest_first_and_utc(self, sql_events):
        sql_events.append_many([
            _event("old", at=NOW - timedelta(hours=2)),
            _event("new", at=NOW),
        ])
        recent = sql_events.recent_events("u1", 10)
        assert [e.command for e in recent] == ["new", "old"]
        assert recent[0].created_at == NOW
        assert recent[0].created_at.tzinfo is not None

    def test_append_empty_batch(self, sql_events):
        assert sql_events.append_many([]) == 0


class TestSqlUserStore:
    def test_create_is_idempotent(self, sql_users):
        first = sql_users.get_or_create_user("u1", display_name="Ada")
        second = sql_users.get_or_create_user("u1", display_name="Other")
        assert first.user_id == second.user_id == "u1"
        assert sql_users.get_user("u1").display_name == "Ada"
        assert sql_users.get_user("u1").has_access is False

    def test_set_access(self, sql_users):
        sql_users.get_or_create_user("u1")
        assert sql_users.set_access("u1", True).has_access is True

    def test_set_access_unknown_user(self, sql_users):
        with pytest.raises(NotFoundError):
            sql_users.set_access("ghost", True)

    def test_apply_sync_accumulates(self, sql_users):
        sql_users.get_or_create_user("u1")
        sql_users.apply_sync("u1", synced_count=2, category_counts={"git": 2, "docker": 0})
        updated = sql_users.apply_sync(
            "u1",
            synced_count=1,
            category_counts={"git": 0, "docker": 1},
            streak=StreakState(current=2, longest=3),
            last_active_at=NOW,
            favorite_commands=["git status"],
        )
        assert updated.command_usage_count == 3
        assert updated.mode_preferences == {"git": 2, "docker": 1}
        assert updated.learning_streak == StreakState(current=2, longest=3)
        assert updated.last_active_at == NOW
        assert updated.favorite_commands == ["git status"]

    def test_leaderboard_scores_merge(self, sql_users):
        sql_users.get_or_create_user("u1")
        sql_users.update_leaderboard_scores("u1", category_scores={"git": 4, "docker": 1})
        sql_users.update_leaderboard_scores("u1", category_scores={"docker": 2}, overall_rank=3)
        scores = sql_users.get_user("u1").leaderboard_scores
        assert scores.category_scores == {"git": 4, "docker": 2}
        assert scores.overall_rank == 3

    def test_only_active_users_listed(self, sql_users):
        sql_users.get_or_create_user("idle")
        sql_users.get_or_create_user("busy")
        sql_users.apply_sync("busy", synced_count=1, category_counts={})
        assert [u.user_id for u in sql_users.list_users_with_activity()] == ["busy"]


def test_end_to_end_on_sql(sql_events, sql_users):
    for user_id, name in (("u1", "Ada"), ("u2", "Linus")):
        sql_users.get_or_create_user(user_id, display_name=name, has_access=True)

    sync = StatsSyncService(event_store=sql_events, user_store=sql_users)
    sync.sync("u1", [{"command": "git status", "category": "git"}], now=NOW)
    sync.sync("u2", [{"command": "git status", "category": "git"}, {"command": "git log", "category": "git"}], now=NOW)

    view = LeaderboardService(event_store=sql_events, user_store=sql_users).get_leaderboard(
        "u1", dispatch=lambda fn, *args: fn(*args)
    )
    assert view.current_user.rank == 2
    assert sql_users.get_user("u1").leaderboard_scores.overall_rank == 2

    result = RecalculationJob(event_store=sql_events, user_store=sql_users).run()
    assert result.total_users == 2
    assert sql_users.get_user("u2").leaderboard_scores.overall_rank == 1
    assert sql_users.get_user("u2").leaderboard_scores.category_scores["git"] == 6


def test_store_selection_follows_database_url(monkeypatch, tmp_path):
    from skillboard.core.config import settings
    from skillboard.core.database import dispose_engine
    from skillboard.features.events.event_store import InMemoryCommandEventStore, build_event_store
    from skillboard.features.users.user_store import InMemoryUserStore, build_user_store

    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setattr(settings, "DATABASE_URL", None)
    assert isinstance(build_event_store(), InMemoryCommandEventStore)
    assert isinstance(build_user_store(), InMemoryUserStore)

    dispose_engine()
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'selected.db'}")
    try:
        assert isinstance(build_event_store(), SqlCommandEventStore)
        assert isinstance(build_user_store(), SqlUserStore)
    finally:
        dispose_engine()


class TestSqlSyncTransaction:
    def test_failed_user_write_rolls_back_events(self, sql_events, sql_users, monkeypatch):
        sql_users.get_or_create_user("u1", has_access=True)
        sync = StatsSyncService(event_store=sql_events, user_store=sql_users)

        def boom(*args, **kwargs):
            raise StoreError("db down")

        monkeypatch.setattr(sql_users, "apply_sync", boom)
        with pytest.raises(StoreError):
            sync.sync("u1", [{"command": "git status", "category": "git"}] * 2, now=NOW)

        assert sql_events.count() == 0
        assert sql_users.get_user("u1").command_usage_count == 0

    def test_shared_session_commits_once(self, sql_events, sql_users):
        sql_users.get_or_create_user("u1", has_access=True)
        with sql_events.transaction() as session:
            sql_events.append_many([_event("git status"), _event("git log")], session=session)
            assert sql_events.top_commands("u1", 10, session=session) == ["git status", "git log"]
            updated = sql_users.apply_sync(
                "u1",
                synced_count=2,
                category_counts={"git": 2},
                favorite_commands=["git status", "git log"],
                session=session,
            )
            assert updated.command_usage_count == 2

        assert sql_events.count_events("u1") == 2
        assert sql_users.get_user("u1").favorite_commands == ["git status", "git log"]

    def test_error_inside_transaction_discards_everything(self, sql_events, sql_users):
        sql_users.get_or_create_user("u1")
        with pytest.raises(RuntimeError):
            with sql_events.transaction() as session:
                sql_events.append_many([_event("git status")], session=session)
                sql_users.apply_sync("u1", synced_count=1, category_counts={}, session=session)
                raise RuntimeError("interrupted")

        assert sql_events.count() == 0
        assert sql_users.get_user("u1").command_usage_count == 0

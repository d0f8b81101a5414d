"""Tests for the skill score calculator."""

import pytest

from skillboard.core.errors import NotFoundError
from skillboard.features.scoring.scoring_engine import ScoreCalculator
from skillboard.models.command_event import RiskLevel


class TestScoreFormula:
    def test_points_variety_and_penalty_combine(self):
        assert ScoreCalculator.score_from_aggregates(10, 4, 1) == 13

    def test_score_clamped_at_zero(self):
        assert ScoreCalculator.score_from_aggregates(0, 0, 3) == 0

    def test_more_commands_never_lower_score(self):
        scores = [ScoreCalculator.score_from_aggregates(n, 2, 1) for n in range(0, 20)]
        assert scores == sorted(scores)

    def test_more_dangerous_commands_never_raise_score(self):
        scores = [ScoreCalculator.score_from_aggregates(12, 3, d) for d in range(0, 10)]
        assert scores == sorted(scores, reverse=True)


class TestComputeScore:
    def test_score_from_event_log(self, record_events, event_store, user_store):
        record_events("u1", ["git status", "git status", "git log", "git diff"])
        record_events("u1", ["git push --force"], risk_level=RiskLevel.DANGEROUS)

        calc = ScoreCalculator(event_store=event_store, user_store=user_store)
        # 5 commands + 2 * 4 unique - 5 * 1 dangerous
        assert calc.compute_score("u1") == 8

    def test_category_filter_applies_to_every_aggregate(self, record_events, event_store, user_store):
        record_events("u1", ["git status", "git log"], category="git")
        record_events("u1", ["docker rm -f app"], category="docker", risk_level=RiskLevel.DANGEROUS)

        calc = ScoreCalculator(event_store=event_store, user_store=user_store)
        assert calc.compute_score("u1", "git") == 6
        assert calc.compute_score("u1", "docker") == 0
        assert calc.compute_score("u1", "aws") == 0

    def test_known_user_without_events_scores_zero(self, event_store, user_store):
        user_store.get_or_create_user("quiet")
        calc = ScoreCalculator(event_store=event_store, user_store=user_store)
        assert calc.compute_score("quiet") == 0

    def test_unknown_user_raises_not_found(self, event_store, user_store):
        calc = ScoreCalculator(event_store=event_store, user_store=user_store)
        with pytest.raises(NotFoundError):
            calc.compute_score("ghost")

    def test_scoring_does_not_mutate_log(self, record_events, event_store, user_store):
        record_events("u1", ["git status"])
        before = event_store.count()
        ScoreCalculator(event_store=event_store, user_store=user_store).compute_category_scores("u1")
        assert event_store.count() == before

    def test_category_scores_follow_configured_order(self, record_events, event_store, user_store):
        record_events("u1", ["kubectl get pods"], category="k8s")
        calc = ScoreCalculator(event_store=event_store, user_store=user_store, categories=["k8s", "git"])
        assert list(calc.compute_category_scores("u1").items()) == [("k8s", 3), ("git", 0)]

    def test_default_stores_are_the_installed_singletons(self, record_events):
        record_events("u1", ["git status"])
        assert ScoreCalculator().compute_score("u1") == 3

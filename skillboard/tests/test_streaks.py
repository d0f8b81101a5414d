"""Tests for streak progression over elapsed day windows."""

from datetime import datetime, timedelta, timezone

from skillboard.features.streaks.service import days_since, update_streak
from skillboard.models.streak import StreakState

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_first_activity_starts_streak():
    result = update_streak(StreakState(), None, NOW)
    assert (result.current, result.longest) == (1, 1)
    assert result.new_last_active_at == NOW


def test_exactly_one_day_later_increments():
    result = update_streak(StreakState(current=5, longest=5), NOW - timedelta(hours=24), NOW)
    assert result.current == 6
    assert result.longest == 6


def test_increment_keeps_higher_longest():
    result = update_streak(StreakState(current=5, longest=9), NOW - timedelta(days=1), NOW)
    assert (result.current, result.longest) == (6, 9)


def test_gap_of_three_days_resets():
    result = update_streak(StreakState(current=6, longest=6), NOW - timedelta(days=3), NOW)
    assert result.current == 1
    assert result.longest == 6


def test_same_window_is_idempotent():
    last = NOW - timedelta(hours=3)
    first = update_streak(StreakState(current=4, longest=7), last, NOW)
    second = update_streak(first.state, last, NOW)
    assert first.state == second.state == StreakState(current=4, longest=7)


def test_windows_are_elapsed_time_not_calendar_days():
    # 23:00 -> 01:00 next calendar day is still the same window
    last = datetime(2025, 3, 9, 23, 0, tzinfo=timezone.utc)
    now = datetime(2025, 3, 10, 1, 0, tzinfo=timezone.utc)
    assert days_since(last, now) == 0
    assert update_streak(StreakState(current=2, longest=2), last, now).current == 2


def test_just_under_two_days_counts_as_one():
    last = NOW - timedelta(hours=47, minutes=59)
    assert days_since(last, NOW) == 1
    assert update_streak(StreakState(current=3, longest=3), last, NOW).current == 4


def test_clock_skew_treated_as_same_window():
    result = update_streak(StreakState(current=3, longest=4), NOW + timedelta(hours=2), NOW)
    assert (result.current, result.longest) == (3, 4)
    assert result.new_last_active_at == NOW


def test_naive_timestamps_treated_as_utc():
    last = datetime(2025, 3, 9, 12, 0)
    assert days_since(last, NOW) == 1


def test_existing_record_with_zero_streak_floors_to_one():
    result = update_streak(StreakState(current=0, longest=0), NOW - timedelta(hours=1), NOW)
    assert (result.current, result.longest) == (1, 1)


def test_longest_never_decreases_over_a_sequence():
    state = StreakState()
    last = None
    longest_seen = 0
    for offset_hours in (0, 24, 48, 120, 144, 150, 170, 400):
        now = NOW + timedelta(hours=offset_hours)
        result = update_streak(state, last, now)
        assert result.longest >= longest_seen
        assert result.longest >= result.current
        longest_seen = result.longest
        state, last = result.state, result.new_last_active_at
    assert longest_seen == 3


def test_twenty_five_hours_across_midnight_is_next_window():
    last = datetime(2025, 3, 8, 23, 30, tzinfo=timezone.utc)
    now = datetime(2025, 3, 10, 0, 30, tzinfo=timezone.utc)
    assert days_since(last, now) == 1
    assert update_streak(StreakState(current=1, longest=1), last, now).current == 2

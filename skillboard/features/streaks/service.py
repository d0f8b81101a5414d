"""
Streak tracker.

Consecutive-activity streaks counted in elapsed 24h windows since the
last sync, not calendar days. Pure functions; callers persist the result.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from skillboard.models.streak import StreakState, StreakUpdate

ONE_DAY = timedelta(days=1)


def _normalize(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def days_since(last_active_at: datetime, now: datetime) -> int:
    """
    Whole elapsed days, floor((now - last) / 24h).

    Elapsed-time truncation, not calendar dates: 23:00 -> 01:00 the next
    calendar day is 0 days, and 22:00 -> 23:30 the next day is 1 day.
    """
    return (_normalize(now) - _normalize(last_active_at)) // ONE_DAY


def update_streak(
    previous: StreakState,
    last_active_at: Optional[datetime],
    now: datetime,
) -> StreakUpdate:
    """
    Advance the engagement streak for a new activity batch at `now`.

    - first activity ever: current = 1
    - same window (0 days): unchanged
    - next window (1 day): current + 1
    - 2+ days: reset to 1
    longest = max(longest, current); the new last-active moment is `now`.
    """
    now = _normalize(now)
    current = previous.current

    if last_active_at is None:
        current = 1
    else:
        elapsed = days_since(last_active_at, now)
        if elapsed == 1:
            current += 1
        elif elapsed >= 2:
            current = 1
        # elapsed <= 0: same window, or clock skew placing now before last activity

    # Records written before any activity carry current == 0
    current = max(current, 1)
    longest = max(previous.longest, current)
    return StreakUpdate(current=current, longest=longest, new_last_active_at=now)

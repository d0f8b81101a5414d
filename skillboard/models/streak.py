from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StreakState:
    """
    Consecutive-day engagement counters. Day windows are elapsed 24h
    periods, not calendar days.
    """

    current: int = 0
    longest: int = 0

    def to_dict(self) -> dict:
        return {"current": self.current, "longest": self.longest}


@dataclass(frozen=True)
class StreakUpdate:
    current: int
    longest: int
    new_last_active_at: datetime

    @property
    def state(self) -> StreakState:
        return StreakState(current=self.current, longest=self.longest)

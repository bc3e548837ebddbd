from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from quizcore.domain import LeaderboardPeriod


@dataclass(frozen=True)
class LeaderboardWindow:
    period: LeaderboardPeriod
    start: date | None  # None = no lower bound

    @property
    def since(self) -> datetime | None:
        # completed_at is naive UTC
        return datetime.combine(self.start, time.min) if self.start else None


def monday_week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def resolve_leaderboard_window(period: LeaderboardPeriod, today: date) -> LeaderboardWindow:
    """
    daily   -> today
    weekly  -> Monday of this week
    monthly -> 1st of this month
    all_time -> everything
    """
    if period is LeaderboardPeriod.DAILY:
        return LeaderboardWindow(period=period, start=today)
    if period is LeaderboardPeriod.WEEKLY:
        return LeaderboardWindow(period=period, start=monday_week_start(today))
    if period is LeaderboardPeriod.MONTHLY:
        return LeaderboardWindow(period=period, start=today.replace(day=1))
    return LeaderboardWindow(period=period, start=None)

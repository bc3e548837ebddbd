# quizcore/utils/dates.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    # stored as naive UTC (DateTime(timezone=False) columns)
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True, slots=True)
class TimeProvider:
    timezone: str = "UTC"

    def today(self) -> date:
        tz = ZoneInfo(self.timezone)
        return datetime.now(tz=tz).date()

    def tomorrow(self) -> date:
        return self.today() + timedelta(days=1)

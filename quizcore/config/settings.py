# quizcore/config/settings.py
from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass
from typing import Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from quizcore.domain import StreakTier


DEFAULT_STREAK_TIERS: tuple[StreakTier, ...] = (
    StreakTier(min_days=3, multiplier=1.1),
    StreakTier(min_days=7, multiplier=1.25),
    StreakTier(min_days=14, multiplier=1.5),
    StreakTier(min_days=30, multiplier=2.0),
)


def _to_int(value: str, key_name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for {key_name}: {value!r}") from e


def _to_float(value: str, key_name: str) -> float:
    try:
        out = float(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid number for {key_name}: {value!r}") from e
    if not math.isfinite(out):
        raise RuntimeError(f"Invalid number for {key_name}: {value!r}")
    return out


def _check_timezone(name: str, key_name: str = "TIMEZONE") -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise RuntimeError(f"Invalid {key_name}: {name!r} (expected an IANA zone like 'Europe/Paris')") from e
    return name


def _int_in_range(env: Mapping[str, str], key: str, default: int, lo: int, hi: int) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    v = _to_int(raw, key)
    if v < lo or v > hi:
        raise RuntimeError(f"{key} must be between {lo} and {hi}, got {v}")
    return v


def parse_streak_tiers(raw: str | None, key_name: str = "STREAK_TIERS") -> tuple[StreakTier, ...]:
    """
    Parses comma/space/newline separated `min_days:multiplier` pairs.
    Accepts:
      "3:1.1,7:1.25,14:1.5,30:2.0"
      "3:1.1 7:1.25"
      "[3:1.1, 7:1.25]"  (brackets ignored)

    Thresholds must be positive and unique, multipliers >= 1.0 and
    non-decreasing as the threshold grows. Empty input -> DEFAULT_STREAK_TIERS.
    """
    if not raw:
        return DEFAULT_STREAK_TIERS

    cleaned = raw.strip().strip("[](){}").strip()
    if not cleaned:
        return DEFAULT_STREAK_TIERS

    parts = [p for p in re.split(r"[,\s]+", cleaned) if p]

    tiers: list[StreakTier] = []
    for p in parts:
        p2 = p.strip().strip("'\"")
        if ":" not in p2:
            raise RuntimeError(f"Invalid tier for {key_name}: {p!r} (expected min_days:multiplier)")
        days_raw, mult_raw = p2.split(":", 1)
        days = _to_int(days_raw.strip(), key_name)
        mult = _to_float(mult_raw.strip(), key_name)
        if days < 1:
            raise RuntimeError(f"Invalid tier for {key_name}: min_days must be >= 1, got {days}")
        if mult < 1.0:
            raise RuntimeError(f"Invalid tier for {key_name}: multiplier must be >= 1.0, got {mult}")
        tiers.append(StreakTier(min_days=days, multiplier=mult))

    tiers.sort(key=lambda t: t.min_days)
    for prev, cur in zip(tiers, tiers[1:]):
        if cur.min_days == prev.min_days:
            raise RuntimeError(f"Duplicate tier threshold in {key_name}: {cur.min_days}")
        if cur.multiplier < prev.multiplier:
            raise RuntimeError(
                f"{key_name} multipliers must not decrease with streak length "
                f"({prev.min_days}:{prev.multiplier} > {cur.min_days}:{cur.multiplier})"
            )
    return tuple(tiers)


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str = "sqlite+aiosqlite:///./quiz.db"

    # --- scoring ---
    max_time_bonus_rate: float = 0.5
    streak_tiers: tuple[StreakTier, ...] = DEFAULT_STREAK_TIERS

    # --- quiz sizes ---
    default_question_count: int = 10
    daily_question_count: int = 10

    # --- time ---
    timezone: str = "UTC"
    session_timeout_minutes: int = 120

    # --- environment ---
    environment: str = "production"  # production | development

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    @classmethod
    def load(cls) -> "Settings":
        """
        Loads from process env (and .env if present).
        Fails fast on malformed values.
        """
        load_dotenv()
        env = os.environ

        database_url = (env.get("DATABASE_URL") or "sqlite+aiosqlite:///./quiz.db").strip()

        rate_raw = (env.get("MAX_TIME_BONUS_RATE") or "").strip()
        max_time_bonus_rate = _to_float(rate_raw, "MAX_TIME_BONUS_RATE") if rate_raw else 0.5
        if max_time_bonus_rate < 0 or max_time_bonus_rate > 10:
            raise RuntimeError(f"MAX_TIME_BONUS_RATE must be between 0 and 10, got {max_time_bonus_rate}")

        streak_tiers = parse_streak_tiers(env.get("STREAK_TIERS"))

        default_question_count = _int_in_range(env, "DEFAULT_QUESTION_COUNT", 10, 1, 50)
        daily_question_count = _int_in_range(env, "DAILY_QUESTION_COUNT", 10, 1, 50)
        session_timeout_minutes = _int_in_range(env, "SESSION_TIMEOUT_MINUTES", 120, 1, 7 * 24 * 60)

        timezone = _check_timezone((env.get("TIMEZONE") or "UTC").strip() or "UTC")
        environment = (env.get("ENVIRONMENT") or "production").strip() or "production"

        return cls(
            database_url=database_url,
            max_time_bonus_rate=max_time_bonus_rate,
            streak_tiers=streak_tiers,
            default_question_count=default_question_count,
            daily_question_count=daily_question_count,
            timezone=timezone,
            session_timeout_minutes=session_timeout_minutes,
            environment=environment,
        )

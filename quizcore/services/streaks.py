# quizcore/services/streaks.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Sequence

from quizcore.config.settings import DEFAULT_STREAK_TIERS
from quizcore.domain import StreakState, StreakTier
from quizcore.services.scoring import round_half_up

NO_BONUS = StreakTier(min_days=0, multiplier=1.0)


@dataclass(frozen=True, slots=True)
class StreakUpdate:
    state: StreakState
    previous_longest: int
    changed: bool

    @property
    def is_new_record(self) -> bool:
        return self.state.current_streak > self.previous_longest


@dataclass(frozen=True, slots=True)
class TierInfo:
    multiplier: float
    description: str
    days_to_next: int


def advance_streak(state: StreakState, day: date) -> StreakUpdate:
    """
    Applies one completed daily challenge on `day` to `state`.

    yesterday -> +1, same or earlier day -> unchanged, anything else -> reset to 1.
    Returns a new StreakState; the input is not mutated.
    """
    last = state.last_completed_date
    if last is not None and day <= last:
        return StreakUpdate(
            state=StreakState(
                user_id=state.user_id,
                current_streak=state.current_streak,
                longest_streak=state.longest_streak,
                last_completed_date=last,
                version=state.version,
            ),
            previous_longest=state.longest_streak,
            changed=False,
        )

    if last is not None and last == day - timedelta(days=1):
        current = state.current_streak + 1
    else:
        current = 1

    return StreakUpdate(
        state=StreakState(
            user_id=state.user_id,
            current_streak=current,
            longest_streak=max(state.longest_streak, current),
            last_completed_date=day,
            version=state.version,
        ),
        previous_longest=state.longest_streak,
        changed=True,
    )


def effective_streak(state: StreakState | None, today: date) -> int:
    """A streak only counts while the last completion is today or yesterday."""
    if state is None or state.last_completed_date is None:
        return 0
    if state.last_completed_date >= today - timedelta(days=1):
        return state.current_streak
    return 0


def tier_for(streak_days: int, tiers: Sequence[StreakTier] = DEFAULT_STREAK_TIERS) -> StreakTier:
    best = NO_BONUS
    for tier in sorted(tiers, key=lambda t: t.min_days):
        if streak_days >= tier.min_days:
            best = tier
    return best


def multiplier_for(streak_days: int, tiers: Sequence[StreakTier] = DEFAULT_STREAK_TIERS) -> float:
    return tier_for(streak_days, tiers).multiplier


def tier_info(streak_days: int, tiers: Sequence[StreakTier] = DEFAULT_STREAK_TIERS) -> TierInfo:
    tier = tier_for(streak_days, tiers)
    upcoming = [t for t in sorted(tiers, key=lambda t: t.min_days) if t.min_days > streak_days]
    days_to_next = upcoming[0].min_days - streak_days if upcoming else 0
    return TierInfo(multiplier=tier.multiplier, description=tier.description, days_to_next=max(0, days_to_next))


def streak_bonus(points: int, multiplier: float) -> int:
    return round_half_up(points * (multiplier - 1.0))

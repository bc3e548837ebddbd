from datetime import date, timedelta

import pytest

from quizcore.config.settings import DEFAULT_STREAK_TIERS
from quizcore.domain import StreakState, StreakTier
from quizcore.services.streaks import (
    advance_streak,
    effective_streak,
    multiplier_for,
    streak_bonus,
    tier_info,
)

DAY = date(2026, 3, 10)


def test_first_completion_starts_at_one():
    u = advance_streak(StreakState(user_id=1), DAY)
    assert u.changed
    assert u.state.current_streak == 1
    assert u.state.longest_streak == 1
    assert u.state.last_completed_date == DAY
    assert u.is_new_record


def test_consecutive_day_increments():
    s = StreakState(user_id=1, current_streak=4, longest_streak=4, last_completed_date=DAY - timedelta(days=1))
    u = advance_streak(s, DAY)
    assert u.state.current_streak == 5
    assert u.state.longest_streak == 5
    assert u.is_new_record
    assert s.current_streak == 4  # input untouched


def test_gap_resets_but_keeps_longest():
    s = StreakState(user_id=1, current_streak=5, longest_streak=9, last_completed_date=DAY - timedelta(days=2))
    u = advance_streak(s, DAY)
    assert u.state.current_streak == 1
    assert u.state.longest_streak == 9
    assert not u.is_new_record


@pytest.mark.parametrize("last", [DAY, DAY + timedelta(days=1)])
def test_same_or_earlier_day_is_unchanged(last):
    s = StreakState(user_id=1, current_streak=3, longest_streak=3, last_completed_date=last)
    u = advance_streak(s, DAY)
    assert not u.changed
    assert u.state.current_streak == 3
    assert u.state.last_completed_date == last


def test_longest_never_decreases():
    s = StreakState(user_id=1)
    longest = 0
    days = [0, 1, 2, 3, 5, 6, 10, 11, 12, 13, 14, 20]
    for offset in days:
        s = advance_streak(s, DAY + timedelta(days=offset)).state
        assert s.longest_streak >= longest
        assert s.longest_streak >= s.current_streak
        longest = s.longest_streak
    assert longest == 5


@pytest.mark.parametrize(
    "days,expected",
    [(0, 1.0), (1, 1.0), (2, 1.0), (3, 1.1), (6, 1.1), (7, 1.25), (13, 1.25),
     (14, 1.5), (29, 1.5), (30, 2.0), (365, 2.0)],
)
def test_default_tiers(days, expected):
    assert multiplier_for(days) == expected


def test_multiplier_is_monotonic():
    values = [multiplier_for(d) for d in range(0, 60)]
    assert values == sorted(values)


def test_seven_day_streak_bonus():
    # 6 -> 7 days: 80 base points become 100
    s = StreakState(user_id=1, current_streak=6, longest_streak=6, last_completed_date=DAY - timedelta(days=1))
    u = advance_streak(s, DAY)
    mult = multiplier_for(u.state.current_streak)
    assert mult == 1.25
    assert streak_bonus(80, mult) == 20
    assert 80 + streak_bonus(80, mult) == 100


def test_streak_bonus_rounds_half_up():
    assert streak_bonus(85, 1.1) == 9  # 8.5
    assert streak_bonus(80, 1.0) == 0


def test_effective_streak():
    s = StreakState(user_id=1, current_streak=4, longest_streak=4, last_completed_date=DAY - timedelta(days=1))
    assert effective_streak(s, DAY) == 4
    assert effective_streak(s, DAY - timedelta(days=1)) == 4
    assert effective_streak(s, DAY + timedelta(days=1)) == 0
    assert effective_streak(None, DAY) == 0
    assert effective_streak(StreakState(user_id=1), DAY) == 0


def test_tier_info():
    info = tier_info(5)
    assert info.multiplier == 1.1
    assert info.description == "3+ days: 10% bonus"
    assert info.days_to_next == 2

    none = tier_info(0)
    assert none.multiplier == 1.0
    assert none.description == "No bonus"
    assert none.days_to_next == 3

    top = tier_info(40)
    assert top.multiplier == 2.0
    assert top.description == "30+ days: 100% bonus"
    assert top.days_to_next == 0


def test_custom_tiers():
    tiers = (StreakTier(min_days=2, multiplier=1.5),)
    assert multiplier_for(1, tiers) == 1.0
    assert multiplier_for(2, tiers) == 1.5
    assert tier_info(1, tiers).days_to_next == 1
    assert DEFAULT_STREAK_TIERS[0].min_days == 3

# quizcore/services/scoring.py
from __future__ import annotations

import math
from dataclasses import dataclass

from quizcore.domain import Question
from quizcore.errors import InvalidInputError

MAX_TIME_BONUS_RATE = 0.5  # up to +50% for an instant answer


@dataclass(frozen=True, slots=True)
class ScoreResult:
    is_correct: bool
    base_points: int
    time_bonus_fraction: float
    points_earned: int

    @property
    def time_bonus(self) -> int:
        """Bonus in points on top of the base value (0 when incorrect)."""
        if not self.is_correct:
            return 0
        return self.points_earned - self.base_points


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def normalize_answer(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def check_time_spent(time_spent: object) -> list[str]:
    """Returns the violations for a time-spent value (empty list when valid)."""
    if time_spent is None:
        return ["timeSpent is required"]
    if isinstance(time_spent, bool) or not isinstance(time_spent, (int, float)):
        return [f"timeSpent must be a number, got {type(time_spent).__name__}"]
    if not math.isfinite(time_spent):
        return ["timeSpent must be finite"]
    if time_spent < 0:
        return [f"timeSpent must be >= 0, got {time_spent}"]
    return []


def time_bonus_fraction(time_limit: int, time_spent: float) -> float:
    if time_limit <= 0:
        return 0.0
    frac = (time_limit - time_spent) / time_limit
    return min(1.0, max(0.0, frac))


def score(
    question: Question,
    selected_answer: object,
    time_spent: object,
    *,
    max_time_bonus_rate: float = MAX_TIME_BONUS_RATE,
) -> ScoreResult:
    """
    Scores one answer.

    Correct means exact, case-sensitive equality once both sides are
    stripped of surrounding whitespace. A correct answer earns
    round(points * (1 + fraction * rate)) where fraction is the unused share
    of the time limit, clamped to [0, 1]. Incorrect answers earn nothing.
    """
    violations = check_time_spent(time_spent)
    if violations:
        raise InvalidInputError(violations)

    is_correct = normalize_answer(selected_answer) == normalize_answer(question.correct_answer)
    if not is_correct:
        return ScoreResult(
            is_correct=False,
            base_points=question.points,
            time_bonus_fraction=0.0,
            points_earned=0,
        )

    frac = time_bonus_fraction(question.time_limit, float(time_spent))  # type: ignore[arg-type]
    points = round_half_up(question.points * (1 + frac * max_time_bonus_rate))
    return ScoreResult(
        is_correct=True,
        base_points=question.points,
        time_bonus_fraction=frac,
        points_earned=points,
    )

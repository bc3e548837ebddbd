# quizcore/services/validation.py
"""
Explicit request validation.

Each `check_*` function returns the full list of violated constraints
(empty when valid); `ensure` turns a non-empty list into one
InvalidInputError so callers see every problem at once.
"""
from __future__ import annotations

from typing import Iterable, Sequence

from quizcore.domain import AnswerSubmission, Difficulty, LeaderboardPeriod
from quizcore.errors import InvalidInputError
from quizcore.services.scoring import check_time_spent

MIN_QUESTION_COUNT = 1
MAX_QUESTION_COUNT = 50
MAX_PAGE_SIZE = 100


def _is_int(v: object) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _positive_id(value: object, name: str) -> list[str]:
    if not _is_int(value):
        return [f"{name} must be an integer"]
    if value <= 0:  # type: ignore[operator]
        return [f"{name} must be positive"]
    return []


def ensure(violations: Iterable[str], *, code: str | None = None) -> None:
    out = list(violations)
    if out:
        raise InvalidInputError(out, code=code)


def coerce_difficulty(value: Difficulty | str | None) -> Difficulty | None:
    if value is None or isinstance(value, Difficulty):
        return value
    try:
        return Difficulty(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(d.value for d in Difficulty)
        raise InvalidInputError([f"difficulty must be one of: {allowed}"]) from None


def coerce_period(value: LeaderboardPeriod | str | None) -> LeaderboardPeriod:
    if value is None:
        return LeaderboardPeriod.ALL_TIME
    if isinstance(value, LeaderboardPeriod):
        return value
    try:
        return LeaderboardPeriod(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in LeaderboardPeriod)
        raise InvalidInputError([f"period must be one of: {allowed}"]) from None


def check_start_quiz(user_id: object, category_id: object, question_count: object) -> list[str]:
    out = _positive_id(user_id, "userId") + _positive_id(category_id, "categoryId")
    if not _is_int(question_count):
        out.append("questionCount must be an integer")
    elif not MIN_QUESTION_COUNT <= question_count <= MAX_QUESTION_COUNT:  # type: ignore[operator]
        out.append(f"questionCount must be between {MIN_QUESTION_COUNT} and {MAX_QUESTION_COUNT}")
    return out


def check_submit_answer(attempt_id: object, question_id: object, selected_answer: object, time_spent: object) -> list[str]:
    out = _positive_id(attempt_id, "attemptId") + _positive_id(question_id, "questionId")
    if selected_answer is None:
        out.append("selectedAnswer is required")
    elif not isinstance(selected_answer, str):
        out.append("selectedAnswer must be a string")
    out += check_time_spent(time_spent)
    return out


def check_answer_batch(question_ids: Sequence[int], answers: Sequence[AnswerSubmission]) -> list[str]:
    """
    The batch must answer every challenge question exactly once and nothing else.
    """
    out: list[str] = []
    expected = set(question_ids)

    if len(answers) != len(question_ids):
        out.append(f"expected {len(question_ids)} answers, got {len(answers)}")

    seen: set[int] = set()
    for i, a in enumerate(answers):
        if a.question_id in seen:
            out.append(f"answers[{i}]: duplicate questionId {a.question_id}")
        seen.add(a.question_id)
        if a.question_id not in expected:
            out.append(f"answers[{i}]: questionId {a.question_id} is not part of this challenge")
        if a.selected_answer is not None and not isinstance(a.selected_answer, str):
            out.append(f"answers[{i}]: selectedAnswer must be a string")
        for v in check_time_spent(a.time_spent):
            out.append(f"answers[{i}]: {v}")

    missing = [qid for qid in question_ids if qid not in seen]
    if missing:
        out.append(f"missing answers for questionIds {missing}")
    return out


def check_pagination(page: object, limit: object) -> list[str]:
    out: list[str] = []
    if not _is_int(page) or page < 1:  # type: ignore[operator]
        out.append("page must be an integer >= 1")
    if not _is_int(limit) or not 1 <= limit <= MAX_PAGE_SIZE:  # type: ignore[operator]
        out.append(f"limit must be an integer between 1 and {MAX_PAGE_SIZE}")
    return out


def check_leaderboard_window(limit: object, offset: object) -> list[str]:
    out: list[str] = []
    if not _is_int(limit) or not 1 <= limit <= MAX_PAGE_SIZE:  # type: ignore[operator]
        out.append(f"limit must be an integer between 1 and {MAX_PAGE_SIZE}")
    if not _is_int(offset) or offset < 0:  # type: ignore[operator]
        out.append("offset must be an integer >= 0")
    return out

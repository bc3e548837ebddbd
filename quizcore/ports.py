# quizcore/ports.py
"""
Collaborator contracts consumed by the engines.

The engines only see these protocols; `quizcore.database.repo` ships the
SQLAlchemy implementations.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import AsyncContextManager, Protocol, Sequence

from quizcore.domain import (
    AnswerRecord,
    DailyAttempt,
    DailyChallenge,
    Question,
    QuestionFilter,
    QuizAttempt,
    StreakState,
)


class QuestionCatalog(Protocol):
    async def category_exists(self, category_id: int) -> bool: ...

    async def fetch_questions(self, flt: QuestionFilter) -> list[Question]: ...

    async def get_questions(self, question_ids: Sequence[int]) -> list[Question]:
        """Returns the questions in the order of `question_ids`, skipping unknown ids."""
        ...

    async def fetch_daily_challenge(self, day: date) -> DailyChallenge:
        """Get-or-create the fixed, ordered question set for `day`."""
        ...


class StoreTransaction(Protocol):
    # quiz attempts
    async def create_quiz_attempt(self, attempt: QuizAttempt) -> QuizAttempt: ...

    async def get_quiz_attempt(self, attempt_id: int) -> QuizAttempt | None: ...

    async def update_quiz_attempt(self, attempt: QuizAttempt) -> None:
        """Raises ConcurrentUpdateError when `attempt.version` is stale; bumps the version."""
        ...

    async def add_answer(self, record: AnswerRecord) -> None:
        """Raises DuplicateAttemptError when the question/index was already answered."""
        ...

    async def list_answers(self, attempt_id: int) -> list[AnswerRecord]: ...

    async def list_quiz_attempts(self, user_id: int, *, offset: int, limit: int) -> tuple[list[QuizAttempt], int]: ...

    async def list_stale_quiz_attempts(self, created_before: datetime) -> list[QuizAttempt]: ...

    # daily challenge attempts
    async def create_daily_attempt(self, attempt: DailyAttempt) -> DailyAttempt:
        """Raises DuplicateAttemptError when the user already has an attempt for that day."""
        ...

    async def get_daily_attempt(self, attempt_id: int) -> DailyAttempt | None: ...

    async def find_daily_attempt(self, user_id: int, day: date) -> DailyAttempt | None: ...

    async def update_daily_attempt(self, attempt: DailyAttempt) -> None: ...

    async def add_daily_answers(self, records: Sequence[AnswerRecord]) -> None: ...

    async def list_daily_answers(self, attempt_id: int) -> list[AnswerRecord]: ...

    # streaks
    async def get_streak(self, user_id: int) -> StreakState | None: ...

    async def save_streak(self, state: StreakState) -> None: ...

    async def has_streak_event(self, attempt_id: int) -> bool: ...

    async def record_streak_event(
        self,
        *,
        attempt_id: int,
        user_id: int,
        day: date,
        streak_before: int,
        streak_after: int,
    ) -> None: ...


class AttemptStore(Protocol):
    def transaction(self) -> AsyncContextManager[StoreTransaction]:
        """One unit of work: commits on clean exit, rolls back on any exception."""
        ...

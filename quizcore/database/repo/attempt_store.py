# quizcore/database/repo/attempt_store.py
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quizcore.database.models import (
    DailyAnswerRow,
    DailyAttemptRow,
    QuizAnswerRow,
    QuizSessionRow,
    StreakEventRow,
    UserStreakRow,
)
from quizcore.database.session import Database
from quizcore.database.tx import transactional
from quizcore.domain import AnswerRecord, AttemptStatus, DailyAttempt, QuizAttempt, StreakState
from quizcore.errors import ConcurrentUpdateError, DuplicateAttemptError


def _to_quiz_attempt(row: QuizSessionRow) -> QuizAttempt:
    return QuizAttempt(
        id=row.id,
        user_id=row.user_id,
        category_id=row.category_id,
        question_ids=tuple(row.question_ids or ()),
        current_index=int(row.current_index),
        score=int(row.score),
        correct_answers=int(row.correct_answers),
        status=row.status,
        created_at=row.created_at,
        completed_at=row.completed_at,
        version=int(row.version),
    )


def _to_daily_attempt(row: DailyAttemptRow) -> DailyAttempt:
    return DailyAttempt(
        id=row.id,
        user_id=row.user_id,
        day=row.day,
        challenge_id=row.challenge_id,
        question_ids=tuple(row.challenge.question_ids or ()),
        score=int(row.score),
        correct_answers=int(row.correct_answers),
        status=row.status,
        created_at=row.created_at,
        completed_at=row.completed_at,
        version=int(row.version),
    )


def _to_answer(attempt_id: int, row: QuizAnswerRow | DailyAnswerRow) -> AnswerRecord:
    return AnswerRecord(
        attempt_id=attempt_id,
        question_id=row.question_id,
        selected_answer=row.selected_answer,
        time_spent=float(row.time_spent),
        is_correct=bool(row.is_correct),
        points_earned=int(row.points_earned),
        order_index=int(row.order_index),
    )


class SqlStoreTransaction:
    """
    Session-bound view used inside one SqlAttemptStore.transaction().

    Unique-constraint hits surface as DuplicateAttemptError, stale versions
    as ConcurrentUpdateError; either one rolls the whole unit back.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _flush_once(self, what: str) -> None:
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateAttemptError(what) from e

    # -------------------------------------------------
    # quiz attempts
    # -------------------------------------------------

    async def create_quiz_attempt(self, attempt: QuizAttempt) -> QuizAttempt:
        row = QuizSessionRow(
            user_id=attempt.user_id,
            category_id=attempt.category_id,
            question_ids=list(attempt.question_ids),
            total_questions=len(attempt.question_ids),
            current_index=attempt.current_index,
            score=attempt.score,
            correct_answers=attempt.correct_answers,
            status=attempt.status,
            version=0,
            created_at=attempt.created_at,
            completed_at=attempt.completed_at,
        )
        self.session.add(row)
        await self.session.flush()  # row.id
        return _to_quiz_attempt(row)

    async def get_quiz_attempt(self, attempt_id: int) -> QuizAttempt | None:
        row = await self.session.get(QuizSessionRow, attempt_id)
        return _to_quiz_attempt(row) if row else None

    async def update_quiz_attempt(self, attempt: QuizAttempt) -> None:
        res = await self.session.execute(
            update(QuizSessionRow)
            .where(QuizSessionRow.id == attempt.id, QuizSessionRow.version == attempt.version)
            .values(
                current_index=attempt.current_index,
                score=attempt.score,
                correct_answers=attempt.correct_answers,
                status=attempt.status,
                completed_at=attempt.completed_at,
                version=attempt.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise ConcurrentUpdateError(f"quiz attempt {attempt.id} version {attempt.version} is stale")
        attempt.version += 1

    async def add_answer(self, record: AnswerRecord) -> None:
        self.session.add(
            QuizAnswerRow(
                session_id=record.attempt_id,
                question_id=record.question_id,
                selected_answer=record.selected_answer,
                time_spent=record.time_spent,
                is_correct=record.is_correct,
                points_earned=record.points_earned,
                order_index=record.order_index,
            )
        )
        await self._flush_once(f"answer for question {record.question_id} in attempt {record.attempt_id}")

    async def list_answers(self, attempt_id: int) -> list[AnswerRecord]:
        res = await self.session.execute(
            select(QuizAnswerRow)
            .where(QuizAnswerRow.session_id == attempt_id)
            .order_by(QuizAnswerRow.order_index)
        )
        return [_to_answer(attempt_id, row) for row in res.scalars().all()]

    async def list_quiz_attempts(self, user_id: int, *, offset: int, limit: int) -> tuple[list[QuizAttempt], int]:
        total = await self.session.scalar(
            select(func.count()).select_from(QuizSessionRow).where(QuizSessionRow.user_id == user_id)
        )
        res = await self.session.execute(
            select(QuizSessionRow)
            .where(QuizSessionRow.user_id == user_id)
            .order_by(QuizSessionRow.created_at.desc(), QuizSessionRow.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return [_to_quiz_attempt(row) for row in res.scalars().all()], int(total or 0)

    async def list_stale_quiz_attempts(self, created_before: datetime) -> list[QuizAttempt]:
        res = await self.session.execute(
            select(QuizSessionRow)
            .where(
                QuizSessionRow.status == AttemptStatus.ACTIVE,
                QuizSessionRow.created_at < created_before,
            )
            .order_by(QuizSessionRow.id)
        )
        return [_to_quiz_attempt(row) for row in res.scalars().all()]

    # -------------------------------------------------
    # daily attempts
    # -------------------------------------------------

    async def create_daily_attempt(self, attempt: DailyAttempt) -> DailyAttempt:
        row = DailyAttemptRow(
            user_id=attempt.user_id,
            day=attempt.day,
            challenge_id=attempt.challenge_id,
            total_questions=len(attempt.question_ids),
            score=attempt.score,
            correct_answers=attempt.correct_answers,
            status=attempt.status,
            version=0,
            created_at=attempt.created_at,
        )
        self.session.add(row)
        await self._flush_once(f"daily attempt for user {attempt.user_id} on {attempt.day.isoformat()}")

        return DailyAttempt(
            id=row.id,
            user_id=attempt.user_id,
            day=attempt.day,
            challenge_id=attempt.challenge_id,
            question_ids=tuple(attempt.question_ids),
            created_at=attempt.created_at,
            status=attempt.status,
            version=0,
        )

    async def _daily_row(self, *conditions) -> DailyAttemptRow | None:
        res = await self.session.execute(
            select(DailyAttemptRow)
            .where(*conditions)
            .options(selectinload(DailyAttemptRow.challenge))
        )
        return res.scalar_one_or_none()

    async def get_daily_attempt(self, attempt_id: int) -> DailyAttempt | None:
        row = await self._daily_row(DailyAttemptRow.id == attempt_id)
        return _to_daily_attempt(row) if row else None

    async def find_daily_attempt(self, user_id: int, day: date) -> DailyAttempt | None:
        row = await self._daily_row(DailyAttemptRow.user_id == user_id, DailyAttemptRow.day == day)
        return _to_daily_attempt(row) if row else None

    async def update_daily_attempt(self, attempt: DailyAttempt) -> None:
        res = await self.session.execute(
            update(DailyAttemptRow)
            .where(DailyAttemptRow.id == attempt.id, DailyAttemptRow.version == attempt.version)
            .values(
                score=attempt.score,
                correct_answers=attempt.correct_answers,
                status=attempt.status,
                completed_at=attempt.completed_at,
                version=attempt.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise ConcurrentUpdateError(f"daily attempt {attempt.id} version {attempt.version} is stale")
        attempt.version += 1

    async def add_daily_answers(self, records: Sequence[AnswerRecord]) -> None:
        self.session.add_all(
            [
                DailyAnswerRow(
                    attempt_id=r.attempt_id,
                    question_id=r.question_id,
                    selected_answer=r.selected_answer,
                    time_spent=r.time_spent,
                    is_correct=r.is_correct,
                    points_earned=r.points_earned,
                    order_index=r.order_index,
                )
                for r in records
            ]
        )
        await self._flush_once("daily answers")

    async def list_daily_answers(self, attempt_id: int) -> list[AnswerRecord]:
        res = await self.session.execute(
            select(DailyAnswerRow)
            .where(DailyAnswerRow.attempt_id == attempt_id)
            .order_by(DailyAnswerRow.order_index)
        )
        return [_to_answer(attempt_id, row) for row in res.scalars().all()]

    # -------------------------------------------------
    # streaks
    # -------------------------------------------------

    async def get_streak(self, user_id: int) -> StreakState | None:
        res = await self.session.execute(
            select(UserStreakRow)
            .where(UserStreakRow.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        row = res.scalar_one_or_none()
        if row is None:
            return None
        return StreakState(
            user_id=row.user_id,
            current_streak=int(row.current_streak),
            longest_streak=int(row.longest_streak),
            last_completed_date=row.last_completed_date,
            version=int(row.version),
        )

    async def save_streak(self, state: StreakState) -> None:
        """
        Inserts the first row for a user (version 0 -> 1), otherwise a
        versioned UPDATE. Either way a concurrent writer surfaces as
        ConcurrentUpdateError.
        """
        if state.version == 0:
            self.session.add(
                UserStreakRow(
                    user_id=state.user_id,
                    current_streak=state.current_streak,
                    longest_streak=state.longest_streak,
                    last_completed_date=state.last_completed_date,
                    version=1,
                )
            )
            try:
                await self.session.flush()
            except IntegrityError as e:
                # first streak row for this user inserted by a concurrent completion
                raise ConcurrentUpdateError(f"streak of user {state.user_id} changed concurrently") from e
            state.version = 1
            return

        res = await self.session.execute(
            update(UserStreakRow)
            .where(UserStreakRow.user_id == state.user_id, UserStreakRow.version == state.version)
            .values(
                current_streak=state.current_streak,
                longest_streak=state.longest_streak,
                last_completed_date=state.last_completed_date,
                version=state.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise ConcurrentUpdateError(f"streak of user {state.user_id} version {state.version} is stale")
        state.version += 1

    async def has_streak_event(self, attempt_id: int) -> bool:
        found = await self.session.scalar(
            select(StreakEventRow.id).where(StreakEventRow.attempt_id == attempt_id)
        )
        return found is not None

    async def record_streak_event(
        self,
        *,
        attempt_id: int,
        user_id: int,
        day: date,
        streak_before: int,
        streak_after: int,
    ) -> None:
        self.session.add(
            StreakEventRow(
                attempt_id=attempt_id,
                user_id=user_id,
                day=day,
                streak_before=streak_before,
                streak_after=streak_after,
            )
        )
        await self._flush_once(f"streak event for attempt {attempt_id}")


class SqlAttemptStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlStoreTransaction]:
        async with self._db.session() as session:
            async with transactional(session):
                yield SqlStoreTransaction(session)

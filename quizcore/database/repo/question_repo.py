# quizcore/database/repo/question_repo.py
from __future__ import annotations

from datetime import date
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quizcore.database.models import CategoryRow, DailyChallengeRow, QuestionRow
from quizcore.domain import DailyChallenge, Difficulty, Question, QuestionType


def to_question(row: QuestionRow) -> Question:
    return Question(
        id=row.id,
        category_id=row.category_id,
        content=row.content,
        correct_answer=row.correct_answer,
        points=int(row.points),
        time_limit=int(row.time_limit),
        type=row.type,
        difficulty=row.difficulty,
        options=tuple(row.options or ()),
        explanation=row.explanation,
    )


def to_daily_challenge(row: DailyChallengeRow) -> DailyChallenge:
    return DailyChallenge(
        id=row.id,
        day=row.day,
        question_ids=tuple(row.question_ids or ()),
        category_id=row.category_id,
        difficulty=row.difficulty,
    )


async def get_category_by_name(session: AsyncSession, name: str) -> CategoryRow | None:
    res = await session.execute(select(CategoryRow).where(CategoryRow.name == name))
    return res.scalar_one_or_none()


async def get_or_create_category(session: AsyncSession, name: str) -> CategoryRow:
    existing = await get_category_by_name(session, name)
    if existing:
        return existing

    cat = CategoryRow(name=name, is_active=True)
    session.add(cat)
    await session.flush()  # cat.id
    return cat


async def add_question(
    session: AsyncSession,
    *,
    category_id: int,
    content: str,
    correct_answer: str,
    options: Sequence[str] = (),
    points: int = 10,
    time_limit: int = 30,
    difficulty: Difficulty = Difficulty.MEDIUM,
    type: QuestionType = QuestionType.MULTIPLE_CHOICE,
    explanation: str | None = None,
) -> QuestionRow:
    q = QuestionRow(
        category_id=category_id,
        content=content,
        correct_answer=correct_answer,
        options=list(options),
        points=points,
        time_limit=time_limit,
        difficulty=difficulty,
        type=type,
        explanation=explanation,
        is_active=True,
    )
    session.add(q)
    await session.flush()
    return q


async def active_question_ids(
    session: AsyncSession,
    category_id: int,
    difficulty: Difficulty | None = None,
) -> list[int]:
    q = select(QuestionRow.id).where(
        QuestionRow.category_id == category_id,
        QuestionRow.is_active.is_(True),
    )
    if difficulty is not None:
        q = q.where(QuestionRow.difficulty == difficulty)
    res = await session.execute(q.order_by(QuestionRow.id))
    return [row[0] for row in res.all()]


async def categories_with_at_least(session: AsyncSession, n: int) -> list[int]:
    """Active categories holding at least `n` active questions."""
    q = (
        select(QuestionRow.category_id)
        .join(CategoryRow, CategoryRow.id == QuestionRow.category_id)
        .where(QuestionRow.is_active.is_(True), CategoryRow.is_active.is_(True))
        .group_by(QuestionRow.category_id)
        .having(func.count(QuestionRow.id) >= n)
        .order_by(QuestionRow.category_id)
    )
    res = await session.execute(q)
    return [row[0] for row in res.all()]


async def get_challenge_for_day(session: AsyncSession, day: date) -> DailyChallengeRow | None:
    res = await session.execute(select(DailyChallengeRow).where(DailyChallengeRow.day == day))
    return res.scalar_one_or_none()

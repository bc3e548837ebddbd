# quizcore/database/repo/leaderboard_repo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Subquery, desc, func, select, union_all
from sqlalchemy.ext.asyncio import AsyncSession

from quizcore.database.models import DailyAttemptRow, DailyChallengeRow, QuizSessionRow
from quizcore.domain import AttemptStatus


# ------------------------
# Shared row DTO
# ------------------------

@dataclass(frozen=True, slots=True)
class LeaderRow:
    user_id: int
    score: int
    games_played: int
    correct_answers: int
    total_questions: int


# ------------------------
# Query building
# ------------------------

def _completed_scores(since: datetime | None, category_id: int | None) -> Subquery:
    """
    One row per COMPLETED attempt, quiz sessions and daily challenges alike.
    A daily attempt belongs to its challenge's category.
    """
    quiz = select(
        QuizSessionRow.user_id.label("user_id"),
        QuizSessionRow.score.label("score"),
        QuizSessionRow.correct_answers.label("correct_answers"),
        QuizSessionRow.total_questions.label("total_questions"),
    ).where(QuizSessionRow.status == AttemptStatus.COMPLETED)

    daily = (
        select(
            DailyAttemptRow.user_id.label("user_id"),
            DailyAttemptRow.score.label("score"),
            DailyAttemptRow.correct_answers.label("correct_answers"),
            DailyAttemptRow.total_questions.label("total_questions"),
        )
        .join(DailyChallengeRow, DailyChallengeRow.id == DailyAttemptRow.challenge_id)
        .where(DailyAttemptRow.status == AttemptStatus.COMPLETED)
    )

    if since is not None:
        quiz = quiz.where(QuizSessionRow.completed_at >= since)
        daily = daily.where(DailyAttemptRow.completed_at >= since)
    if category_id is not None:
        quiz = quiz.where(QuizSessionRow.category_id == category_id)
        daily = daily.where(DailyChallengeRow.category_id == category_id)

    return union_all(quiz, daily).subquery("scores")


def _totals(since: datetime | None, category_id: int | None) -> Subquery:
    scores = _completed_scores(since, category_id)
    return (
        select(
            scores.c.user_id.label("user_id"),
            func.sum(scores.c.score).label("score"),
            func.count().label("games_played"),
            func.sum(scores.c.correct_answers).label("correct_answers"),
            func.sum(scores.c.total_questions).label("total_questions"),
        )
        .group_by(scores.c.user_id)
        .subquery("totals")
    )


def _to_row(user_id, score, games_played, correct_answers, total_questions) -> LeaderRow:
    return LeaderRow(
        user_id=int(user_id),
        score=int(score or 0),
        games_played=int(games_played or 0),
        correct_answers=int(correct_answers or 0),
        total_questions=int(total_questions or 0),
    )


# =========================================================
# Reads
# =========================================================

async def get_top(
    session: AsyncSession,
    *,
    since: datetime | None = None,
    category_id: int | None = None,
    limit: int = 10,
    offset: int = 0,
) -> list[LeaderRow]:
    """
    Highest total score first; ties go to the lower user id so the order
    (and therefore the rank) is stable between pages.
    """
    totals = _totals(since, category_id)
    q = (
        select(
            totals.c.user_id,
            totals.c.score,
            totals.c.games_played,
            totals.c.correct_answers,
            totals.c.total_questions,
        )
        .order_by(desc(totals.c.score), totals.c.user_id.asc())
        .offset(offset)
        .limit(limit)
    )

    res = await session.execute(q)
    return [_to_row(*r) for r in res.all()]


async def count_players(
    session: AsyncSession,
    *,
    since: datetime | None = None,
    category_id: int | None = None,
) -> int:
    totals = _totals(since, category_id)
    n = await session.scalar(select(func.count()).select_from(totals))
    return int(n or 0)


async def get_user_rank(
    session: AsyncSession,
    user_id: int,
    *,
    since: datetime | None = None,
    category_id: int | None = None,
) -> tuple[int | None, LeaderRow | None]:
    """
    Returns (rank, row). rank is 1-based and agrees with get_top's ordering;
    (None, None) when the user has no completed attempt in the window.
    """
    totals = _totals(since, category_id)

    me = await session.execute(
        select(
            totals.c.user_id,
            totals.c.score,
            totals.c.games_played,
            totals.c.correct_answers,
            totals.c.total_questions,
        ).where(totals.c.user_id == user_id)
    )
    me_row = me.first()
    if me_row is None:
        return (None, None)

    row = _to_row(*me_row)

    higher = await session.scalar(
        select(func.count())
        .select_from(totals)
        .where(
            (totals.c.score > row.score)
            | ((totals.c.score == row.score) & (totals.c.user_id < row.user_id))
        )
    )
    return (int(higher or 0) + 1, row)

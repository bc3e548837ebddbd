# quizcore/database/repo/catalog.py
from __future__ import annotations

import logging
from datetime import date
from random import Random
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quizcore.database.models import CategoryRow, DailyChallengeRow, QuestionRow
from quizcore.database.repo.question_repo import (
    active_question_ids,
    categories_with_at_least,
    get_challenge_for_day,
    to_daily_challenge,
    to_question,
)
from quizcore.database.session import Database
from quizcore.domain import DailyChallenge, Difficulty, Question, QuestionFilter
from quizcore.errors import NotEnoughQuestionsError

log = logging.getLogger(__name__)


class SqlQuestionCatalog:
    """
    Read side of the question bank, plus get-or-create of the daily challenge.
    Every call runs in its own short session.
    """

    def __init__(self, db: Database, *, daily_question_count: int = 10, rng: Random | None = None) -> None:
        self._db = db
        self._daily_count = daily_question_count
        self._rng = rng or Random()

    async def category_exists(self, category_id: int) -> bool:
        async with self._db.session() as session:
            found = await session.scalar(
                select(CategoryRow.id).where(
                    CategoryRow.id == category_id,
                    CategoryRow.is_active.is_(True),
                )
            )
        return found is not None

    async def fetch_questions(self, flt: QuestionFilter) -> list[Question]:
        q = select(QuestionRow).where(
            QuestionRow.category_id == flt.category_id,
            QuestionRow.is_active.is_(True),
        )
        if flt.difficulty is not None:
            q = q.where(QuestionRow.difficulty == flt.difficulty)

        async with self._db.session() as session:
            res = await session.execute(q.order_by(QuestionRow.id))
            return [to_question(row) for row in res.scalars().all()]

    async def get_questions(self, question_ids: Sequence[int]) -> list[Question]:
        if not question_ids:
            return []
        async with self._db.session() as session:
            res = await session.execute(select(QuestionRow).where(QuestionRow.id.in_(list(question_ids))))
            by_id = {row.id: to_question(row) for row in res.scalars().all()}
        return [by_id[qid] for qid in question_ids if qid in by_id]

    async def fetch_daily_challenge(self, day: date) -> DailyChallenge:
        async with self._db.session() as session:
            row = await get_challenge_for_day(session, day)
            if row is not None:
                return to_daily_challenge(row)

            row = await self._build_challenge(session, day)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                # concurrent creation for the same day: keep the stored one
                await session.rollback()
                row = await get_challenge_for_day(session, day)
                if row is None:
                    raise
                return to_daily_challenge(row)

            log.info(
                "Created daily challenge for %s: category=%s, difficulty=%s, questions=%s",
                day.isoformat(), row.category_id, row.difficulty.value if row.difficulty else "any",
                len(row.question_ids),
            )
            return to_daily_challenge(row)

    async def _build_challenge(self, session: AsyncSession, day: date) -> DailyChallengeRow:
        n = self._daily_count
        eligible = await categories_with_at_least(session, n)
        if not eligible:
            raise NotEnoughQuestionsError(
                f"No category has {n} active questions for the daily challenge of {day.isoformat()}",
                details={"requested": n},
            )

        category_id = self._rng.choice(eligible)
        difficulty: Difficulty | None = self._rng.choice(list(Difficulty))

        ids = await active_question_ids(session, category_id, difficulty)
        if len(ids) < n:
            # not enough at that difficulty, fall back to the whole category
            difficulty = None
            ids = await active_question_ids(session, category_id)

        return DailyChallengeRow(
            day=day,
            category_id=category_id,
            difficulty=difficulty,
            question_ids=self._rng.sample(ids, n),
        )

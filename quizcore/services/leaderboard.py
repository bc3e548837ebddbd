# quizcore/services/leaderboard.py
"""
Read model over completed attempts: total score per player, globally or
within one category, over a calendar window (UTC days).
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from quizcore.database.repo import leaderboard_repo
from quizcore.database.repo.leaderboard_repo import LeaderRow
from quizcore.database.session import Database
from quizcore.domain import Leaderboard, LeaderboardEntry, LeaderboardPeriod
from quizcore.errors import InvalidInputError
from quizcore.services.validation import check_leaderboard_window, coerce_period, ensure
from quizcore.utils.dates import utc_now
from quizcore.utils.leaderboard_window import LeaderboardWindow, resolve_leaderboard_window

log = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


def _entry(rank: int, row: LeaderRow) -> LeaderboardEntry:
    return LeaderboardEntry(
        rank=rank,
        user_id=row.user_id,
        score=row.score,
        games_played=row.games_played,
        correct_answers=row.correct_answers,
        total_questions=row.total_questions,
    )


def _check_id(value: object, name: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise InvalidInputError([f"{name} must be a positive integer"])


class LeaderboardService:
    def __init__(self, db: Database, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._db = db
        self._clock = clock

    def _window(self, period: LeaderboardPeriod | str | None) -> LeaderboardWindow:
        return resolve_leaderboard_window(coerce_period(period), self._clock().date())

    async def global_leaderboard(
        self,
        period: LeaderboardPeriod | str | None = LeaderboardPeriod.ALL_TIME,
        *,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        user_id: int | None = None,
    ) -> Leaderboard:
        return await self._board(period, None, limit, offset, user_id)

    async def category_leaderboard(
        self,
        category_id: int,
        period: LeaderboardPeriod | str | None = LeaderboardPeriod.ALL_TIME,
        *,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        user_id: int | None = None,
    ) -> Leaderboard:
        _check_id(category_id, "categoryId")
        return await self._board(period, category_id, limit, offset, user_id)

    async def user_rank(
        self,
        user_id: int,
        period: LeaderboardPeriod | str | None = LeaderboardPeriod.ALL_TIME,
    ) -> LeaderboardEntry | None:
        """None when the user has no completed attempt in the window."""
        _check_id(user_id, "userId")
        return await self._rank(user_id, self._window(period), None)

    async def user_category_rank(
        self,
        user_id: int,
        category_id: int,
        period: LeaderboardPeriod | str | None = LeaderboardPeriod.ALL_TIME,
    ) -> LeaderboardEntry | None:
        _check_id(user_id, "userId")
        _check_id(category_id, "categoryId")
        return await self._rank(user_id, self._window(period), category_id)

    # -------------------------------------------------
    # internals
    # -------------------------------------------------

    async def _board(
        self,
        period: LeaderboardPeriod | str | None,
        category_id: int | None,
        limit: int,
        offset: int,
        user_id: int | None,
    ) -> Leaderboard:
        ensure(check_leaderboard_window(limit, offset))
        window = self._window(period)

        async with self._db.session() as session:
            rows = await leaderboard_repo.get_top(
                session, since=window.since, category_id=category_id, limit=limit, offset=offset
            )
            total = await leaderboard_repo.count_players(session, since=window.since, category_id=category_id)

        user_entry = None
        if user_id is not None:
            _check_id(user_id, "userId")
            user_entry = await self._rank(user_id, window, category_id)

        log.debug(
            "Leaderboard %s (category=%s) offset=%s limit=%s -> %s of %s players",
            window.period.value, category_id, offset, limit, len(rows), total,
        )
        return Leaderboard(
            period=window.period,
            entries=[_entry(offset + i + 1, row) for i, row in enumerate(rows)],
            total=total,
            category_id=category_id,
            user_entry=user_entry,
        )

    async def _rank(self, user_id: int, window: LeaderboardWindow, category_id: int | None) -> LeaderboardEntry | None:
        async with self._db.session() as session:
            rank, row = await leaderboard_repo.get_user_rank(
                session, user_id, since=window.since, category_id=category_id
            )
        if rank is None or row is None:
            return None
        return _entry(rank, row)

# quizcore/scheduler/jobs.py
from __future__ import annotations

import logging
from datetime import timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from quizcore.config.settings import Settings
from quizcore.errors import NotEnoughQuestionsError
from quizcore.ports import QuestionCatalog
from quizcore.services.quiz_session import QuizSessionEngine
from quizcore.utils.dates import TimeProvider

log = logging.getLogger(__name__)


# -------------------------------------------------
# Jobs
# -------------------------------------------------

async def expire_stale_sessions(quiz_engine: QuizSessionEngine, settings: Settings) -> int:
    """Abandons quiz attempts left ACTIVE longer than SESSION_TIMEOUT_MINUTES."""
    return await quiz_engine.expire_stale(timedelta(minutes=settings.session_timeout_minutes))


async def prepare_daily_challenge(catalog: QuestionCatalog, settings: Settings) -> None:
    """Creates tomorrow's challenge ahead of time so the first player doesn't pay for it."""
    tomorrow = TimeProvider(settings.timezone).tomorrow()
    try:
        challenge = await catalog.fetch_daily_challenge(tomorrow)
    except NotEnoughQuestionsError as e:
        log.warning("Cannot prepare daily challenge for %s: %s", tomorrow.isoformat(), e.message)
        return
    log.info("Daily challenge for %s ready (%s questions)", tomorrow.isoformat(), challenge.question_count)


# -------------------------------------------------
# Scheduler setup
# -------------------------------------------------

def build_scheduler(
    *,
    quiz_engine: QuizSessionEngine,
    catalog: QuestionCatalog,
    settings: Settings,
) -> AsyncIOScheduler:
    """
    Creates and returns an AsyncIOScheduler with our jobs registered.
    """
    scheduler = AsyncIOScheduler(timezone=settings.timezone)

    scheduler.add_job(
        expire_stale_sessions,
        trigger=CronTrigger(minute="*/5", timezone=settings.timezone),
        kwargs={"quiz_engine": quiz_engine, "settings": settings},
        id="expire_stale_sessions",
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=60,
    )

    scheduler.add_job(
        prepare_daily_challenge,
        trigger=CronTrigger(hour=23, minute=50, timezone=settings.timezone),
        kwargs={"catalog": catalog, "settings": settings},
        id="prepare_daily_challenge",
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=300,
    )

    return scheduler

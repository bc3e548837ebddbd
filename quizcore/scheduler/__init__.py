# quizcore/scheduler/__init__.py
from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from quizcore.config.settings import Settings
from quizcore.ports import QuestionCatalog
from quizcore.scheduler.jobs import build_scheduler
from quizcore.services.quiz_session import QuizSessionEngine


def setup_scheduler(quiz_engine: QuizSessionEngine, catalog: QuestionCatalog, settings: Settings) -> AsyncIOScheduler:
    scheduler = build_scheduler(quiz_engine=quiz_engine, catalog=catalog, settings=settings)
    scheduler.start()
    return scheduler

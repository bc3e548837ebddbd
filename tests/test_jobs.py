from datetime import datetime, timedelta
from random import Random

from quizcore.config import Settings
from quizcore.database.repo import SqlQuestionCatalog
from quizcore.domain import AttemptStatus
from quizcore.scheduler.jobs import build_scheduler, expire_stale_sessions, prepare_daily_challenge
from quizcore.services.quiz_session import QuizSessionEngine
from quizcore.utils.dates import TimeProvider


async def test_expire_stale_sessions_job(catalog, store, categories):
    now = [datetime(2026, 3, 10, 12, 0)]
    engine = QuizSessionEngine(catalog, store, rng=Random(3), clock=lambda: now[0])
    started = await engine.start(5, categories["science"], question_count=2)

    settings = Settings(session_timeout_minutes=120)
    assert await expire_stale_sessions(engine, settings) == 0

    now[0] += timedelta(hours=3)
    assert await expire_stale_sessions(engine, settings) == 1

    view = await engine.get_session(started.attempt.id)
    assert view.attempt.status is AttemptStatus.ABANDONED
    assert view.attempt.completed_at == now[0]


async def test_prepare_daily_challenge(catalog, categories):
    await prepare_daily_challenge(catalog, Settings())

    tomorrow = TimeProvider("UTC").tomorrow()
    prepared = await catalog.fetch_daily_challenge(tomorrow)
    again = await catalog.fetch_daily_challenge(tomorrow)
    assert prepared.id == again.id


async def test_prepare_daily_challenge_without_questions_only_logs(db, categories, caplog):
    catalog = SqlQuestionCatalog(db, daily_question_count=50)
    await prepare_daily_challenge(catalog, Settings())
    assert "Cannot prepare daily challenge" in caplog.text


async def test_build_scheduler_registers_jobs(quiz_engine, catalog):
    scheduler = build_scheduler(quiz_engine=quiz_engine, catalog=catalog, settings=Settings())
    assert {job.id for job in scheduler.get_jobs()} == {"expire_stale_sessions", "prepare_daily_challenge"}

# quizcore/main.py
import asyncio
import logging
from dataclasses import dataclass

from quizcore.config import Settings
from quizcore.database import Database
from quizcore.database.repo import SqlAttemptStore, SqlQuestionCatalog
from quizcore.scheduler import setup_scheduler
from quizcore.services.daily_challenge import DailyChallengeEngine
from quizcore.services.leaderboard import LeaderboardService
from quizcore.services.locks import KeyedLocks
from quizcore.services.quiz_session import QuizSessionEngine
from quizcore.utils.dates import TimeProvider


def setup_logging(is_dev: bool) -> None:
    """
    Clean production logging:
    - app logs: INFO (or DEBUG in dev)
    - SQLAlchemy / scheduler logs: WARNING+ (no query/pool spam)
    """
    app_level = logging.DEBUG if is_dev else logging.INFO

    logging.basicConfig(
        level=app_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for name in (
        "sqlalchemy",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "aiosqlite",
        "apscheduler",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)


@dataclass(frozen=True, slots=True)
class Engines:
    catalog: SqlQuestionCatalog
    store: SqlAttemptStore
    quiz: QuizSessionEngine
    daily: DailyChallengeEngine
    leaderboard: LeaderboardService


def build_engines(db: Database, settings: Settings) -> Engines:
    """Wires both engines to the SQL collaborators; one lock registry per process."""
    catalog = SqlQuestionCatalog(db, daily_question_count=settings.daily_question_count)
    store = SqlAttemptStore(db)
    locks = KeyedLocks()

    quiz = QuizSessionEngine(
        catalog,
        store,
        max_time_bonus_rate=settings.max_time_bonus_rate,
        default_question_count=settings.default_question_count,
        locks=locks,
    )
    daily = DailyChallengeEngine(
        catalog,
        store,
        max_time_bonus_rate=settings.max_time_bonus_rate,
        streak_tiers=settings.streak_tiers,
        time_provider=TimeProvider(settings.timezone),
        locks=locks,
    )
    return Engines(
        catalog=catalog,
        store=store,
        quiz=quiz,
        daily=daily,
        leaderboard=LeaderboardService(db),
    )


async def main() -> None:
    settings = Settings.load()
    setup_logging(settings.is_dev)
    log = logging.getLogger("quizcore")

    db = Database(settings.database_url)
    await db.init_models()
    log.info("DB initialized")

    engines = build_engines(db, settings)

    scheduler = setup_scheduler(quiz_engine=engines.quiz, catalog=engines.catalog, settings=settings)
    log.info("Scheduler started (timezone=%s)", settings.timezone)

    stop = asyncio.Event()
    try:
        await stop.wait()
    except (asyncio.CancelledError, KeyboardInterrupt):
        pass
    except Exception:
        log.exception("Worker crashed")
        raise
    finally:
        try:
            scheduler.shutdown(wait=False)
        except Exception:
            log.exception("Failed to shutdown scheduler")

        try:
            await db.close()
        except Exception:
            log.exception("Failed to close DB")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

from datetime import date
from random import Random

import pytest

from quizcore.database import Database
from quizcore.database.repo import SqlAttemptStore, SqlQuestionCatalog
from quizcore.database.repo.question_repo import add_question, get_or_create_category
from quizcore.database.tx import transactional
from quizcore.domain import Difficulty
from quizcore.services.daily_challenge import DailyChallengeEngine
from quizcore.services.locks import KeyedLocks
from quizcore.services.quiz_session import QuizSessionEngine

CHALLENGE_DAY = date(2026, 3, 10)
DAILY_COUNT = 8
OPTIONS = ["Alpha", "Bravo", "Charlie", "Delta"]


@pytest.fixture()
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await database.init_models()
    yield database
    await database.close()


@pytest.fixture()
async def categories(db):
    """
    science: 12 questions (6 easy, 6 hard), 10 points, 30s limit
    tiny:    2 questions
    """
    async with db.session() as session:
        async with transactional(session):
            science = await get_or_create_category(session, "Science")
            tiny = await get_or_create_category(session, "Tiny")
            for i in range(12):
                await add_question(
                    session,
                    category_id=science.id,
                    content=f"Science question {i}",
                    correct_answer=OPTIONS[i % 4],
                    options=OPTIONS,
                    points=10,
                    time_limit=30,
                    difficulty=Difficulty.EASY if i % 2 == 0 else Difficulty.HARD,
                    explanation=f"Because {OPTIONS[i % 4]}",
                )
            for i in range(2):
                await add_question(
                    session,
                    category_id=tiny.id,
                    content=f"Tiny question {i}",
                    correct_answer="Alpha",
                    options=OPTIONS,
                )
            ids = {"science": science.id, "tiny": tiny.id}
    return ids


@pytest.fixture()
def catalog(db, categories):
    return SqlQuestionCatalog(db, daily_question_count=DAILY_COUNT, rng=Random(42))


@pytest.fixture()
def store(db):
    return SqlAttemptStore(db)


@pytest.fixture()
def locks():
    return KeyedLocks()


@pytest.fixture()
def quiz_engine(catalog, store, locks):
    return QuizSessionEngine(catalog, store, rng=Random(7), locks=locks)


@pytest.fixture()
def daily_engine(catalog, store, locks):
    return DailyChallengeEngine(catalog, store, locks=locks)


@pytest.fixture()
def answer_key(catalog):
    async def _key(question_ids):
        return {q.id: q.correct_answer for q in await catalog.get_questions(question_ids)}

    return _key

from random import Random

import pytest

from quizcore.database.repo import SqlQuestionCatalog
from quizcore.domain import QuestionFilter
from quizcore.errors import NotEnoughQuestionsError

from tests.conftest import CHALLENGE_DAY, DAILY_COUNT


async def test_daily_challenge_is_fixed_per_day(catalog, categories):
    first = await catalog.fetch_daily_challenge(CHALLENGE_DAY)
    again = await catalog.fetch_daily_challenge(CHALLENGE_DAY)

    assert first.id == again.id
    assert first.question_ids == again.question_ids
    assert first.question_count == DAILY_COUNT
    assert len(set(first.question_ids)) == DAILY_COUNT
    assert first.category_id == categories["science"]


async def test_daily_challenge_falls_back_to_whole_category(catalog, categories):
    # 6 questions per difficulty, 8 needed
    challenge = await catalog.fetch_daily_challenge(CHALLENGE_DAY)
    assert challenge.difficulty is None

    questions = await catalog.get_questions(challenge.question_ids)
    assert len({q.difficulty for q in questions}) == 2


async def test_daily_challenge_at_one_difficulty(db, categories):
    catalog = SqlQuestionCatalog(db, daily_question_count=4, rng=Random(1))
    challenge = await catalog.fetch_daily_challenge(CHALLENGE_DAY)

    questions = await catalog.get_questions(challenge.question_ids)
    if challenge.difficulty is not None:
        assert {q.difficulty for q in questions} == {challenge.difficulty}
    assert len(questions) == 4


async def test_daily_challenge_needs_enough_questions(db, categories):
    catalog = SqlQuestionCatalog(db, daily_question_count=50)
    with pytest.raises(NotEnoughQuestionsError):
        await catalog.fetch_daily_challenge(CHALLENGE_DAY)


async def test_get_questions_keeps_order_and_skips_unknown(catalog, categories):
    pool = await catalog.fetch_questions(QuestionFilter(category_id=categories["science"]))
    wanted = [pool[3].id, 987654, pool[0].id]

    got = await catalog.get_questions(wanted)
    assert [q.id for q in got] == [pool[3].id, pool[0].id]


async def test_category_exists(catalog, categories):
    assert await catalog.category_exists(categories["tiny"])
    assert not await catalog.category_exists(123456)

import asyncio
from datetime import timedelta

import pytest

from quizcore.domain import AttemptStatus, Difficulty
from quizcore.errors import (
    ErrorKind,
    InvalidInputError,
    NotEnoughQuestionsError,
    NotFoundError,
    StateConflictError,
)
from quizcore.utils.dates import utc_now

USER = 101


async def test_start_picks_distinct_questions(quiz_engine, categories):
    started = await quiz_engine.start(USER, categories["science"], question_count=5)

    attempt = started.attempt
    assert attempt.id is not None
    assert attempt.status is AttemptStatus.ACTIVE
    assert attempt.current_index == 0
    assert attempt.score == 0
    assert len(attempt.question_ids) == 5
    assert len(set(attempt.question_ids)) == 5
    assert [q.id for q in started.questions] == list(attempt.question_ids)
    assert started.first_question.id == attempt.question_ids[0]


async def test_question_view_hides_answer(quiz_engine, categories):
    started = await quiz_engine.start(USER, categories["science"], question_count=1)
    assert not hasattr(started.first_question, "correct_answer")


async def test_start_with_difficulty_filter(quiz_engine, categories):
    started = await quiz_engine.start(USER, categories["science"], difficulty="hard", question_count=6)
    assert {q.difficulty for q in started.questions} == {Difficulty.HARD}


async def test_start_not_enough_questions(quiz_engine, categories):
    with pytest.raises(NotEnoughQuestionsError) as ei:
        await quiz_engine.start(USER, categories["tiny"], question_count=5)
    assert ei.value.kind is ErrorKind.NOT_ENOUGH_QUESTIONS
    assert ei.value.details == {"requested": 5, "available": 2}


async def test_start_difficulty_pool_too_small(quiz_engine, categories):
    with pytest.raises(NotEnoughQuestionsError):
        await quiz_engine.start(USER, categories["science"], difficulty="easy", question_count=7)


@pytest.mark.parametrize("count", [0, 51])
async def test_start_count_out_of_range(quiz_engine, categories, count):
    with pytest.raises(InvalidInputError):
        await quiz_engine.start(USER, categories["science"], question_count=count)


async def test_start_reports_all_violations(quiz_engine, categories):
    with pytest.raises(InvalidInputError) as ei:
        await quiz_engine.start(0, categories["science"], difficulty="extreme", question_count=0)
    assert len(ei.value.violations) == 3


async def test_start_unknown_category(quiz_engine, categories):
    with pytest.raises(InvalidInputError) as ei:
        await quiz_engine.start(USER, 9999, question_count=1)
    assert ei.value.code == "CATEGORY_NOT_FOUND"


async def test_start_uses_default_count(quiz_engine, categories):
    started = await quiz_engine.start(USER, categories["science"])
    assert len(started.questions) == 10


async def test_answers_in_sequence_until_completed(quiz_engine, categories, answer_key):
    started = await quiz_engine.start(USER, categories["science"], question_count=3)
    ids = started.attempt.question_ids
    key = await answer_key(ids)

    first = await quiz_engine.submit_answer(started.attempt.id, ids[0], key[ids[0]], 15)
    assert first.is_correct
    assert first.points_earned == 13
    assert first.base_points == 10
    assert first.time_bonus == 3
    assert first.total_score == 13
    assert first.current_index == 1
    assert not first.is_last_question
    assert first.status is AttemptStatus.ACTIVE

    second = await quiz_engine.submit_answer(started.attempt.id, ids[1], "definitely wrong", 5)
    assert not second.is_correct
    assert second.points_earned == 0
    assert second.correct_answer == key[ids[1]]
    assert second.total_score == 13
    assert second.correct_answers_count == 1

    last = await quiz_engine.submit_answer(started.attempt.id, ids[2], key[ids[2]], 30)
    assert last.points_earned == 10
    assert last.total_score == 23
    assert last.is_last_question
    assert last.status is AttemptStatus.COMPLETED

    view = await quiz_engine.get_session(started.attempt.id)
    assert view.attempt.status is AttemptStatus.COMPLETED
    assert view.attempt.completed_at is not None
    assert view.attempt.score == 23
    assert view.answered_question_ids == list(ids)


async def test_out_of_order_answer_is_rejected(quiz_engine, categories, answer_key):
    started = await quiz_engine.start(USER, categories["science"], question_count=3)
    ids = started.attempt.question_ids

    with pytest.raises(StateConflictError) as ei:
        await quiz_engine.submit_answer(started.attempt.id, ids[1], "Alpha", 5)
    assert ei.value.code == "QUESTION_MISMATCH"
    assert ei.value.details["expectedQuestionId"] == ids[0]
    assert ei.value.details["alreadyAnswered"] is False

    await quiz_engine.submit_answer(started.attempt.id, ids[0], "Alpha", 5)
    with pytest.raises(StateConflictError) as ei:
        await quiz_engine.submit_answer(started.attempt.id, ids[0], "Alpha", 5)
    assert ei.value.code == "QUESTION_MISMATCH"
    assert ei.value.details["alreadyAnswered"] is True

    view = await quiz_engine.get_session(started.attempt.id)
    assert view.attempt.current_index == 1


async def test_answer_after_completion(quiz_engine, categories):
    started = await quiz_engine.start(USER, categories["science"], question_count=1)
    qid = started.attempt.question_ids[0]
    await quiz_engine.submit_answer(started.attempt.id, qid, "Alpha", 5)

    with pytest.raises(StateConflictError) as ei:
        await quiz_engine.submit_answer(started.attempt.id, qid, "Alpha", 5)
    assert ei.value.code == "ATTEMPT_NOT_ACTIVE"


async def test_unknown_or_foreign_attempt(quiz_engine, categories):
    with pytest.raises(NotFoundError):
        await quiz_engine.submit_answer(424242, 1, "Alpha", 5)

    started = await quiz_engine.start(USER, categories["science"], question_count=1)
    with pytest.raises(NotFoundError) as ei:
        await quiz_engine.submit_answer(
            started.attempt.id, started.attempt.question_ids[0], "Alpha", 5, user_id=USER + 1
        )
    assert ei.value.code == "ATTEMPT_NOT_FOUND"


async def test_invalid_time_leaves_attempt_untouched(quiz_engine, categories):
    started = await quiz_engine.start(USER, categories["science"], question_count=2)
    with pytest.raises(InvalidInputError):
        await quiz_engine.submit_answer(started.attempt.id, started.attempt.question_ids[0], "Alpha", -1)

    view = await quiz_engine.get_session(started.attempt.id)
    assert view.attempt.current_index == 0
    assert view.answered_question_ids == []


async def test_concurrent_duplicate_submission(quiz_engine, categories):
    started = await quiz_engine.start(USER, categories["science"], question_count=3)
    qid = started.attempt.question_ids[0]

    results = await asyncio.gather(
        quiz_engine.submit_answer(started.attempt.id, qid, "Alpha", 5),
        quiz_engine.submit_answer(started.attempt.id, qid, "Alpha", 5),
        return_exceptions=True,
    )
    ok = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(ok) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], StateConflictError)

    view = await quiz_engine.get_session(started.attempt.id)
    assert view.attempt.current_index == 1
    assert view.answered_question_ids == [qid]


async def test_abandon_is_idempotent(quiz_engine, categories, answer_key):
    started = await quiz_engine.start(USER, categories["science"], question_count=4)
    ids = started.attempt.question_ids
    key = await answer_key(ids)
    await quiz_engine.submit_answer(started.attempt.id, ids[0], key[ids[0]], 0)

    summary = await quiz_engine.abandon(started.attempt.id)
    assert summary.attempt.status is AttemptStatus.ABANDONED
    assert summary.attempt.completed_at is not None
    assert summary.accuracy == 100
    assert len(summary.answers) == 4
    assert summary.answers[0].points_earned == 15
    assert summary.answers[1].selected_answer == ""

    again = await quiz_engine.abandon(started.attempt.id)
    assert again.attempt.status is AttemptStatus.ABANDONED
    assert again.attempt.completed_at == summary.attempt.completed_at

    with pytest.raises(StateConflictError) as ei:
        await quiz_engine.submit_answer(started.attempt.id, ids[1], key[ids[1]], 1)
    assert ei.value.code == "ATTEMPT_NOT_ACTIVE"


async def test_abandon_completed_attempt_keeps_it_completed(quiz_engine, categories):
    started = await quiz_engine.start(USER, categories["science"], question_count=1)
    await quiz_engine.submit_answer(started.attempt.id, started.attempt.question_ids[0], "Alpha", 5)

    summary = await quiz_engine.abandon(started.attempt.id)
    assert summary.attempt.status is AttemptStatus.COMPLETED


async def test_summarize(quiz_engine, categories, answer_key):
    started = await quiz_engine.start(USER, categories["science"], question_count=3)
    ids = started.attempt.question_ids
    key = await answer_key(ids)
    await quiz_engine.submit_answer(started.attempt.id, ids[0], key[ids[0]], 10)
    await quiz_engine.submit_answer(started.attempt.id, ids[1], "nope", 20)
    await quiz_engine.submit_answer(started.attempt.id, ids[2], key[ids[2]], 5)

    s = await quiz_engine.summarize(started.attempt.id)
    assert s.accuracy == 67
    assert s.total_time_spent == 35
    assert s.average_time_per_question == pytest.approx(11.67)
    assert [a.is_correct for a in s.answers] == [True, False, True]
    assert s.answers[0].explanation is not None


async def test_list_sessions_pagination(quiz_engine, categories):
    for _ in range(3):
        await quiz_engine.start(USER, categories["science"], question_count=1)
    await quiz_engine.start(USER + 1, categories["science"], question_count=1)

    page = await quiz_engine.list_sessions(USER, page=1, limit=2)
    assert page.total == 3
    assert len(page.items) == 2
    assert page.total_pages == 2
    assert page.has_next_page
    assert not page.has_previous_page

    last = await quiz_engine.list_sessions(USER, page=2, limit=2)
    assert len(last.items) == 1
    assert not last.has_next_page

    with pytest.raises(InvalidInputError):
        await quiz_engine.list_sessions(USER, page=0, limit=500)


async def test_expire_stale(quiz_engine, categories):
    fresh = await quiz_engine.start(USER, categories["science"], question_count=1)

    assert await quiz_engine.expire_stale(timedelta(hours=2)) == 0

    later = utc_now() + timedelta(hours=3)
    assert await quiz_engine.expire_stale(timedelta(hours=2), now=later) == 1
    assert await quiz_engine.expire_stale(timedelta(hours=2), now=later) == 0

    view = await quiz_engine.get_session(fresh.attempt.id)
    assert view.attempt.status is AttemptStatus.ABANDONED

import pytest

from quizcore.domain import AnswerSubmission, Difficulty
from quizcore.errors import InvalidInputError
from quizcore.services.validation import (
    check_answer_batch,
    check_pagination,
    check_start_quiz,
    check_submit_answer,
    coerce_difficulty,
    ensure,
)


def test_start_quiz_reports_every_violation():
    out = check_start_quiz(0, "x", 51)
    assert len(out) == 3
    assert any("userId" in v for v in out)
    assert any("categoryId" in v for v in out)
    assert any("questionCount" in v for v in out)


@pytest.mark.parametrize("count", [1, 10, 50])
def test_start_quiz_count_bounds_ok(count):
    assert check_start_quiz(1, 1, count) == []


@pytest.mark.parametrize("count", [0, 51, -3, True, 2.5])
def test_start_quiz_count_bounds_rejected(count):
    assert check_start_quiz(1, 1, count)


def test_submit_answer_checks():
    assert check_submit_answer(1, 2, "A", 3.5) == []
    out = check_submit_answer(1, 2, None, -1)
    assert "selectedAnswer is required" in out
    assert any("timeSpent" in v for v in out)
    assert check_submit_answer(1, 2, 42, 1) == ["selectedAnswer must be a string"]


def test_coerce_difficulty():
    assert coerce_difficulty(None) is None
    assert coerce_difficulty("HARD") is Difficulty.HARD
    assert coerce_difficulty(Difficulty.EASY) is Difficulty.EASY
    with pytest.raises(InvalidInputError):
        coerce_difficulty("extreme")


def test_answer_batch_valid():
    answers = [AnswerSubmission(question_id=i, selected_answer="A", time_spent=1) for i in (3, 1, 2)]
    assert check_answer_batch([1, 2, 3], answers) == []


def test_answer_batch_problems():
    answers = [
        AnswerSubmission(question_id=1, selected_answer="A", time_spent=1),
        AnswerSubmission(question_id=1, selected_answer="B", time_spent=1),
        AnswerSubmission(question_id=9, selected_answer="A", time_spent=-2),
    ]
    out = check_answer_batch([1, 2, 3], answers)
    assert any("duplicate questionId 1" in v for v in out)
    assert any("questionId 9 is not part" in v for v in out)
    assert any(v.startswith("answers[2]: timeSpent") for v in out)
    assert any("missing answers" in v and "2" in v and "3" in v for v in out)


def test_answer_batch_wrong_size():
    out = check_answer_batch([1, 2], [AnswerSubmission(question_id=1, selected_answer="A", time_spent=1)])
    assert "expected 2 answers, got 1" in out


def test_pagination():
    assert check_pagination(1, 20) == []
    assert len(check_pagination(0, 101)) == 2


def test_ensure_raises_with_all_violations():
    with pytest.raises(InvalidInputError) as ei:
        ensure(["a", "b"], code="SOMETHING")
    assert ei.value.violations == ["a", "b"]
    assert ei.value.code == "SOMETHING"
    assert ei.value.to_dict()["violations"] == ["a", "b"]
    ensure([])

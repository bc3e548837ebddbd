import pytest

from quizcore.database.repo import SqlQuestionCatalog
from quizcore.database.repo.question_repo import get_category_by_name
from quizcore.domain import QuestionFilter, QuestionType
from quizcore.scripts.import_questions import import_questions, parse_file

SAMPLE = """
# world capitals
Capital of France? | Berlin | Paris | Rome | correct=2 | difficulty=easy
Water boils at 100C at sea level | True | False | correct=1 | time=15

"Largest ocean?" | Atlantic | Pacific | correct=2 | points=20 | explain="By area and volume"
"""


def test_parse_file_skips_comments_and_blanks():
    parsed = parse_file(SAMPLE)
    assert [p.correct_answer for p in parsed] == ["Paris", "True", "Pacific"]
    assert parsed[1].type is QuestionType.TRUE_FALSE
    assert parsed[2].points == 20


def test_parse_file_collects_every_error():
    text = "ok? | A | B | correct=1\nbroken | A\nalso broken | A | B | correct=9\n"
    with pytest.raises(ValueError) as ei:
        parse_file(text)
    message = str(ei.value)
    assert "line 2:" in message
    assert "line 3:" in message
    assert "line 1:" not in message


async def test_import_questions(db):
    n = await import_questions(db, "Geography", parse_file(SAMPLE))
    assert n == 3

    async with db.session() as session:
        cat = await get_category_by_name(session, "Geography")
    assert cat is not None

    catalog = SqlQuestionCatalog(db)
    questions = await catalog.fetch_questions(QuestionFilter(category_id=cat.id))
    assert [q.correct_answer for q in questions] == ["Paris", "True", "Pacific"]
    assert questions[1].time_limit == 15
    assert questions[2].explanation == "By area and volume"

# quizcore/scripts/import_questions.py
"""
Imports questions into a category, one question per line:

    python -m quizcore.scripts.import_questions "World Capitals" capitals.txt

Blank lines and lines starting with '#' are skipped. Any malformed line
aborts the whole import (nothing is written).
"""
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from quizcore.config import Settings
from quizcore.database.repo.question_repo import add_question, get_or_create_category
from quizcore.database.session import Database
from quizcore.database.tx import transactional
from quizcore.utils.question_parser import ParsedQuestion, parse_question_line

log = logging.getLogger(__name__)


def parse_file(text: str) -> list[ParsedQuestion]:
    out: list[ParsedQuestion] = []
    errors: list[str] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        try:
            out.append(parse_question_line(stripped))
        except ValueError as e:
            errors.append(f"line {lineno}: {e}")
    if errors:
        raise ValueError("\n".join(errors))
    return out


async def import_questions(db: Database, category_name: str, parsed: list[ParsedQuestion]) -> int:
    async with db.session() as session:
        async with transactional(session):
            cat = await get_or_create_category(session, category_name)
            for p in parsed:
                await add_question(
                    session,
                    category_id=cat.id,
                    content=p.content,
                    correct_answer=p.correct_answer,
                    options=p.options,
                    points=p.points,
                    time_limit=p.time_limit,
                    difficulty=p.difficulty,
                    type=p.type,
                    explanation=p.explanation,
                )
    return len(parsed)


async def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print(__doc__.strip(), file=sys.stderr)
        return 2

    category_name, path = argv
    settings = Settings.load()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")

    try:
        parsed = parse_file(Path(path).read_text(encoding="utf-8"))
    except ValueError as e:
        log.error("Import aborted:\n%s", e)
        return 1

    db = Database(settings.database_url)
    await db.init_models()
    try:
        n = await import_questions(db, category_name, parsed)
    finally:
        await db.close()

    log.info("Imported %s questions into %r", n, category_name)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))

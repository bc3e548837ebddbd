# quizcore/utils/question_parser.py
from __future__ import annotations

import re
from dataclasses import dataclass

from quizcore.domain import Difficulty, QuestionType


@dataclass(frozen=True, slots=True)
class ParsedQuestion:
    content: str
    options: list[str]
    correct_index: int  # 1-based
    points: int
    time_limit: int
    difficulty: Difficulty
    explanation: str | None = None

    @property
    def correct_answer(self) -> str:
        return self.options[self.correct_index - 1]

    @property
    def type(self) -> QuestionType:
        if [o.lower() for o in self.options] == ["true", "false"]:
            return QuestionType.TRUE_FALSE
        return QuestionType.MULTIPLE_CHOICE


_KEYVAL_RE = re.compile(r"^\s*([a-zA-Z_]+)\s*=\s*(.+?)\s*$")

_ALLOWED_KEYS = "correct, points, time, difficulty, explain"


def _strip_quotes(s: str) -> str:
    s = s.strip()
    if len(s) >= 2 and ((s[0] == s[-1]) and s[0] in {"'", '"'}):
        return s[1:-1].strip()
    return s


def _int_setting(key: str, val: str) -> int:
    try:
        return int(val)
    except ValueError as e:
        raise ValueError(f"{key} must be an integer like {key}=10") from e


def parse_question_line(text: str) -> ParsedQuestion:
    """
    Accepts:
      "Question" | "A" | "B" | "C" | correct=2 | points=10 | time=30 | difficulty=easy | explain="..."
    """
    raw = (text or "").strip()
    if not raw:
        raise ValueError('Empty line. Example: "Q" | "A" | "B" | correct=1')

    parts = [p.strip() for p in raw.split("|")]
    parts = [p for p in parts if p]  # drop empties

    if len(parts) < 3:
        raise ValueError("You must provide at least: question | option1 | option2")

    content = _strip_quotes(parts[0])
    if not content:
        raise ValueError("Question cannot be empty")

    # Collect options until key=val tokens start
    options: list[str] = []
    correct_index: int | None = None
    points = 10
    time_limit = 30
    difficulty = Difficulty.MEDIUM
    explanation: str | None = None

    for token in parts[1:]:
        m = _KEYVAL_RE.match(token)
        if m:
            key = m.group(1).strip().lower()
            val = _strip_quotes(m.group(2))

            if key == "correct":
                correct_index = _int_setting(key, val)
            elif key == "points":
                points = _int_setting(key, val)
            elif key == "time":
                time_limit = _int_setting(key, val)
            elif key == "difficulty":
                try:
                    difficulty = Difficulty(val.lower())
                except ValueError as e:
                    allowed = ", ".join(d.value for d in Difficulty)
                    raise ValueError(f"difficulty must be one of: {allowed}") from e
            elif key == "explain":
                explanation = val or None
            else:
                raise ValueError(f"Unknown setting: {key}. Allowed: {_ALLOWED_KEYS}")
        else:
            opt = _strip_quotes(token)
            if opt:
                options.append(opt)

    if len(options) < 2:
        raise ValueError("You must provide at least 2 options")

    if len({o.strip() for o in options}) != len(options):
        raise ValueError("Options must be unique")

    if correct_index is None:
        raise ValueError("Missing correct index. Add: correct=1 (1 = first option)")

    if correct_index < 1 or correct_index > len(options):
        raise ValueError(f"correct must be between 1 and {len(options)}")

    if points < 0 or points > 10_000:
        raise ValueError("points out of allowed range")

    if time_limit < 5 or time_limit > 600:
        raise ValueError("time must be between 5 and 600 seconds")

    return ParsedQuestion(
        content=content,
        options=options,
        correct_index=correct_index,
        points=points,
        time_limit=time_limit,
        difficulty=difficulty,
        explanation=explanation,
    )

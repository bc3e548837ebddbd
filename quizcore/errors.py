# quizcore/errors.py
from __future__ import annotations

import enum
from typing import Any, Iterable


class ErrorKind(str, enum.Enum):
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    STATE_CONFLICT = "STATE_CONFLICT"
    NOT_ENOUGH_QUESTIONS = "NOT_ENOUGH_QUESTIONS"


class QuizError(Exception):
    """
    Base for every typed failure reported by the engines.

    `kind` is the coarse taxonomy a caller maps to a transport status,
    `code` names the concrete reason (e.g. QUESTION_MISMATCH).
    """

    kind: ErrorKind = ErrorKind.INVALID_INPUT
    default_code: str = "INVALID_INPUT"

    def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            out["details"] = self.details
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InvalidInputError(QuizError):
    kind = ErrorKind.INVALID_INPUT
    default_code = "INVALID_INPUT"

    def __init__(
        self,
        violations: Iterable[str] | str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        if isinstance(violations, str):
            violations = [violations]
        self.violations: list[str] = list(violations)
        super().__init__("; ".join(self.violations) or "Invalid input", code=code, details=details)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["violations"] = list(self.violations)
        return out


class NotFoundError(QuizError):
    kind = ErrorKind.NOT_FOUND
    default_code = "NOT_FOUND"


class StateConflictError(QuizError):
    kind = ErrorKind.STATE_CONFLICT
    default_code = "STATE_CONFLICT"


class NotEnoughQuestionsError(QuizError):
    kind = ErrorKind.NOT_ENOUGH_QUESTIONS
    default_code = "NOT_ENOUGH_QUESTIONS"


# --- store-level signals (translated by the engines, never leaked upward) ---

class ConcurrentUpdateError(Exception):
    """Optimistic version check failed: the row changed since it was read."""


class DuplicateAttemptError(Exception):
    """A unique constraint rejected a second attempt for the same key."""

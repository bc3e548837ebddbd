# quizcore/domain.py
from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from datetime import date, datetime


class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class LeaderboardPeriod(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"


class AttemptStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self is not AttemptStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class Question:
    """
    Read-only catalog item. `correct_answer` is compared against the
    submitted value after trimming surrounding whitespace (case-sensitive).
    """
    id: int
    category_id: int
    content: str
    correct_answer: str
    points: int = 10
    time_limit: int = 30  # seconds
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    difficulty: Difficulty = Difficulty.MEDIUM
    options: tuple[str, ...] = ()
    explanation: str | None = None


@dataclass(frozen=True, slots=True)
class QuestionView:
    """Question as sent to a player: no answer, no explanation."""
    id: int
    content: str
    type: QuestionType
    difficulty: Difficulty
    options: tuple[str, ...]
    points: int
    time_limit: int

    @classmethod
    def of(cls, q: Question) -> "QuestionView":
        return cls(
            id=q.id,
            content=q.content,
            type=q.type,
            difficulty=q.difficulty,
            options=q.options,
            points=q.points,
            time_limit=q.time_limit,
        )


@dataclass(frozen=True, slots=True)
class QuestionFilter:
    category_id: int
    difficulty: Difficulty | None = None


@dataclass(slots=True)
class QuizAttempt:
    user_id: int
    category_id: int
    question_ids: tuple[int, ...]
    created_at: datetime
    id: int | None = None
    current_index: int = 0
    score: int = 0
    correct_answers: int = 0
    status: AttemptStatus = AttemptStatus.ACTIVE
    completed_at: datetime | None = None
    version: int = 0

    @property
    def total_questions(self) -> int:
        return len(self.question_ids)

    @property
    def current_question_id(self) -> int | None:
        if self.current_index < len(self.question_ids):
            return self.question_ids[self.current_index]
        return None


@dataclass(frozen=True, slots=True)
class AnswerRecord:
    attempt_id: int
    question_id: int
    selected_answer: str
    time_spent: float
    is_correct: bool
    points_earned: int
    order_index: int


@dataclass(frozen=True, slots=True)
class DailyChallenge:
    day: date
    question_ids: tuple[int, ...]
    id: int | None = None
    category_id: int | None = None
    difficulty: Difficulty | None = None

    @property
    def question_count(self) -> int:
        return len(self.question_ids)


@dataclass(slots=True)
class DailyAttempt:
    user_id: int
    day: date
    challenge_id: int
    question_ids: tuple[int, ...]
    created_at: datetime
    id: int | None = None
    score: int = 0
    correct_answers: int = 0
    status: AttemptStatus = AttemptStatus.ACTIVE
    completed_at: datetime | None = None
    version: int = 0


@dataclass(slots=True)
class StreakState:
    user_id: int
    current_streak: int = 0
    longest_streak: int = 0
    last_completed_date: date | None = None
    version: int = 0  # 0 = not stored yet


@dataclass(frozen=True, slots=True)
class StreakTier:
    min_days: int
    multiplier: float

    @property
    def description(self) -> str:
        if self.multiplier <= 1.0:
            return "No bonus"
        pct = int(round((self.multiplier - 1.0) * 100))
        return f"{self.min_days}+ days: {pct}% bonus"


@dataclass(frozen=True, slots=True)
class AnswerSubmission:
    question_id: int
    selected_answer: str | None
    time_spent: float | None


@dataclass(frozen=True, slots=True)
class Page:
    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int  # 1-based
    user_id: int
    score: int
    games_played: int
    correct_answers: int
    total_questions: int

    @property
    def accuracy(self) -> float:
        """Percent of correct answers, two decimals."""
        if not self.total_questions:
            return 0.0
        return math.floor(self.correct_answers * 10000 / self.total_questions + 0.5) / 100


@dataclass(frozen=True, slots=True)
class Leaderboard:
    period: LeaderboardPeriod
    entries: list[LeaderboardEntry]
    total: int  # players with at least one completed attempt in the window
    category_id: int | None = None
    user_entry: LeaderboardEntry | None = None

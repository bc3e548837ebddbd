from .catalog import CategoryRow, QuestionRow
from .quiz_session import QuizAnswerRow, QuizSessionRow
from .daily_challenge import DailyAnswerRow, DailyAttemptRow, DailyChallengeRow
from .streak import StreakEventRow, UserStreakRow

__all__ = [
    "CategoryRow",
    "QuestionRow",
    "QuizSessionRow",
    "QuizAnswerRow",
    "DailyChallengeRow",
    "DailyAttemptRow",
    "DailyAnswerRow",
    "UserStreakRow",
    "StreakEventRow",
]

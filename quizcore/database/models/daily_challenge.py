# quizcore/database/models/daily_challenge.py
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quizcore.database.base import Base
from quizcore.domain import AttemptStatus, Difficulty


class DailyChallengeRow(Base):
    """
    One challenge per calendar day (enforced by unique day).
    """
    __tablename__ = "daily_challenges"
    __table_args__ = (
        UniqueConstraint("day", name="uq_daily_challenges_day"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    day: Mapped[date] = mapped_column(Date, index=True)

    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    difficulty: Mapped[Difficulty | None] = mapped_column(
        Enum(Difficulty, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    question_ids: Mapped[list[int]] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())


class DailyAttemptRow(Base):
    """
    One attempt per user per day (enforced by unique constraint).
    """
    __tablename__ = "daily_challenge_attempts"
    __table_args__ = (
        UniqueConstraint("user_id", "day", name="uq_daily_attempts_user_day"),
        Index("ix_daily_attempts_day_status", "day", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    day: Mapped[date] = mapped_column(Date, index=True)
    challenge_id: Mapped[int] = mapped_column(ForeignKey("daily_challenges.id", ondelete="CASCADE"), index=True)

    total_questions: Mapped[int] = mapped_column(Integer, default=0)
    score: Mapped[int] = mapped_column(Integer, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[AttemptStatus] = mapped_column(
        Enum(AttemptStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=AttemptStatus.ACTIVE,
    )
    version: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    challenge: Mapped["DailyChallengeRow"] = relationship()


class DailyAnswerRow(Base):
    __tablename__ = "daily_challenge_answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_daily_answers_attempt_question"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    attempt_id: Mapped[int] = mapped_column(
        ForeignKey("daily_challenge_attempts.id", ondelete="CASCADE"),
        index=True,
    )
    question_id: Mapped[int] = mapped_column(ForeignKey("questions.id", ondelete="CASCADE"), index=True)

    selected_answer: Mapped[str] = mapped_column(String(512))
    time_spent: Mapped[float] = mapped_column(Float, default=0.0)
    is_correct: Mapped[bool] = mapped_column(default=False)
    points_earned: Mapped[int] = mapped_column(Integer, default=0)
    order_index: Mapped[int] = mapped_column(Integer)

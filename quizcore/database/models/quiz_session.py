# quizcore/database/models/quiz_session.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, Float, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quizcore.database.base import Base
from quizcore.domain import AttemptStatus


class QuizSessionRow(Base):
    """
    One single-player quiz attempt. question_ids is fixed at creation.
    `version` is bumped on every write (optimistic concurrency).
    """
    __tablename__ = "quiz_sessions"
    __table_args__ = (
        Index("ix_quiz_sessions_user_created", "user_id", "created_at"),
        Index("ix_quiz_sessions_status_created", "status", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id", ondelete="CASCADE"), index=True)

    question_ids: Mapped[list[int]] = mapped_column(JSON)
    total_questions: Mapped[int] = mapped_column(Integer, default=0)
    current_index: Mapped[int] = mapped_column(Integer, default=0)
    score: Mapped[int] = mapped_column(Integer, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0)

    status: Mapped[AttemptStatus] = mapped_column(
        Enum(AttemptStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=AttemptStatus.ACTIVE,
    )
    version: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    answers: Mapped[list["QuizAnswerRow"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="QuizAnswerRow.order_index",
    )


class QuizAnswerRow(Base):
    __tablename__ = "quiz_answers"
    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_quiz_answers_session_question"),
        UniqueConstraint("session_id", "order_index", name="uq_quiz_answers_session_order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("quiz_sessions.id", ondelete="CASCADE"), index=True)
    question_id: Mapped[int] = mapped_column(ForeignKey("questions.id", ondelete="CASCADE"), index=True)

    selected_answer: Mapped[str] = mapped_column(String(512))
    time_spent: Mapped[float] = mapped_column(Float, default=0.0)
    is_correct: Mapped[bool] = mapped_column(default=False)
    points_earned: Mapped[int] = mapped_column(Integer, default=0)
    order_index: Mapped[int] = mapped_column(Integer)

    answered_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())

    session: Mapped["QuizSessionRow"] = relationship(back_populates="answers")

# quizcore/database/models/catalog.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quizcore.database.base import Base
from quizcore.domain import Difficulty, QuestionType


class CategoryRow(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(128), unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())

    questions: Mapped[list["QuestionRow"]] = relationship(back_populates="category")


class QuestionRow(Base):
    __tablename__ = "questions"
    __table_args__ = (
        Index("ix_questions_category_difficulty", "category_id", "difficulty"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id", ondelete="CASCADE"), index=True)

    type: Mapped[QuestionType] = mapped_column(
        Enum(QuestionType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=QuestionType.MULTIPLE_CHOICE,
    )
    difficulty: Mapped[Difficulty] = mapped_column(
        Enum(Difficulty, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=Difficulty.MEDIUM,
    )

    content: Mapped[str] = mapped_column(String(1024))
    options: Mapped[list[str]] = mapped_column(JSON, default=list)
    correct_answer: Mapped[str] = mapped_column(String(512))
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)

    points: Mapped[int] = mapped_column(Integer, default=10)
    time_limit: Mapped[int] = mapped_column(Integer, default=30)  # seconds

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())

    category: Mapped["CategoryRow"] = relationship(back_populates="questions")

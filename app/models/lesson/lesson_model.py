# Fichier: app/models/lesson/lesson_model.py

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
    false,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base


class ProblemType(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT_INPUT = "text_input"


class Lesson(Base):
    """Une leçon: un ensemble ordonné de problèmes et une récompense en XP."""

    __tablename__ = "lessons"
    __table_args__ = (
        CheckConstraint("difficulty_level BETWEEN 1 AND 5", name="difficulty_range"),
        CheckConstraint("xp_reward >= 0", name="xp_reward_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    difficulty_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=10, server_default="10")
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0", index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    problems: Mapped[List["Problem"]] = relationship(
        back_populates="lesson",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Problem.order_index",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Lesson(id={self.id}, title='{self.title}')>"


class Problem(Base):
    __tablename__ = "problems"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lesson_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("lessons.id", ondelete="CASCADE"), index=True, nullable=False
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    problem_type: Mapped[ProblemType] = mapped_column(
        Enum(ProblemType, name="problemtype", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=ProblemType.MULTIPLE_CHOICE,
    )
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    lesson: Mapped[Lesson] = relationship(back_populates="problems")
    options: Mapped[List["ProblemOption"]] = relationship(
        back_populates="problem",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProblemOption.order_index",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Problem(id={self.id}, lesson_id={self.lesson_id})>"


class ProblemOption(Base):
    """Réponse candidate d'un problème. ``is_correct`` ne sort jamais de l'API."""

    __tablename__ = "problem_options"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    problem_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("problems.id", ondelete="CASCADE"), index=True, nullable=False
    )
    option_text: Mapped[str] = mapped_column(String(500), nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    problem: Mapped[Problem] = relationship(back_populates="options")

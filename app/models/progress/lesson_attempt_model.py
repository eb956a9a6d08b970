# Fichier: app/models/progress/lesson_attempt_model.py

import uuid
from datetime import datetime
from typing import Any, TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base

if TYPE_CHECKING:
    from ..user.user_model import User
    from ..lesson.lesson_model import Lesson


class LessonAttempt(Base):
    """
    Journal immuable des soumissions de leçon.

    ``submission_id`` est la clé d'idempotence fournie par le client: une
    seconde soumission avec la même clé relit cette ligne au lieu de
    re-noter.
    """
    __tablename__ = "lesson_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    submission_id: Mapped[str] = mapped_column(String(36), unique=True, index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    lesson_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("lessons.id"), index=True)

    # --- Données de la soumission ---
    submitted_answers: Mapped[Any] = mapped_column(JSON, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False)
    total_problems: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # --- Relations ---
    user: Mapped["User"] = relationship(back_populates="attempts")
    lesson: Mapped["Lesson"] = relationship()

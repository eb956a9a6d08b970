# Fichier: app/models/progress/user_lesson_progress_model.py

import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    UniqueConstraint,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base

if TYPE_CHECKING:
    from ..user.user_model import User
    from ..lesson.lesson_model import Lesson


class UserLessonProgress(Base):
    """
    Agrégat durable par couple (utilisateur, leçon).

    ``is_completed`` ne repasse jamais à False, ``best_score`` ne fait que
    monter et ``completed_at`` n'est écrit qu'une seule fois.
    """
    __tablename__ = "user_lesson_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_user_lesson_progress_user_lesson"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    lesson_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("lessons.id"), index=True)

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    best_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    attempts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_attempted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # --- Relations ---
    user: Mapped["User"] = relationship(back_populates="lesson_progress")
    lesson: Mapped["Lesson"] = relationship()

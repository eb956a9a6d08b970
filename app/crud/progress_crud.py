# Fichier: app/crud/progress_crud.py
import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.lesson.lesson_model import Lesson
from app.models.progress.lesson_attempt_model import LessonAttempt
from app.models.progress.user_lesson_progress_model import UserLessonProgress

logger = logging.getLogger(__name__)

# ==============================================================================
# TENTATIVES (journal append-only)
# ==============================================================================

def get_attempt_by_submission_id(db: Session, submission_id: str) -> Optional[LessonAttempt]:
    return db.query(LessonAttempt).filter(LessonAttempt.submission_id == submission_id).first()


def list_user_attempts(db: Session, user_id: int, lesson_id: uuid.UUID | None = None) -> list[LessonAttempt]:
    query = db.query(LessonAttempt).filter(LessonAttempt.user_id == user_id)
    if lesson_id is not None:
        query = query.filter(LessonAttempt.lesson_id == lesson_id)
    return query.order_by(LessonAttempt.submitted_at.desc(), LessonAttempt.id.desc()).all()


def add_attempt(db: Session, **fields) -> LessonAttempt:
    attempt = LessonAttempt(**fields)
    db.add(attempt)
    return attempt


# ==============================================================================
# PROGRESSION PAR LEÇON
# ==============================================================================

def get_progress(db: Session, user_id: int, lesson_id: uuid.UUID) -> Optional[UserLessonProgress]:
    return (
        db.query(UserLessonProgress)
        .filter_by(user_id=user_id, lesson_id=lesson_id)
        .first()
    )


def merge_progress(
    db: Session,
    *,
    user_id: int,
    lesson_id: uuid.UUID,
    score: float,
    is_completed: bool,
    attempted_at: datetime,
) -> tuple[UserLessonProgress, bool]:
    """
    Fusionne le résultat d'une tentative dans la ligne de progression.

    Règles par champ: OU logique pour ``is_completed``, max pour
    ``best_score``, +1 pour ``attempts_count``, écriture unique de
    ``completed_at``. Retourne la ligne et un booléen indiquant si la leçon
    vient d'être terminée pour la première fois.
    """
    progress = (
        db.query(UserLessonProgress)
        .filter_by(user_id=user_id, lesson_id=lesson_id)
        .with_for_update()
        .first()
    )

    if progress is None:
        progress = UserLessonProgress(
            user_id=user_id,
            lesson_id=lesson_id,
            is_completed=False,
            best_score=0.0,
            attempts_count=0,
        )
        db.add(progress)

    was_completed = bool(progress.is_completed)
    newly_completed = is_completed and not was_completed

    progress.is_completed = was_completed or is_completed
    progress.best_score = max(float(progress.best_score or 0.0), float(score))
    progress.attempts_count = (progress.attempts_count or 0) + 1
    progress.last_attempted_at = attempted_at
    if newly_completed:
        progress.completed_at = attempted_at

    logger.info(
        "PROGRESSION: User %s, leçon %s, meilleur score %.0f, tentatives %s",
        user_id,
        lesson_id,
        progress.best_score,
        progress.attempts_count,
    )
    return progress, newly_completed


def count_completed_lessons(db: Session, user_id: int) -> int:
    """Leçons actives terminées par l'utilisateur."""
    return (
        db.query(func.count(UserLessonProgress.id))
        .join(Lesson, Lesson.id == UserLessonProgress.lesson_id)
        .filter(
            UserLessonProgress.user_id == user_id,
            UserLessonProgress.is_completed.is_(True),
            Lesson.is_active.is_(True),
        )
        .scalar()
        or 0
    )

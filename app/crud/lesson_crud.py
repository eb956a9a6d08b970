# Fichier: app/crud/lesson_crud.py
"""Lecture seule du catalogue: leçons actives, problèmes et options."""

import uuid
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session, selectinload

from app.models.lesson.lesson_model import Lesson, Problem
from app.models.progress.lesson_attempt_model import LessonAttempt
from app.models.progress.user_lesson_progress_model import UserLessonProgress


def list_active_lessons(db: Session) -> list[Lesson]:
    return (
        db.query(Lesson)
        .filter(Lesson.is_active.is_(True))
        .order_by(Lesson.order_index.asc(), Lesson.title.asc())
        .all()
    )


def list_active_lessons_with_progress(
    db: Session, user_id: int
) -> list[tuple[Lesson, Optional[UserLessonProgress]]]:
    """Chaque leçon active jointe (LEFT JOIN) à la progression de l'utilisateur."""
    return (
        db.query(Lesson, UserLessonProgress)
        .outerjoin(
            UserLessonProgress,
            (UserLessonProgress.lesson_id == Lesson.id) & (UserLessonProgress.user_id == user_id),
        )
        .filter(Lesson.is_active.is_(True))
        .order_by(Lesson.order_index.asc(), Lesson.title.asc())
        .all()
    )


def get_active_lesson(db: Session, lesson_id: uuid.UUID) -> Optional[Lesson]:
    return (
        db.query(Lesson)
        .filter(Lesson.id == lesson_id, Lesson.is_active.is_(True))
        .first()
    )


def get_lesson_with_problems(db: Session, lesson_id: uuid.UUID) -> Optional[Lesson]:
    """Leçon active avec problèmes et options chargés en une passe."""
    return (
        db.query(Lesson)
        .options(selectinload(Lesson.problems).selectinload(Problem.options))
        .filter(Lesson.id == lesson_id, Lesson.is_active.is_(True))
        .first()
    )


def get_problems_with_answers(db: Session, lesson_id: uuid.UUID) -> list[Problem]:
    """Problèmes d'une leçon avec leurs options, ``is_correct`` compris.

    Réservé à la notation: le résultat ne doit jamais être sérialisé vers un
    client.
    """
    return (
        db.query(Problem)
        .options(selectinload(Problem.options))
        .filter(Problem.lesson_id == lesson_id)
        .order_by(Problem.order_index.asc())
        .all()
    )


def count_problems(db: Session, lesson_id: uuid.UUID) -> int:
    return db.query(func.count(Problem.id)).filter(Problem.lesson_id == lesson_id).scalar() or 0


def count_active_lessons(db: Session) -> int:
    return db.query(func.count(Lesson.id)).filter(Lesson.is_active.is_(True)).scalar() or 0


def get_lesson_progress_aggregates(db: Session, lesson_id: uuid.UUID) -> dict:
    row = (
        db.query(
            func.count(UserLessonProgress.user_id.distinct()).label("total_learners"),
            func.count(case((UserLessonProgress.is_completed.is_(True), 1))).label("completions"),
            func.coalesce(func.avg(UserLessonProgress.best_score), 0).label("average_score"),
            func.coalesce(func.max(UserLessonProgress.best_score), 0).label("highest_score"),
            func.coalesce(func.min(UserLessonProgress.best_score), 0).label("lowest_score"),
        )
        .filter(UserLessonProgress.lesson_id == lesson_id)
        .one()
    )
    total_attempts = (
        db.query(func.count(LessonAttempt.id)).filter(LessonAttempt.lesson_id == lesson_id).scalar() or 0
    )
    return {
        "total_learners": int(row.total_learners or 0),
        "completions": int(row.completions or 0),
        "average_score": float(row.average_score or 0),
        "highest_score": float(row.highest_score or 0),
        "lowest_score": float(row.lowest_score or 0),
        "total_attempts": int(total_attempts),
    }

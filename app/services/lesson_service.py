"""Catalogue de leçons: listes, détail public, statistiques et historique."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.crud import lesson_crud, progress_crud
from app.models.lesson.lesson_model import Lesson, Problem
from app.models.progress.user_lesson_progress_model import UserLessonProgress
from app.models.user.user_model import User
from app.services.profile_service import progress_percentage

# "Jamais tentée": état par défaut quand aucune ligne de progression n'existe.
DEFAULT_PROGRESS = {
    "is_completed": False,
    "best_score": 0,
    "attempts_count": 0,
    "last_attempted_at": None,
    "completed_at": None,
}


def _lesson_fields(lesson: Lesson) -> dict:
    return {
        "id": lesson.id,
        "title": lesson.title,
        "description": lesson.description,
        "difficulty_level": lesson.difficulty_level,
        "xp_reward": lesson.xp_reward,
        "order_index": lesson.order_index,
    }


def _progress_fields(progress: Optional[UserLessonProgress]) -> dict:
    if progress is None:
        return dict(DEFAULT_PROGRESS)
    return {
        "is_completed": progress.is_completed,
        "best_score": progress.best_score,
        "attempts_count": progress.attempts_count,
        "last_attempted_at": progress.last_attempted_at,
        "completed_at": progress.completed_at,
    }


def _public_problem(problem: Problem) -> dict:
    # Projection client: les options sont exposées sans leur drapeau is_correct.
    return {
        "id": problem.id,
        "question": problem.question,
        "problem_type": problem.problem_type,
        "order_index": problem.order_index,
        "options": [
            {"id": option.id, "option_text": option.option_text, "order_index": option.order_index}
            for option in problem.options
        ],
    }


class LessonService:
    def __init__(self, db: Session, user: User | None = None):
        self.db = db
        self.user = user

    def list_lessons(self) -> list[dict]:
        if self.user is None:
            return [
                {**_lesson_fields(lesson), **DEFAULT_PROGRESS}
                for lesson in lesson_crud.list_active_lessons(self.db)
            ]

        rows = lesson_crud.list_active_lessons_with_progress(self.db, self.user.id)
        return [{**_lesson_fields(lesson), **_progress_fields(progress)} for lesson, progress in rows]

    def get_lesson(self, lesson_id: uuid.UUID, include_problems: bool = True) -> dict:
        if include_problems:
            lesson = lesson_crud.get_lesson_with_problems(self.db, lesson_id)
        else:
            lesson = lesson_crud.get_active_lesson(self.db, lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found", code="LESSON_NOT_FOUND")

        progress = None
        if self.user is not None:
            progress = progress_crud.get_progress(self.db, self.user.id, lesson.id)

        payload = {**_lesson_fields(lesson), **_progress_fields(progress)}
        if include_problems:
            payload["problems"] = [_public_problem(problem) for problem in lesson.problems]
        return payload

    def get_lesson_stats(self, lesson_id: uuid.UUID) -> dict:
        lesson = lesson_crud.get_active_lesson(self.db, lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found", code="LESSON_NOT_FOUND")

        aggregates = lesson_crud.get_lesson_progress_aggregates(self.db, lesson.id)
        learners = aggregates["total_learners"]
        completion_rate = progress_percentage(aggregates["completions"], learners)
        return {
            "lesson_id": lesson.id,
            "title": lesson.title,
            "difficulty_level": lesson.difficulty_level,
            "xp_reward": lesson.xp_reward,
            "total_problems": lesson_crud.count_problems(self.db, lesson.id),
            "completion_rate": completion_rate,
            **aggregates,
        }

    def get_user_attempts(self, lesson_id: uuid.UUID) -> list:
        if lesson_crud.get_active_lesson(self.db, lesson_id) is None:
            raise NotFoundError("Lesson not found", code="LESSON_NOT_FOUND")
        return progress_crud.list_user_attempts(self.db, self.user.id, lesson_id)

"""Profil utilisateur: identité + agrégats de progression."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.crud import lesson_crud, progress_crud, user_crud
from app.models.user.user_model import User


def progress_percentage(completed: int, total: int) -> int:
    """round(100 * completed / total), and 0 when there are no lessons."""
    if total <= 0:
        return 0
    return int((100 * completed + total // 2) // total)


class ProfileService:
    def __init__(self, db: Session):
        self.db = db

    def _get_user(self, user_id: int) -> User:
        user = user_crud.get_user(self.db, user_id)
        if user is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return user

    def get_user_stats(self, user_id: int) -> dict:
        user = self._get_user(user_id)
        return self._stats_for(user)

    def get_profile(self, user_id: int) -> dict:
        user = self._get_user(user_id)
        stats = self._stats_for(user)
        return {
            "user_id": user.id,
            "username": user.username,
            "email": user.email,
            **stats,
            "created_at": user.created_at,
            "updated_at": user.updated_at,
        }

    def _stats_for(self, user: User) -> dict:
        completed = progress_crud.count_completed_lessons(self.db, user.id)
        total = lesson_crud.count_active_lessons(self.db)
        return {
            "total_xp": user.total_xp or 0,
            "current_streak": user.current_streak or 0,
            "best_streak": user.best_streak or 0,
            "completed_lessons": completed,
            "total_lessons": total,
            "progress_percentage": progress_percentage(completed, total),
        }

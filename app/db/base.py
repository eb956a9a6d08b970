"""Déclare l'ensemble des modèles SQLAlchemy pour que ``Base.metadata`` les connaisse."""

from app.db.base_class import Base

# Utilisateurs
from app.models.user.user_model import User

# Catalogue de leçons
from app.models.lesson.lesson_model import Lesson, Problem, ProblemOption, ProblemType

# Progression & tentatives
from app.models.progress.user_lesson_progress_model import UserLessonProgress
from app.models.progress.lesson_attempt_model import LessonAttempt

__all__ = (
    "Base",
    "User",
    "Lesson",
    "Problem",
    "ProblemOption",
    "ProblemType",
    "UserLessonProgress",
    "LessonAttempt",
)

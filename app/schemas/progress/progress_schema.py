"""Schémas Pydantic pour la soumission et l'historique des tentatives."""
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class SubmittedAnswer(BaseModel):
    problem_id: str
    selected_option_id: Optional[str] = None

    @field_validator("problem_id", "selected_option_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        # Les identifiants numériques du front historique sont acceptés tels quels.
        if isinstance(value, (int, UUID)) and not isinstance(value, bool):
            return str(value)
        return value


class SubmissionCreate(BaseModel):
    """Corps de POST /lessons/{id}/submit.

    ``submission_id`` est la clé d'idempotence; l'ancien nom ``attempt_id``
    reste accepté.
    """

    submission_id: str = Field(..., validation_alias=AliasChoices("submission_id", "attempt_id"))
    lesson_id: Optional[str] = None
    answers: List[SubmittedAnswer]


class SubmissionResult(BaseModel):
    submission_id: str
    lesson_id: UUID
    score: int
    xp_earned: int
    is_completed: bool
    correct_answers: int
    total_problems: int
    current_streak: int
    best_streak: int
    total_xp: int
    progress_percentage: int
    is_duplicate: bool
    submitted_at: Optional[datetime] = None


class LessonAttemptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    submission_id: str
    lesson_id: UUID
    score: float
    correct_answers: int
    total_problems: int
    xp_earned: int
    is_completed: bool
    submitted_answers: Any
    submitted_at: Optional[datetime] = None

"""Schémas Pydantic du catalogue de leçons.

Aucun schéma de ce module n'expose ``is_correct``: c'est la seule projection
des problèmes envoyée aux clients avant notation.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.lesson.lesson_model import ProblemType


class ProblemOptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    option_text: str
    order_index: int


class ProblemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    question: str
    problem_type: ProblemType
    order_index: int
    options: List[ProblemOptionOut] = Field(default_factory=list)


class LessonProgressFields(BaseModel):
    is_completed: bool = False
    best_score: float = 0
    attempts_count: int = 0
    last_attempted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class LessonSummary(LessonProgressFields):
    id: UUID
    title: str
    description: Optional[str] = None
    difficulty_level: int
    xp_reward: int
    order_index: int


class LessonDetail(LessonSummary):
    problems: List[ProblemOut] = Field(default_factory=list)


class LessonStats(BaseModel):
    lesson_id: UUID
    title: str
    difficulty_level: int
    xp_reward: int
    total_problems: int
    total_learners: int
    completions: int
    completion_rate: int
    total_attempts: int
    average_score: float
    highest_score: float
    lowest_score: float

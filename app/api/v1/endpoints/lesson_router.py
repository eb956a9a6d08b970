"""Endpoints du catalogue de leçons et de la soumission des réponses."""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.dependencies import get_current_user, get_db, get_optional_user
from app.core.errors import ValidationError
from app.models.user.user_model import User
from app.schemas.lesson.lesson_schema import LessonDetail, LessonStats, LessonSummary
from app.schemas.progress.progress_schema import LessonAttemptOut, SubmissionCreate, SubmissionResult
from app.services.lesson_service import LessonService
from app.services.submission_service import SubmissionService
from app.utils.ids import canonical_id, parse_resource_id

router = APIRouter()


@router.get("", response_model=List[LessonSummary], summary="Lister les leçons")
def list_lessons(
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """Leçons actives triées par ``order_index``, avec la progression si authentifié."""
    return LessonService(db=db, user=current_user).list_lessons()


@router.get("/{lesson_id}", response_model=LessonDetail, summary="Détail d'une leçon")
def get_lesson(
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """Leçon + problèmes. Les bonnes réponses ne sont jamais incluses."""
    lesson_uuid = parse_resource_id(lesson_id)
    return LessonService(db=db, user=current_user).get_lesson(lesson_uuid, include_problems=True)


@router.post("/{lesson_id}/submit", response_model=SubmissionResult, summary="Soumettre ses réponses")
def submit_answers(
    lesson_id: str,
    payload: SubmissionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Soumission idempotente: rejouer la même ``submission_id`` renvoie le résultat initial."""
    lesson_uuid = parse_resource_id(lesson_id)
    if payload.lesson_id is not None and canonical_id(payload.lesson_id) != str(lesson_uuid):
        raise ValidationError(
            "lesson_id in body does not match the URL",
            details=[{"field": "lesson_id", "message": "must match the lesson in the URL"}],
        )

    service = SubmissionService(db=db, user=current_user)
    return service.submit(lesson_uuid, payload.submission_id, payload.answers)


@router.get("/{lesson_id}/attempts", response_model=List[LessonAttemptOut], summary="Historique des tentatives")
def get_lesson_attempts(
    lesson_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    lesson_uuid = parse_resource_id(lesson_id)
    return LessonService(db=db, user=current_user).get_user_attempts(lesson_uuid)


@router.get("/{lesson_id}/stats", response_model=LessonStats, summary="Statistiques d'une leçon")
def get_lesson_stats(
    lesson_id: str,
    db: Session = Depends(get_db),
):
    lesson_uuid = parse_resource_id(lesson_id)
    return LessonService(db=db).get_lesson_stats(lesson_uuid)

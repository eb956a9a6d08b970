from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.dependencies import get_current_user, get_db
from app.models.user.user_model import User
from app.schemas.user.user_schema import UserProfile
from app.services.profile_service import ProfileService

router = APIRouter()


@router.get("", response_model=UserProfile, summary="Profil et statistiques")
def read_profile(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """XP total, streaks et pourcentage de leçons terminées."""
    return ProfileService(db).get_profile(current_user.id)

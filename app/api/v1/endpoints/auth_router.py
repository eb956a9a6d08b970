# Fichier: app/api/v1/endpoints/auth_router.py

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.schemas.user import user_schema
from app.api.v1.dependencies import get_db, get_current_user
from app.models.user.user_model import User
from app.services.auth_service import AuthService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=user_schema.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_in: user_schema.UserCreate,
    db: Session = Depends(get_db),
):
    user, token = AuthService(db).register(user_in)
    return {"user": user, "token": token}


@router.post("/login", response_model=user_schema.AuthResponse)
def login(
    credentials: user_schema.UserLogin,
    db: Session = Depends(get_db),
):
    user, token = AuthService(db).login(credentials.email, credentials.password)
    return {"user": user, "token": token}


@router.get("/me", response_model=user_schema.CurrentUserResponse)
def read_users_me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"user": AuthService(db).get_user(current_user.id)}


@router.post("/refresh", response_model=user_schema.TokenResponse)
def refresh_token(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Émet un nouveau token pour l'utilisateur déjà authentifié."""
    return {"token": AuthService(db).refresh_token(current_user.id)}

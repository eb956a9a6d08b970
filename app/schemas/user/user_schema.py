# Fichier: app/schemas/user/user_schema.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime


# --- Schéma de Base ---
class UserBase(BaseModel):
    email: EmailStr
    username: str


# --- Schéma pour l'inscription ---
# C'est ce que l'API attend dans le corps de POST /auth/register.
class UserCreate(UserBase):
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9]+$")
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


# --- Schéma pour la Réponse de l'API ---
# Note : Il n'y a PAS de mot de passe ici pour des raisons de sécurité.
class User(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    total_xp: int
    current_streak: int
    best_streak: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    user: User
    token: str
    token_type: str = "bearer"


class CurrentUserResponse(BaseModel):
    user: User


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"


class UserProfile(BaseModel):
    """Profil agrégé renvoyé par GET /profile."""

    user_id: int
    username: str
    email: EmailStr
    total_xp: int
    current_streak: int
    best_streak: int
    completed_lessons: int
    total_lessons: int
    progress_percentage: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

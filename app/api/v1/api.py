# Fichier: app/api/v1/api.py
from fastapi import APIRouter
from .endpoints import (
    auth_router,
    lesson_router,
    profile_router,
    health_router,
)

api_router = APIRouter()

api_router.include_router(auth_router.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(lesson_router.router, prefix="/lessons", tags=["Lessons"])
api_router.include_router(profile_router.router, prefix="/profile", tags=["Profile"])
api_router.include_router(health_router.router, tags=["Health"])

"""Identity: registration, credential checks and JWT round-trips."""

from __future__ import annotations

import logging

from jose import ExpiredSignatureError, JWTError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import security
from app.core.errors import AuthenticationError, ConflictError, NotFoundError
from app.crud import user_crud
from app.db.session import atomic
from app.models.user.user_model import User
from app.schemas.user.user_schema import UserCreate

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def register(self, user_in: UserCreate) -> tuple[User, str]:
        """Create an account and return it together with a fresh token."""
        if user_crud.get_user_by_email(self.db, email=user_in.email):
            raise ConflictError("User with this email already exists", code="USER_EXISTS")
        if user_crud.get_user_by_username(self.db, username=user_in.username):
            raise ConflictError("Username already taken", code="USERNAME_TAKEN")

        try:
            with atomic(self.db):
                user = user_crud.create_user(self.db, user=user_in)
        except IntegrityError as exc:
            # Deux inscriptions simultanées: la contrainte unique tranche.
            raise ConflictError("User with this email already exists", code="USER_EXISTS") from exc

        self.db.refresh(user)
        logger.info("Nouvel utilisateur inscrit: %s", user.id)
        return user, self.issue_token(user)

    def login(self, email: str, password: str) -> tuple[User, str]:
        user = user_crud.get_user_by_email(self.db, email=email)
        if user is None:
            # Même coût qu'une vraie vérification pour ne pas révéler les comptes existants.
            security.pwd_context.dummy_verify()
            logger.warning("Connexion refusée pour %s", email)
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE, code="INVALID_CREDENTIALS")

        if not security.verify_password(password, user.hashed_password):
            logger.warning("Connexion refusée pour %s", email)
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE, code="INVALID_CREDENTIALS")

        logger.info("Utilisateur %s connecté.", user.id)
        return user, self.issue_token(user)

    def verify_token(self, token: str | None) -> User:
        """Resolve a bearer token to its user or raise ``AuthenticationError``."""
        if not token:
            raise AuthenticationError("Access token is required", code="TOKEN_MISSING")

        try:
            payload = security.decode_access_token(token)
            user_id = int(payload.get("sub"))
        except ExpiredSignatureError:
            logger.warning("Validation échouée: Le token a expiré.")
            raise AuthenticationError("Token expired", code="TOKEN_EXPIRED")
        except (JWTError, ValueError, TypeError):
            logger.warning("Validation échouée: Le token est invalide ou mal formé.")
            raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")

        user = user_crud.get_user(self.db, user_id)
        if user is None:
            logger.warning("Validation échouée: Utilisateur avec ID %s non trouvé.", user_id)
            raise AuthenticationError("Invalid token - user not found", code="INVALID_TOKEN")
        return user

    def refresh_token(self, user_id: int) -> str:
        return self.issue_token(self.get_user(user_id))

    def get_user(self, user_id: int) -> User:
        user = user_crud.get_user(self.db, user_id)
        if user is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return user

    @staticmethod
    def issue_token(user: User) -> str:
        return security.create_access_token(subject=user.id, email=user.email)

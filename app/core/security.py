# Fichier: app/core/security.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Union

from jose import jwt
from passlib.context import CryptContext

from app.core.config import settings

# --- Configuration de la Sécurité ---
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = 24

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)
logger = logging.getLogger(__name__)


# --- Fonctions Utilitaires ---
def create_access_token(
    subject: Union[str, Any],
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Crée un token d'accès JWT portant l'id et l'email de l'utilisateur."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)

    to_encode: Dict[str, Any] = {"exp": expire, "sub": str(subject)}
    if email is not None:
        to_encode["email"] = email
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Décode et vérifie un JWT.

    Raises ``jose.ExpiredSignatureError`` or ``jose.JWTError``; callers map
    those to authentication failures.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])


def verify_password(plain_password: str | None, hashed_password: str | None) -> bool:
    """Vérifie si un mot de passe en clair correspond à un mot de passe haché."""

    if not plain_password or not hashed_password:
        return False

    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as exc:
        logger.warning("Password verification failed: %s", type(exc).__name__)
        return False


def get_password_hash(password: str) -> str:
    """Hache un mot de passe."""
    return pwd_context.hash(password)

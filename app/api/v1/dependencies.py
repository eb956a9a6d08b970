import logging
import re
from urllib.parse import unquote

from typing import Generator, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.errors import AuthenticationError, InternalError
from app.db.session import Database
from app.models.user.user_model import User
from app.services.auth_service import AuthService

log = logging.getLogger(__name__)


def get_database(request: Request) -> Database:
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise InternalError("Database is not configured")
    return database


def get_db(database: Database = Depends(get_database)) -> Generator[Session, None, None]:
    """Provide one SQLAlchemy session per request.

    FastAPI caches dependencies within a request, so the route handler and
    ``get_current_user`` share this session. It is closed on every exit path,
    which hands its connection back to the bounded pool.
    """
    with database.session() as db:
        yield db


def _normalize_token_value(raw_token: str | None) -> str | None:
    """Return a clean JWT string extracted from an ``Authorization`` header.

    Accepts case-insensitive ``Bearer`` prefixes, quoted strings and
    percent-encoded values (``Bearer%20…``).
    """

    if raw_token is None:
        return None

    token = raw_token.strip().strip('"').strip("'")
    if not token:
        return None

    token = unquote(token)

    match = re.match(r"^(bearer|token)[\s,:]+(.+)$", token, flags=re.IGNORECASE)
    if match:
        token = match.group(2)
    else:
        parts = token.split()
        if len(parts) >= 2 and parts[0].lower().rstrip(",") in {"bearer", "token"}:
            token = parts[1]
        elif token.lower() in {"bearer", "token"}:
            return None

    token = token.strip()
    return token or None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = _normalize_token_value(request.headers.get("Authorization"))
    if not token:
        log.warning("Validation échouée: Pas de token fourni.")
        raise AuthenticationError("Access token is required", code="TOKEN_MISSING")

    user = AuthService(db).verify_token(token)
    log.debug("Utilisateur %s validé avec succès via token.", user.id)
    return user


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """Like ``get_current_user`` but anonymous callers (or bad tokens) get ``None``."""
    token = _normalize_token_value(request.headers.get("Authorization"))
    if not token:
        return None
    try:
        return AuthService(db).verify_token(token)
    except AuthenticationError:
        return None

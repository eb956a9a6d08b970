# Fichier: app/core/config.py
from pydantic_settings import BaseSettings
from pydantic import ValidationError, field_validator
import sys


class Settings(BaseSettings):
    DATABASE_URL: str

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # La clé secrète pour signer les JWTs.
    SECRET_KEY: str
    BCRYPT_ROUNDS: int = 12

    # --- Pool de connexions ---
    DATABASE_POOL_SIZE: int = 20
    DATABASE_POOL_TIMEOUT_SECONDS: float = 10.0
    DATABASE_POOL_RECYCLE_SECONDS: int = 30
    DATABASE_CONNECTION_MAX_RETRIES: int = 1
    DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS: float = 1.0

    # Performance instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300

    # --- Notation des leçons ---
    COMPLETION_THRESHOLD: int = 70
    PARTIAL_XP_RATIO: float = 0.5

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Ensure Postgres URLs always use the psycopg2 driver.

        Managed Postgres providers still hand out URLs using the legacy
        ``postgres://`` scheme, which SQLAlchemy no longer understands. Those
        URLs, as well as bare ``postgresql://`` and asyncpg variants, are
        rewritten to ``postgresql+psycopg2://``. SQLite and other backends are
        left untouched.
        """

        if not isinstance(value, str):
            return value

        if "+psycopg2" in value:
            return value

        replacements = {
            "postgres://": "postgresql+psycopg2://",
            "postgresql://": "postgresql+psycopg2://",
            "postgresql+asyncpg://": "postgresql+psycopg2://",
            "postgresql+psycopg://": "postgresql+psycopg2://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

    @property
    def is_development(self) -> bool:
        return (self.ENVIRONMENT or "").lower() == "development"


def _log_settings_validation_error(exc: ValidationError) -> None:
    """Pretty-print missing or invalid environment variables.

    The exception bubbles up during module import, which makes it hard to spot
    the offending variable. The structured error payload is printed to stderr
    before the exception is re-raised.
    """

    header = "Configuration error while loading environment variables:"
    print(header, file=sys.stderr)

    details = exc.errors()
    if details:
        for error in details:
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "Unknown validation error")
            type_name = error.get("type")
            hint_parts = [message]
            if type_name:
                hint_parts.append(f"(type={type_name})")
            hint = " ".join(hint_parts)
            print(f"  - {location}: {hint}", file=sys.stderr)
    else:
        print(exc, file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise

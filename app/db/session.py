"""Database engine, connection pool and session utilities.

The :class:`Database` object owns the SQLAlchemy engine and its connection
pool. It is built once at startup (see ``app.main``), stored on
``app.state.database`` and handed to whatever needs a session. It also offers
a lightweight SQLite fallback for local development when a PostgreSQL
instance is unavailable.
"""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Iterator, Mapping, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, Row
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.errors import InternalError
from app.db.base import Base

logger = logging.getLogger(__name__)

SQLITE_FALLBACK_URL = "sqlite:///./math_learning_local.db"


def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.drivername.startswith("sqlite") and parsed.database in (None, "", ":memory:")


def _install_slow_query_logger(engine: Engine, threshold_ms: int) -> None:
    """Attach callbacks that warn when queries exceed the configured budget."""

    threshold_ms = max(threshold_ms or 0, 0)
    if threshold_ms == 0:
        return

    marker = "_math_slow_query_hook"
    if getattr(engine, marker, False):
        return

    setattr(engine, marker, True)

    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        context._math_query_start = perf_counter()

    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        start = getattr(context, "_math_query_start", None)
        if start is None:
            return

        elapsed_ms = (perf_counter() - start) * 1000.0
        if elapsed_ms < threshold_ms:
            return

        snippet = " ".join(statement.split()) if isinstance(statement, str) else str(statement)
        if len(snippet) > 200:
            snippet = snippet[:197] + "..."

        # Parameters may carry credentials; only their count is logged.
        param_count = len(parameters) if hasattr(parameters, "__len__") else 0
        logger.warning(
            "SQL lente (%.1f ms) - %s | %d paramètre(s)",
            elapsed_ms,
            snippet,
            param_count,
        )

    event.listen(engine, "before_cursor_execute", _before_cursor_execute)
    event.listen(engine, "after_cursor_execute", _after_cursor_execute)


class Database:
    """Storage gateway around a SQLAlchemy engine with a bounded pool."""

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 20,
        pool_timeout: float = 10.0,
        pool_recycle: int = 30,
        slow_query_threshold_ms: int = 0,
        echo: bool = False,
    ):
        self.url = url
        engine_kwargs: dict[str, Any] = {"echo": echo, "future": True}

        if _is_memory_sqlite(url):
            # A single shared connection so every session sees the same schema.
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        elif url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            engine_kwargs["pool_size"] = pool_size
            engine_kwargs["max_overflow"] = 0
            engine_kwargs["pool_timeout"] = pool_timeout
        else:
            engine_kwargs["pool_size"] = pool_size
            engine_kwargs["max_overflow"] = 0
            engine_kwargs["pool_timeout"] = pool_timeout
            engine_kwargs["pool_recycle"] = pool_recycle
            engine_kwargs["pool_pre_ping"] = True

        self.engine: Engine = create_engine(url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        _install_slow_query_logger(self.engine, slow_query_threshold_ms)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    # ------------------------------------------------------------------
    # Sessions & transactions
    # ------------------------------------------------------------------
    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session and always hand its connection back to the pool."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session wrapped in BEGIN/COMMIT, rolled back on any error."""
        with self.session() as db:
            with atomic(db):
                yield db

    def execute(self, statement: str, params: Optional[Mapping[str, Any]] = None) -> list[Row]:
        """Run a parameterized statement and return its rows."""
        try:
            with self.transaction() as db:
                result = db.execute(text(statement), dict(params or {}))
                return list(result.all()) if result.returns_rows else []
        except SQLAlchemyError as exc:
            logger.error("Requête SQL échouée: %s", type(exc).__name__)
            raise InternalError("Database query failed", code="QUERY_FAILED") from exc

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    def verify_connection(self, max_retries: int = 1, backoff: float = 1.0) -> None:
        """Ping the store with retry logic to tolerate transient outages."""

        if self.dialect == "sqlite":
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return

        max_retries = max(int(max_retries or 1), 1)
        backoff = max(float(backoff or 1.0), 0.1)

        attempt = 1
        last_exc: Optional[Exception] = None

        while attempt <= max_retries:
            try:
                with self.engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                return
            except (OperationalError, OSError) as exc:
                last_exc = exc
                if attempt >= max_retries:
                    break

                delay = min(30.0, backoff * (2 ** (attempt - 1)))
                logger.warning(
                    "Connexion à la base de données échouée (tentative %s/%s): %s. Nouvelle tentative dans %.1f s.",
                    attempt,
                    max_retries,
                    exc,
                    delay,
                )
                time.sleep(delay)
                attempt += 1

        if last_exc is not None:
            raise last_exc

    def pool_status(self) -> dict[str, int]:
        pool = self.engine.pool
        snapshot: dict[str, int] = {}
        counters = {"size": "size", "checked_in": "checkedin", "checked_out": "checkedout", "overflow": "overflow"}
        for label, name in counters.items():
            getter = getattr(pool, name, None)
            if callable(getter):
                snapshot[label] = int(getter())
        return snapshot

    def health_check(self) -> dict[str, Any]:
        """Return a snapshot of store reachability and pool usage; never raises."""
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("Health check base de données en échec: %s", type(exc).__name__)
            return {
                "status": "unhealthy",
                "timestamp": timestamp,
                "dialect": self.dialect,
                "error": str(exc) if settings.is_development else "Database unreachable",
            }

        return {
            "status": "healthy",
            "timestamp": timestamp,
            "dialect": self.dialect,
            "pool": self.pool_status(),
        }


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit *db* on success, roll it back before any exception propagates."""
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise


def _should_enable_sqlite_fallback() -> bool:
    environment = (getattr(settings, "ENVIRONMENT", "development") or "").lower()
    if os.getenv("DISABLE_SQLITE_FALLBACK") == "1":
        return False
    return environment in {"development", "local"}


def build_database(database_url: str | None = None, *, allow_fallback: bool = True) -> Database:
    """Build the storage gateway from settings and probe it.

    When the primary store cannot be reached in development we transparently
    fall back to a local SQLite database so the API can still boot.
    """

    target_url = str(database_url or settings.DATABASE_URL)
    logger.info("Configuration de la base de données: %s", make_url(target_url).render_as_string(hide_password=True))

    database = Database(
        target_url,
        pool_size=settings.DATABASE_POOL_SIZE,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT_SECONDS,
        pool_recycle=settings.DATABASE_POOL_RECYCLE_SECONDS,
        slow_query_threshold_ms=settings.SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS,
    )

    try:
        database.verify_connection(
            max_retries=settings.DATABASE_CONNECTION_MAX_RETRIES,
            backoff=settings.DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS,
        )
    except (OperationalError, OSError) as exc:
        database.dispose()
        if allow_fallback and _should_enable_sqlite_fallback():
            logger.warning(
                "Impossible de joindre la base de données (%s). Bascule automatique vers SQLite.",
                type(exc).__name__,
            )
            return build_database(SQLITE_FALLBACK_URL, allow_fallback=False)

        logger.error("Connexion à la base de données échouée: %s", exc)
        raise

    return database

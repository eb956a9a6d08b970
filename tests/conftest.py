"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
# bcrypt minimum: keeps the suite fast.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS", "0")

from app.db.session import Database
from app.main import create_app


@pytest.fixture()
def database():
    # In-memory SQLite behind a StaticPool: every session sees the same schema.
    database = Database("sqlite://")
    database.create_all()
    try:
        yield database
    finally:
        database.dispose()


@pytest.fixture()
def db_session(database) -> Session:
    with database.session() as session:
        yield session


@pytest.fixture()
def client(database):
    app = create_app(database=database)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

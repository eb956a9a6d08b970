from __future__ import annotations

from datetime import timedelta

import pytest

from app.core.errors import AuthenticationError, ConflictError, NotFoundError
from app.core.security import create_access_token, decode_access_token, verify_password
from app.models.user.user_model import User
from app.schemas.user.user_schema import UserCreate
from app.services.auth_service import AuthService
from tests.utils import DEFAULT_PASSWORD, create_user


def _register(db, **overrides):
    data = {"username": "ada", "email": "ada@example.com", "password": "lovelace"}
    data.update(overrides)
    return AuthService(db).register(UserCreate(**data))


def test_register_returns_user_and_token(db_session):
    user, token = _register(db_session)

    assert user.id is not None
    assert user.total_xp == 0
    assert user.current_streak == 0
    assert user.best_streak == 0
    assert user.hashed_password != "lovelace"
    assert verify_password("lovelace", user.hashed_password)

    payload = decode_access_token(token)
    assert payload["sub"] == str(user.id)
    assert payload["email"] == "ada@example.com"


def test_register_normalizes_email(db_session):
    user, _ = _register(db_session, email="Ada@Example.COM")
    assert user.email == "ada@example.com"


def test_duplicate_email_is_a_conflict_and_first_account_is_untouched(db_session):
    first, _ = _register(db_session)
    original_hash = first.hashed_password

    with pytest.raises(ConflictError):
        _register(db_session, username="other", password="different")

    assert db_session.query(User).count() == 1
    db_session.refresh(first)
    assert first.username == "ada"
    assert first.hashed_password == original_hash


def test_duplicate_username_is_a_conflict(db_session):
    _register(db_session)
    with pytest.raises(ConflictError) as exc:
        _register(db_session, email="someone@example.com")
    assert exc.value.code == "USERNAME_TAKEN"


def test_login_success(db_session):
    created = create_user(db_session, username="grace", email="grace@example.com")
    user, token = AuthService(db_session).login("grace@example.com", DEFAULT_PASSWORD)
    assert user.id == created.id
    assert decode_access_token(token)["sub"] == str(created.id)


def test_login_failures_share_the_same_message(db_session):
    create_user(db_session, username="grace", email="grace@example.com")
    service = AuthService(db_session)

    with pytest.raises(AuthenticationError) as wrong_password:
        service.login("grace@example.com", "not-the-password")
    with pytest.raises(AuthenticationError) as unknown_email:
        service.login("nobody@example.com", DEFAULT_PASSWORD)

    assert wrong_password.value.message == unknown_email.value.message == "Invalid email or password"
    assert wrong_password.value.status_code == 401


def test_verify_token_resolves_user(db_session):
    user = create_user(db_session)
    token = create_access_token(subject=user.id, email=user.email)
    assert AuthService(db_session).verify_token(token).id == user.id


@pytest.mark.parametrize("token", [None, ""])
def test_verify_token_requires_a_token(db_session, token):
    with pytest.raises(AuthenticationError) as exc:
        AuthService(db_session).verify_token(token)
    assert exc.value.message == "Access token is required"


def test_verify_token_expired(db_session):
    user = create_user(db_session)
    token = create_access_token(subject=user.id, expires_delta=timedelta(seconds=-1))
    with pytest.raises(AuthenticationError) as exc:
        AuthService(db_session).verify_token(token)
    assert exc.value.message == "Token expired"


def test_verify_token_malformed(db_session):
    with pytest.raises(AuthenticationError) as exc:
        AuthService(db_session).verify_token("not.a.jwt")
    assert exc.value.message == "Invalid or expired token"


def test_verify_token_for_deleted_user(db_session):
    token = create_access_token(subject=999)
    with pytest.raises(AuthenticationError) as exc:
        AuthService(db_session).verify_token(token)
    assert exc.value.message == "Invalid token - user not found"


def test_refresh_token_issues_a_valid_token(db_session):
    user = create_user(db_session)
    token = AuthService(db_session).refresh_token(user.id)
    assert decode_access_token(token)["sub"] == str(user.id)


def test_get_user_unknown_id(db_session):
    with pytest.raises(NotFoundError):
        AuthService(db_session).get_user(12345)


def test_login_with_corrupt_stored_hash_is_rejected(db_session):
    create_user(db_session, username="legacy", email="legacy@example.com", hashed_password="plain-text-leftover")
    with pytest.raises(AuthenticationError) as exc:
        AuthService(db_session).login("legacy@example.com", DEFAULT_PASSWORD)
    assert exc.value.message == "Invalid email or password"

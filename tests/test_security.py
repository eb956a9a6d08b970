from datetime import timedelta

import pytest
from jose import ExpiredSignatureError, JWTError, jwt

from app.core import security
from app.core.config import settings


def test_password_hash_roundtrip():
    hashed = security.get_password_hash("s3cret!")
    assert hashed != "s3cret!"
    assert security.verify_password("s3cret!", hashed)
    assert not security.verify_password("wrong", hashed)


def test_verify_password_never_raises_on_garbage():
    assert security.verify_password("anything", "not-a-bcrypt-hash") is False
    assert security.verify_password("", security.get_password_hash("x")) is False
    assert security.verify_password("x", None) is False


def test_access_token_carries_subject_and_email():
    token = security.create_access_token(subject=42, email="ada@example.com")
    payload = security.decode_access_token(token)
    assert payload["sub"] == "42"
    assert payload["email"] == "ada@example.com"
    assert "exp" in payload


def test_expired_token_is_rejected():
    token = security.create_access_token(subject=1, expires_delta=timedelta(seconds=-5))
    with pytest.raises(ExpiredSignatureError):
        security.decode_access_token(token)


def test_token_signed_with_other_key_is_rejected():
    token = jwt.encode({"sub": "1"}, "another-key", algorithm=security.ALGORITHM)
    with pytest.raises(JWTError):
        security.decode_access_token(token)
    assert settings.SECRET_KEY != "another-key"

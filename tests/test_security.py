"""
Tests for password hashing and access tokens.
"""

from datetime import timedelta

import jwt
import pytest

from app.core.config import Settings
from app.core.exceptions import AuthenticationError
from app.core.security import (
    ALGORITHM,
    create_access_token,
    create_password_hash,
    decode_token,
    parse_user_id,
    verify_password,
)

CONFIG = Settings(SECRET_KEY="test-secret-key-for-tokens", STORAGE_BACKEND="memory")


def test_password_hash_roundtrip():
    hashed = create_password_hash("s3cret")

    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)


def test_malformed_hash_does_not_verify():
    assert verify_password("s3cret", "s3cret") is False


def test_token_roundtrip():
    token = create_access_token(7, additional_claims={"role": "admin"}, config=CONFIG)

    payload = decode_token(token, CONFIG)

    assert payload["sub"] == "7"
    assert payload["type"] == "access"
    assert payload["role"] == "admin"


def test_expired_token():
    token = create_access_token(7, expires_delta=timedelta(minutes=-5), config=CONFIG)

    with pytest.raises(AuthenticationError) as exc_info:
        decode_token(token, CONFIG)

    assert exc_info.value.message == "Token has expired"
    assert exc_info.value.status_code == 401


def test_token_signed_with_other_key():
    other = Settings(SECRET_KEY="a-completely-different-key", STORAGE_BACKEND="memory")
    token = create_access_token(7, config=other)

    with pytest.raises(AuthenticationError) as exc_info:
        decode_token(token, CONFIG)

    assert exc_info.value.message == "Invalid token"


def test_non_access_token_is_rejected():
    token = jwt.encode({"sub": "7", "type": "refresh"}, CONFIG.SECRET_KEY, algorithm=ALGORITHM)

    with pytest.raises(AuthenticationError):
        decode_token(token, CONFIG)


@pytest.mark.parametrize("raw,expected", [
    ("12", 12),
    (" 3 ", 3),
    (5, 5),
    ("abc", None),
    ("1.5", None),
])
def test_parse_user_id(raw, expected):
    assert parse_user_id(raw) == expected

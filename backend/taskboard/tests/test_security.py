from datetime import datetime, timezone

import pytest
from jose import jwt

from taskboard.core.security import (
    ExpiredToken,
    InvalidSignature,
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)


def test_access_token_round_trip():
    assert verify_access_token(create_access_token("user-1")) == "user-1"


def test_refresh_token_round_trip_and_expiry():
    token, expires_at = create_refresh_token("user-1")
    assert verify_refresh_token(token) == "user-1"
    remaining = expires_at - datetime.now(timezone.utc)
    assert 6.99 < remaining.total_seconds() / 86400 <= 7


def test_access_token_lifetime_is_fifteen_minutes():
    claims = jwt.get_unverified_claims(create_access_token("user-1"))
    assert claims["exp"] - claims["iat"] == 15 * 60


def test_secrets_are_not_interchangeable():
    access = create_access_token("user-1")
    refresh, _ = create_refresh_token("user-1")
    with pytest.raises(InvalidSignature):
        verify_refresh_token(access)
    with pytest.raises(InvalidSignature):
        verify_access_token(refresh)


def test_expired_token():
    with pytest.raises(ExpiredToken):
        verify_access_token(create_access_token("user-1", expires_minutes=-1))
    token, _ = create_refresh_token("user-1", expires_days=-1)
    with pytest.raises(ExpiredToken):
        verify_refresh_token(token)


def test_garbage_token():
    with pytest.raises(InvalidSignature):
        verify_access_token("abc.def.ghi")


def test_tokens_minted_together_are_distinct():
    first, _ = create_refresh_token("user-1")
    second, _ = create_refresh_token("user-1")
    assert first != second


def test_password_hashing():
    hashed = hash_password("secret1")
    assert hashed != "secret1"
    assert verify_password("secret1", hashed)
    assert not verify_password("secret2", hashed)

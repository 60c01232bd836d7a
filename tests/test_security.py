"""
Security Tests
==============

Supabase access-token verification and the scheduler shared secret.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.core.security import decode_access_token, token_display_name, verify_shared_secret

SECRET = "test-jwt-secret"


@pytest.fixture(autouse=True)
def jwt_settings(monkeypatch):
    monkeypatch.setattr("app.config.settings.SUPABASE_JWT_SECRET", SECRET)
    monkeypatch.setattr("app.config.settings.SUPABASE_JWT_AUDIENCE", "authenticated")
    monkeypatch.setattr("app.config.settings.JWT_ALGORITHM", "HS256")


def _token(secret: str = SECRET, **claims) -> str:
    payload = {
        "sub": "5b1f6a7e-0c5e-4c53-9d7a-2f1e3c4b5a69",
        "aud": "authenticated",
        "email": "user@example.com",
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


class TestDecodeAccessToken:

    def test_valid_token(self):
        payload = decode_access_token(_token())

        assert payload["sub"] == "5b1f6a7e-0c5e-4c53-9d7a-2f1e3c4b5a69"
        assert payload["email"] == "user@example.com"

    def test_wrong_secret(self):
        assert decode_access_token(_token(secret="other-secret")) is None

    def test_expired(self):
        assert decode_access_token(_token(exp=datetime.now(timezone.utc) - timedelta(minutes=1))) is None

    def test_wrong_audience(self):
        assert decode_access_token(_token(aud="anon")) is None

    def test_missing_subject(self):
        assert decode_access_token(_token(sub="")) is None

    def test_unconfigured_secret(self, monkeypatch):
        monkeypatch.setattr("app.config.settings.SUPABASE_JWT_SECRET", "")

        assert decode_access_token(_token()) is None


def test_display_name_from_metadata():
    assert token_display_name({"user_metadata": {"full_name": "Sam Lee"}}) == "Sam Lee"
    assert token_display_name({"user_metadata": {"name": "Sam"}}) == "Sam"
    assert token_display_name({}) is None


class TestSharedSecret:

    def test_match(self):
        assert verify_shared_secret("Bearer s3cret", "s3cret") is True

    def test_mismatch(self):
        assert verify_shared_secret("Bearer nope", "s3cret") is False

    def test_missing_header(self):
        assert verify_shared_secret(None, "s3cret") is False

    def test_unset_secret(self):
        assert verify_shared_secret("Bearer ", "") is False

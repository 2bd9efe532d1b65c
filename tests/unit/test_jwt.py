"""Session token issue and verification."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from wocboard.auth.jwt import create_access_token, verify_token
from wocboard.config import get_settings


def _encode(**overrides) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "1",
        "role": "Contributor",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    payload.update(overrides)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class TestAccessToken:

    def test_round_trip_claims(self):
        payload = verify_token(create_access_token(42, "Mentor"))
        assert payload["sub"] == "42"
        assert payload["role"] == "Mentor"
        assert payload["type"] == "access"
        assert payload["iss"] == get_settings().jwt_issuer

    def test_expired_token_rejected(self):
        token = _encode(exp=datetime.now(timezone.utc) - timedelta(seconds=1))
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_wrong_type_rejected(self):
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(_encode(type="refresh"))

    def test_wrong_issuer_rejected(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(_encode(iss="someone-else"))

    def test_tampered_signature_rejected(self):
        token = jwt.encode({"sub": "1", "type": "access"}, "x" * 40, algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

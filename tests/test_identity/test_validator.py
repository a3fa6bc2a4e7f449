"""HS256 access-token validation."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest

from expense_approvals.identity import JwtConfig, JwtTokenValidator, ValidationError, validate_and_extract

SECRET = "test-secret-that-is-long-enough-for-hs256"


def make_token(secret: str = SECRET, **overrides) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": "user-123",
        "email": "alice@example.com",
        "aud": "authenticated",
        "iat": now,
        "exp": now + timedelta(minutes=5),
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def validator():
    return JwtTokenValidator(JwtConfig(secret=SECRET))


def test_valid_token_yields_subject_and_email(validator):
    claims = validator.validate_and_extract(make_token())
    assert claims.subject == "user-123"
    assert claims.email == "alice@example.com"


def test_expired_token(validator):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    with pytest.raises(ValidationError, match="expired"):
        validator.validate_and_extract(make_token(exp=past))


def test_wrong_audience(validator):
    with pytest.raises(ValidationError, match="audience"):
        validator.validate_and_extract(make_token(aud="someone-else"))


def test_wrong_signature(validator):
    with pytest.raises(ValidationError):
        validator.validate_and_extract(make_token(secret="another-secret-that-is-long-enough"))


def test_missing_subject(validator):
    with pytest.raises(ValidationError):
        validator.validate_and_extract(make_token(sub=None))


def test_garbage_token(validator):
    with pytest.raises(ValidationError):
        validator.validate_and_extract("not.a.jwt")


def test_issuer_checked_only_when_configured():
    token = make_token(iss="https://other.example.com")

    assert validate_and_extract(token, JwtConfig(secret=SECRET)).subject == "user-123"
    with pytest.raises(ValidationError, match="issuer"):
        validate_and_extract(token, JwtConfig(secret=SECRET, issuer="https://auth.example.com"))


def test_config_from_settings():
    settings = SimpleNamespace(
        jwt_secret=SECRET, jwt_audience="api", jwt_issuer="  ", jwt_leeway_seconds=5
    )
    config = JwtConfig.from_settings(settings)
    assert config.audience == "api"
    assert config.issuer is None
    assert config.leeway_seconds == 5


def test_config_requires_secret():
    settings = SimpleNamespace(jwt_secret=None, jwt_audience="api", jwt_issuer=None, jwt_leeway_seconds=5)
    with pytest.raises(ValueError):
        JwtConfig.from_settings(settings)

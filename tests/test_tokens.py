"""Unit tests for auth/tokens.py -- TokenService issue/verify.

Covers:
- issued tokens verify and carry user_id, iat and exp = iat + TTL
- expiry boundary: valid one second before exp, expired at exp
- forged (wrong secret), tampered and garbage tokens are TOKEN_INVALID
- an expired token with a bad signature is TOKEN_INVALID, not TOKEN_EXPIRED
- tokens missing required claims are TOKEN_INVALID
- no name/email/password material in the payload
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.models import TokenClaims
from auth.tokens import TokenService
from core.config import AuthConfig
from core.errors import ErrorKind, Failure

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
def tokens(auth_config: AuthConfig, clock: FakeClock) -> TokenService:
    return TokenService(auth_config, clock=clock)


def test_issue_then_verify_round_trip(tokens: TokenService) -> None:
    claims = tokens.verify(tokens.issue("user-1"))
    assert isinstance(claims, TokenClaims)
    assert claims.user_id == "user-1"
    assert claims.issued_at == int(T0.timestamp())
    assert claims.expires_at == claims.issued_at + 3600


def test_payload_carries_only_identity_and_times(tokens: TokenService) -> None:
    payload = jwt.get_unverified_claims(tokens.issue("user-1"))
    assert set(payload) == {"user_id", "iat", "exp"}


def test_valid_until_just_before_expiry(tokens: TokenService, clock: FakeClock) -> None:
    token = tokens.issue("user-1")
    clock.advance(3599)
    assert isinstance(tokens.verify(token), TokenClaims)


def test_expired_exactly_at_exp(tokens: TokenService, clock: FakeClock) -> None:
    token = tokens.issue("user-1")
    clock.advance(3600)
    result = tokens.verify(token)
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.TOKEN_EXPIRED


def test_forged_with_other_secret_is_invalid(auth_config: AuthConfig, clock: FakeClock) -> None:
    forger = TokenService(replace(auth_config, secret_key="z" * 40), clock=clock)
    result = TokenService(auth_config, clock=clock).verify(forger.issue("user-1"))
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.TOKEN_INVALID


def test_tampered_payload_is_invalid(tokens: TokenService, auth_config: AuthConfig) -> None:
    header, _payload, signature = tokens.issue("user-1").split(".")
    _h, other_payload, _s = jwt.encode(
        {"user_id": "someone-else", "iat": 0, "exp": 2**31}, "z" * 40, algorithm="HS256"
    ).split(".")
    result = tokens.verify(f"{header}.{other_payload}.{signature}")
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.TOKEN_INVALID


def test_signature_checked_before_expiry(auth_config: AuthConfig, clock: FakeClock) -> None:
    forger = TokenService(replace(auth_config, secret_key="z" * 40), clock=clock)
    token = forger.issue("user-1")
    clock.advance(10 * 3600)
    result = TokenService(auth_config, clock=clock).verify(token)
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.TOKEN_INVALID


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c", "Bearer x.y.z"])
def test_garbage_is_invalid(tokens: TokenService, token: str) -> None:
    result = tokens.verify(token)
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.TOKEN_INVALID


@pytest.mark.parametrize(
    "payload",
    [
        {"iat": 1, "exp": 2**31},
        {"user_id": "", "iat": 1, "exp": 2**31},
        {"user_id": 42, "iat": 1, "exp": 2**31},
        {"user_id": "user-1", "iat": 1},
        {"user_id": "user-1", "iat": 1, "exp": True},
    ],
)
def test_missing_or_malformed_claims_are_invalid(tokens: TokenService, auth_config: AuthConfig, payload) -> None:
    token = jwt.encode(payload, auth_config.secret_key, algorithm="HS256")
    result = tokens.verify(token)
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.TOKEN_INVALID


def test_ttl_comes_from_config(auth_config: AuthConfig, clock: FakeClock) -> None:
    service = TokenService(replace(auth_config, token_expire_seconds=60), clock=clock)
    assert service.ttl_seconds == 60
    claims = service.verify(service.issue("user-1"))
    assert claims.expires_at - claims.issued_at == 60

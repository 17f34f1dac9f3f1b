"""
Tests for bearer token issuance and verification.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from kpower.domain.errors import AuthenticationError
from kpower.services.token_service import TokenService

from tests.conftest import TEST_ISSUER, TEST_SECRET


def test_round_trip(token_service):
    token = token_service.issue("alice")

    claims = token_service.verify(token)

    assert claims.subject == "alice"
    assert claims.issuer == TEST_ISSUER
    assert claims.expires_at > datetime.now(timezone.utc)


def test_token_is_standard_jwt(token_service):
    token = token_service.issue("alice")

    payload = jwt.decode(token, TEST_SECRET, algorithms=["HS256"], issuer=TEST_ISSUER)

    assert payload["sub"] == "alice"
    assert payload["iss"] == TEST_ISSUER


def test_expiry_follows_configured_ttl():
    issued_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
    service = TokenService(
        secret=TEST_SECRET,
        issuer=TEST_ISSUER,
        ttl=timedelta(days=10),
        clock=lambda: issued_at,
    )

    payload = jwt.decode(
        service.issue("alice"),
        TEST_SECRET,
        algorithms=["HS256"],
        options={"verify_exp": False},
    )

    assert payload["exp"] == int((issued_at + timedelta(days=10)).timestamp())


def test_expired_token_rejected():
    # Issued long enough ago that the TTL has elapsed
    service = TokenService(
        secret=TEST_SECRET,
        issuer=TEST_ISSUER,
        ttl=timedelta(minutes=5),
        clock=lambda: datetime.now(timezone.utc) - timedelta(hours=1),
    )
    token = service.issue("alice")

    with pytest.raises(AuthenticationError):
        service.verify(token)


def test_wrong_secret_rejected(token_service):
    other = TokenService(secret="another-secret-another-secret-0000", issuer=TEST_ISSUER, ttl=timedelta(hours=1))

    with pytest.raises(AuthenticationError):
        token_service.verify(other.issue("alice"))


def test_wrong_issuer_rejected(token_service):
    other = TokenService(secret=TEST_SECRET, issuer="someone-else", ttl=timedelta(hours=1))

    with pytest.raises(AuthenticationError):
        token_service.verify(other.issue("alice"))


def test_garbage_rejected(token_service):
    with pytest.raises(AuthenticationError):
        token_service.verify("not-a-token")


def test_missing_subject_rejected(token_service):
    token = jwt.encode(
        {"iss": TEST_ISSUER, "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        TEST_SECRET,
        algorithm="HS256",
    )

    with pytest.raises(AuthenticationError):
        token_service.verify(token)


def test_failure_modes_indistinguishable(token_service):
    expired = TokenService(
        secret=TEST_SECRET,
        issuer=TEST_ISSUER,
        ttl=timedelta(seconds=1),
        clock=lambda: datetime.now(timezone.utc) - timedelta(hours=1),
    ).issue("alice")
    forged = TokenService(secret="x" * 40, issuer=TEST_ISSUER, ttl=timedelta(hours=1)).issue("alice")

    errors = []
    for token in (expired, forged):
        with pytest.raises(AuthenticationError) as exc_info:
            token_service.verify(token)
        errors.append((type(exc_info.value), str(exc_info.value)))

    assert errors[0] == errors[1]


def test_unsupported_algorithm_fails_issue():
    service = TokenService(secret=TEST_SECRET, issuer=TEST_ISSUER, ttl=timedelta(hours=1), algorithm="NOPE")

    with pytest.raises(AuthenticationError):
        service.issue("alice")

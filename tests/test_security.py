"""Tests for token handling and capability checks."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from quadvote.core.security import (
    ROLE_SERVICE,
    Principal,
    create_access_token,
    decode_access_token,
    ensure_can_read_ledger,
    ensure_service,
)
from quadvote.core.settings import settings
from quadvote.services.errors import AuthorizationError


def test_token_round_trip_carries_role() -> None:
    assert decode_access_token(create_access_token("alice")) == Principal("alice", False)
    assert decode_access_token(create_access_token("ops", role=ROLE_SERVICE)) == Principal(
        "ops", True
    )


def test_unknown_role_cannot_be_minted() -> None:
    with pytest.raises(ValueError):
        create_access_token("alice", role="admin")


@pytest.mark.parametrize(
    "claims",
    [
        {"role": "user"},
        {"sub": "", "role": "user"},
        {"sub": "alice", "role": "superuser"},
    ],
)
def test_malformed_claims_are_rejected(claims) -> None:
    claims = {**claims, "exp": datetime.now(UTC) + timedelta(minutes=5)}
    token = jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)

    with pytest.raises(AuthorizationError):
        decode_access_token(token)


def test_expired_and_foreign_tokens_are_rejected() -> None:
    expired = jwt.encode(
        {"sub": "alice", "exp": datetime.now(UTC) - timedelta(minutes=1)},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    foreign = jwt.encode({"sub": "alice"}, "some-other-secret", algorithm="HS256")

    for token in (expired, foreign):
        with pytest.raises(AuthorizationError):
            decode_access_token(token)


def test_ledger_read_capability() -> None:
    ensure_can_read_ledger(Principal("alice"), "alice")
    ensure_can_read_ledger(Principal("ops", is_service=True), "alice")
    with pytest.raises(AuthorizationError):
        ensure_can_read_ledger(Principal("bob"), "alice")


def test_service_capability() -> None:
    ensure_service(Principal("ops", is_service=True))
    with pytest.raises(AuthorizationError):
        ensure_service(Principal("alice"))

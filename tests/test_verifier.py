"""Tests for TokenVerifier: token in, Principal or TokenRejected out."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from microtodo.auth.jwt import TokenCodec
from microtodo.auth.verifier import Principal, RejectReason, TokenRejected, TokenVerifier

SECRET = "unit-test-secret-0123456789abcdef0123456789"
NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def codec():
    return TokenCodec(SECRET)


@pytest.fixture
def verifier(codec):
    return TokenVerifier(codec, clock=lambda: NOW)


def _raw(claims: dict) -> str:
    payload = {
        "sub": "alice",
        "iat": int(NOW.timestamp()),
        "exp": int((NOW + timedelta(hours=1)).timestamp()),
        **claims,
    }
    return jwt.encode(payload, SECRET, algorithm="HS256")


def test_valid_token_yields_principal(codec, verifier):
    token = codec.issue("alice", {"userId": 42}, now=NOW)
    assert verifier.verify(token) == Principal(user_id=42, username="alice")


def test_expired_token(codec, verifier):
    token = codec.issue("alice", {"userId": 42}, now=NOW - timedelta(hours=2))
    with pytest.raises(TokenRejected) as exc:
        verifier.verify(token)
    assert exc.value.reason is RejectReason.EXPIRED
    assert exc.value.message == "Unauthorized: Token has expired"


def test_forged_token(verifier):
    forged = TokenCodec("not-our-secret-0123456789abcdef0123456789").issue(
        "alice", {"userId": 42}, now=NOW
    )
    with pytest.raises(TokenRejected) as exc:
        verifier.verify(forged)
    assert exc.value.reason is RejectReason.BAD_SIGNATURE
    assert exc.value.message == "Unauthorized: Invalid token"


def test_expired_wins_regardless_of_signature(verifier):
    forged = TokenCodec("not-our-secret-0123456789abcdef0123456789").issue(
        "alice", {"userId": 42}, now=NOW - timedelta(days=1)
    )
    with pytest.raises(TokenRejected) as exc:
        verifier.verify(forged)
    assert exc.value.reason is RejectReason.EXPIRED


def test_garbage_is_malformed(verifier):
    with pytest.raises(TokenRejected) as exc:
        verifier.verify("not-a-token")
    assert exc.value.reason is RejectReason.MALFORMED


@pytest.mark.parametrize(
    "claims",
    [
        {},
        {"userId": "42"},
        {"userId": 42.0},
        {"userId": True},
        {"userId": None},
        {"userId": 0},
        {"userId": -3},
        {"userId": 42, "role": "admin"},
    ],
    ids=["missing", "string", "float", "bool", "null", "zero", "negative", "extra-claim"],
)
def test_bad_user_id_claim_is_malformed(verifier, claims):
    with pytest.raises(TokenRejected) as exc:
        verifier.verify(_raw(claims))
    assert exc.value.reason is RejectReason.MALFORMED
    assert exc.value.message == "Unauthorized: Invalid token"


def test_rejection_message_hides_decoder_detail(verifier):
    with pytest.raises(TokenRejected) as exc:
        verifier.verify("a.b.c")
    assert exc.value.detail
    assert exc.value.detail not in exc.value.message


@pytest.mark.parametrize("exp", [10**20, -(10**20)], ids=["far-future", "far-past"])
def test_forged_token_with_out_of_range_expiry(verifier, exp):
    forged = jwt.encode(
        {"sub": "alice", "userId": 1, "iat": 0, "exp": exp}, "not-our-secret-0123456789abcdef"
    )
    with pytest.raises(TokenRejected) as exc:
        verifier.verify(forged)
    assert exc.value.reason is RejectReason.BAD_SIGNATURE
    assert exc.value.message == "Unauthorized: Invalid token"


def test_signed_token_with_out_of_range_expiry_is_malformed(verifier):
    token = jwt.encode({"sub": "alice", "userId": 1, "iat": 0, "exp": 10**20}, SECRET)
    with pytest.raises(TokenRejected) as exc:
        verifier.verify(token)
    assert exc.value.reason is RejectReason.MALFORMED

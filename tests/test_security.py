"""Tests for the three-domain token codec and password hashing."""

import uuid
from datetime import timedelta

import pytest
from jose import jwt

from boxoffice.core.exceptions import ExpiredError, InvalidError
from boxoffice.core.security import TokenCodec, TokenKind, get_password_hash, verify_password


def test_password_hash_round_trip():
    hashed = get_password_hash("a-long-enough-password")
    assert hashed != "a-long-enough-password"
    assert verify_password("a-long-enough-password", hashed)
    assert not verify_password("wrong-password-here", hashed)


@pytest.mark.parametrize("kind", list(TokenKind))
def test_issued_token_verifies_in_its_own_domain(codec, kind):
    subject = uuid.uuid4()
    token = codec.issue(kind, subject, timedelta(hours=1))
    claims = codec.verify(kind, token)
    assert claims.sub == subject
    assert claims.ref_id == subject
    assert claims.dat.t == kind.value


@pytest.mark.parametrize(
    "issued,verified",
    [
        (TokenKind.AUTH, TokenKind.EMAIL),
        (TokenKind.AUTH, TokenKind.TICKET),
        (TokenKind.EMAIL, TokenKind.AUTH),
        (TokenKind.TICKET, TokenKind.AUTH),
    ],
)
def test_token_never_verifies_in_another_domain(codec, issued, verified):
    token = codec.issue(issued, uuid.uuid4(), timedelta(hours=1))
    with pytest.raises(InvalidError):
        codec.verify(verified, token)


def test_tag_mismatch_rejected_even_with_shared_secret(clock):
    shared = TokenCodec({kind: "same-secret" for kind in TokenKind}, clock=clock)
    token = shared.issue(TokenKind.EMAIL, uuid.uuid4(), timedelta(hours=1))
    with pytest.raises(InvalidError):
        shared.verify(TokenKind.AUTH, token)


def test_zero_ttl_expires_once_clock_moves(codec, clock):
    token = codec.issue(TokenKind.AUTH, uuid.uuid4(), timedelta(0))
    codec.verify(TokenKind.AUTH, token)

    clock.advance(seconds=1)
    with pytest.raises(ExpiredError):
        codec.verify(TokenKind.AUTH, token)


def test_expiry_follows_injected_clock_not_wall_clock(codec, clock):
    token = codec.issue(TokenKind.AUTH, uuid.uuid4(), timedelta(days=2))
    clock.advance(days=2)
    codec.verify(TokenKind.AUTH, token)
    clock.advance(seconds=1)
    with pytest.raises(ExpiredError):
        codec.verify(TokenKind.AUTH, token)


def test_tampered_token_is_invalid(codec):
    token = codec.issue(TokenKind.AUTH, uuid.uuid4(), timedelta(hours=1))
    header, payload, signature = token.split(".")
    flipped = signature[:-2] + ("AA" if signature[-2:] != "AA" else "BB")
    with pytest.raises(InvalidError):
        codec.verify(TokenKind.AUTH, f"{header}.{payload}.{flipped}")


def test_garbage_is_invalid(codec):
    with pytest.raises(InvalidError):
        codec.verify(TokenKind.AUTH, "not-a-token")


def test_malformed_payload_is_invalid(codec, clock):
    token = jwt.encode(
        {"dat": {"t": "User"}, "sub": "nope", "iat": 0, "exp": 0},
        "test-user-secret",
        algorithm="HS256",
    )
    with pytest.raises(InvalidError):
        codec.verify(TokenKind.AUTH, token)


def test_ticket_token_carries_ticket_id_and_owner(codec, clock):
    class _Ticket:
        id = uuid.uuid4()
        owner_user_id = uuid.uuid4()
        expires_at = clock() + timedelta(hours=3)

    claims = codec.verify(TokenKind.TICKET, codec.issue_ticket(_Ticket))
    assert claims.ref_id == _Ticket.id
    assert claims.sub == _Ticket.owner_user_id
    assert claims.exp == int(_Ticket.expires_at.timestamp())


def test_missing_secret_rejected_at_construction():
    with pytest.raises(ValueError):
        TokenCodec({TokenKind.AUTH: "a", TokenKind.EMAIL: "b"})

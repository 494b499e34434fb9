"""Unit tests for access/session token issue and verify: round trip, tamper, wrong secret, expiry, cross-type."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from app.config import settings
from app.core.tokens import (
    AccessIdentity,
    issue_access_token,
    issue_session_token,
    verify_access_token,
    verify_session_token,
)

IDENTITY = AccessIdentity(user_id=42, email="u@example.com", username="u", full_name="U Ser")
ACCESS_SECRET = settings.access_token_secret
SESSION_SECRET = settings.refresh_token_secret


def test_access_token_roundtrip():
    token = issue_access_token(IDENTITY, ACCESS_SECRET, timedelta(minutes=5))
    assert isinstance(token, str)
    claims = verify_access_token(token, ACCESS_SECRET)
    assert claims is not None
    assert claims.identity == IDENTITY
    assert claims.expires_at - claims.issued_at == timedelta(minutes=5)


def test_session_token_roundtrip():
    token = issue_session_token(7, SESSION_SECRET, timedelta(days=1), token_id="abc")
    claims = verify_session_token(token, SESSION_SECRET)
    assert claims is not None
    assert claims.user_id == 7
    assert claims.token_id == "abc"


def test_issue_is_deterministic_for_same_inputs():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    a = issue_session_token(1, SESSION_SECRET, timedelta(days=1), token_id="t", now=now)
    b = issue_session_token(1, SESSION_SECRET, timedelta(days=1), token_id="t", now=now)
    assert a == b
    assert issue_access_token(IDENTITY, ACCESS_SECRET, timedelta(minutes=1), now=now) == issue_access_token(
        IDENTITY, ACCESS_SECRET, timedelta(minutes=1), now=now
    )


def test_session_tokens_minted_together_differ():
    """Random jti keeps two tokens from the same second distinct."""
    now = datetime.now(timezone.utc)
    a = issue_session_token(1, SESSION_SECRET, timedelta(days=1), now=now)
    b = issue_session_token(1, SESSION_SECRET, timedelta(days=1), now=now)
    assert a != b


def test_tampered_token_rejected():
    token = issue_access_token(IDENTITY, ACCESS_SECRET, timedelta(minutes=5))
    bad_token = token[:-1] + ("x" if token[-1] != "x" else "y")
    assert verify_access_token(bad_token, ACCESS_SECRET) is None


def test_wrong_secret_rejected():
    token = issue_access_token(IDENTITY, ACCESS_SECRET, timedelta(minutes=5))
    assert verify_access_token(token, "other-secret") is None


def test_malformed_tokens_rejected():
    for value in ("", "not-a-jwt", "a.b.c", None):
        assert verify_access_token(value, ACCESS_SECRET) is None
        assert verify_session_token(value, SESSION_SECRET) is None


def test_expired_token_rejected():
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    token = issue_access_token(IDENTITY, ACCESS_SECRET, timedelta(minutes=5), now=past)
    assert verify_access_token(token, ACCESS_SECRET) is None


def test_session_token_just_expired_rejected():
    issued = datetime.now(timezone.utc) - timedelta(seconds=61)
    token = issue_session_token(1, SESSION_SECRET, timedelta(seconds=60), now=issued)
    assert verify_session_token(token, SESSION_SECRET) is None


def test_access_token_cannot_be_used_as_session_token():
    access = issue_access_token(IDENTITY, ACCESS_SECRET, timedelta(minutes=5))
    assert verify_session_token(access, SESSION_SECRET) is None
    # Even with the matching secret, the type tag rejects it.
    assert verify_session_token(access, ACCESS_SECRET) is None


def test_session_token_cannot_be_used_as_access_token():
    refresh = issue_session_token(42, SESSION_SECRET, timedelta(days=1))
    assert verify_access_token(refresh, ACCESS_SECRET) is None
    assert verify_access_token(refresh, SESSION_SECRET) is None


def test_token_without_type_rejected():
    """Hand-built token with valid signature but no type claim."""
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode({"sub": "1", "iat": now, "exp": now + 60}, ACCESS_SECRET, algorithm=settings.jwt_algorithm)
    assert verify_access_token(token, ACCESS_SECRET) is None

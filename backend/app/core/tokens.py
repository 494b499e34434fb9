"""JWT issue/verify for access and session (refresh) tokens.

Both token types are fixed claim records with a ``type`` tag and are signed
with separate secrets, so one can never be presented as the other. Verification
returns ``None`` for every failure (bad encoding, bad signature, expired, wrong
type, missing claims); callers cannot tell which check failed.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.config import settings

ACCESS_TOKEN_TYPE = "access"
SESSION_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class AccessIdentity:
    user_id: int
    email: str
    username: str
    full_name: str


@dataclass(frozen=True)
class AccessClaims:
    user_id: int
    email: str
    username: str
    full_name: str
    issued_at: datetime
    expires_at: datetime

    @property
    def identity(self) -> AccessIdentity:
        return AccessIdentity(self.user_id, self.email, self.username, self.full_name)


@dataclass(frozen=True)
class SessionClaims:
    user_id: int
    token_id: str
    issued_at: datetime
    expires_at: datetime


def _timestamps(ttl: timedelta, now: datetime | None) -> tuple[int, int]:
    issued = now or datetime.now(timezone.utc)
    iat = int(issued.timestamp())
    return iat, iat + int(ttl.total_seconds())


def _from_ts(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _decode(token: str, secret: str, expected_type: str) -> dict[str, Any] | None:
    if not isinstance(token, str) or not token:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if payload.get("type") != expected_type:
        return None
    if "iat" not in payload or "exp" not in payload:
        return None
    return payload


def _user_id(payload: dict[str, Any]) -> int | None:
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None


def issue_access_token(
    identity: AccessIdentity,
    secret: str,
    ttl: timedelta,
    now: datetime | None = None,
) -> str:
    iat, exp = _timestamps(ttl, now)
    payload = {
        "sub": str(identity.user_id),
        "email": identity.email,
        "username": identity.username,
        "fullName": identity.full_name,
        "type": ACCESS_TOKEN_TYPE,
        "iat": iat,
        "exp": exp,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def issue_session_token(
    user_id: int,
    secret: str,
    ttl: timedelta,
    token_id: str | None = None,
    now: datetime | None = None,
) -> str:
    """Session token carries only the id; ``jti`` keeps tokens minted in the same second distinct."""
    iat, exp = _timestamps(ttl, now)
    payload = {
        "sub": str(user_id),
        "type": SESSION_TOKEN_TYPE,
        "jti": token_id or secrets.token_urlsafe(16),
        "iat": iat,
        "exp": exp,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str, secret: str) -> AccessClaims | None:
    payload = _decode(token, secret, ACCESS_TOKEN_TYPE)
    if payload is None:
        return None
    user_id = _user_id(payload)
    if user_id is None:
        return None
    return AccessClaims(
        user_id=user_id,
        email=payload.get("email", ""),
        username=payload.get("username", ""),
        full_name=payload.get("fullName", ""),
        issued_at=_from_ts(payload["iat"]),
        expires_at=_from_ts(payload["exp"]),
    )


def verify_session_token(token: str, secret: str) -> SessionClaims | None:
    payload = _decode(token, secret, SESSION_TOKEN_TYPE)
    if payload is None:
        return None
    user_id = _user_id(payload)
    if user_id is None or not payload.get("jti"):
        return None
    return SessionClaims(
        user_id=user_id,
        token_id=payload["jti"],
        issued_at=_from_ts(payload["iat"]),
        expires_at=_from_ts(payload["exp"]),
    )

"""Login, refresh-token rotation, logout and password change.

Each user record stores exactly one session (refresh) token. Login overwrites it,
refresh swaps it for a new one with a conditional update, logout clears it. A
presented session token is only honoured while it verifies *and* still equals the
stored value, so every rotation permanently retires the previous token.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError

from app.config import Settings, settings
from app.core.auth import hash_password_async, verify_password_async
from app.core.errors import BadRequestError, InternalError, NotFoundError, UnauthorizedError
from app.core.metrics import LOGINS, REFRESHES
from app.core.tokens import AccessIdentity, issue_access_token, issue_session_token, verify_session_token
from app.models.user import User
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

TOKEN_EXPIRED_OR_USED = "Refresh token is expired or used"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


@dataclass(frozen=True)
class LoginResult:
    user: User
    tokens: TokenPair


def _same_token(presented: str, stored: str | None) -> bool:
    if stored is None:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), stored.encode("utf-8"))


class SessionService:
    def __init__(self, store: UserStore, config: Settings = settings) -> None:
        self.store = store
        self.config = config

    def issue_tokens(self, user: User, now: datetime | None = None) -> TokenPair:
        now = now or datetime.now(timezone.utc)
        refresh_ttl = timedelta(seconds=self.config.refresh_token_ttl_seconds)
        try:
            access = issue_access_token(
                AccessIdentity(user.id, user.email, user.username, user.full_name),
                self.config.access_token_secret,
                timedelta(seconds=self.config.access_token_ttl_seconds),
                now=now,
            )
            refresh = issue_session_token(user.id, self.config.refresh_token_secret, refresh_ttl, now=now)
        except JWTError as e:
            logger.exception("Token issuance failed for user %s", user.id)
            raise InternalError("Something went wrong while generating refresh and access token") from e
        return TokenPair(access, refresh, now + refresh_ttl)

    async def login(self, password: str, username: str | None = None, email: str | None = None) -> LoginResult:
        if not (username or "").strip() and not (email or "").strip():
            raise BadRequestError("username or email is required")
        if not password:
            raise BadRequestError("password is required")
        user = await self.store.find_by_identifier(username=username, email=email)
        if user is None:
            LOGINS.labels(outcome="not_found").inc()
            raise NotFoundError("User does not exist")
        if not await verify_password_async(password, user.password_hash):
            LOGINS.labels(outcome="bad_password").inc()
            logger.warning("Login rejected: bad password for user %s", user.id)
            raise UnauthorizedError("Invalid user credentials")
        tokens = self.issue_tokens(user)
        user = await self.store.update_session_token(user.id, tokens.refresh_token, tokens.refresh_expires_at)
        if user is None:
            raise InternalError("Something went wrong while generating refresh and access token")
        LOGINS.labels(outcome="success").inc()
        logger.info("User %s logged in", user.id)
        return LoginResult(user=user, tokens=tokens)

    async def refresh(self, presented: str | None) -> TokenPair:
        presented = (presented or "").strip()
        if not presented:
            REFRESHES.labels(outcome="missing").inc()
            raise UnauthorizedError("unauthorized request")
        claims = verify_session_token(presented, self.config.refresh_token_secret)
        if claims is None:
            REFRESHES.labels(outcome="invalid").inc()
            raise UnauthorizedError("Invalid refresh token")
        user = await self.store.find_by_id(claims.user_id)
        if user is None:
            REFRESHES.labels(outcome="invalid").inc()
            raise UnauthorizedError("Invalid refresh token")
        if not _same_token(presented, user.refresh_token):
            REFRESHES.labels(outcome="reused").inc()
            logger.warning("Refresh rejected: superseded or revoked token for user %s", user.id)
            raise UnauthorizedError(TOKEN_EXPIRED_OR_USED)
        tokens = self.issue_tokens(user)
        swapped = await self.store.rotate_session_token(
            user.id, presented, tokens.refresh_token, tokens.refresh_expires_at
        )
        if not swapped:
            # A concurrent refresh with the same token committed first.
            REFRESHES.labels(outcome="reused").inc()
            logger.warning("Refresh rejected: lost rotation race for user %s", user.id)
            raise UnauthorizedError(TOKEN_EXPIRED_OR_USED)
        REFRESHES.labels(outcome="success").inc()
        logger.info("Session token rotated for user %s", user.id)
        return tokens

    async def logout(self, user_id: int) -> None:
        await self.store.update_session_token(user_id, None)
        logger.info("User %s logged out", user_id)

    async def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        if not new_password:
            raise BadRequestError("newPassword is required")
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise UnauthorizedError("Invalid access token")
        if not await verify_password_async(old_password, user.password_hash):
            raise BadRequestError("Invalid old password")
        await self.store.update_password_hash(user_id, await hash_password_async(new_password))
        logger.info("User %s changed password", user_id)

"""Credential store: the narrow set of user-record reads and writes the auth flow depends on."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, InternalError
from app.models.user import User

logger = logging.getLogger(__name__)


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


class UserStore:
    """Reads always repopulate loaded instances, so a read after one of the
    bulk UPDATEs below sees the new row state."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _one(self, stmt) -> User | None:
        r = await self.session.execute(stmt.execution_options(populate_existing=True))
        return r.scalar_one_or_none()

    async def find_by_identifier(self, username: str | None = None, email: str | None = None) -> User | None:
        """Match on username (case-insensitive) or email; None if neither is given or nothing matches."""
        clauses = []
        if _norm(username):
            clauses.append(func.lower(User.username) == _norm(username))
        if _norm(email):
            clauses.append(func.lower(User.email) == _norm(email))
        if not clauses:
            return None
        return await self._one(select(User).where(or_(*clauses)).limit(1))

    async def find_by_id(self, user_id: int) -> User | None:
        return await self._one(select(User).where(User.id == user_id))

    async def exists(self, username: str, email: str) -> bool:
        return await self.find_by_identifier(username=username, email=email) is not None

    async def create(
        self,
        *,
        username: str,
        email: str,
        full_name: str,
        password_hash: str,
        avatar: str,
        cover_image: str | None = None,
    ) -> User:
        user = User(
            username=_norm(username),
            email=_norm(email),
            full_name=full_name.strip(),
            password_hash=password_hash,
            avatar=avatar,
            cover_image=cover_image,
        )
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.warning("User create IntegrityError: %s", e.orig)
            raise ConflictError("User with email or username already exists") from e
        await self.session.refresh(user)
        return user

    async def _update(self, user_id: int, **values) -> User | None:
        await self.session.execute(
            update(User).where(User.id == user_id).values(**values).execution_options(synchronize_session=False)
        )
        return await self.find_by_id(user_id)

    async def update_session_token(
        self, user_id: int, token: str | None, expires_at: datetime | None = None
    ) -> User | None:
        """Unconditionally set (login) or clear (logout) the stored session token."""
        return await self._update(
            user_id,
            refresh_token=token,
            refresh_token_expires_at=expires_at if token is not None else None,
        )

    async def rotate_session_token(
        self, user_id: int, expected: str, new: str, expires_at: datetime
    ) -> bool:
        """Swap the stored token only if it still equals ``expected``; False when another rotation won."""
        r = await self.session.execute(
            update(User)
            .where(User.id == user_id, User.refresh_token == expected)
            .values(refresh_token=new, refresh_token_expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        return r.rowcount == 1

    async def update_password_hash(self, user_id: int, password_hash: str) -> User | None:
        return await self._update(user_id, password_hash=password_hash)

    async def update_profile(self, user_id: int, full_name: str, email: str) -> User | None:
        try:
            return await self._update(user_id, full_name=full_name.strip(), email=_norm(email))
        except IntegrityError as e:
            logger.warning("User update IntegrityError: %s", e.orig)
            raise ConflictError("Email is already in use") from e

    async def purge_expired_session_tokens(self, now: datetime) -> int:
        """Clear stored session tokens whose expiry has passed; returns the number of records touched."""
        r = await self.session.execute(
            update(User)
            .where(User.refresh_token.is_not(None), User.refresh_token_expires_at < now)
            .values(refresh_token=None, refresh_token_expires_at=None)
            .execution_options(synchronize_session=False)
        )
        return r.rowcount or 0

    async def commit(self) -> None:
        """Persist the unit of work before a response carries its result."""
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.exception("Commit failed")
            await self.session.rollback()
            raise InternalError("Could not persist changes, please retry") from e

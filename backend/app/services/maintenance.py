"""Periodic cleanup of stored session tokens that can no longer verify."""

import logging
from datetime import datetime, timezone

from app.db.session import async_session_maker
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)


async def purge_expired_sessions(now: datetime | None = None) -> int:
    """Clear refresh tokens past their expiry. Returns how many users were reset to no session."""
    now = now or datetime.now(timezone.utc)
    async with async_session_maker() as session:
        cleared = await UserStore(session).purge_expired_session_tokens(now)
        await session.commit()
    if cleared:
        logger.info("Purged %d expired session tokens", cleared)
    return cleared

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.auth_event import AuthEvent


async def record_event(
    session: AsyncSession,
    user_id: int | None,
    event: str,
    request: Request | None = None,
    extra: dict | None = None,
) -> None:
    """Append an auth event in the caller's transaction, tagged with client address and user agent."""
    ip_address = request.client.host if request is not None and request.client is not None else None
    user_agent = request.headers.get("user-agent") if request is not None else None
    session.add(
        AuthEvent(
            user_id=user_id,
            event=event,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:255] or None,
            extra=extra,
        )
    )
    await session.flush()

"""FastAPI dependencies: credential store, session service, current user from the access token."""

import logging
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import UnauthorizedError
from app.core.metrics import GATE_REJECTIONS
from app.core.tokens import verify_access_token
from app.db.session import get_db
from app.schemas.user import UserOut
from app.services.sessions import SessionService
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def get_user_store(session: Annotated[AsyncSession, Depends(get_db)]) -> UserStore:
    return UserStore(session)


def get_session_service(store: Annotated[UserStore, Depends(get_user_store)]) -> SessionService:
    return SessionService(store)


def _presented_access_token(request: Request) -> str:
    token = (request.cookies.get(ACCESS_COOKIE) or "").strip()
    if token:
        return token
    auth_header = request.headers.get("Authorization") or ""
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip()
    return ""


def _reject(message: str) -> UnauthorizedError:
    GATE_REJECTIONS.inc()
    return UnauthorizedError(message)


async def get_current_user(
    request: Request,
    store: Annotated[UserStore, Depends(get_user_store)],
) -> UserOut:
    """Authorize the request from the accessToken cookie or a Bearer header.

    Read-only: does not consult the stored session token, so a logged-out user's
    access token stays usable until it expires.
    """
    token = _presented_access_token(request)
    if not token:
        raise _reject("Unauthorized request")
    claims = verify_access_token(token, settings.access_token_secret)
    if claims is None:
        raise _reject("Invalid access token")
    user = await store.find_by_id(claims.user_id)
    if user is None:
        logger.info("Access token for missing user %s", claims.user_id)
        raise _reject("Invalid access token")
    identity = UserOut.model_validate(user)
    request.state.user = identity
    return identity

"""User auth endpoints: register, login, logout, refresh-token, change-password, current-user, update-account.

Every write path commits through ``UserStore.commit`` before returning, so a
token handed to the client is already the stored one.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from app.api.deps import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_current_user,
    get_session_service,
    get_user_store,
)
from app.config import settings
from app.core.auth import hash_password_async
from app.core.errors import BadRequestError, ConflictError, UnauthorizedError, api_response
from app.core.rate_limit import auth_rate_limit, limiter
from app.schemas.user import (
    ChangePasswordBody,
    LoginBody,
    RefreshBody,
    RegisterBody,
    UpdateAccountBody,
    UserOut,
)
from app.services.audit import record_event
from app.services.sessions import SessionService, TokenPair
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


def _cookie_options() -> dict:
    # Credential cookies are always httpOnly and secure.
    return {"httponly": True, "secure": True, "samesite": settings.cookie_samesite}


def _set_token_cookies(response: Response, tokens: TokenPair) -> None:
    opts = _cookie_options()
    response.set_cookie(ACCESS_COOKIE, tokens.access_token, max_age=settings.access_token_ttl_seconds, **opts)
    response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, max_age=settings.refresh_token_ttl_seconds, **opts)


def _clear_token_cookies(response: Response) -> None:
    opts = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **opts)
    response.delete_cookie(REFRESH_COOKIE, **opts)


@router.post(
    "/register",
    status_code=201,
    summary="Register a new user",
    responses={
        400: {"description": "A required field or the avatar is missing"},
        409: {"description": "Username or email already registered"},
    },
)
async def register(
    request: Request,
    store: Annotated[UserStore, Depends(get_user_store)],
    body: RegisterBody,
) -> dict:
    if any(not (field or "").strip() for field in (body.full_name, body.email, body.username, body.password)):
        raise BadRequestError("All fields are required")
    if not (body.avatar or "").strip():
        raise BadRequestError("Avatar file is required")
    if await store.exists(body.username, body.email):
        raise ConflictError("User with email or username already exists")
    user = await store.create(
        username=body.username,
        email=body.email,
        full_name=body.full_name,
        password_hash=await hash_password_async(body.password),
        avatar=body.avatar.strip(),
        cover_image=body.cover_image or None,
    )
    await record_event(store.session, user.id, "register", request)
    await store.commit()
    logger.info("Registered user %s", user.id)
    return api_response(201, UserOut.model_validate(user), "User registered successfully")


@router.post(
    "/login",
    summary="Login with username or email and password",
    responses={
        400: {"description": "username/email or password missing"},
        401: {"description": "Invalid user credentials"},
        404: {"description": "User does not exist"},
        429: {"description": "Too many attempts"},
    },
)
@limiter.limit(auth_rate_limit)
async def login(
    request: Request,
    response: Response,
    sessions: Annotated[SessionService, Depends(get_session_service)],
    body: LoginBody,
) -> dict:
    result = await sessions.login(body.password or "", username=body.username, email=body.email)
    await record_event(sessions.store.session, result.user.id, "login", request)
    await sessions.store.commit()
    _set_token_cookies(response, result.tokens)
    data = {
        "user": UserOut.model_validate(result.user),
        "accessToken": result.tokens.access_token,
        "refreshToken": result.tokens.refresh_token,
    }
    return api_response(200, data, "User logged in successfully")


@router.post(
    "/logout",
    summary="Revoke the session token and clear auth cookies",
    responses={401: {"description": "Not authenticated"}},
)
async def logout(
    request: Request,
    response: Response,
    sessions: Annotated[SessionService, Depends(get_session_service)],
    user: Annotated[UserOut, Depends(get_current_user)],
) -> dict:
    await sessions.logout(user.id)
    await record_event(sessions.store.session, user.id, "logout", request)
    await sessions.store.commit()
    _clear_token_cookies(response)
    return api_response(200, {}, "User logged out")


@router.post(
    "/refresh-token",
    summary="Exchange the session token for a new access and session token (rotation)",
    responses={
        401: {"description": "Refresh token missing, invalid, expired or already used"},
        429: {"description": "Too many attempts"},
    },
)
@limiter.limit(auth_rate_limit)
async def refresh_token(
    request: Request,
    response: Response,
    sessions: Annotated[SessionService, Depends(get_session_service)],
    body: RefreshBody | None = None,
) -> dict:
    presented = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    tokens = await sessions.refresh(presented)
    await sessions.store.commit()
    _set_token_cookies(response, tokens)
    data = {"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token}
    return api_response(200, data, "Access token refreshed")


@router.post(
    "/change-password",
    summary="Change password of the current user",
    responses={
        400: {"description": "Invalid old password"},
        401: {"description": "Not authenticated"},
    },
)
async def change_password(
    request: Request,
    sessions: Annotated[SessionService, Depends(get_session_service)],
    user: Annotated[UserOut, Depends(get_current_user)],
    body: ChangePasswordBody,
) -> dict:
    await sessions.change_password(user.id, body.old_password, body.new_password)
    await record_event(sessions.store.session, user.id, "change_password", request)
    await sessions.store.commit()
    return api_response(200, {}, "Password changed successfully")


@router.get(
    "/current-user",
    summary="Get current authenticated user",
    responses={401: {"description": "Not authenticated"}},
)
async def current_user(user: Annotated[UserOut, Depends(get_current_user)]) -> dict:
    return api_response(200, user, "User fetched successfully")


@router.patch(
    "/update-account",
    summary="Update full name and email of the current user",
    responses={
        400: {"description": "fullName and email are required"},
        401: {"description": "Not authenticated"},
        409: {"description": "Email already in use"},
    },
)
async def update_account(
    request: Request,
    store: Annotated[UserStore, Depends(get_user_store)],
    user: Annotated[UserOut, Depends(get_current_user)],
    body: UpdateAccountBody,
) -> dict:
    if not (body.full_name or "").strip() or not (body.email or "").strip():
        raise BadRequestError("All fields are required")
    other = await store.find_by_identifier(email=body.email)
    if other is not None and other.id != user.id:
        raise ConflictError("Email is already in use")
    updated = await store.update_profile(user.id, body.full_name, body.email)
    if updated is None:
        raise UnauthorizedError("Invalid access token")
    await record_event(store.session, user.id, "update_account", request)
    await store.commit()
    return api_response(200, UserOut.model_validate(updated), "Account details updated successfully")

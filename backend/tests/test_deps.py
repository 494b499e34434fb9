"""Tests for the authorization gate dependency."""

import pytest
from starlette.requests import Request

from app.api.deps import ACCESS_COOKIE, get_current_user
from app.core.errors import UnauthorizedError
from app.services.user_store import UserStore


def _request(headers: list[tuple[bytes, bytes]] | None = None) -> Request:
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers or []})


@pytest.mark.asyncio
async def test_gate_attaches_user_to_request_state(session, alice, alice_access_token: str):
    request = _request([(b"authorization", f"Bearer {alice_access_token}".encode())])
    user = await get_current_user(request, UserStore(session))
    assert user.id == alice.id
    assert request.state.user.id == alice.id
    assert request.state.user.username == "alice"


@pytest.mark.asyncio
async def test_gate_reads_access_cookie(session, alice, alice_access_token: str):
    request = _request([(b"cookie", f"{ACCESS_COOKIE}={alice_access_token}".encode())])
    await get_current_user(request, UserStore(session))
    assert request.state.user.email == alice.email


@pytest.mark.asyncio
async def test_gate_leaves_state_empty_on_rejection(session, alice):
    request = _request([(b"authorization", b"Bearer not-a-jwt")])
    with pytest.raises(UnauthorizedError):
        await get_current_user(request, UserStore(session))
    assert getattr(request.state, "user", None) is None

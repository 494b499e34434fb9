"""Pytest configuration and shared fixtures for API tests."""

import os
import tempfile
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Configure env before app imports so settings/engine pick it up
_DB_PATH = os.path.join(tempfile.gettempdir(), f"videotube_test_{os.getpid()}.db")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DB_PATH}")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "15")
os.environ.setdefault("REFRESH_TOKEN_EXPIRE_DAYS", "10")
os.environ.setdefault("RATE_LIMIT_DEFAULT", "10000/minute")
os.environ.setdefault("RATE_LIMIT_AUTH", "10000/minute")

from app.config import settings
from app.core.auth import hash_password
from app.core.tokens import AccessIdentity, issue_access_token
from app.db.base import Base
from app.db.session import async_session_maker, engine, init_db
from app.main import app
from app.models.user import User

ALICE_PASSWORD = "secret1"


@pytest.fixture(scope="session", autouse=True)
def _remove_test_db():
    yield
    if os.path.exists(_DB_PATH):
        os.remove(_DB_PATH)


@pytest_asyncio.fixture
async def db():
    """Fresh tables for every test."""
    await init_db()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def session(db):
    async with async_session_maker() as s:
        yield s


@pytest_asyncio.fixture
async def client(db):
    # https so the client cookie jar sends back secure cookies
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="https://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def alice(db) -> User:
    """Committed user alice / alice@x.com / secret1."""
    async with async_session_maker() as s:
        user = User(
            username="alice",
            email="alice@x.com",
            full_name="Alice Liddell",
            avatar="https://cdn.example.com/alice.png",
            password_hash=hash_password(ALICE_PASSWORD),
        )
        s.add(user)
        await s.commit()
        await s.refresh(user)
        return user


@pytest.fixture
def alice_access_token(alice: User) -> str:
    return issue_access_token(
        AccessIdentity(alice.id, alice.email, alice.username, alice.full_name),
        settings.access_token_secret,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


@pytest.fixture
def auth_headers(alice_access_token: str) -> dict:
    return {"Authorization": f"Bearer {alice_access_token}"}

"""Shared test fixtures for the Member Map server and client tests."""

import os
import uuid
from typing import Optional

import pytest

# Set test environment before importing app
os.environ["MAP_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["MAP_SECRET_KEY"] = "test-secret-key-for-testing-only-0123456789"
os.environ["MAP_COOKIE_SECURE"] = "false"
os.environ["MAP_LOG_FORMAT"] = "text"
os.environ["MAP_LOG_LEVEL"] = "warning"

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from app.core.auth import CSRF_COOKIE, hash_password  # noqa: E402
from app.core.database import get_session  # noqa: E402
from app.core.middleware import CSRF_HEADER  # noqa: E402
from app.main import app  # noqa: E402
from app.models.branch import Branch  # noqa: E402
from app.models.member import Member  # noqa: E402
from app.models.user import User  # noqa: E402

DEFAULT_PASSWORD = "secret-pass"


# =============================================================================
# Fake Redis (JWT revocation list)
# =============================================================================

class FakeRedis:
    """The handful of Redis commands the revocation list uses, kept in a dict."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def exists(self, *keys: str) -> int:
        return sum(1 for k in keys if k in self.store)

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        pass


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()

    async def _get_redis():
        return fake

    monkeypatch.setattr("app.core.auth.get_redis", _get_redis)
    return fake


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    """A session for service-level tests."""
    async with session_factory() as session:
        yield session


class Seeder:
    """Creates rows in their own committed transactions."""

    def __init__(self, session_factory):
        self._factory = session_factory

    async def _save(self, obj):
        async with self._factory() as session:
            session.add(obj)
            await session.commit()
        return obj

    async def branch(self, name: str = "Sapporo", **fields) -> Branch:
        fields.setdefault("region", "Hokkaido")
        fields.setdefault("latitude", 43.06)
        fields.setdefault("longitude", 141.35)
        return await self._save(Branch(name=name, **fields))

    async def member(self, display_name: str = "Member", **fields) -> Member:
        fields.setdefault("latitude", 43.0)
        fields.setdefault("longitude", 141.0)
        return await self._save(Member(display_name=display_name, **fields))

    async def user(self, email: str, password: str = DEFAULT_PASSWORD) -> User:
        return await self._save(User(email=email.lower(), password_hash=hash_password(password)))

    async def user_with_member(
        self,
        email: str,
        *,
        password: str = DEFAULT_PASSWORD,
        display_name: Optional[str] = None,
        **fields,
    ) -> tuple[User, Member]:
        user = await self.user(email, password)
        member = await self.member(display_name or email.split("@")[0], user_id=user.id, **fields)
        return user, member

    async def get_member(self, member_id: uuid.UUID) -> Member:
        async with self._factory() as session:
            return await session.get(Member, member_id)


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


# =============================================================================
# HTTP client against the ASGI app
# =============================================================================

@pytest.fixture
def override_session(session_factory):
    async def _get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def transport(override_session, fake_redis):
    return ASGITransport(app=app)


@pytest.fixture
async def client(transport):
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _sign_in(client: AsyncClient, email: str, password: str = DEFAULT_PASSWORD):
    response = await client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response


def _csrf(client: AsyncClient) -> dict[str, str]:
    return {CSRF_HEADER: client.cookies.get(CSRF_COOKIE)}


@pytest.fixture
def sign_in():
    """Sign a client in with email and password; cookies land on the client."""
    return _sign_in


@pytest.fixture
def csrf():
    """The double-submit header for a signed-in client."""
    return _csrf

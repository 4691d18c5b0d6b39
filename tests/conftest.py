"""
Shared test fixtures for the Garage Devices test suite.

Async throughout (aiosqlite + AsyncSession).
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
# Use async sqlite driver
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from garage.api.v1.deps import get_db
from garage.core.security import create_access_token, get_password_hash
from garage.db.base import Base
from garage.main import app
from garage.models.device import Device
from garage.models.user import User

PASSWORD = "Passw0rd!"

# A dedicated engine for the whole session; app.db.session's engine is never used
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Users & auth ────────────────────────────────────────────────────
def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def make_user(db_session: AsyncSession):
    async def _make(email: str, user_name: str = "tester", password: str = PASSWORD) -> User:
        user = User(
            user_name=user_name,
            email=email,
            hashed_password=get_password_hash(password),
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest.fixture
async def alice(make_user) -> User:
    return await make_user("alice@example.com", "alice")


@pytest.fixture
async def bob(make_user) -> User:
    return await make_user("bob@example.com", "bob")


@pytest.fixture
def alice_headers(alice: User) -> dict[str, str]:
    return auth_headers(alice)


@pytest.fixture
def bob_headers(bob: User) -> dict[str, str]:
    return auth_headers(bob)


# ── Devices ─────────────────────────────────────────────────────────
@pytest.fixture
def make_device(async_client: AsyncClient):
    """Create a device through the API and return its JSON representation."""

    async def _make(headers: dict[str, str], **fields) -> dict:
        body = {"device": "Pixel 8", "os": "android", "manufacturer": "Google"}
        body.update(fields)
        resp = await async_client.post("/api/v1/devices", json=body, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make


@pytest.fixture
def seed_devices(db_session: AsyncSession):
    """Bulk-insert devices owned by *owner* straight into the database."""

    async def _seed(owner: User, count: int, **fields) -> list[Device]:
        devices = [
            Device(
                user_id=owner.id,
                device=fields.get("device", f"Device {i:02d}"),
                os=fields.get("os", "android"),
                manufacturer=fields.get("manufacturer", "Acme"),
                is_checkedout=fields.get("is_checkedout", False),
            )
            for i in range(count)
        ]
        db_session.add_all(devices)
        await db_session.commit()
        return devices

    return _seed


@pytest.fixture
def session_factory() -> async_sessionmaker:
    """A second, independent session source for concurrent-writer scenarios."""
    return TestingSessionLocal

"""
Pytest fixtures for test database, client, members and sessions.

Each test gets a fresh SQLite file (or TEST_DATABASE_URL, e.g. a throwaway
PostgreSQL database) with the schema created up front and dropped after.
Every HTTP request opens its own session, like production, so concurrent
requests in one test really use separate connections.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from gym_booking.main import app
from gym_booking.db.base import Base
from gym_booking.db.session import get_db
from gym_booking.core.logging import setup_logging
from gym_booking.core.security import create_access_token, hash_password
from gym_booking.models.user import User
from gym_booking.models.session import TrainingSession
from gym_booking.services.pricing import initial_benefits
from gym_booking.services.schedule import format_session_time

TEST_PASSWORD = "testpassword123"
# bcrypt is slow on purpose; hash once for every fixture member
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)

setup_logging()


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'gym_booking_test.db'}"


@pytest_asyncio.fixture
async def session_factory(database_url: str):
    """Create tables, hand out a sessionmaker, then drop tables for isolation."""
    engine = create_async_engine(database_url, echo=False, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used by fixtures and service-level tests."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own test database session."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(
    db: AsyncSession,
    username: str,
    membership_type: str = "standard",
    role: str = "member",
    **overrides,
) -> User:
    fields = dict(
        email=f"{username}@example.com",
        username=username,
        name=username.title(),
        hashed_password=TEST_PASSWORD_HASH,
        membership_type=membership_type,
        membership_status="active",
        role=role,
        **initial_benefits(membership_type),
    )
    fields.update(overrides)
    user = User(**fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession):
    """Factory: await make_user("name", membership_type="elite", role="trainer", ...)"""

    async def _make(username: str, membership_type: str = "standard", role: str = "member", **overrides) -> User:
        return await _create_user(db_session, username, membership_type, role, **overrides)

    return _make


@pytest_asyncio.fixture
async def test_user(make_user) -> User:
    """Standard-tier member."""
    return await make_user("testuser")


@pytest_asyncio.fixture
async def premium_member(make_user) -> User:
    return await make_user("premium", membership_type="premium")


@pytest_asyncio.fixture
async def elite_member(make_user) -> User:
    return await make_user("elite", membership_type="elite")


@pytest_asyncio.fixture
async def admin_user(make_user) -> User:
    return await make_user("admin", membership_type="elite", role="admin")


@pytest_asyncio.fixture
async def trainer_user(make_user) -> User:
    return await make_user("trainer", role="trainer")


@pytest.fixture
def headers_for():
    """Build bearer headers for any fixture member."""
    return auth_headers_for


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token for the standard member."""
    return auth_headers_for(test_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest_asyncio.fixture
async def trainer_headers(trainer_user: User) -> dict:
    return auth_headers_for(trainer_user)


@pytest_asyncio.fixture
async def make_session(db_session: AsyncSession):
    """
    Factory for sessions starting `starts_in` from now (default one day).
    Date and time strings are derived from starts_at in UTC, the default
    gym timezone.
    """

    async def _make(
        starts_in: timedelta = timedelta(days=1),
        name: str = "Morning HIIT",
        type: str = "group",
        max_capacity: int = 10,
        price: float = 20.0,
        **overrides,
    ) -> TrainingSession:
        starts_at = (datetime.now(timezone.utc) + starts_in).replace(second=0, microsecond=0)
        fields = dict(
            name=name,
            type=type,
            date=starts_at.date(),
            time=format_session_time(starts_at.time()),
            starts_at=starts_at,
            max_capacity=max_capacity,
            current_bookings=0,
            price=price,
        )
        fields.update(overrides)
        session = TrainingSession(**fields)
        db_session.add(session)
        await db_session.commit()
        await db_session.refresh(session)
        return session

    return _make


@pytest_asyncio.fixture
async def group_session(make_session) -> TrainingSession:
    """Group class, 10 spots, $20."""
    return await make_session()


@pytest_asyncio.fixture
async def private_session(make_session) -> TrainingSession:
    return await make_session(name="1:1 Coaching", type="private-coach", max_capacity=1, price=60.0)


@pytest_asyncio.fixture
async def full_session(make_session) -> TrainingSession:
    return await make_session(name="Packed Spin", max_capacity=5, current_bookings=5)

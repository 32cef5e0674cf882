"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test gets its own transaction that rolls back after the test.
- The database comes from ``TEST_DATABASE_URL``; by default a local SQLite
  file through aiosqlite, so no server is needed.
"""

import os
import uuid
from collections.abc import AsyncGenerator
from datetime import date, timedelta
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from stayfinder.auth.jwt import create_token_pair
from stayfinder.auth.passwords import hash_password
from stayfinder.database import Base, get_db
from stayfinder.main import app
from stayfinder.models.listing import Listing
from stayfinder.models.user import User

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_stayfinder.db")
TEST_PASSWORD = "testpass123"

# Low bcrypt cost keeps fixture setup fast.
_TEST_BCRYPT_ROUNDS = 4


def future_dates(offset_start: int = 30, nights: int = 5) -> tuple[date, date]:
    """Return a (check_in, check_out) pair safely in the future."""
    check_in = date.today() + timedelta(days=offset_start)
    return check_in, check_in + timedelta(days=nights)


def bearer(user: User) -> dict[str, str]:
    tokens = create_token_pair(str(user.id), user.role)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


# ---------------------------------------------------------------------------
# Session-scoped: create / drop all tables once per test session
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_engine():
    """Create a session-scoped engine tied to the session event loop."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def setup_test_db(test_engine):
    """Create all tables at the start of the session and drop them at the end."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Per-test: transactional rollback for isolation
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(test_engine, setup_test_db) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session wrapped in a transaction that always rolls back."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to use the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: users
# ---------------------------------------------------------------------------


async def make_user(db_session: AsyncSession, role: str = "guest", **overrides) -> User:
    """Insert a user directly in the DB and return it."""
    unique = uuid.uuid4().hex[:8]
    fields = {
        "email": f"{role}-{unique}@test.com",
        "hashed_password": hash_password(TEST_PASSWORD, rounds=_TEST_BCRYPT_ROUNDS),
        "first_name": role.capitalize(),
        "last_name": "Tester",
        "role": role,
        "is_active": True,
    }
    fields.update(overrides)
    user = User(**fields)
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def guest_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "guest")


@pytest_asyncio.fixture
async def other_guest(db_session: AsyncSession) -> User:
    return await make_user(db_session, "guest")


@pytest_asyncio.fixture
async def host_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "host")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin")


@pytest_asyncio.fixture
async def guest_headers(guest_user: User) -> dict[str, str]:
    return bearer(guest_user)


@pytest_asyncio.fixture
async def other_guest_headers(other_guest: User) -> dict[str, str]:
    return bearer(other_guest)


@pytest_asyncio.fixture
async def host_headers(host_user: User) -> dict[str, str]:
    return bearer(host_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict[str, str]:
    return bearer(admin_user)


# ---------------------------------------------------------------------------
# Convenience fixtures: listings
# ---------------------------------------------------------------------------


async def make_listing(db_session: AsyncSession, host: User, **overrides) -> Listing:
    """Insert an active listing (price 100, up to 4 guests) unless overridden."""
    fields = {
        "host_id": host.id,
        "title": "Test Loft Downtown",
        "description": "A bright test loft used by the automated test suite.",
        "listing_type": "apartment",
        "address": "1 Test Street",
        "city": "Lisbon",
        "state": "Lisboa",
        "country": "Portugal",
        "price": Decimal("100.00"),
        "capacity_guests": 4,
        "bedrooms": 2,
        "bathrooms": 1,
        "beds": 2,
        "amenities": ["wifi", "kitchen"],
        "images": [{"url": "https://img.test/loft.jpg", "caption": None, "is_primary": True}],
        "status": "active",
    }
    fields.update(overrides)
    listing = Listing(**fields)
    db_session.add(listing)
    await db_session.flush()
    await db_session.refresh(listing)
    return listing


@pytest_asyncio.fixture
async def listing(db_session: AsyncSession, host_user: User) -> Listing:
    return await make_listing(db_session, host_user)

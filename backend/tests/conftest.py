"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh SQLite file database (set TEST_DATABASE_URL to run
against PostgreSQL instead). A file database is used rather than :memory: so
that concurrent reservations run on separate connections, the same way they
do in production.
"""

import os
from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.db.session import Database, get_db
from app.core.security import create_access_token, hash_password
from app.models.user import User, ROLE_ADMIN
from app.models.movie import Movie
from app.models.showtime import Showtime, Seat


@pytest_asyncio.fixture(scope="function")
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Create tables, yield the storage handle, then drop tables for isolation."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    db = Database(url, lock_timeout_ms=10000)
    await db.drop_all()
    await db.create_all()

    yield db

    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(database: Database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the storage handle with the test database."""
    app.dependency_overrides[get_db] = lambda: database

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(database: Database, email: str, username: str, role: str = "USER") -> User:
    user = User(
        email=email,
        username=username,
        hashed_password=hash_password("testpassword123"),
        role=role,
    )
    async with database.transaction() as tx:
        tx.add(user)
        await tx.flush()
        await tx.refresh(user)
    return user


def _headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest_asyncio.fixture
async def test_user(database: Database) -> User:
    """Create a test user in the database."""
    return await _create_user(database, "test@example.com", "testuser")


@pytest_asyncio.fixture
async def other_user(database: Database) -> User:
    return await _create_user(database, "other@example.com", "otheruser")


@pytest_asyncio.fixture
async def admin_user(database: Database) -> User:
    return await _create_user(database, "admin@example.com", "adminuser", role=ROLE_ADMIN)


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return _headers(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return _headers(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return _headers(admin_user)


async def create_showtime(
    database: Database,
    admin: User,
    movie_name: str = "Test Movie",
    seats: tuple[str, ...] = ("A1", "A2", "A3"),
    starts_in: timedelta = timedelta(days=30),
    price: float = 10.0,
) -> Showtime:
    start = datetime.now(timezone.utc) + starts_in
    showtime = Showtime(
        start_time=start,
        end_time=start + timedelta(hours=2),
        capacity=max(len(seats), 1),
        price=price,
        seats=[Seat(seat_number=number, row=number[0]) for number in seats],
    )
    movie = Movie(
        name=movie_name,
        description="A test movie",
        image_url="https://example.com/poster.jpg",
        created_by=admin.id,
        showtimes=[showtime],
    )
    async with database.transaction() as tx:
        tx.add(movie)
        await tx.flush()
    return showtime


@pytest_asyncio.fixture
async def test_showtime(database: Database, admin_user: User) -> Showtime:
    """A showtime 30 days out with seats A1, A2, A3."""
    return await create_showtime(database, admin_user)


@pytest_asyncio.fixture
async def showtime_factory(database: Database, admin_user: User):
    """Build extra showtimes owned by the admin user."""
    async def _factory(**kwargs) -> Showtime:
        return await create_showtime(database, admin_user, **kwargs)
    return _factory

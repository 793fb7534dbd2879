"""
Centralized Test Configuration.

Each test gets a fresh in-memory SQLite database and an in-memory Redis
stand-in; users are registered through the API.
"""

import fnmatch
import itertools
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from fleet_rental.app.main import app
from fleet_rental.app.db.session import get_db, Base
from fleet_rental.app.core.security import get_password_hash
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.models.user import User
import fleet_rental.app.core.redis_client as redis_client_module
from fleet_rental.tests.helpers import bearer, future

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "secret123"


class MockRedis:
    """Just enough of redis.asyncio.Redis for token revocation, rate limiting and the response cache."""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unavailable")

    async def ping(self):
        return not self.fail

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        return True

    async def delete(self, *keys):
        self._check()
        deleted = 0
        for key in keys:
            if key in self.store:
                del self.store[key]
                deleted += 1
        return deleted

    async def incr(self, key):
        self._check()
        self.store[key] = int(self.store.get(key, 0)) + 1
        return self.store[key]

    async def expire(self, key, seconds):
        self._check()
        self.ttls[key] = seconds
        return key in self.store

    async def ttl(self, key):
        self._check()
        if key not in self.store:
            return -2
        return self.ttls.get(key, -1)

    async def exists(self, key):
        self._check()
        return 1 if key in self.store else 0

    async def scan_iter(self, match=None):
        self._check()
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def flushdb(self):
        self.store = {}


@pytest.fixture
def mock_redis(monkeypatch):
    redis = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", redis)
    return redis


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Session for fixture data creation and direct assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory, mock_redis):
    """Async client for testing."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    """Register a user through the API; returns id, email, token and headers."""
    counter = itertools.count(1)

    async def _make(role: str = "customer", **extra) -> dict:
        n = next(counter)
        email = extra.pop("email", f"{role}{n}@example.com")
        payload = {"name": f"{role.title()} {n}", "email": email, "password": PASSWORD, "role": role}
        if role == "driver":
            payload["license_number"] = f"DL-{n:05d}"
        payload.update(extra)

        response = await client.post("/v1/auth/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()
        return {
            "id": data["user_id"],
            "email": email,
            "token": data["access_token"],
            "headers": bearer(data["access_token"]),
        }

    return _make


@pytest.fixture
async def customer(make_user):
    return await make_user("customer")


@pytest.fixture
async def other_customer(make_user):
    return await make_user("customer")


@pytest.fixture
async def owner(make_user):
    return await make_user("owner", business_name="Acme Rentals")


@pytest.fixture
async def other_owner(make_user):
    return await make_user("owner")


@pytest.fixture
async def driver(make_user):
    return await make_user("driver")


@pytest.fixture
async def admin(client, db_session):
    """Admins cannot self-register, so the row is inserted directly."""
    user = User(
        name="Admin",
        email="admin@example.com",
        hashed_password=get_password_hash(PASSWORD),
        role=UserRole.ADMIN,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()

    response = await client.post("/v1/auth/login", json={"email": "admin@example.com", "password": PASSWORD})
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]
    return {"id": user.id, "email": user.email, "token": token, "headers": bearer(token)}


@pytest.fixture
def make_vehicle(client, owner):
    counter = itertools.count(1)

    async def _make(owner_user: dict = None, **overrides) -> dict:
        n = next(counter)
        payload = {
            "make": "Toyota",
            "model": "Corolla",
            "year": 2022,
            "registration_number": f"ka-01-ab-{n:04d}",
            "vehicle_type": "sedan",
            "fuel_type": "petrol",
            "passenger_capacity": 5,
            "city": "Bangalore",
            "price_per_day": 100.0,
        }
        payload.update(overrides)
        response = await client.post(
            "/v1/vehicles", json=payload, headers=(owner_user or owner)["headers"]
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
async def vehicle(make_vehicle):
    return await make_vehicle()


@pytest.fixture
def book(client, customer):
    """Create a booking through the API and return the raw response."""
    async def _book(vehicle_id: int, start: datetime = None, end: datetime = None, user: dict = None, **extra):
        start = start or future(days=2)
        end = end or start + timedelta(days=3)
        payload = {
            "vehicle_id": vehicle_id,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "pickup_location": {"address": "1 MG Road", "city": "Bangalore"},
        }
        payload.update(extra)
        return await client.post("/v1/bookings", json=payload, headers=(user or customer)["headers"])

    return _book

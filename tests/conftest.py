# tests/conftest.py
"""Shared fixtures: in-memory SQLite, an in-memory async Redis double and a seeded tenant"""

import fnmatch
import os
import time

# Must be set before salon_api.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.pop("HCAPTCHA_SECRET_KEY", None)
os.environ.pop("RESEND_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from salon_api import rate_limiter
from salon_api.auth import create_hashed_api_key
from salon_api.database import Base, get_db
from salon_api.main import app
from salon_api.models import ApiKey, OpeningHours, Organisation, Treatment, TreatmentCategory
from salon_api.redis_connection import RedisConnectionManager


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the cache, limiter and duplicate guard"""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.expiry: dict[str, float] = {}

    def _purge(self, key):
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self.store.pop(key, None)
            self.expiry.pop(key, None)

    async def ping(self):
        return True

    async def info(self):
        return {"redis_version": "7.2.0", "used_memory_human": "1M", "connected_clients": 1}

    async def aclose(self):
        return None

    async def get(self, key):
        self._purge(key)
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.expiry[key] = time.monotonic() + ttl
        return True

    async def set(self, key, value, nx=False, ex=None):
        self._purge(key)
        if nx and key in self.store:
            return None
        self.store[key] = value
        if ex:
            self.expiry[key] = time.monotonic() + ex
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def keys(self, pattern):
        for key in list(self.store):
            self._purge(key)
        return [k for k in self.store if fnmatch.fnmatchcase(k, pattern)]

    async def incr(self, key):
        self._purge(key)
        value = int(self.store.get(key, "0")) + 1
        self.store[key] = str(value)
        return value

    async def expire(self, key, seconds):
        self.expiry[key] = time.monotonic() + seconds
        return True

    async def ttl(self, key):
        deadline = self.expiry.get(key)
        if deadline is None:
            return -1
        return max(0, int(deadline - time.monotonic()))


class UnreachableRedis(FakeRedis):
    """Every command fails as if the server went away"""

    async def ping(self):
        raise RedisConnectionError("Connection refused")


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_manager(fake_redis):
    return RedisConnectionManager("redis://cache.test:6379", client_factory=lambda url: fake_redis)


@pytest.fixture
def down_redis_manager():
    return RedisConnectionManager("redis://cache.test:6379", client_factory=lambda url: UnreachableRedis())


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def seeded(db_session):
    """One organisation with a 30-minute treatment, 09:00-17:00 every day and an API key"""
    organisation = Organisation(name="Diva Salon", contact_email="owner@divasalon.co.uk")
    db_session.add(organisation)
    db_session.commit()

    category = TreatmentCategory(organisation_id=organisation.id, name="Nails")
    db_session.add(category)
    db_session.commit()

    treatment = Treatment(
        organisation_id=organisation.id,
        category_id=category.id,
        name="Gel Manicure",
        price=45.0,
        duration_in_minutes=30,
        show_on_web=True,
    )
    db_session.add(treatment)
    for day in range(7):
        db_session.add(
            OpeningHours(organisation_id=organisation.id, day=day, opens_at="09:00", closes_at="17:00")
        )

    created = create_hashed_api_key()
    db_session.add(
        ApiKey(key_id=created.key_id, hashed_key=created.hashed_key, organisation_id=organisation.id)
    )
    db_session.commit()

    return {
        "organisation": organisation,
        "category": category,
        "treatment": treatment,
        "api_key": created.full_key,
        "key_id": created.key_id,
    }


@pytest.fixture
def auth_headers(seeded):
    return {"x-api-key": seeded["api_key"]}


def _make_client(db_session, manager):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.redis = manager
    rate_limiter.memory_store.clear()
    return TestClient(app)


@pytest.fixture
def client(db_session, redis_manager):
    with _make_client(db_session, redis_manager) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.redis = None


@pytest.fixture
def client_without_redis(db_session, down_redis_manager):
    with _make_client(db_session, down_redis_manager) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.redis = None


def drain(test_client: TestClient) -> None:
    """Run every queued background cache write/invalidation"""
    test_client.portal.call(app.state.dispatcher.drain)

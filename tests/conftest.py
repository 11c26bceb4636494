from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from glam import models  # noqa: F401
from glam.cache import QueryCache
from glam.config import settings
from glam.db import get_session
from glam.deps import get_cache, get_today
from glam.main import app
from glam.routers.payments_routes import get_poll_sleep

# a Wednesday (day_of_week 3)
TODAY = date(2026, 10, 14)


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database for each test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def test_db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(scope="function")
def cache():
    return QueryCache(ttl_seconds=300)


@pytest.fixture(scope="function")
def sleeps():
    """Delays requested by the payment poller, in order"""
    return []


@pytest.fixture(scope="function")
def client(engine, cache, sleeps):
    """Test client wired to the test database, cache and a fake clock"""
    def override_get_session():
        with Session(engine) as session:
            yield session

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_today] = lambda: TODAY
    app.dependency_overrides[get_poll_sleep] = lambda: fake_sleep
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sadad_credentials(monkeypatch):
    monkeypatch.setattr(settings, "SADAD_MERCHANT_ID", "7654321")
    monkeypatch.setattr(settings, "SADAD_SECRET_KEY", "test-secret")
    return settings


def signup(client, email, role, full_name=None):
    response = client.post(
        "/users",
        json={"email": email, "password": "password123", "role": role, "full_name": full_name},
    )
    assert response.status_code == 201, response.text
    user = response.json()

    response = client.post("/auth/login", data={"username": email, "password": "password123"})
    assert response.status_code == 200, response.text
    user["headers"] = {"Authorization": f"Bearer {response.json()['access_token']}"}
    return user


@pytest.fixture
def artist(client):
    return signup(client, "layla@example.com", "artist", "Layla")


@pytest.fixture
def customer(client):
    return signup(client, "noor@example.com", "customer", "Noor")


def week(changes=None):
    """Seven working-hour entries; ``changes`` maps day_of_week to a partial entry."""
    changes = changes or {}
    hours = []
    for day in range(7):
        entry = {"day_of_week": day, "is_working": True, "start_time": "09:00", "end_time": "18:00"}
        entry.update(changes.get(day, {}))
        hours.append(entry)
    return {"hours": hours}

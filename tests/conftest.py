# tests/conftest.py
# Shared fixtures: in-memory database, frozen clock, tracker and API client

import os

# Configure before designtrack modules read the environment
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from designtrack.models import Base
from designtrack.gateway import SessionGateway
from designtrack.tracker import ProjectTracker, TrackerContext

T0 = datetime(2026, 3, 2, 8, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, **kwargs):
        self.now = self.now + timedelta(seconds=seconds, **kwargs)
        return self.now

    def set(self, instant: datetime):
        self.now = instant
        return self.now


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway(db):
    return SessionGateway(db)


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def tracker(gateway, clock, notifications):
    return ProjectTracker(gateway, clock=clock, notifier=notifications.append)


@pytest.fixture
def ctx():
    return TrackerContext(user_id=1)


@pytest.fixture
def app(session_factory, clock):
    from designtrack.main import app
    from designtrack.database import get_db
    from designtrack.dependencies import ContextRegistry, get_clock

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.state.contexts = ContextRegistry()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def manager_headers(client):
    response = client.post("/api/auth/setup", data={
        "username": "gestor",
        "password": "gestor-pass",
        "full_name": "Ana Gestora"
    })
    assert response.status_code == 201
    # Rely on explicit bearer headers so several users can share one client
    client.cookies.clear()
    return auth_headers(response.json()["access_token"])


@pytest.fixture
def designer_headers(client, manager_headers):
    def make(username: str = "projetista", full_name: str = "Bruno Projetista"):
        created = client.post("/api/users/", json={
            "username": username,
            "password": "designer-pass",
            "full_name": full_name,
            "role": "designer"
        }, headers=manager_headers)
        assert created.status_code == 201
        login = client.post("/api/auth/login", data={"username": username, "password": "designer-pass"})
        assert login.status_code == 200
        client.cookies.clear()
        return auth_headers(login.json()["access_token"])

    return make

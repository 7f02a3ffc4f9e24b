"""Root conftest — shared test configuration and app/client factories.

Invariants:
    - Tests never open a real PostgreSQL connection: the pool is a FakeDatabase
    - Every app gets its own context, so rate-limit counters never leak between tests
    - ASGITransport does not run the lifespan; lifespan tests drive it explicitly
"""

import os
from datetime import datetime, timezone

# Ensure tests don't accidentally pick up real secrets or databases
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

import pytest
from httpx import ASGITransport, AsyncClient

from restaurant_api.config import Settings
from restaurant_api.main import create_app


class FakeDatabase:
    """Stands in for DatabaseSessionManager: probe + close only."""

    def __init__(self, healthy: bool = True):
        self.healthy = healthy
        self.probes = 0
        self.closed = False

    async def health_check(self) -> bool:
        self.probes += 1
        return self.healthy

    async def close(self) -> None:
        self.closed = True


class FakeSessionStore:
    """Dict-backed session store honouring expiry like PostgresSessionStore."""

    def __init__(self):
        self.rows: dict[str, tuple[dict, datetime]] = {}
        self.touched: list[tuple[str, datetime]] = []
        self.destroyed: list[str] = []

    async def get(self, sid):
        row = self.rows.get(sid)
        if row is None or row[1] <= datetime.now(timezone.utc):
            return None
        return dict(row[0])

    async def set(self, sid, data, expire):
        self.rows[sid] = (dict(data), expire)

    async def touch(self, sid, expire):
        self.touched.append((sid, expire))
        if sid in self.rows:
            self.rows[sid] = (self.rows[sid][0], expire)

    async def destroy(self, sid):
        self.destroyed.append(sid)
        self.rows.pop(sid, None)


class FakeTimer:
    """threading.Timer stand-in that only fires when told to."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        values = {
            "environment": "test",
            "jwt_secret": "test-jwt-secret",
            "session_secret": "test-session-secret",
            "routes_package": "",
            "log_format": "text",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def make_app(make_settings, fake_db):
    def _make(*, db=None, session_store=None, shutdown=None, route_groups=None, **overrides):
        return create_app(
            make_settings(**overrides),
            db=db or fake_db,
            session_store=session_store,
            shutdown=shutdown,
            route_groups=route_groups if route_groups is not None else {},
        )
    return _make


@pytest.fixture
def make_client(make_app):
    """make_client(app=None, **settings_overrides) -> AsyncClient (use with `async with`)."""
    def _client(app=None, **kwargs) -> AsyncClient:
        if app is None:
            app = make_app(**kwargs)
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        )
    return _client


@pytest.fixture
async def client(make_client):
    async with make_client() as c:
        yield c


@pytest.fixture
def unhealthy_db():
    return FakeDatabase(healthy=False)


@pytest.fixture
def session_store():
    return FakeSessionStore()


@pytest.fixture
def timers():
    """FakeTimers created through `timer_factory`, in creation order."""
    return []


@pytest.fixture
def timer_factory(timers):
    def _factory(interval, function):
        timer = FakeTimer(interval, function)
        timers.append(timer)
        return timer
    return _factory

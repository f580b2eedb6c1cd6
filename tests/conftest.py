"""
Pytest fixtures for the Sales Tracker tests.

Provides an in-memory SQLite database, stores wired to it, a controllable
clock, a fake timer factory and a ready-made AuthManager.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from sales_tracker.auth import AuthManager
from sales_tracker.db import ensure_schema
from sales_tracker.models import User
from sales_tracker.passwords import PasswordHasher
from sales_tracker.stores import MemorySessionStorage, SqlCredentialStore, SqlUserStore
from sales_tracker.users import UserService

START = datetime(2026, 3, 2, 9, 0, 0)

MANAGER_PASSWORD = "Manager#2026"
AGENT_PASSWORD = "Agent#2026x"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeTimer:
    def __init__(self, interval: float, callback):
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.callback()


class FakeTimerFactory:
    """Records every scheduled timer instead of starting a thread."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval: float, callback) -> FakeTimer:
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self):
        return [t for t in self.timers if not t.cancelled]

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database per test; StaticPool keeps a single connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def hasher():
    """Lowest bcrypt cost so tests stay fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def user_store(engine):
    return SqlUserStore(engine)


@pytest.fixture
def credential_store(engine, hasher):
    return SqlCredentialStore(engine, hasher=hasher)


@pytest.fixture
def user_service(user_store, credential_store):
    return UserService(user_store, credential_store)


# =============================================================================
# SESSION MANAGER
# =============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def storage():
    return MemorySessionStorage()


@pytest.fixture
def expired_events():
    return []


@pytest.fixture
def make_auth(user_store, credential_store, storage, clock, timers, expired_events):
    """Factory so a test can build a second manager on the same storage (page reload)."""

    def _make(**overrides):
        options = dict(
            user_store=user_store,
            credential_store=credential_store,
            storage=storage,
            clock=clock,
            timer_factory=timers,
            session_timeout=timedelta(hours=8),
            idle_timeout=timedelta(minutes=40),
            activity_debounce=timedelta(seconds=1),
            on_session_expired=lambda reason, message: expired_events.append((reason, message)),
            bootstrap_passwords={},
        )
        options.update(overrides)
        return AuthManager(**options)

    return _make


@pytest.fixture
def auth(make_auth):
    return make_auth()


# =============================================================================
# SEED DATA
# =============================================================================


@pytest.fixture
def manager_user(user_store, credential_store) -> User:
    user = User(id=0, username="manager", name="CLEMENT", role="manager",
                email="manager@company.com")
    user.id = user_store.insert_user(user)
    credential_store.set_password("manager", MANAGER_PASSWORD)
    return user


@pytest.fixture
def agent_user(user_store, credential_store, manager_user) -> User:
    user = User(id=0, username="agent", name="Pierre Dubois", role="agent",
                team_id=manager_user.id)
    user.id = user_store.insert_user(user)
    credential_store.set_password("agent", AGENT_PASSWORD)
    return user

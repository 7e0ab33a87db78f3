"""
Shared pytest fixtures.

Provides reusable test fixtures for:
- In-memory SQLite database with the full schema
- Session manager with a controllable clock
- A fake SPA build output directory
- Environment isolation for configuration lookups
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from app.auth.sessions import SessionManager
from app.config import Config
from database_orm.connection import init_connection, create_schema, close_connection

TEST_SECRET = "test-session-secret"
TEST_DATABASE_URL = "sqlite://"

INDEX_HTML = "<!doctype html><html><body><div id=\"root\"></div></body></html>"

CONFIG_KEYS = [
    "DATABASE_URL",
    "DB_SECRET_ARN",
    "SESSION_SECRET",
    "SESSION_TTL_HOURS",
    "SESSION_COOKIE_NAME",
    "SESSION_COOKIE_SECURE",
    "STATIC_DIR",
    "ADMIN_BOOTSTRAP_USERNAME",
    "ADMIN_BOOTSTRAP_PASSWORD",
    "AWS_REGION",
]


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_database_engine():
    """Every test starts and ends without a process-wide engine."""
    close_connection()
    yield
    close_connection()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every configuration variable the app reads."""
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def database():
    """Initialize an in-memory SQLite database with all tables."""
    engine = init_connection(TEST_DATABASE_URL)
    create_schema()
    yield engine


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def session_manager(database, clock):
    """Session manager on the test database, 1 hour TTL."""
    return SessionManager(secret=TEST_SECRET, ttl=timedelta(hours=1), clock=clock)


@pytest.fixture
def static_dir(tmp_path) -> Path:
    """A minimal SPA build: index.html, one hashed asset and a favicon."""
    build = tmp_path / "dist" / "public"
    (build / "assets").mkdir(parents=True)
    (build / "index.html").write_text(INDEX_HTML)
    (build / "assets" / "index-abc123.js").write_text("console.log('app');")
    (build / "favicon.ico").write_bytes(b"\x00\x00\x01\x00")
    return build


@pytest.fixture
def make_config(clean_env):
    """
    Build a local-only Config from keyword environment values.

    Example:
        config = make_config(DATABASE_URL="sqlite://", STATIC_DIR=str(static_dir))
    """

    def _make(**env) -> Config:
        for key, value in env.items():
            clean_env.setenv(key, value)
        return Config(use_local=True)

    return _make

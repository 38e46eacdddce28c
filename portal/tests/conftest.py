"""
Shared test fixtures for portal tests.

Cleans all portal environment variables before each test and isolates the
working directory from .env files. Provides store fixtures for every
backing and a FastAPI TestClient running on the in-memory store.

CHANGELOG:
- 2026-10-08: Add API client fixture (STORY-111)
- 2026-10-05: Initial creation (STORY-101)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from portal.src.stores.local import LocalStore
from portal.src.stores.memory import MemoryStore

# All PortalSettings environment variable names, used for cleanup.
_ALL_PORTAL_ENV_VARS = (
    "STORE_BACKEND",
    "LOCAL_STORE_PATH",
    "REDIS_URL",
    "MEASUREMENTS_BASE_URL",
    "MEASUREMENTS_TIMEOUT_S",
    "RECONCILE_CONCURRENCY",
    "UNDERPERFORMANCE_THRESHOLD",
    "DAY_SAMPLES_PER_HOUR",
    "ADMIN_TOKENS",
    "LOG_LEVEL",
    "API_HOST",
    "API_PORT",
)

ADMIN_TOKEN = "test-token-abc"
MEASUREMENTS_BASE_URL = "https://plants.example.com/prod"


@pytest.fixture(autouse=True)
def _clean_portal_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove all portal env vars and isolate from .env files before each test."""
    for var in _ALL_PORTAL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variables."""
    env = {
        "MEASUREMENTS_BASE_URL": MEASUREMENTS_BASE_URL,
        "ADMIN_TOKENS": f"{ADMIN_TOKEN}:admin",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest_asyncio.fixture()
async def local_store(tmp_path: Path) -> AsyncGenerator[LocalStore, None]:
    """Open a LocalStore on a fresh SQLite file."""
    async with LocalStore(tmp_path / "portal.db") as store:
        yield store


@pytest.fixture()
def mock_redis() -> AsyncMock:
    """Create a mock async Redis client.

    Returns:
        AsyncMock: A mock that behaves like a redis.asyncio.Redis client.
    """
    client = AsyncMock()
    client.hget = AsyncMock(return_value=None)
    client.hkeys = AsyncMock(return_value=[])
    client.hset = AsyncMock(return_value=1)
    client.hdel = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    return client


@pytest.fixture()
def client(
    env_vars_required_only: dict[str, str],
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[TestClient, None, None]:
    """Create a FastAPI TestClient on the in-memory store.

    Uses a context manager so the application lifespan runs.

    Yields:
        TestClient: Configured test client for the portal app.
    """
    monkeypatch.setenv("STORE_BACKEND", "memory")
    from portal.src.api.main import app

    with TestClient(app) as test_client:
        yield test_client

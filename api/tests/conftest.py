"""
Pytest fixtures for GenStack API testing infrastructure.

This module provides:
1. Test settings and environment
2. Database fixtures (in-memory SQLite through SQLAlchemy async)
3. Authentication fixtures
4. Fake GitHub client plumbing shared by service and router tests
"""

import os
import sys
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# ==================== CONFIGURATION ====================

TEST_SECRET_KEY = "test-secret-key-for-unit-testing-must-be-32-chars"
TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Must be set before genstack.config.get_settings() is first called
os.environ.setdefault("GENSTACK_ENVIRONMENT", "testing")
os.environ.setdefault("GENSTACK_SECRET_KEY", TEST_SECRET_KEY)
os.environ.setdefault("GENSTACK_DATABASE_URL", TEST_DATABASE_URL)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Reset cached settings and database state once per session."""
    from genstack.config import get_settings
    from genstack.core.database import reset_db_state

    get_settings.cache_clear()
    reset_db_state()

    yield

    reset_db_state()


@pytest.fixture
def test_settings():
    """Settings with short, deterministic GitHub limits."""
    from genstack.config import Settings

    return Settings(
        environment="testing",
        secret_key=TEST_SECRET_KEY,
        database_url=TEST_DATABASE_URL,
        github_client_ttl_seconds=3600,
        commit_history_limit=50,
        workflow_runs_limit=20,
        changelog_commit_limit=100,
    )


# ==================== DATABASE FIXTURES ====================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a session bound to a fresh in-memory database.

    Tables are created per test, so every test starts empty.
    """
    from genstack.models.orm import Base

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest.fixture
def mock_db():
    """Mock AsyncSession for unit tests that never touch a database."""
    return AsyncMock()


# ==================== AUTH FIXTURES ====================


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def current_user(user_id):
    from genstack.core.auth import UserPrincipal

    return UserPrincipal(user_id=user_id, email="dev@example.com", organization_id=uuid4(), name="Dev")


@pytest.fixture
def auth_headers(current_user) -> dict[str, str]:
    """Bearer header carrying a valid access token for current_user."""
    from genstack.core.security import create_access_token

    token = create_access_token({
        "sub": str(current_user.user_id),
        "email": current_user.email,
        "org_id": str(current_user.organization_id),
        "name": current_user.name,
    })
    return {"Authorization": f"Bearer {token}"}


# ==================== GITHUB FIXTURES ====================


@pytest.fixture
def fake_repo():
    """PyGithub Repository stand-in."""
    repo = MagicMock(name="Repository")
    repo.full_name = "octocat/hello-world"
    repo.default_branch = "main"
    return repo


@pytest.fixture
def fake_client(fake_repo):
    """Real GitHubClient wrapping a mocked PyGithub Github instance."""
    from genstack.services.github_client import GitHubClient

    github = MagicMock(name="Github")
    github.get_repo.return_value = fake_repo
    return GitHubClient(github, owner="octocat")


@pytest.fixture
def fake_clients(fake_client):
    """Client cache stand-in that always resolves to fake_client."""
    clients = MagicMock(name="GitHubClientCache")
    clients.get_client = AsyncMock(return_value=fake_client)
    return clients


# ==================== REDIS FIXTURES ====================


@pytest.fixture
def fake_redis():
    """
    AsyncMock Redis backed by a dict.

    Supports the calls the sync lock registry makes (set with nx/ex, get,
    delete, aclose). `store` holds the live keys and `ttls` the expiry
    passed with each set.
    """
    redis = AsyncMock(name="Redis")
    redis.store = {}
    redis.ttls = {}

    async def _set(key, value, nx=False, ex=None):
        if nx and key in redis.store:
            return None
        redis.store[key] = value
        redis.ttls[key] = ex
        return True

    async def _get(key):
        return redis.store.get(key)

    async def _delete(*keys):
        removed = 0
        for key in keys:
            if redis.store.pop(key, None) is not None:
                redis.ttls.pop(key, None)
                removed += 1
        return removed

    redis.set = AsyncMock(side_effect=_set)
    redis.get = AsyncMock(side_effect=_get)
    redis.delete = AsyncMock(side_effect=_delete)
    redis.aclose = AsyncMock()
    return redis


@pytest.fixture
def sync_locks(fake_redis):
    from genstack.core.locks import SyncLockRegistry

    return SyncLockRegistry(redis_client=fake_redis, ttl_seconds=300)


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, mocked dependencies)")
    config.addinivalue_line("markers", "slow: Tests that take >1 second")

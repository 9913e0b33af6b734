"""Shared fixtures for router tests

Routers run inside the real application with authentication intact;
services and the database session are replaced through
dependency_overrides.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from genstack.core.database import get_db
from genstack.main import create_app
from genstack.routers.dependencies import (
    get_account_service,
    get_actions_service,
    get_advanced_git_service,
    get_project_service,
    get_sync_service,
)
from genstack.services.advanced_git import AdvancedGitService
from genstack.services.github_accounts import GitHubAccountService
from genstack.services.github_actions import GitHubActionsService
from genstack.services.github_sync import GitHubSyncService
from genstack.services.projects import ProjectService


@pytest.fixture
def project(user_id):
    """Project owned by the authenticated user"""
    return SimpleNamespace(id=None, owner_id=user_id)


@pytest.fixture
def router_db(project):
    """Session stand-in whose get() resolves the project"""
    db = AsyncMock()
    db.get = AsyncMock(return_value=project)
    return db


@pytest.fixture
def sync_service():
    return MagicMock(spec=GitHubSyncService)


@pytest.fixture
def actions_service():
    return MagicMock(spec=GitHubActionsService)


@pytest.fixture
def git_service():
    return MagicMock(spec=AdvancedGitService)


@pytest.fixture
def account_service():
    service = MagicMock(spec=GitHubAccountService)
    service.get_account = AsyncMock(return_value=SimpleNamespace())
    return service


@pytest.fixture
def project_service():
    return MagicMock(spec=ProjectService)


@pytest.fixture
def app(router_db, sync_service, actions_service, git_service, account_service, project_service):
    application = create_app()
    application.dependency_overrides[get_db] = lambda: router_db
    application.dependency_overrides[get_sync_service] = lambda: sync_service
    application.dependency_overrides[get_actions_service] = lambda: actions_service
    application.dependency_overrides[get_advanced_git_service] = lambda: git_service
    application.dependency_overrides[get_account_service] = lambda: account_service
    application.dependency_overrides[get_project_service] = lambda: project_service
    return application


@pytest.fixture
async def client(app, auth_headers):
    """Authenticated HTTP client"""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test", headers=auth_headers
    ) as http:
        yield http


@pytest.fixture
async def anonymous_client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http

"""
Shared router dependencies and error translation.
"""

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from genstack.core.auth import UserPrincipal
from genstack.core.database import DbSession
from genstack.core.exceptions import (
    AccessDeniedError,
    AlreadyExistsError,
    DecryptionError,
    IntegrationDisabledError,
    NotFoundError,
    UpstreamError,
)
from genstack.models.contracts.common import OperationResult
from genstack.models.orm import Project
from genstack.repositories.projects import ProjectRepository
from genstack.services.advanced_git import AdvancedGitService
from genstack.services.github_accounts import GitHubAccountService
from genstack.services.github_actions import GitHubActionsService
from genstack.services.github_client import ClientCache
from genstack.services.github_sync import GitHubSyncService
from genstack.services.projects import ProjectService

logger = logging.getLogger(__name__)

# OperationResult.error_code -> HTTP status of a failed write
RESULT_STATUS = {
    "conflict": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
}


# =============================================================================
# Service providers
# =============================================================================


def get_sync_service(db: DbSession, clients: ClientCache) -> GitHubSyncService:
    return GitHubSyncService(db, clients)


def get_actions_service(db: DbSession, clients: ClientCache) -> GitHubActionsService:
    return GitHubActionsService(db, clients)


def get_advanced_git_service(db: DbSession, clients: ClientCache) -> AdvancedGitService:
    return AdvancedGitService(db, clients)


def get_account_service(db: DbSession, clients: ClientCache) -> GitHubAccountService:
    return GitHubAccountService(db, clients)


def get_project_service(db: DbSession, clients: ClientCache) -> ProjectService:
    return ProjectService(db, clients)


# =============================================================================
# Ownership checks
# =============================================================================


async def require_account(
    accounts: GitHubAccountService, account_id: UUID, user: UserPrincipal
) -> None:
    """Ensure the account exists and belongs to the current user."""
    await accounts.get_account(account_id, user.user_id)


async def require_project(db: AsyncSession, project_id: UUID, user: UserPrincipal) -> Project:
    """Load a project owned by the current user."""
    project = await ProjectRepository(db).get_by_id(project_id)
    if project is None:
        raise NotFoundError("Project not found")
    if project.owner_id != user.user_id:
        raise AccessDeniedError("Project belongs to another user")
    return project


# =============================================================================
# Error translation
# =============================================================================


def raise_for_result(result: OperationResult) -> OperationResult:
    """Return a successful result, or raise the HTTP error of a failed one."""
    if result.success:
        return result
    raise HTTPException(
        status_code=RESULT_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
        detail=result.message,
    )


def http_error(e: Exception, action: str) -> HTTPException:
    """Map a service exception onto an HTTPException."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, AccessDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    if isinstance(e, AlreadyExistsError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    if isinstance(e, IntegrationDisabledError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if isinstance(e, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, UpstreamError):
        logger.error(f"GitHub API error trying to {action}: {e.message}")
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"GitHub API error: {e.message}",
        )
    if isinstance(e, DecryptionError):
        logger.error(f"Failed to {action}: {e.message}")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Stored GitHub token could not be decrypted; re-link the account",
        )
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )

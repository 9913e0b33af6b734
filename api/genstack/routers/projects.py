"""
Projects Router

Project lifecycle, repository binding and the sync entry points scoped
to a project.
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from genstack.core.auth import CurrentUser
from genstack.core.database import DbSession
from genstack.models.contracts.github import ProjectSyncRequest, ProjectSyncStatus, SyncResult
from genstack.models.contracts.projects import (
    ProjectCreate,
    ProjectPublic,
    ProjectRepositoryLink,
    ProjectUpdate,
)
from genstack.routers.dependencies import (
    get_account_service,
    get_project_service,
    get_sync_service,
    http_error,
    require_account,
    require_project,
)
from genstack.services.github_accounts import GitHubAccountService
from genstack.services.github_sync import GitHubSyncService
from genstack.services.projects import ProjectService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["Projects"])

SyncService = Annotated[GitHubSyncService, Depends(get_sync_service)]
AccountService = Annotated[GitHubAccountService, Depends(get_account_service)]
ProjectsService = Annotated[ProjectService, Depends(get_project_service)]


# =============================================================================
# Project CRUD and repository binding
# =============================================================================


@router.get(
    "",
    response_model=list[ProjectPublic],
    summary="List projects",
    description="Projects owned by the current user, newest first",
)
async def list_projects(user: CurrentUser, service: ProjectsService) -> list[ProjectPublic]:
    try:
        projects = await service.list_projects(user.user_id)
        return [ProjectPublic.model_validate(p) for p in projects]
    except Exception as e:
        raise http_error(e, "list projects") from e


@router.post(
    "",
    response_model=ProjectPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Create project",
    description="Create a project, optionally creating or linking its GitHub repository",
)
async def create_project(
    request: ProjectCreate,
    user: CurrentUser,
    service: ProjectsService,
) -> ProjectPublic:
    try:
        project = await service.create_project(user.user_id, user.organization_id, request)
        return ProjectPublic.model_validate(project)
    except Exception as e:
        raise http_error(e, "create project") from e


@router.get(
    "/{project_id}",
    response_model=ProjectPublic,
    summary="Get project",
)
async def get_project(
    project_id: UUID,
    user: CurrentUser,
    service: ProjectsService,
) -> ProjectPublic:
    try:
        return ProjectPublic.model_validate(await service.get_project(project_id, user.user_id))
    except Exception as e:
        raise http_error(e, "get project") from e


@router.put(
    "/{project_id}",
    response_model=ProjectPublic,
    summary="Update project",
)
async def update_project(
    project_id: UUID,
    request: ProjectUpdate,
    user: CurrentUser,
    service: ProjectsService,
) -> ProjectPublic:
    try:
        project = await service.update_project(project_id, user.user_id, request)
        return ProjectPublic.model_validate(project)
    except Exception as e:
        raise http_error(e, "update project") from e


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete project",
    description="Delete a project; with delete_repository=true its GitHub repository goes too",
)
async def delete_project(
    project_id: UUID,
    user: CurrentUser,
    service: ProjectsService,
    delete_repository: bool = False,
) -> None:
    try:
        await service.delete_project(project_id, user.user_id, delete_repository)
    except Exception as e:
        raise http_error(e, "delete project") from e


@router.put(
    "/{project_id}/github",
    response_model=ProjectPublic,
    summary="Link project to GitHub",
    description="Create a repository for the project, or bind it to an existing one",
)
async def link_project_repository(
    project_id: UUID,
    request: ProjectRepositoryLink,
    user: CurrentUser,
    service: ProjectsService,
) -> ProjectPublic:
    try:
        project = await service.link_repository(project_id, user.user_id, request)
        return ProjectPublic.model_validate(project)
    except Exception as e:
        raise http_error(e, "link project repository") from e


@router.delete(
    "/{project_id}/github",
    response_model=ProjectPublic,
    summary="Unlink project from GitHub",
    description="Disable the integration; the repository itself is kept",
)
async def unlink_project_repository(
    project_id: UUID,
    user: CurrentUser,
    service: ProjectsService,
) -> ProjectPublic:
    try:
        project = await service.unlink_repository(project_id, user.user_id)
        return ProjectPublic.model_validate(project)
    except Exception as e:
        raise http_error(e, "unlink project repository") from e


# =============================================================================
# Sync
# =============================================================================


@router.post(
    "/{project_id}/sync",
    response_model=SyncResult,
    summary="Sync project to GitHub",
    description="Commit files to the project's repository and record the outcome on the project",
)
async def sync_project(
    project_id: UUID,
    request: ProjectSyncRequest,
    user: CurrentUser,
    db: DbSession,
    service: SyncService,
    accounts: AccountService,
) -> SyncResult:
    try:
        await require_project(db, project_id, user)
        await require_account(accounts, request.account_id, user)
        return await service.sync_files_to_github(
            project_id,
            request.account_id,
            request.files,
            request.commit_message,
            request.branch,
        )
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "sync project") from e


@router.get(
    "/{project_id}/github-status",
    response_model=ProjectSyncStatus,
    summary="Get project sync status",
)
async def get_project_sync_status(
    project_id: UUID,
    user: CurrentUser,
    db: DbSession,
    service: SyncService,
) -> ProjectSyncStatus:
    try:
        await require_project(db, project_id, user)
        return await service.get_sync_status(project_id)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "get project sync status") from e

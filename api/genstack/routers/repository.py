"""
Repository Router

File sync, pull, branches and diffs between projects and their
repositories.

Sync and pull always answer 200 with a result body; `success` and
`errors` describe the outcome, including partial pulls.
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from genstack.core.auth import CurrentUser
from genstack.core.database import DbSession
from genstack.models.contracts.common import OperationResult
from genstack.models.contracts.github import (
    BranchInfo,
    CreateBranchRequest,
    FileDiffRequest,
    FileDiffResponse,
    PullFilesRequest,
    PullResult,
    SyncFilesRequest,
    SyncResult,
)
from genstack.routers.dependencies import (
    get_account_service,
    get_sync_service,
    http_error,
    raise_for_result,
    require_account,
    require_project,
)
from genstack.services.github_accounts import GitHubAccountService
from genstack.services.github_sync import GitHubSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/repository", tags=["Repository"])

SyncService = Annotated[GitHubSyncService, Depends(get_sync_service)]
AccountService = Annotated[GitHubAccountService, Depends(get_account_service)]


@router.post(
    "/sync",
    response_model=SyncResult,
    summary="Sync files to GitHub",
    description="Commit files to a branch of the project's repository as one commit",
)
async def sync_files(
    request: SyncFilesRequest,
    user: CurrentUser,
    db: DbSession,
    service: SyncService,
    accounts: AccountService,
) -> SyncResult:
    try:
        await require_project(db, request.project_id, user)
        await require_account(accounts, request.account_id, user)
        return await service.sync_files_to_github(
            request.project_id,
            request.account_id,
            request.files,
            request.commit_message,
            request.branch,
        )
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "sync files") from e


@router.post(
    "/pull",
    response_model=PullResult,
    summary="Pull files from GitHub",
    description="Read the top-level files of a branch of the project's repository",
)
async def pull_files(
    request: PullFilesRequest,
    user: CurrentUser,
    db: DbSession,
    service: SyncService,
    accounts: AccountService,
) -> PullResult:
    try:
        await require_project(db, request.project_id, user)
        await require_account(accounts, request.account_id, user)
        return await service.pull_files_from_github(
            request.project_id, request.account_id, request.branch, request.paths
        )
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "pull files") from e


@router.get(
    "/branches/{repo}",
    response_model=list[BranchInfo],
    summary="List branches",
)
async def list_branches(
    repo: str,
    user: CurrentUser,
    service: SyncService,
    accounts: AccountService,
    account_id: UUID = Query(..., description="GitHub account to authenticate with"),
) -> list[BranchInfo]:
    try:
        await require_account(accounts, account_id, user)
        return await service.get_branches(account_id, repo)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "list branches") from e


@router.post(
    "/branches",
    response_model=OperationResult,
    summary="Create branch",
    description="Create a branch pointing at the tip of another branch",
)
async def create_branch(
    request: CreateBranchRequest,
    user: CurrentUser,
    service: SyncService,
    accounts: AccountService,
) -> OperationResult:
    try:
        await require_account(accounts, request.account_id, user)
        result = await service.create_branch(
            request.account_id, request.repo_name, request.branch_name, request.from_branch
        )
        return raise_for_result(result)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "create branch") from e


@router.post(
    "/diff",
    response_model=FileDiffResponse,
    summary="Diff one file between branches",
)
async def file_diff(
    request: FileDiffRequest,
    user: CurrentUser,
    service: SyncService,
    accounts: AccountService,
) -> FileDiffResponse:
    try:
        await require_account(accounts, request.account_id, user)
        return await service.get_file_diff(
            request.account_id,
            request.repo_name,
            request.file_path,
            request.base_branch,
            request.head_branch,
        )
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "get file diff") from e

"""
Advanced Git Router

Commit history, branch details, protected branches, pull request
preview and merge, and releases.
"""

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from genstack.core.auth import CurrentUser
from genstack.models.contracts.common import OperationResult
from genstack.models.contracts.github import (
    BranchDetails,
    CommitInfo,
    CreateProtectedBranchRequest,
    CreateReleaseRequest,
    MergeRequest,
    PullRequestPreview,
)
from genstack.routers.dependencies import (
    get_account_service,
    get_advanced_git_service,
    http_error,
    raise_for_result,
    require_account,
)
from genstack.services.advanced_git import AdvancedGitService
from genstack.services.github_accounts import GitHubAccountService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/advanced-git", tags=["Advanced Git"])

GitService = Annotated[AdvancedGitService, Depends(get_advanced_git_service)]
AccountService = Annotated[GitHubAccountService, Depends(get_account_service)]


# =============================================================================
# History and branches
# =============================================================================


@router.get(
    "/commits/{repo}",
    response_model=list[CommitInfo],
    summary="Get commit history",
    description="Recent commits of a branch with statistics and touched files",
)
async def get_commit_history(
    repo: str,
    user: CurrentUser,
    service: GitService,
    accounts: AccountService,
    account_id: UUID = Query(..., description="GitHub account to authenticate with"),
    branch: str = Query("main", min_length=1),
    limit: int | None = Query(None, ge=1, le=100, description="Number of commits to return"),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
    author: str | None = Query(None, description="GitHub login or email"),
) -> list[CommitInfo]:
    try:
        await require_account(accounts, account_id, user)
        return await service.get_commit_history(
            account_id, repo, branch=branch, limit=limit, since=since, until=until, author=author
        )
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "get commit history") from e


@router.get(
    "/branches/{repo}/details",
    response_model=list[BranchDetails],
    summary="Get branch details",
    description="Branches with protection flag and ahead/behind counts against the default branch",
)
async def get_branch_details(
    repo: str,
    user: CurrentUser,
    service: GitService,
    accounts: AccountService,
    account_id: UUID = Query(..., description="GitHub account to authenticate with"),
) -> list[BranchDetails]:
    try:
        await require_account(accounts, account_id, user)
        return await service.get_branch_details(account_id, repo)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "get branch details") from e


@router.post(
    "/branches/protected",
    response_model=OperationResult,
    summary="Create protected branch",
)
async def create_protected_branch(
    request: CreateProtectedBranchRequest,
    user: CurrentUser,
    service: GitService,
    accounts: AccountService,
) -> OperationResult:
    try:
        await require_account(accounts, request.account_id, user)
        result = await service.create_protected_branch(
            request.account_id,
            request.repo_name,
            request.branch_name,
            request.source_ref,
            request.protection_rules,
        )
        return raise_for_result(result)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "create protected branch") from e


# =============================================================================
# Pull requests
# =============================================================================


@router.get(
    "/pull-request/preview/{repo}",
    response_model=PullRequestPreview,
    summary="Preview pull request",
    description="Suggested title and description with change summary and check runs",
)
async def preview_pull_request(
    repo: str,
    user: CurrentUser,
    service: GitService,
    accounts: AccountService,
    account_id: UUID = Query(..., description="GitHub account to authenticate with"),
    head: str = Query(..., min_length=1, description="Branch with the changes"),
    base: str = Query("main", min_length=1, description="Branch to merge into"),
) -> PullRequestPreview:
    try:
        await require_account(accounts, account_id, user)
        return await service.preview_pull_request(account_id, repo, head, base)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "preview pull request") from e


@router.post(
    "/merge/advanced",
    response_model=OperationResult,
    summary="Merge pull request",
    description="Merge a pull request with the given method if GitHub reports it mergeable",
)
async def perform_advanced_merge(
    request: MergeRequest,
    user: CurrentUser,
    service: GitService,
    accounts: AccountService,
) -> OperationResult:
    try:
        await require_account(accounts, request.account_id, user)
        result = await service.perform_advanced_merge(
            request.account_id,
            request.repo_name,
            request.pull_number,
            request.merge_method,
            request.merge_message,
        )
        return raise_for_result(result)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "merge pull request") from e


# =============================================================================
# Releases
# =============================================================================


@router.post(
    "/releases",
    response_model=OperationResult,
    summary="Create release",
    description="Create a release, optionally with a changelog of commits since the latest release",
)
async def create_release(
    request: CreateReleaseRequest,
    user: CurrentUser,
    service: GitService,
    accounts: AccountService,
) -> OperationResult:
    try:
        await require_account(accounts, request.account_id, user)
        result = await service.create_release(
            request.account_id,
            request.repo_name,
            request.tag_name,
            request.release_name,
            request.description,
            is_draft=request.is_draft,
            is_prerelease=request.is_prerelease,
            generate_changelog=request.generate_changelog,
        )
        return raise_for_result(result)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "create release") from e

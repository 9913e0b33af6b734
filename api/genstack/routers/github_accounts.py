"""
GitHub Accounts Router

Link, list and manage the GitHub accounts of the current user.
Stored tokens are never returned.
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from genstack.core.auth import CurrentUser
from genstack.core.exceptions import UpstreamError
from genstack.models.contracts.accounts import (
    GitHubAccountCreate,
    GitHubAccountPublic,
    GitHubAccountTokenUpdate,
)
from genstack.routers.dependencies import get_account_service, http_error
from genstack.services.github_accounts import GitHubAccountService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/github-accounts", tags=["GitHub Accounts"])

AccountService = Annotated[GitHubAccountService, Depends(get_account_service)]


def _token_error(e: UpstreamError) -> HTTPException:
    """GitHub rejecting a token is a client error, anything else is upstream."""
    if e.status == 401:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid GitHub token: {e.message}",
        )
    return http_error(e, "validate GitHub token")


@router.get(
    "",
    response_model=list[GitHubAccountPublic],
    summary="List GitHub accounts",
    description="Active accounts of the current user, default first",
)
async def list_accounts(user: CurrentUser, service: AccountService) -> list[GitHubAccountPublic]:
    try:
        accounts = await service.list_accounts(user.user_id)
        return [GitHubAccountPublic.model_validate(a) for a in accounts]
    except Exception as e:
        raise http_error(e, "list GitHub accounts") from e


@router.post(
    "",
    response_model=GitHubAccountPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Link GitHub account",
    description="Validate a personal access token and link the account it belongs to",
)
async def link_account(
    request: GitHubAccountCreate,
    user: CurrentUser,
    service: AccountService,
) -> GitHubAccountPublic:
    try:
        account = await service.link_account(
            user.user_id,
            request.organization_id or user.organization_id,
            request.nickname,
            request.token,
        )
        return GitHubAccountPublic.model_validate(account)
    except UpstreamError as e:
        raise _token_error(e) from e
    except Exception as e:
        raise http_error(e, "link GitHub account") from e


@router.post(
    "/{account_id}/set-default",
    response_model=GitHubAccountPublic,
    summary="Set default GitHub account",
)
async def set_default_account(
    account_id: UUID,
    user: CurrentUser,
    service: AccountService,
) -> GitHubAccountPublic:
    try:
        account = await service.set_default(account_id, user.user_id)
        return GitHubAccountPublic.model_validate(account)
    except Exception as e:
        raise http_error(e, "set default GitHub account") from e


@router.put(
    "/{account_id}/token",
    response_model=GitHubAccountPublic,
    summary="Replace GitHub token",
    description="Validate and store a new token for the same GitHub identity",
)
async def update_account_token(
    account_id: UUID,
    request: GitHubAccountTokenUpdate,
    user: CurrentUser,
    service: AccountService,
) -> GitHubAccountPublic:
    try:
        account = await service.update_token(account_id, user.user_id, request.token)
        return GitHubAccountPublic.model_validate(account)
    except UpstreamError as e:
        raise _token_error(e) from e
    except Exception as e:
        raise http_error(e, "update GitHub token") from e


@router.delete(
    "/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove GitHub account",
)
async def delete_account(
    account_id: UUID,
    user: CurrentUser,
    service: AccountService,
) -> None:
    try:
        await service.delete_account(account_id, user.user_id)
    except Exception as e:
        raise http_error(e, "delete GitHub account") from e

"""
GitHub Actions Router

Workflow templates, workflow files and workflow runs of repositories
owned by a linked account.
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from genstack.core.auth import CurrentUser
from genstack.models.contracts.actions import (
    CancelWorkflowRunRequest,
    CreateWorkflowRequest,
    TriggerWorkflowRequest,
    WorkflowFileInfo,
    WorkflowRunInfo,
    WorkflowRunLogs,
    WorkflowTemplate,
)
from genstack.models.contracts.common import OperationResult
from genstack.routers.dependencies import (
    get_account_service,
    get_actions_service,
    http_error,
    raise_for_result,
    require_account,
)
from genstack.services.github_accounts import GitHubAccountService
from genstack.services.github_actions import GitHubActionsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/github-actions", tags=["GitHub Actions"])

ActionsService = Annotated[GitHubActionsService, Depends(get_actions_service)]
AccountService = Annotated[GitHubAccountService, Depends(get_account_service)]


@router.get(
    "/templates",
    response_model=list[WorkflowTemplate],
    summary="List workflow templates",
    description="Built-in workflow templates that can be added to a repository",
)
async def list_templates(user: CurrentUser, service: ActionsService) -> list[WorkflowTemplate]:
    return service.get_workflow_templates()


@router.post(
    "/workflows",
    response_model=OperationResult,
    summary="Create workflow",
    description="Add a workflow template to a branch. Never overwrites an existing workflow file.",
)
async def create_workflow(
    request: CreateWorkflowRequest,
    user: CurrentUser,
    service: ActionsService,
    accounts: AccountService,
) -> OperationResult:
    try:
        await require_account(accounts, request.account_id, user)
        result = await service.create_workflow(
            request.account_id, request.repo_name, request.template_name, request.branch
        )
        return raise_for_result(result)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "create workflow") from e


@router.get(
    "/workflows/{repo}",
    response_model=list[WorkflowFileInfo],
    summary="List workflows",
    description="Workflows registered in a repository",
)
async def list_workflows(
    repo: str,
    user: CurrentUser,
    service: ActionsService,
    accounts: AccountService,
    account_id: UUID = Query(..., description="GitHub account to authenticate with"),
) -> list[WorkflowFileInfo]:
    try:
        await require_account(accounts, account_id, user)
        return await service.get_workflows(account_id, repo)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "get workflows") from e


@router.get(
    "/runs/{repo}",
    response_model=list[WorkflowRunInfo],
    summary="List workflow runs",
    description="Most recent runs of one workflow or of the whole repository",
)
async def list_workflow_runs(
    repo: str,
    user: CurrentUser,
    service: ActionsService,
    accounts: AccountService,
    account_id: UUID = Query(..., description="GitHub account to authenticate with"),
    workflow_id: str | None = Query(None, description="Workflow id or file name"),
) -> list[WorkflowRunInfo]:
    try:
        await require_account(accounts, account_id, user)
        workflow: int | str | None = workflow_id
        if workflow_id is not None and workflow_id.isdigit():
            workflow = int(workflow_id)
        return await service.get_workflow_runs(account_id, repo, workflow)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "get workflow runs") from e


@router.post(
    "/trigger",
    response_model=OperationResult,
    summary="Trigger workflow",
    description="Dispatch a workflow run on a ref",
)
async def trigger_workflow(
    request: TriggerWorkflowRequest,
    user: CurrentUser,
    service: ActionsService,
    accounts: AccountService,
) -> OperationResult:
    try:
        await require_account(accounts, request.account_id, user)
        result = await service.trigger_workflow(
            request.account_id, request.repo_name, request.workflow_id, request.ref, request.inputs
        )
        return raise_for_result(result)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "trigger workflow") from e


@router.post(
    "/cancel/{run_id}",
    response_model=OperationResult,
    summary="Cancel workflow run",
)
async def cancel_workflow_run(
    run_id: int,
    request: CancelWorkflowRunRequest,
    user: CurrentUser,
    service: ActionsService,
    accounts: AccountService,
) -> OperationResult:
    try:
        await require_account(accounts, request.account_id, user)
        result = await service.cancel_workflow_run(request.account_id, request.repo_name, run_id)
        return raise_for_result(result)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "cancel workflow run") from e


@router.get(
    "/logs/{repo}/{run_id}",
    response_model=WorkflowRunLogs,
    summary="Get workflow run logs",
    description="Download location of the log archive of a run",
)
async def get_workflow_run_logs(
    repo: str,
    run_id: int,
    user: CurrentUser,
    service: ActionsService,
    accounts: AccountService,
    account_id: UUID = Query(..., description="GitHub account to authenticate with"),
) -> WorkflowRunLogs:
    try:
        await require_account(accounts, account_id, user)
        return await service.get_workflow_run_logs(account_id, repo, run_id)
    except HTTPException:
        raise
    except Exception as e:
        raise http_error(e, "get workflow run logs") from e

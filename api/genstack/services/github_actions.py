"""
GitHub Actions Service

Adds built-in workflow templates to repositories and manages workflow
runs (list, dispatch, cancel, logs).
"""

import logging
from uuid import UUID

from github.Repository import Repository
from sqlalchemy.ext.asyncio import AsyncSession

from genstack.config import Settings, get_settings
from genstack.core.exceptions import DecryptionError, NotFoundError, UpstreamError
from genstack.models.contracts.actions import (
    WorkflowFileInfo,
    WorkflowRunInfo,
    WorkflowRunLogs,
    WorkflowTemplate,
)
from genstack.models.contracts.common import OperationResult
from genstack.services.github_client import GitHubClient, GitHubClientCache, error_code_for
from genstack.services.workflow_templates import WORKFLOW_TEMPLATES

logger = logging.getLogger(__name__)

WORKFLOWS_DIR = ".github/workflows"


def get_workflow_templates() -> list[WorkflowTemplate]:
    """Built-in workflow templates. Pure; no network access."""
    return list(WORKFLOW_TEMPLATES)


def get_workflow_template(name: str) -> WorkflowTemplate:
    """
    Find a template by display name or file name.

    Raises:
        NotFoundError: If no template matches
    """
    for template in WORKFLOW_TEMPLATES:
        if name in (template.name, template.file_name):
            return template
    raise NotFoundError(f"Workflow template '{name}' not found")


class GitHubActionsService:
    """Workflow management for repositories of a linked account."""

    def __init__(
        self,
        db: AsyncSession,
        clients: GitHubClientCache,
        settings: Settings | None = None,
    ):
        self.db = db
        self.clients = clients
        self.settings = settings or get_settings()

    async def _open_repo(self, account_id: UUID, repo_name: str) -> tuple[GitHubClient, Repository]:
        client = await self.clients.get_client(self.db, account_id)
        repo = await client.get_repo(repo_name)
        return client, repo

    def get_workflow_templates(self) -> list[WorkflowTemplate]:
        return get_workflow_templates()

    async def create_workflow(
        self,
        account_id: UUID,
        repo_name: str,
        template_name: str,
        branch: str = "main",
    ) -> OperationResult:
        """
        Add a workflow template to a branch.

        An existing file with the template's name is never overwritten; the
        call reports a conflict without writing.
        """
        try:
            template = get_workflow_template(template_name)
            client, repo = await self._open_repo(account_id, repo_name)
            path = f"{WORKFLOWS_DIR}/{template.file_name}"

            try:
                await client.call(repo.get_contents, path, ref=branch)
            except UpstreamError as e:
                if not e.is_not_found:
                    raise
            else:
                logger.info(f"Workflow {path} already present in {repo.full_name}@{branch}")
                return OperationResult.failed(
                    f"Workflow file {template.file_name} already exists", error_code="conflict"
                )

            created = await client.call(
                repo.create_file,
                path,
                f"Add {template.name} workflow",
                template.content,
                branch=branch,
            )
        except (NotFoundError, DecryptionError, UpstreamError) as e:
            logger.warning(f"Failed to create workflow {template_name} in {repo_name}: {e.message}")
            return OperationResult.failed(
                f"Failed to create workflow: {e.message}", error_code=error_code_for(e)
            )

        logger.info(f"Created workflow {path} in {repo.full_name}@{branch}")
        return OperationResult.ok(
            f'Workflow "{template.name}" created successfully',
            data={"path": path, "url": created["content"].html_url},
        )

    async def get_workflows(self, account_id: UUID, repo_name: str) -> list[WorkflowFileInfo]:
        """List the workflows registered in a repository."""
        client, repo = await self._open_repo(account_id, repo_name)
        workflows = await client.call(lambda: list(repo.get_workflows()))
        return [WorkflowFileInfo.model_validate(w) for w in workflows]

    async def get_workflow_runs(
        self,
        account_id: UUID,
        repo_name: str,
        workflow_id: int | str | None = None,
    ) -> list[WorkflowRunInfo]:
        """Most recent runs of one workflow, or of the whole repository."""
        client, repo = await self._open_repo(account_id, repo_name)
        limit = self.settings.workflow_runs_limit

        def _fetch_runs():
            if workflow_id is not None:
                runs = repo.get_workflow(workflow_id).get_runs()
            else:
                runs = repo.get_workflow_runs()
            return list(runs[:limit])

        runs = await client.call(_fetch_runs)
        return [WorkflowRunInfo.model_validate(run) for run in runs]

    async def trigger_workflow(
        self,
        account_id: UUID,
        repo_name: str,
        workflow_id: int | str,
        ref: str = "main",
        inputs: dict | None = None,
    ) -> OperationResult:
        """Dispatch a workflow run on a ref."""
        try:
            client, repo = await self._open_repo(account_id, repo_name)
            workflow = await client.call(repo.get_workflow, workflow_id)
            dispatched = await client.call(workflow.create_dispatch, ref, inputs or {})
        except (NotFoundError, DecryptionError, UpstreamError) as e:
            logger.warning(f"Failed to trigger workflow {workflow_id} in {repo_name}: {e.message}")
            return OperationResult.failed(
                f"Failed to trigger workflow: {e.message}", error_code=error_code_for(e)
            )

        if not dispatched:
            return OperationResult.failed(
                "Failed to trigger workflow: dispatch was rejected", error_code="upstream"
            )

        logger.info(f"Triggered workflow {workflow_id} in {repo.full_name} on {ref}")
        return OperationResult.ok("Workflow triggered successfully")

    async def cancel_workflow_run(
        self, account_id: UUID, repo_name: str, run_id: int
    ) -> OperationResult:
        """Cancel a queued or in-progress run."""
        try:
            client, repo = await self._open_repo(account_id, repo_name)
            run = await client.call(repo.get_workflow_run, run_id)
            cancelled = await client.call(run.cancel)
        except (NotFoundError, DecryptionError, UpstreamError) as e:
            logger.warning(f"Failed to cancel run {run_id} in {repo_name}: {e.message}")
            return OperationResult.failed(
                f"Failed to cancel workflow run: {e.message}", error_code=error_code_for(e)
            )

        if not cancelled:
            return OperationResult.failed(
                "Failed to cancel workflow run: cancellation was rejected", error_code="upstream"
            )

        logger.info(f"Cancelled workflow run {run_id} in {repo.full_name}")
        return OperationResult.ok("Workflow run cancelled successfully")

    async def get_workflow_run_logs(
        self, account_id: UUID, repo_name: str, run_id: int
    ) -> WorkflowRunLogs:
        """Location of the log archive of a run."""
        client, repo = await self._open_repo(account_id, repo_name)
        run = await client.call(repo.get_workflow_run, run_id)
        return WorkflowRunLogs(
            run_id=run_id,
            logs_url=run.logs_url,
            message="Workflow logs are available as a zip archive. View in GitHub Actions.",
        )

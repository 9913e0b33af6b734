"""
GitHub Sync Service

Pushes project files to a repository as a single commit and reads them
back. The write path builds one tree on top of the branch tip, creates a
commit with the tip as its only parent and fast-forwards the branch ref.

The outcome of every sync attempt is recorded on the Project row
(github_sync_status, github_last_sync_at, github_last_commit_sha,
github_sync_errors). Nothing else writes those columns.
"""

import base64
import binascii
import logging
from uuid import UUID

from github import InputGitTreeElement
from github.Repository import Repository
from sqlalchemy.ext.asyncio import AsyncSession

from genstack.config import Settings, get_settings
from genstack.core.exceptions import (
    DecryptionError,
    IntegrationDisabledError,
    NotFoundError,
    RefConflictError,
    SyncInProgressError,
    UpstreamError,
)
from genstack.core.locks import SyncLockRegistry, get_sync_locks
from genstack.models.contracts.common import OperationResult
from genstack.models.contracts.github import (
    BranchInfo,
    FileChange,
    FileDiffResponse,
    ProjectSyncStatus,
    PullResult,
    SyncResult,
)
from genstack.models.enums import FileEncoding
from genstack.models.orm import Project
from genstack.repositories.projects import ProjectRepository
from genstack.services.github_client import GitHubClient, GitHubClientCache, error_code_for

logger = logging.getLogger(__name__)

# Regular (non-executable) file blob
BLOB_MODE = "100644"

# Statuses GitHub answers with when a non-forced ref update is not a fast-forward
REF_CONFLICT_STATUSES = (409, 422)

EXPECTED_SYNC_ERRORS = (
    UpstreamError,
    IntegrationDisabledError,
    NotFoundError,
    DecryptionError,
    ValueError,
)


def _decode_content(change: FileChange) -> str:
    """Return the text content of a file change."""
    if change.encoding == FileEncoding.BASE64:
        try:
            return base64.b64decode(change.content, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ValueError(f"Invalid base64 content for {change.path}") from e
    return change.content


def _ensure_enabled(project: Project) -> str:
    if not project.github_enabled or not project.github_repo_name:
        raise IntegrationDisabledError()
    return project.github_repo_name


class GitHubSyncService:
    """Sync and pull files between projects and their repositories."""

    def __init__(
        self,
        db: AsyncSession,
        clients: GitHubClientCache,
        settings: Settings | None = None,
        locks: SyncLockRegistry | None = None,
    ):
        self.db = db
        self.clients = clients
        self.settings = settings or get_settings()
        self.locks = locks or get_sync_locks()
        self.projects = ProjectRepository(db)

    async def _get_project(self, project_id: UUID) -> Project:
        project = await self.projects.get_by_id(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    async def _open_repo(self, account_id: UUID, repo_name: str) -> tuple[GitHubClient, Repository]:
        client = await self.clients.get_client(self.db, account_id)
        repo = await client.get_repo(repo_name)
        return client, repo

    # ==================== SYNC ====================

    async def sync_files_to_github(
        self,
        project_id: UUID,
        account_id: UUID,
        files: list[FileChange],
        commit_message: str,
        branch: str = "main",
    ) -> SyncResult:
        """
        Commit files to a branch of the project's repository.

        Args:
            project_id: Project whose repository is written
            account_id: GitHub account used for authentication
            files: Files to include in the commit
            commit_message: Commit message
            branch: Branch to advance

        Returns:
            SyncResult. Failures after the project is loaded are captured
            here and recorded on the project rather than raised. A sync
            refused because another one holds the branch lock leaves the
            project status untouched.

        Raises:
            NotFoundError: If the project does not exist
        """
        project = await self._get_project(project_id)

        if not files:
            return SyncResult(success=False, errors=["No valid files to sync"])

        try:
            async with self.locks.hold(project_id, branch):
                return await self._commit_files(
                    project, project_id, account_id, files, commit_message, branch
                )
        except SyncInProgressError as e:
            logger.info(f"Sync of project {project_id} to {branch} refused: {e.message}")
            return SyncResult(success=False, errors=[e.message])

    async def _commit_files(
        self,
        project: Project,
        project_id: UUID,
        account_id: UUID,
        files: list[FileChange],
        commit_message: str,
        branch: str,
    ) -> SyncResult:
        try:
            repo_name = _ensure_enabled(project)
            tree_elements = [
                InputGitTreeElement(
                    path=change.path,
                    mode=BLOB_MODE,
                    type="blob",
                    content=_decode_content(change),
                )
                for change in files
            ]
            client, repo = await self._open_repo(account_id, repo_name)

            ref = await client.call(repo.get_git_ref, f"heads/{branch}")
            base_commit = await client.call(repo.get_git_commit, ref.object.sha)

            new_tree = await client.call(
                repo.create_git_tree, tree_elements, base_commit.tree
            )
            new_commit = await client.call(
                repo.create_git_commit, commit_message, new_tree, [base_commit]
            )

            try:
                await client.call(ref.edit, new_commit.sha)
            except UpstreamError as e:
                if e.status in REF_CONFLICT_STATUSES:
                    raise RefConflictError(
                        f"Branch '{branch}' was updated remotely during sync; retry",
                        status=e.status,
                    ) from e
                raise

            logger.info(
                f"Synced {len(files)} files to {repo.full_name}@{branch} "
                f"({base_commit.sha[:7]} -> {new_commit.sha[:7]})"
            )
            await self.projects.mark_synced(project_id, new_commit.sha)
            return SyncResult(
                success=True,
                files_changed=len(files),
                commit_sha=new_commit.sha,
                commit_url=new_commit.html_url,
            )

        except Exception as e:
            message = getattr(e, "message", None) or str(e)
            if isinstance(e, EXPECTED_SYNC_ERRORS):
                logger.warning(f"Sync of project {project_id} to {branch} failed: {message}")
            else:
                logger.error(f"Sync of project {project_id} failed: {message}", exc_info=True)
            await self.projects.mark_sync_error(project_id, [message])
            return SyncResult(success=False, errors=[message])

    # ==================== PULL ====================

    async def pull_files_from_github(
        self,
        project_id: UUID,
        account_id: UUID,
        branch: str = "main",
        paths: list[str] | None = None,
    ) -> PullResult:
        """
        Read the top-level files of a branch.

        A failure on one file is recorded in `errors` and does not stop the
        others; `success` is False only when the pull could not start.
        Directories, symlinks and submodules are skipped.
        """
        try:
            project = await self._get_project(project_id)
            repo_name = _ensure_enabled(project)
            client, repo = await self._open_repo(account_id, repo_name)
            listing = await client.call(repo.get_contents, "", ref=branch)
        except (NotFoundError, IntegrationDisabledError, DecryptionError, UpstreamError) as e:
            logger.warning(f"Pull of project {project_id} failed: {e.message}")
            return PullResult(success=False, errors=[e.message])

        if not isinstance(listing, list):
            listing = [listing]

        files: list[FileChange] = []
        errors: list[str] = []
        for entry in listing:
            if entry.type != "file":
                continue
            if paths and not any(entry.path.startswith(prefix) for prefix in paths):
                continue
            try:
                content_file = await client.call(repo.get_contents, entry.path, ref=branch)
                files.append(
                    FileChange(
                        path=entry.path,
                        content=content_file.decoded_content.decode("utf-8"),
                        sha=content_file.sha,
                    )
                )
            except UpstreamError as e:
                errors.append(f"Failed to fetch {entry.path}: {e.message}")
            except UnicodeDecodeError:
                errors.append(f"Failed to fetch {entry.path}: not a UTF-8 text file")

        logger.info(f"Pulled {len(files)} files from {repo.full_name}@{branch} ({len(errors)} errors)")
        return PullResult(files=files, success=True, errors=errors)

    # ==================== BRANCHES ====================

    async def get_branches(self, account_id: UUID, repo_name: str) -> list[BranchInfo]:
        """List the branches of a repository, flagging the default branch."""
        client, repo = await self._open_repo(account_id, repo_name)
        branches = await client.call(lambda: list(repo.get_branches()))
        return [
            BranchInfo(
                name=b.name,
                sha=b.commit.sha,
                protected=b.protected,
                default=b.name == repo.default_branch,
            )
            for b in branches
        ]

    async def create_branch(
        self,
        account_id: UUID,
        repo_name: str,
        branch_name: str,
        from_branch: str = "main",
    ) -> OperationResult:
        """Create a branch pointing at the tip of another branch."""
        try:
            client, repo = await self._open_repo(account_id, repo_name)
            source = await client.call(repo.get_git_ref, f"heads/{from_branch}")
            sha = source.object.sha
            await client.call(repo.create_git_ref, f"refs/heads/{branch_name}", sha)
        except (NotFoundError, UpstreamError) as e:
            logger.warning(f"Failed to create branch {branch_name} in {repo_name}: {e.message}")
            return OperationResult.failed(
                f"Failed to create branch: {e.message}", error_code=error_code_for(e)
            )

        logger.info(f"Created branch {branch_name} in {repo.full_name} at {sha[:7]}")
        return OperationResult.ok(
            f"Branch {branch_name} created from {from_branch}",
            data={"name": branch_name, "sha": sha},
        )

    async def get_file_diff(
        self,
        account_id: UUID,
        repo_name: str,
        file_path: str,
        base_branch: str,
        head_branch: str,
    ) -> FileDiffResponse:
        """Unified patch of one file between two branches ("" if unchanged)."""
        client, repo = await self._open_repo(account_id, repo_name)
        comparison = await client.call(repo.compare, base_branch, head_branch)
        patch = ""
        for changed in comparison.files:
            if changed.filename == file_path:
                patch = changed.patch or ""
                break
        return FileDiffResponse(file_path=file_path, patch=patch)

    # ==================== STATUS ====================

    async def get_sync_status(self, project_id: UUID) -> ProjectSyncStatus:
        """Persisted sync state of a project."""
        project = await self._get_project(project_id)
        return ProjectSyncStatus(
            project_id=project.id,
            enabled=project.github_enabled,
            repo_name=project.github_repo_name,
            repo_url=project.github_repo_url,
            sync_status=project.github_sync_status,
            last_sync_at=project.github_last_sync_at,
            last_commit_sha=project.github_last_commit_sha,
            sync_errors=project.github_sync_errors or [],
        )

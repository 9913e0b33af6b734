"""
Project Service

Creates projects and binds them to GitHub repositories.

Binding either creates a repository under the chosen account (the account's
token must be allowed to create repositories, and private ones when
`private` is requested) or verifies that a named repository exists. Only
the binding columns (github_enabled, github_repo_name, github_repo_url,
github_account_id) are written here; the sync status belongs to the sync
pipeline.

A repository created for a project that then fails to save is deleted
again so no orphan is left behind.
"""

import logging
import re
from collections.abc import Sequence
from uuid import UUID

from github.Repository import Repository
from sqlalchemy.ext.asyncio import AsyncSession

from genstack.config import Settings, get_settings
from genstack.core.exceptions import (
    AccessDeniedError,
    AlreadyExistsError,
    DecryptionError,
    NotFoundError,
    UpstreamError,
)
from genstack.models.contracts.projects import ProjectCreate, ProjectRepositoryLink, ProjectUpdate
from genstack.models.orm import GitHubAccount, Project
from genstack.repositories.accounts import GitHubAccountRepository
from genstack.repositories.projects import ProjectRepository
from genstack.services.github_client import GitHubClient, GitHubClientCache

logger = logging.getLogger(__name__)

# GitHub's limit on repository names
MAX_REPO_NAME_LENGTH = 100


def sanitize_repo_name(name: str) -> str:
    """
    Turn a project name into a valid repository name.

    Lowercases, replaces anything outside [a-z0-9-_.] with "-", collapses
    runs of "-", strips leading and trailing separators and truncates to
    100 characters.
    """
    slug = re.sub(r"[^a-z0-9\-_.]", "-", name.lower())
    slug = re.sub(r"-{2,}", "-", slug)
    slug = slug.strip("-_.")
    return slug[:MAX_REPO_NAME_LENGTH]


class ProjectService:
    """Project lifecycle and repository binding."""

    def __init__(
        self,
        db: AsyncSession,
        clients: GitHubClientCache,
        settings: Settings | None = None,
    ):
        self.db = db
        self.clients = clients
        self.settings = settings or get_settings()
        self.projects = ProjectRepository(db)
        self.accounts = GitHubAccountRepository(db)

    # ==================== HELPERS ====================

    async def _get_account(self, account_id: UUID, user_id: UUID) -> GitHubAccount:
        account = await self.accounts.get_by_id(account_id)
        if account is None:
            raise NotFoundError("GitHub account not found")
        if account.user_id != user_id:
            raise AccessDeniedError("GitHub account belongs to another user")
        return account

    async def _resolve_repository(
        self,
        name: str,
        description: str | None,
        user_id: UUID,
        link: ProjectRepositoryLink,
    ) -> tuple[GitHubClient, Repository, bool]:
        """
        Create or look up the repository a project is bound to.

        Returns:
            (client, repository, created)

        Raises:
            AccessDeniedError: If the account may not create the repository
            NotFoundError: If an existing repository was named and is missing
            ValueError: If no valid repository name can be derived
        """
        account = await self._get_account(link.account_id, user_id)

        if link.create_repo:
            if not account.can_create_repo:
                raise AccessDeniedError(
                    f"GitHub account {account.username} is not allowed to create repositories"
                )
            if link.private and not account.can_create_private_repo:
                raise AccessDeniedError(
                    f"GitHub account {account.username} is not allowed to create private repositories"
                )

        client = await self.clients.get_client(self.db, account.id)

        if not link.create_repo:
            if not link.repo_name:
                raise ValueError("repo_name is required to link an existing repository")
            try:
                repo = await client.get_repo(link.repo_name)
            except UpstreamError as e:
                if e.is_not_found:
                    raise NotFoundError(
                        f"Repository {client.full_name(link.repo_name)} not found"
                    ) from e
                raise
            return client, repo, False

        repo_name = sanitize_repo_name(link.repo_name or name)
        if not repo_name:
            raise ValueError(f"'{link.repo_name or name}' does not produce a valid repository name")

        options = {
            "description": description or f"GenStack project: {name}",
            "private": link.private,
            "auto_init": True,
            "has_issues": True,
            "has_projects": True,
            "has_wiki": False,
        }
        if link.gitignore_template:
            options["gitignore_template"] = link.gitignore_template
        if link.license_template:
            options["license_template"] = link.license_template

        def _create():
            return client.github.get_user().create_repo(repo_name, **options)

        repo = await client.call(_create)
        logger.info(f"Created repository {repo.full_name} (private={link.private})")
        return client, repo, True

    @staticmethod
    def _bind(project: Project, repo: Repository, account_id: UUID, link: ProjectRepositoryLink) -> None:
        # Repositories outside the account's namespace keep their owner prefix
        qualified = link.repo_name is not None and "/" in link.repo_name
        project.github_enabled = True
        project.github_repo_name = repo.full_name if qualified else repo.name
        project.github_repo_url = repo.html_url
        project.github_account_id = account_id

    async def _discard_repository(self, client: GitHubClient, repo: Repository) -> None:
        """Delete a repository created for a project that was not saved."""
        try:
            await client.call(repo.delete)
            logger.info(f"Deleted repository {repo.full_name} after failed project save")
        except UpstreamError as e:
            logger.error(f"Failed to clean up repository {repo.full_name}: {e.message}")

    # ==================== CRUD ====================

    async def get_project(self, project_id: UUID, user_id: UUID) -> Project:
        """
        Get a project owned by a user.

        Raises:
            NotFoundError: If the project does not exist
            AccessDeniedError: If the project belongs to another user
        """
        project = await self.projects.get_by_id(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        if project.owner_id != user_id:
            raise AccessDeniedError("Project belongs to another user")
        return project

    async def list_projects(self, user_id: UUID) -> Sequence[Project]:
        return await self.projects.list_for_owner(user_id)

    async def create_project(
        self,
        user_id: UUID,
        organization_id: UUID | None,
        request: ProjectCreate,
    ) -> Project:
        """
        Create a project, optionally bound to a repository.

        The repository is created (or verified) first; a project that then
        fails to save takes its freshly created repository with it.
        """
        project = Project(
            name=request.name,
            description=request.description,
            owner_id=user_id,
            organization_id=request.organization_id or organization_id,
        )

        if request.github is None:
            await self.projects.create(project)
            logger.info(f"Created project {project.id} for user {user_id}")
            return project

        client, repo, created = await self._resolve_repository(
            request.name, request.description, user_id, request.github
        )
        self._bind(project, repo, request.github.account_id, request.github)
        try:
            await self.projects.create(project)
        except Exception:
            if created:
                await self._discard_repository(client, repo)
            raise

        logger.info(f"Created project {project.id} bound to {repo.full_name}")
        return project

    async def update_project(self, project_id: UUID, user_id: UUID, request: ProjectUpdate) -> Project:
        """Rename or re-describe a project. The repository is left as is."""
        project = await self.get_project(project_id, user_id)
        if request.name is not None:
            project.name = request.name
        if request.description is not None:
            project.description = request.description
        await self.db.flush()
        return project

    async def delete_project(
        self,
        project_id: UUID,
        user_id: UUID,
        delete_repository: bool = False,
    ) -> None:
        """
        Delete a project.

        With `delete_repository`, the bound repository is deleted first. A
        failure to delete it is logged and does not keep the project.
        """
        project = await self.get_project(project_id, user_id)

        if delete_repository and project.github_repo_name and project.github_account_id:
            try:
                client = await self.clients.get_client(self.db, project.github_account_id)
                repo = await client.get_repo(project.github_repo_name)
                await client.call(repo.delete)
                logger.info(f"Deleted repository {repo.full_name} of project {project_id}")
            except (NotFoundError, DecryptionError, UpstreamError) as e:
                logger.warning(
                    f"Failed to delete repository {project.github_repo_name} "
                    f"of project {project_id}: {e.message}"
                )

        await self.projects.delete(project)
        logger.info(f"Deleted project {project_id}")

    # ==================== REPOSITORY BINDING ====================

    async def link_repository(
        self,
        project_id: UUID,
        user_id: UUID,
        link: ProjectRepositoryLink,
    ) -> Project:
        """
        Bind an existing project to a repository.

        Raises:
            AlreadyExistsError: If the project is already bound
        """
        project = await self.get_project(project_id, user_id)
        if project.github_enabled:
            raise AlreadyExistsError(
                f"Project is already linked to {project.github_repo_name}; unlink it first"
            )

        client, repo, created = await self._resolve_repository(
            project.name, project.description, user_id, link
        )
        self._bind(project, repo, link.account_id, link)
        try:
            await self.db.flush()
        except Exception:
            if created:
                await self._discard_repository(client, repo)
            raise

        logger.info(f"Linked project {project_id} to {repo.full_name}")
        return project

    async def unlink_repository(self, project_id: UUID, user_id: UUID) -> Project:
        """
        Turn the integration off. The repository and the last known binding
        are kept so the project can be re-linked.
        """
        project = await self.get_project(project_id, user_id)
        project.github_enabled = False
        await self.db.flush()
        logger.info(f"Unlinked project {project_id} from {project.github_repo_name}")
        return project

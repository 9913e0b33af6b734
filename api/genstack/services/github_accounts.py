"""
GitHub Account Service

Links GitHub identities to users. Tokens are validated against the GitHub
API, stored encrypted, and never returned.

Replacing a token or removing an account evicts the account's cached
client so the next call authenticates with current credentials.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from uuid import UUID

from github import Github
from sqlalchemy.ext.asyncio import AsyncSession

from genstack.config import Settings, get_settings
from genstack.core.exceptions import AccessDeniedError, AlreadyExistsError, NotFoundError
from genstack.core.security import encrypt_secret
from genstack.models.orm import GitHubAccount
from genstack.repositories.accounts import GitHubAccountRepository
from genstack.services.github_client import GitHubClient, GitHubClientCache, build_github

logger = logging.getLogger(__name__)


def analyze_scopes(scopes: list[str]) -> tuple[bool, bool]:
    """
    Derive repository capabilities from classic token scopes.

    Returns:
        (can_create_repo, can_create_private_repo)
    """
    can_create_private = "repo" in scopes
    can_create = can_create_private or "public_repo" in scopes
    return can_create, can_create_private


class GitHubAccountService:
    """Manage the GitHub accounts linked by a user."""

    def __init__(
        self,
        db: AsyncSession,
        clients: GitHubClientCache,
        settings: Settings | None = None,
        github_factory: Callable[[str], Github] | None = None,
    ):
        self.db = db
        self.clients = clients
        self.settings = settings or get_settings()
        self.github_factory = github_factory or (lambda token: build_github(token, self.settings))
        self.repo = GitHubAccountRepository(db)

    async def _validate_token(self, token: str) -> tuple[dict, list[str]]:
        """
        Look up the identity a token belongs to.

        Raises:
            UpstreamError: If GitHub rejects the token
        """
        github = self.github_factory(token)
        client = GitHubClient(github, owner="")

        def _fetch():
            user = github.get_user()
            identity = {
                "id": user.id,
                "login": user.login,
                "name": user.name or user.login,
                "email": user.email,
                "avatar_url": user.avatar_url,
                "type": user.type,
            }
            return identity, list(github.oauth_scopes or [])

        return await client.call(_fetch)

    async def get_account(self, account_id: UUID, user_id: UUID) -> GitHubAccount:
        """
        Get an account owned by a user.

        Raises:
            NotFoundError: If the account does not exist
            AccessDeniedError: If the account belongs to another user
        """
        account = await self.repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError("GitHub account not found")
        if account.user_id != user_id:
            raise AccessDeniedError("GitHub account belongs to another user")
        return account

    async def link_account(
        self,
        user_id: UUID,
        organization_id: UUID | None,
        nickname: str,
        token: str,
    ) -> GitHubAccount:
        """
        Validate a token and store the account it belongs to.

        The first account a user links becomes their default.

        Raises:
            UpstreamError: If the token is rejected by GitHub
            AlreadyExistsError: If the GitHub identity is already linked
        """
        identity, scopes = await self._validate_token(token)

        if await self.repo.get_by_github_id(identity["id"]) is not None:
            raise AlreadyExistsError("GitHub account already exists in the system")

        can_create, can_create_private = analyze_scopes(scopes)
        is_first = await self.repo.count_for_user(user_id) == 0
        now = datetime.utcnow()

        account = GitHubAccount(
            user_id=user_id,
            organization_id=organization_id,
            nickname=nickname,
            username=identity["login"],
            email=identity["email"],
            avatar_url=identity["avatar_url"],
            token=encrypt_secret(token),
            github_id=identity["id"],
            github_login=identity["login"],
            github_name=identity["name"],
            github_type=identity["type"],
            scopes=scopes,
            can_create_repo=can_create,
            can_create_private_repo=can_create_private,
            is_active=True,
            is_default=is_first,
            validation_status="valid",
            last_validated_at=now,
        )
        await self.repo.create(account)
        logger.info(f"Linked GitHub account {identity['login']} for user {user_id}")
        return account

    async def list_accounts(self, user_id: UUID) -> Sequence[GitHubAccount]:
        """Active accounts of a user, default first."""
        return await self.repo.list_for_user(user_id)

    async def set_default(self, account_id: UUID, user_id: UUID) -> GitHubAccount:
        """Make one account the user's default."""
        account = await self.get_account(account_id, user_id)
        await self.repo.clear_default(user_id)
        account.is_default = True
        await self.db.flush()
        logger.info(f"Set GitHub account {account_id} as default for user {user_id}")
        return account

    async def update_token(self, account_id: UUID, user_id: UUID, token: str) -> GitHubAccount:
        """
        Replace the stored token after validating it.

        Raises:
            AccessDeniedError: If the token belongs to a different GitHub identity
        """
        account = await self.get_account(account_id, user_id)
        identity, scopes = await self._validate_token(token)
        if identity["id"] != account.github_id:
            raise AccessDeniedError("Token belongs to a different GitHub account")

        can_create, can_create_private = analyze_scopes(scopes)
        account.token = encrypt_secret(token)
        account.scopes = scopes
        account.can_create_repo = can_create
        account.can_create_private_repo = can_create_private
        account.validation_status = "valid"
        account.last_validated_at = datetime.utcnow()
        await self.db.flush()

        self.clients.evict(account_id)
        logger.info(f"Replaced token of GitHub account {account_id}")
        return account

    async def delete_account(self, account_id: UUID, user_id: UUID) -> None:
        """Remove an account and its cached client."""
        account = await self.get_account(account_id, user_id)
        await self.repo.delete(account)
        self.clients.evict(account_id)
        logger.info(f"Deleted GitHub account {account_id}")

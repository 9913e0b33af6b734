"""
GitHub Client Cache

Resolves a linked GitHub account into an authenticated PyGithub client.

Clients are cached per account id inside an explicitly constructed
GitHubClientCache that is injected into every service. Entries expire after
`github_client_ttl_seconds` and are evicted when an account's token changes
or the account is removed.

PyGithub is synchronous; every call that can hit the network is run in a
worker thread through GitHubClient.call(), which is also the single place
where GithubException is translated into UpstreamError.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Annotated, Any, TypeVar
from uuid import UUID

from fastapi import Depends
from github import Auth, Github, GithubException
from github.Repository import Repository
from sqlalchemy.ext.asyncio import AsyncSession

from genstack.config import Settings, get_settings
from genstack.core.exceptions import (
    NotFoundError,
    RefConflictError,
    SyncInProgressError,
    UpstreamError,
)
from genstack.core.security import decrypt_secret
from genstack.repositories.accounts import GitHubAccountRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def translate_github_error(e: GithubException) -> UpstreamError:
    """Convert a PyGithub exception into an UpstreamError."""
    message = None
    if isinstance(e.data, dict):
        message = e.data.get("message")
    return UpstreamError(message or str(e), status=e.status)


def error_code_for(e: Exception) -> str | None:
    """Machine readable failure kind for an OperationResult."""
    if isinstance(e, (RefConflictError, SyncInProgressError)):
        return "conflict"
    if isinstance(e, NotFoundError) or (isinstance(e, UpstreamError) and e.is_not_found):
        return "not_found"
    if isinstance(e, UpstreamError):
        return "upstream"
    return None


def build_github(token: str, settings: Settings | None = None) -> Github:
    """Construct a PyGithub client authenticated with a personal access token."""
    settings = settings or get_settings()
    return Github(
        auth=Auth.Token(token),
        base_url=settings.github_api_url,
        per_page=settings.github_per_page,
        timeout=settings.github_timeout_seconds,
    )


class GitHubClient:
    """
    Authenticated GitHub client bound to one account.

    `owner` is the account's username and is used to qualify bare
    repository names.
    """

    def __init__(self, github: Github, owner: str):
        self.github = github
        self.owner = owner

    def full_name(self, repo_name: str) -> str:
        """Qualify a repository name with the account owner."""
        if "/" in repo_name:
            return repo_name
        return f"{self.owner}/{repo_name}"

    async def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Run a blocking PyGithub call in a worker thread.

        Raises:
            UpstreamError: If GitHub rejects the call
        """
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except GithubException as e:
            raise translate_github_error(e) from e

    async def get_repo(self, repo_name: str) -> Repository:
        """Fetch a repository of this account."""
        return await self.call(self.github.get_repo, self.full_name(repo_name))


@dataclass
class _CacheEntry:
    client: GitHubClient
    created_at: float = field(default_factory=time.monotonic)


class GitHubClientCache:
    """
    Per-account cache of authenticated clients.

    Concurrent resolutions of the same account id are serialized so the
    token is decrypted and the client constructed exactly once.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        decrypt: Callable[[str], str] = decrypt_secret,
        client_factory: Callable[[str], Github] | None = None,
    ):
        self.settings = settings or get_settings()
        self._decrypt = decrypt
        self._client_factory = client_factory or (lambda token: build_github(token, self.settings))
        self._entries: dict[UUID, _CacheEntry] = {}
        self._locks: dict[UUID, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._entries

    def _is_expired(self, entry: _CacheEntry) -> bool:
        ttl = self.settings.github_client_ttl_seconds
        return ttl > 0 and time.monotonic() - entry.created_at > ttl

    def _lookup(self, account_id: UUID) -> GitHubClient | None:
        entry = self._entries.get(account_id)
        if entry is None:
            return None
        if self._is_expired(entry):
            logger.debug(f"Cached GitHub client for account {account_id} expired")
            del self._entries[account_id]
            return None
        return entry.client

    async def get_client(self, db: AsyncSession, account_id: UUID) -> GitHubClient:
        """
        Get an authenticated client for an account.

        Args:
            db: Database session used to load the account on a cache miss
            account_id: GitHub account id

        Returns:
            Cached or newly constructed GitHubClient

        Raises:
            NotFoundError: If the account does not exist
            DecryptionError: If the stored token cannot be decrypted
        """
        client = self._lookup(account_id)
        if client is not None:
            return client

        lock = self._locks.setdefault(account_id, asyncio.Lock())
        async with lock:
            # Another task may have resolved it while we waited
            client = self._lookup(account_id)
            if client is not None:
                return client

            account = await GitHubAccountRepository(db).get_by_id(account_id)
            if account is None:
                raise NotFoundError("GitHub account not found")

            token = self._decrypt(account.token)
            client = GitHubClient(self._client_factory(token), owner=account.username)
            self._entries[account_id] = _CacheEntry(client=client)
            logger.info(f"Created GitHub client for account {account_id} ({account.username})")
            return client

    def evict(self, account_id: UUID) -> None:
        """Drop the cached client of one account."""
        self._locks.pop(account_id, None)
        if self._entries.pop(account_id, None) is not None:
            logger.info(f"Evicted cached GitHub client for account {account_id}")

    def clear(self) -> None:
        """Drop every cached client."""
        self._entries.clear()
        self._locks.clear()
        logger.info("Cleared GitHub client cache")


_client_cache: GitHubClientCache | None = None


def get_client_cache() -> GitHubClientCache:
    """FastAPI dependency returning the process-wide client cache."""
    global _client_cache
    if _client_cache is None:
        _client_cache = GitHubClientCache()
    return _client_cache


ClientCache = Annotated[GitHubClientCache, Depends(get_client_cache)]

"""
Unit tests for the GitHub client cache and client wrapper.

The cache must construct at most one client per account, however many
requests race to resolve it.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from github import GithubException

from genstack.core.exceptions import (
    DecryptionError,
    NotFoundError,
    RefConflictError,
    SyncInProgressError,
    UpstreamError,
)
from genstack.services.github_client import (
    GitHubClient,
    GitHubClientCache,
    error_code_for,
    translate_github_error,
)


def _account(username: str = "octocat"):
    return SimpleNamespace(username=username, token="encrypted-token")


def _db_returning(account):
    """Session whose get() yields to the loop before answering."""
    async def _get(model, ident):
        await asyncio.sleep(0)
        return account

    db = AsyncMock()
    db.get = AsyncMock(side_effect=_get)
    return db


@pytest.fixture
def decrypt():
    return MagicMock(return_value="ghp_plaintext")


@pytest.fixture
def factory():
    return MagicMock(side_effect=lambda token: MagicMock(name=f"Github({token})"))


@pytest.fixture
def cache(test_settings, decrypt, factory):
    return GitHubClientCache(settings=test_settings, decrypt=decrypt, client_factory=factory)


class TestGitHubClientCache:
    """Tests for GitHubClientCache."""

    async def test_concurrent_resolution_decrypts_once(self, cache, decrypt, factory):
        account_id = uuid4()
        db = _db_returning(_account())

        clients = await asyncio.gather(*(cache.get_client(db, account_id) for _ in range(10)))

        assert decrypt.call_count == 1
        assert factory.call_count == 1
        assert len(cache) == 1
        assert all(c is clients[0] for c in clients)

    async def test_client_bound_to_account_username(self, cache, factory):
        account_id = uuid4()

        client = await cache.get_client(_db_returning(_account("hubber")), account_id)

        assert client.owner == "hubber"
        factory.assert_called_once_with("ghp_plaintext")

    async def test_missing_account_raises_not_found(self, cache):
        with pytest.raises(NotFoundError):
            await cache.get_client(_db_returning(None), uuid4())

        assert len(cache) == 0

    async def test_decryption_failure_is_not_cached(self, cache, decrypt):
        decrypt.side_effect = DecryptionError()
        account_id = uuid4()

        with pytest.raises(DecryptionError):
            await cache.get_client(_db_returning(_account()), account_id)

        assert account_id not in cache

    async def test_evict_forces_rebuild(self, cache, decrypt):
        account_id = uuid4()
        db = _db_returning(_account())

        first = await cache.get_client(db, account_id)
        cache.evict(account_id)
        second = await cache.get_client(db, account_id)

        assert first is not second
        assert decrypt.call_count == 2

    async def test_evict_drops_account_lock(self, cache):
        account_id, other_id = uuid4(), uuid4()
        db = _db_returning(_account())
        await cache.get_client(db, account_id)
        await cache.get_client(db, other_id)

        cache.evict(account_id)

        assert account_id not in cache._locks
        assert other_id in cache._locks

    async def test_locks_do_not_accumulate(self, cache):
        db = _db_returning(_account())
        for _ in range(100):
            account_id = uuid4()
            await cache.get_client(db, account_id)
            cache.evict(account_id)

        assert cache._locks == {}
        assert len(cache) == 0

    async def test_evict_unknown_account_is_noop(self, cache):
        cache.evict(uuid4())

        assert len(cache) == 0

    async def test_clear_empties_cache(self, cache):
        db = _db_returning(_account())
        await cache.get_client(db, uuid4())
        await cache.get_client(db, uuid4())

        cache.clear()

        assert len(cache) == 0
        assert cache._locks == {}

    async def test_expired_entry_is_rebuilt(self, cache, decrypt):
        account_id = uuid4()
        db = _db_returning(_account())
        await cache.get_client(db, account_id)

        cache._entries[account_id].created_at -= cache.settings.github_client_ttl_seconds + 1
        await cache.get_client(db, account_id)

        assert decrypt.call_count == 2

    async def test_zero_ttl_never_expires(self, test_settings, decrypt, factory):
        settings = test_settings.model_copy(update={"github_client_ttl_seconds": 0})
        cache = GitHubClientCache(settings=settings, decrypt=decrypt, client_factory=factory)
        account_id = uuid4()
        db = _db_returning(_account())
        await cache.get_client(db, account_id)

        cache._entries[account_id].created_at -= 10 ** 6
        await cache.get_client(db, account_id)

        assert decrypt.call_count == 1


class TestGitHubClient:
    """Tests for GitHubClient and GithubException translation."""

    def test_full_name_qualifies_bare_names(self):
        client = GitHubClient(MagicMock(), owner="octocat")

        assert client.full_name("hello-world") == "octocat/hello-world"
        assert client.full_name("other/repo") == "other/repo"

    async def test_call_runs_function(self):
        client = GitHubClient(MagicMock(), owner="octocat")

        result = await client.call(lambda a, b=0: a + b, 2, b=3)

        assert result == 5

    async def test_call_translates_github_exception(self):
        client = GitHubClient(MagicMock(), owner="octocat")

        def _fail():
            raise GithubException(404, {"message": "Not Found"}, None)

        with pytest.raises(UpstreamError) as exc_info:
            await client.call(_fail)

        assert exc_info.value.status == 404
        assert exc_info.value.message == "Not Found"
        assert exc_info.value.is_not_found

    async def test_get_repo_uses_full_name(self):
        github = MagicMock()
        client = GitHubClient(github, owner="octocat")

        await client.get_repo("hello-world")

        github.get_repo.assert_called_once_with("octocat/hello-world")

    def test_translate_without_message_body(self):
        error = translate_github_error(GithubException(500, None, None))

        assert error.status == 500
        assert error.message

    def test_error_codes(self):
        assert error_code_for(RefConflictError("moved", status=422)) == "conflict"
        assert error_code_for(UpstreamError("gone", status=404)) == "not_found"
        assert error_code_for(NotFoundError()) == "not_found"
        assert error_code_for(UpstreamError("rate limited", status=403)) == "upstream"
        assert error_code_for(DecryptionError()) is None
        assert error_code_for(SyncInProgressError()) == "conflict"

"""
Unit tests for GitHubAccountService.

Accounts are persisted in an in-memory SQLite database; GitHub identity
lookups go through a mocked PyGithub client.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from github import GithubException

from genstack.core.exceptions import AccessDeniedError, AlreadyExistsError, NotFoundError, UpstreamError
from genstack.core.security import decrypt_secret
from genstack.services.github_accounts import GitHubAccountService, analyze_scopes


def _github(github_id=1001, login="octocat", scopes=("repo", "workflow")):
    github = MagicMock(name="Github")
    github.get_user.return_value = SimpleNamespace(
        id=github_id,
        login=login,
        name=None,
        email="octocat@example.com",
        avatar_url="https://avatars.example.com/octocat",
        type="User",
    )
    github.oauth_scopes = list(scopes)
    return github


@pytest.fixture
def clients():
    return MagicMock(name="GitHubClientCache")


@pytest.fixture
def identities():
    """Token -> Github stand-in used by the service factory."""
    return {}


@pytest.fixture
def service(db_session, clients, test_settings, identities):
    return GitHubAccountService(
        db_session,
        clients,
        settings=test_settings,
        github_factory=lambda token: identities[token],
    )


class TestAnalyzeScopes:
    def test_repo_scope_allows_private(self):
        assert analyze_scopes(["repo"]) == (True, True)

    def test_public_repo_scope(self):
        assert analyze_scopes(["public_repo", "read:org"]) == (True, False)

    def test_no_repo_scopes(self):
        assert analyze_scopes(["gist"]) == (False, False)


class TestLinkAccount:
    """Tests for linking accounts."""

    async def test_first_account_becomes_default(self, service, identities, user_id):
        identities["ghp_first"] = _github()

        account = await service.link_account(user_id, None, "Work", "ghp_first")

        assert account.is_default is True
        assert account.username == "octocat"
        assert account.github_name == "octocat"
        assert account.can_create_private_repo is True
        assert account.validation_status == "valid"
        assert account.token != "ghp_first"
        assert decrypt_secret(account.token) == "ghp_first"

    async def test_second_account_is_not_default(self, service, identities, user_id):
        identities["ghp_first"] = _github(1001, "octocat")
        identities["ghp_second"] = _github(2002, "hubot", scopes=("public_repo",))

        await service.link_account(user_id, None, "Work", "ghp_first")
        second = await service.link_account(user_id, None, "Side", "ghp_second")

        assert second.is_default is False
        assert second.can_create_repo is True
        assert second.can_create_private_repo is False

    async def test_duplicate_identity_rejected(self, service, identities, user_id):
        identities["ghp_first"] = _github(1001)
        identities["ghp_again"] = _github(1001)
        await service.link_account(user_id, None, "Work", "ghp_first")

        with pytest.raises(AlreadyExistsError):
            await service.link_account(uuid4(), None, "Other", "ghp_again")

    async def test_invalid_token_raises_upstream(self, service, identities, user_id):
        github = MagicMock()
        github.get_user.side_effect = GithubException(401, {"message": "Bad credentials"}, None)
        identities["ghp_bad"] = github

        with pytest.raises(UpstreamError) as exc_info:
            await service.link_account(user_id, None, "Work", "ghp_bad")

        assert exc_info.value.status == 401
        assert await service.list_accounts(user_id) == []


class TestManageAccounts:
    """Tests for default selection, token replacement and removal."""

    @pytest.fixture
    async def linked(self, service, identities, user_id):
        identities["ghp_first"] = _github(1001, "octocat")
        identities["ghp_second"] = _github(2002, "hubot")
        first = await service.link_account(user_id, None, "Work", "ghp_first")
        second = await service.link_account(user_id, None, "Side", "ghp_second")
        return first, second

    async def test_list_default_first(self, service, linked, user_id):
        first, second = linked
        await service.set_default(second.id, user_id)

        accounts = await service.list_accounts(user_id)

        assert [a.id for a in accounts] == [second.id, first.id]

    async def test_set_default_is_exclusive(self, service, db_session, linked, user_id):
        first, second = linked

        await service.set_default(second.id, user_id)
        await db_session.refresh(first)

        assert second.is_default is True
        assert first.is_default is False

    async def test_get_account_of_other_user(self, service, linked):
        first, _ = linked

        with pytest.raises(AccessDeniedError):
            await service.get_account(first.id, uuid4())

    async def test_get_missing_account(self, service, user_id):
        with pytest.raises(NotFoundError):
            await service.get_account(uuid4(), user_id)

    async def test_update_token_evicts_client(self, service, identities, clients, linked, user_id):
        first, _ = linked
        identities["ghp_rotated"] = _github(1001, "octocat", scopes=("public_repo",))

        updated = await service.update_token(first.id, user_id, "ghp_rotated")

        assert decrypt_secret(updated.token) == "ghp_rotated"
        assert updated.scopes == ["public_repo"]
        assert updated.can_create_private_repo is False
        clients.evict.assert_called_once_with(first.id)

    async def test_update_token_for_other_identity(self, service, identities, clients, linked, user_id):
        first, _ = linked
        identities["ghp_foreign"] = _github(3003, "someone-else")

        with pytest.raises(AccessDeniedError):
            await service.update_token(first.id, user_id, "ghp_foreign")

        assert decrypt_secret(first.token) == "ghp_first"
        clients.evict.assert_not_called()

    async def test_delete_evicts_client(self, service, clients, linked, user_id):
        first, second = linked

        await service.delete_account(first.id, user_id)

        assert [a.id for a in await service.list_accounts(user_id)] == [second.id]
        clients.evict.assert_called_once_with(first.id)

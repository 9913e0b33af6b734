"""
Unit tests for AdvancedGitService.
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from github import GithubException

from genstack.models.contracts.github import CommitAuthor, CommitInfo, CommitStats, ProtectionRules
from genstack.models.enums import CheckStatus, MergeMethod
from genstack.services.advanced_git import (
    AdvancedGitService,
    _check_status,
    _protection_kwargs,
    build_changelog,
)

WHEN = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _paginated(items):
    """PaginatedList stand-in supporting slicing."""
    paginated = MagicMock()
    paginated.__getitem__.side_effect = lambda s: items[s]
    paginated.__iter__.side_effect = lambda: iter(items)
    return paginated


def _commit_detail(sha: str, message: str, files=None):
    return SimpleNamespace(
        sha=sha,
        commit=SimpleNamespace(
            message=message,
            author=SimpleNamespace(name="Mona", email="mona@example.com", date=WHEN),
        ),
        stats=SimpleNamespace(additions=3, deletions=1, total=4),
        files=files or [],
    )


@pytest.fixture
def service(mock_db, fake_clients, test_settings):
    return AdvancedGitService(mock_db, fake_clients, settings=test_settings)


class TestHelpers:
    """Tests for module level helpers."""

    def test_check_status_mapping(self):
        assert _check_status("queued", None) == CheckStatus.PENDING
        assert _check_status("in_progress", None) == CheckStatus.PENDING
        assert _check_status("completed", "success") == CheckStatus.SUCCESS
        assert _check_status("completed", "failure") == CheckStatus.FAILURE
        assert _check_status("completed", "cancelled") == CheckStatus.FAILURE

    def test_protection_kwargs_full(self):
        kwargs = _protection_kwargs(ProtectionRules(
            require_pull_request=True,
            require_code_owner_reviews=True,
            require_status_checks=["ci/test"],
            enforce_admins=True,
        ))

        assert kwargs == {
            "enforce_admins": True,
            "strict": True,
            "contexts": ["ci/test"],
            "required_approving_review_count": 1,
            "require_code_owner_reviews": True,
            "dismiss_stale_reviews": True,
        }

    def test_protection_kwargs_minimal(self):
        assert _protection_kwargs(ProtectionRules()) == {"enforce_admins": False}

    def test_changelog_lines(self):
        commits = [
            CommitInfo(
                sha="abcdef1234567",
                message="Fix login\n\nLong body",
                author=CommitAuthor(name="Mona", email="m@example.com", date=WHEN),
                stats=CommitStats(),
            ),
            CommitInfo(
                sha="1234567abcdef",
                message="Add search",
                author=CommitAuthor(name="Mona", email="m@example.com", date=WHEN),
                stats=CommitStats(),
            ),
        ]

        assert build_changelog(commits) == "- Fix login (abcdef1)\n- Add search (1234567)"


class TestCommitHistory:
    """Tests for get_commit_history."""

    async def test_enriches_every_commit(self, service, fake_repo):
        fake_repo.get_commits.return_value = _paginated([
            SimpleNamespace(sha="a1"), SimpleNamespace(sha="b2"),
        ])
        details = {
            "a1": _commit_detail("a1", "First", files=[
                SimpleNamespace(filename="a.txt", status="added", additions=3, deletions=0, changes=3),
            ]),
            "b2": _commit_detail("b2", "Second"),
        }
        fake_repo.get_commit.side_effect = lambda sha: details[sha]

        history = await service.get_commit_history(uuid4(), "hello-world", branch="develop", limit=2)

        fake_repo.get_commits.assert_called_once_with(sha="develop")
        assert [c.sha for c in history] == ["a1", "b2"]
        assert history[0].files[0].filename == "a.txt"
        assert history[0].stats.total == 4
        assert history[1].author.name == "Mona"

    async def test_passes_only_set_filters(self, service, fake_repo):
        fake_repo.get_commits.return_value = _paginated([])

        await service.get_commit_history(uuid4(), "hello-world", since=WHEN, author="mona")

        fake_repo.get_commits.assert_called_once_with(sha="main", since=WHEN, author="mona")

    async def test_default_limit(self, service, fake_repo, test_settings):
        commits = [SimpleNamespace(sha=f"s{i}") for i in range(test_settings.commit_history_limit + 5)]
        fake_repo.get_commits.return_value = _paginated(commits)
        fake_repo.get_commit.side_effect = lambda sha: _commit_detail(sha, "msg")

        history = await service.get_commit_history(uuid4(), "hello-world")

        assert len(history) == test_settings.commit_history_limit


class TestBranchDetails:
    """Tests for get_branch_details."""

    @pytest.fixture
    def branches(self, fake_repo):
        fake_repo.get_branches.return_value = [
            SimpleNamespace(name="main", commit=SimpleNamespace(sha="m1"), protected=True),
            SimpleNamespace(name="feature", commit=SimpleNamespace(sha="f1"), protected=False),
        ]
        fake_repo.compare.return_value = SimpleNamespace(ahead_by=3, behind_by=1)

    async def test_compares_non_default_branches(self, service, fake_repo, branches):
        fake_repo.get_commit.side_effect = lambda sha: _commit_detail(sha, f"tip {sha}")

        details = await service.get_branch_details(uuid4(), "hello-world")

        by_name = {d.name: d for d in details}
        assert by_name["main"].is_default is True
        assert by_name["main"].is_protected is True
        assert (by_name["main"].ahead, by_name["main"].behind) == (0, 0)
        assert (by_name["feature"].ahead, by_name["feature"].behind) == (3, 1)
        assert by_name["feature"].last_commit.message == "tip f1"
        fake_repo.compare.assert_called_once_with("main", "feature")

    async def test_failed_branch_degrades(self, service, fake_repo, branches):
        def _get_commit(sha):
            if sha == "f1":
                raise GithubException(500, {"message": "Server Error"}, None)
            return _commit_detail(sha, "tip")

        fake_repo.get_commit.side_effect = _get_commit

        details = await service.get_branch_details(uuid4(), "hello-world")

        feature = next(d for d in details if d.name == "feature")
        assert feature.last_commit.message == "Unable to fetch commit details"
        assert feature.last_commit.sha == "f1"
        assert (feature.ahead, feature.behind) == (0, 0)
        main = next(d for d in details if d.name == "main")
        assert main.last_commit.message == "tip"


class TestProtectedBranch:
    """Tests for create_protected_branch."""

    async def test_creates_and_protects(self, service, fake_repo):
        fake_repo.get_commit.return_value = SimpleNamespace(sha="abc1234")
        branch = MagicMock()
        fake_repo.get_branch.return_value = branch

        result = await service.create_protected_branch(
            uuid4(),
            "hello-world",
            "release",
            "main",
            ProtectionRules(require_pull_request=True, require_status_checks=["ci"]),
        )

        fake_repo.create_git_ref.assert_called_once_with("refs/heads/release", "abc1234")
        branch.edit_protection.assert_called_once_with(
            enforce_admins=False,
            strict=True,
            contexts=["ci"],
            required_approving_review_count=1,
            require_code_owner_reviews=False,
            dismiss_stale_reviews=True,
        )
        assert result.success is True
        assert result.message == 'Branch "release" created successfully with protection rules'

    async def test_without_rules_skips_protection(self, service, fake_repo):
        fake_repo.get_commit.return_value = SimpleNamespace(sha="abc1234")

        result = await service.create_protected_branch(uuid4(), "hello-world", "topic")

        fake_repo.get_branch.assert_not_called()
        assert result.message == 'Branch "topic" created successfully'

    async def test_existing_branch_fails(self, service, fake_repo):
        fake_repo.get_commit.return_value = SimpleNamespace(sha="abc1234")
        fake_repo.create_git_ref.side_effect = GithubException(
            422, {"message": "Reference already exists"}, None
        )

        result = await service.create_protected_branch(uuid4(), "hello-world", "main")

        assert result.success is False
        assert "Reference already exists" in result.message


class TestPullRequests:
    """Tests for preview_pull_request and perform_advanced_merge."""

    def _comparison(self, messages, files=2):
        return SimpleNamespace(
            ahead_by=len(messages),
            behind_by=1,
            commits=[SimpleNamespace(commit=SimpleNamespace(message=m)) for m in messages],
            files=[object()] * files,
        )

    async def test_single_commit_preview(self, service, fake_repo):
        fake_repo.compare.return_value = self._comparison(["Fix bug\n\nDetails here"])
        fake_repo.get_commit.return_value.get_check_runs.return_value = [
            SimpleNamespace(name="build", status="completed", conclusion="success",
                            output=SimpleNamespace(summary="All good")),
            SimpleNamespace(name="lint", status="in_progress", conclusion=None,
                            output=SimpleNamespace(summary=None)),
        ]

        preview = await service.preview_pull_request(uuid4(), "hello-world", "feature", "main")

        fake_repo.compare.assert_called_once_with("main", "feature")
        assert preview.title == "Fix bug"
        assert preview.description == "Fix bug\n\nDetails here"
        assert preview.changes.additions == 1
        assert preview.changes.deletions == 1
        assert preview.changes.changed_files == 2
        assert [(c.name, c.status) for c in preview.checks] == [
            ("build", CheckStatus.SUCCESS),
            ("lint", CheckStatus.PENDING),
        ]
        assert preview.checks[1].description == "No description"
        assert preview.conflicts == []

    async def test_multi_commit_preview(self, service, fake_repo):
        fake_repo.compare.return_value = self._comparison(["One", "Two\nbody"])
        fake_repo.get_commit.return_value.get_check_runs.return_value = []

        preview = await service.preview_pull_request(uuid4(), "hello-world", "feature")

        assert preview.title == "Merge feature into main"
        assert preview.description == "## Changes\n\n- One\n- Two"

    async def test_unavailable_checks_degrade(self, service, fake_repo):
        fake_repo.compare.return_value = self._comparison(["One"])
        fake_repo.get_commit.side_effect = GithubException(404, {"message": "Not Found"}, None)

        preview = await service.preview_pull_request(uuid4(), "hello-world", "feature")

        assert preview.checks == []

    async def test_unmergeable_pr_is_refused(self, service, fake_repo):
        pr = MagicMock(mergeable=False)
        fake_repo.get_pull.return_value = pr

        result = await service.perform_advanced_merge(uuid4(), "hello-world", 7)

        assert result.success is False
        assert result.error_code == "conflict"
        assert result.message == "Pull request has conflicts and cannot be merged automatically"
        pr.merge.assert_not_called()

    async def test_unknown_mergeability_is_refused(self, service, fake_repo):
        pr = MagicMock(mergeable=None)
        fake_repo.get_pull.return_value = pr

        result = await service.perform_advanced_merge(uuid4(), "hello-world", 7)

        assert result.success is False
        pr.merge.assert_not_called()

    async def test_merges_with_method(self, service, fake_repo):
        pr = MagicMock(mergeable=True, body="PR body")
        pr.head.ref = "feature"
        pr.merge.return_value = SimpleNamespace(sha="merged-sha", merged=True)
        fake_repo.get_pull.return_value = pr

        result = await service.perform_advanced_merge(
            uuid4(), "hello-world", 7, merge_method=MergeMethod.SQUASH
        )

        pr.merge.assert_called_once_with(
            commit_message="PR body",
            commit_title="Merge pull request #7 from feature",
            merge_method="squash",
        )
        assert result.success is True
        assert result.message == "Pull request #7 merged successfully using squash"
        assert result.data == {"sha": "merged-sha", "merged": True}


class TestCreateRelease:
    """Tests for create_release."""

    async def test_release_with_changelog(self, service, fake_repo):
        fake_repo.get_releases.return_value = _paginated([SimpleNamespace(created_at=WHEN)])
        fake_repo.get_commits.return_value = _paginated([SimpleNamespace(sha="abcdef1234")])
        fake_repo.get_commit.side_effect = lambda sha: _commit_detail(sha, "Add feature\n\nbody")
        fake_repo.create_git_release.return_value = SimpleNamespace(id=1, html_url="https://example.test/r/1")

        result = await service.create_release(uuid4(), "hello-world", "v1.1.0", "1.1.0", "Notes")

        fake_repo.get_commits.assert_called_once_with(sha="main", since=WHEN)
        fake_repo.create_git_release.assert_called_once_with(
            "v1.1.0",
            "1.1.0",
            "Notes\n\n## What's Changed\n\n- Add feature (abcdef1)",
            draft=False,
            prerelease=False,
        )
        assert result.success is True
        assert result.message == 'Release "1.1.0" created successfully'

    async def test_changelog_failure_still_releases(self, service, fake_repo):
        fake_repo.get_releases.side_effect = GithubException(500, {"message": "Server Error"}, None)
        fake_repo.create_git_release.return_value = SimpleNamespace(id=2, html_url="https://example.test/r/2")

        result = await service.create_release(
            uuid4(), "hello-world", "v2.0.0", "2.0.0", "Plain", is_draft=True
        )

        fake_repo.create_git_release.assert_called_once_with(
            "v2.0.0", "2.0.0", "Plain", draft=True, prerelease=False
        )
        assert result.success is True

    async def test_without_changelog(self, service, fake_repo):
        fake_repo.create_git_release.return_value = SimpleNamespace(id=3, html_url="https://example.test/r/3")

        await service.create_release(
            uuid4(), "hello-world", "v3", "3", "Plain", generate_changelog=False
        )

        fake_repo.get_releases.assert_not_called()

    async def test_release_failure_is_captured(self, service, fake_repo):
        fake_repo.create_git_release.side_effect = GithubException(
            422, {"message": "Validation Failed"}, None
        )

        result = await service.create_release(
            uuid4(), "hello-world", "v1", "1", "", generate_changelog=False
        )

        assert result.success is False
        assert result.message == "Failed to create release: Validation Failed"

"""
Advanced Git Service

Commit history, branch comparison, protected branches, pull request
preview and merge, and releases with generated changelogs.

Per-item enrichment (commit details, branch details) fans out
concurrently with asyncio.gather; each item is still a separate GitHub
call, so large repositories cost one request per commit or branch.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from github.Repository import Repository
from sqlalchemy.ext.asyncio import AsyncSession

from genstack.config import Settings, get_settings
from genstack.core.exceptions import DecryptionError, NotFoundError, UpstreamError
from genstack.models.contracts.common import OperationResult
from genstack.models.contracts.github import (
    BranchDetails,
    CheckInfo,
    CommitAuthor,
    CommitFileInfo,
    CommitInfo,
    CommitStats,
    LastCommitInfo,
    PullRequestChanges,
    PullRequestPreview,
    ProtectionRules,
)
from genstack.models.enums import CheckStatus, MergeMethod
from genstack.services.github_client import GitHubClient, GitHubClientCache, error_code_for

logger = logging.getLogger(__name__)


def _subject(message: str) -> str:
    """First line of a commit message."""
    return message.split("\n", 1)[0]


def _check_status(status: str | None, conclusion: str | None) -> CheckStatus:
    if status != "completed":
        return CheckStatus.PENDING
    return CheckStatus.SUCCESS if conclusion == "success" else CheckStatus.FAILURE


def _protection_kwargs(rules: ProtectionRules) -> dict[str, Any]:
    """Translate protection rules into Branch.edit_protection() arguments."""
    kwargs: dict[str, Any] = {"enforce_admins": rules.enforce_admins}
    if rules.require_status_checks:
        kwargs["strict"] = True
        kwargs["contexts"] = rules.require_status_checks
    if rules.require_pull_request:
        kwargs["required_approving_review_count"] = 1
        kwargs["require_code_owner_reviews"] = rules.require_code_owner_reviews
        kwargs["dismiss_stale_reviews"] = True
    return kwargs


def build_changelog(commits: list[CommitInfo]) -> str:
    """Markdown bullet list of commit subjects with short SHAs."""
    return "\n".join(f"- {_subject(c.message)} ({c.sha[:7]})" for c in commits)


class AdvancedGitService:
    """Branch, pull request and release orchestration."""

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

    # ==================== COMMITS ====================

    async def get_commit_history(
        self,
        account_id: UUID,
        repo_name: str,
        branch: str = "main",
        limit: int | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        author: str | None = None,
    ) -> list[CommitInfo]:
        """
        Recent commits of a branch with statistics and touched files.

        Args:
            account_id: GitHub account used for authentication
            repo_name: Repository name
            branch: Branch to walk
            limit: Maximum number of commits (defaults to commit_history_limit)
            since: Only commits after this time
            until: Only commits before this time
            author: GitHub login or email of the author

        Returns:
            Commits newest first

        Raises:
            UpstreamError: If listing commits fails
        """
        client, repo = await self._open_repo(account_id, repo_name)
        limit = limit or self.settings.commit_history_limit

        # PyGithub rejects None for these filters
        filters: dict[str, Any] = {"sha": branch}
        if since is not None:
            filters["since"] = since
        if until is not None:
            filters["until"] = until
        if author is not None:
            filters["author"] = author

        shas = await client.call(lambda: [c.sha for c in repo.get_commits(**filters)[:limit]])

        def _load_commit(sha: str) -> CommitInfo:
            detail = repo.get_commit(sha)
            git_author = detail.commit.author
            stats = detail.stats
            return CommitInfo(
                sha=detail.sha,
                message=detail.commit.message,
                author=CommitAuthor(
                    name=git_author.name or "Unknown",
                    email=git_author.email or "unknown@example.com",
                    date=git_author.date,
                ),
                stats=CommitStats(
                    additions=stats.additions or 0,
                    deletions=stats.deletions or 0,
                    total=stats.total or 0,
                ),
                files=[
                    CommitFileInfo(
                        filename=f.filename,
                        status=f.status,
                        additions=f.additions or 0,
                        deletions=f.deletions or 0,
                        changes=f.changes or 0,
                    )
                    for f in detail.files
                ],
            )

        return list(await asyncio.gather(*(client.call(_load_commit, sha) for sha in shas)))

    # ==================== BRANCHES ====================

    async def get_branch_details(self, account_id: UUID, repo_name: str) -> list[BranchDetails]:
        """
        Branches with ahead/behind counts against the default branch.

        A failure while enriching one branch degrades that entry to
        placeholder values instead of failing the listing.
        """
        client, repo = await self._open_repo(account_id, repo_name)
        default_branch = repo.default_branch
        branches = await client.call(lambda: list(repo.get_branches()))

        async def _details(branch) -> BranchDetails:
            sha = branch.commit.sha
            is_default = branch.name == default_branch
            try:
                ahead = behind = 0
                if not is_default:
                    try:
                        comparison = await client.call(repo.compare, default_branch, branch.name)
                        ahead, behind = comparison.ahead_by, comparison.behind_by
                    except UpstreamError as e:
                        logger.debug(f"Could not compare {branch.name} with {default_branch}: {e.message}")

                last = await client.call(repo.get_commit, sha)
                return BranchDetails(
                    name=branch.name,
                    sha=sha,
                    is_default=is_default,
                    is_protected=branch.protected,
                    ahead=ahead,
                    behind=behind,
                    last_commit=LastCommitInfo(
                        sha=last.sha,
                        message=last.commit.message,
                        author=last.commit.author.name or "Unknown",
                        date=last.commit.author.date,
                    ),
                )
            except UpstreamError as e:
                logger.warning(f"Error processing branch {branch.name} of {repo_name}: {e.message}")
                return BranchDetails(
                    name=branch.name,
                    sha=sha,
                    is_default=is_default,
                    is_protected=False,
                    last_commit=LastCommitInfo(
                        sha=sha,
                        message="Unable to fetch commit details",
                        author="Unknown",
                        date=datetime.now(timezone.utc),
                    ),
                )

        return list(await asyncio.gather(*(_details(b) for b in branches)))

    async def create_protected_branch(
        self,
        account_id: UUID,
        repo_name: str,
        branch_name: str,
        source_ref: str = "main",
        protection_rules: ProtectionRules | None = None,
    ) -> OperationResult:
        """Create a branch at `source_ref` and optionally protect it."""
        try:
            client, repo = await self._open_repo(account_id, repo_name)
            source = await client.call(repo.get_commit, source_ref)
            await client.call(repo.create_git_ref, f"refs/heads/{branch_name}", source.sha)
            logger.info(f"Created branch {branch_name} in {repo.full_name} at {source.sha[:7]}")

            if protection_rules is not None:
                branch = await client.call(repo.get_branch, branch_name)
                await client.call(branch.edit_protection, **_protection_kwargs(protection_rules))
                logger.info(f"Applied protection rules to {repo.full_name}@{branch_name}")
        except (NotFoundError, DecryptionError, UpstreamError) as e:
            logger.warning(f"Failed to create branch {branch_name} in {repo_name}: {e.message}")
            return OperationResult.failed(
                f"Failed to create branch: {e.message}", error_code=error_code_for(e)
            )

        suffix = " with protection rules" if protection_rules is not None else ""
        return OperationResult.ok(
            f'Branch "{branch_name}" created successfully{suffix}',
            data={"name": branch_name, "sha": source.sha, "protected": protection_rules is not None},
        )

    # ==================== PULL REQUESTS ====================

    async def preview_pull_request(
        self,
        account_id: UUID,
        repo_name: str,
        head_branch: str,
        base_branch: str = "main",
    ) -> PullRequestPreview:
        """
        Suggested title, description and change summary for merging
        `head_branch` into `base_branch`.

        Conflicts are not detected locally; GitHub decides mergeability
        when the pull request is merged.
        """
        client, repo = await self._open_repo(account_id, repo_name)

        def _compare():
            comparison = repo.compare(base_branch, head_branch)
            messages = [c.commit.message for c in comparison.commits]
            return comparison.ahead_by, comparison.behind_by, len(comparison.files), messages

        ahead, behind, changed_files, messages = await client.call(_compare)

        if len(messages) == 1:
            title = _subject(messages[0])
            description = messages[0]
        else:
            title = f"Merge {head_branch} into {base_branch}"
            description = ""
            if messages:
                description = "## Changes\n\n" + "\n".join(f"- {_subject(m)}" for m in messages)

        def _checks():
            return [
                CheckInfo(
                    name=run.name,
                    status=_check_status(run.status, run.conclusion),
                    description=(run.output.summary if run.output else None)
                    or run.conclusion
                    or "No description",
                )
                for run in repo.get_commit(head_branch).get_check_runs()
            ]

        try:
            checks = await client.call(_checks)
        except UpstreamError as e:
            logger.debug(f"No check runs for {repo_name}@{head_branch}: {e.message}")
            checks = []

        return PullRequestPreview(
            title=title,
            description=description,
            changes=PullRequestChanges(additions=ahead, deletions=behind, changed_files=changed_files),
            checks=checks,
        )

    async def perform_advanced_merge(
        self,
        account_id: UUID,
        repo_name: str,
        pull_number: int,
        merge_method: MergeMethod = MergeMethod.MERGE,
        merge_message: str | None = None,
    ) -> OperationResult:
        """Merge a pull request if GitHub reports it as mergeable."""
        try:
            client, repo = await self._open_repo(account_id, repo_name)
            pr = await client.call(repo.get_pull, pull_number)

            # mergeable is None while GitHub is still computing it
            if not pr.mergeable:
                return OperationResult.failed(
                    "Pull request has conflicts and cannot be merged automatically",
                    error_code="conflict",
                )

            status = await client.call(
                pr.merge,
                commit_message=pr.body or "",
                commit_title=merge_message or f"Merge pull request #{pull_number} from {pr.head.ref}",
                merge_method=merge_method.value,
            )
        except (NotFoundError, DecryptionError, UpstreamError) as e:
            logger.warning(f"Failed to merge PR #{pull_number} in {repo_name}: {e.message}")
            return OperationResult.failed(
                f"Failed to merge pull request: {e.message}", error_code=error_code_for(e)
            )

        logger.info(f"Merged PR #{pull_number} in {repo.full_name} using {merge_method.value} ({status.sha})")
        return OperationResult.ok(
            f"Pull request #{pull_number} merged successfully using {merge_method.value}",
            data={"sha": status.sha, "merged": status.merged},
        )

    # ==================== RELEASES ====================

    async def create_release(
        self,
        account_id: UUID,
        repo_name: str,
        tag_name: str,
        release_name: str,
        description: str = "",
        is_draft: bool = False,
        is_prerelease: bool = False,
        generate_changelog: bool = True,
    ) -> OperationResult:
        """
        Create a release, appending a changelog of the commits made since
        the latest release when requested.

        A changelog failure is logged and the release is created with the
        plain description.
        """
        try:
            client, repo = await self._open_repo(account_id, repo_name)
            body = description

            if generate_changelog:
                try:
                    latest = await client.call(lambda: list(repo.get_releases()[:1]))
                    since = latest[0].created_at if latest else None
                    commits = await self.get_commit_history(
                        account_id,
                        repo_name,
                        branch=repo.default_branch,
                        limit=self.settings.changelog_commit_limit,
                        since=since,
                    )
                    if commits:
                        body = f"{description}\n\n## What's Changed\n\n{build_changelog(commits)}"
                except UpstreamError as e:
                    logger.warning(f"Could not generate changelog for {repo_name}: {e.message}")

            release = await client.call(
                repo.create_git_release,
                tag_name,
                release_name,
                body,
                draft=is_draft,
                prerelease=is_prerelease,
            )
        except (NotFoundError, DecryptionError, UpstreamError) as e:
            logger.warning(f"Failed to create release {tag_name} in {repo_name}: {e.message}")
            return OperationResult.failed(
                f"Failed to create release: {e.message}", error_code=error_code_for(e)
            )

        logger.info(f"Created release {tag_name} in {repo.full_name}")
        return OperationResult.ok(
            f'Release "{release_name}" created successfully',
            data={"id": release.id, "tag_name": tag_name, "html_url": release.html_url},
        )

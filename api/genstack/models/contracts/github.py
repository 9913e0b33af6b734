"""
GitHub repository sync, branch and release contract models.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from genstack.models.enums import CheckStatus, FileEncoding, MergeMethod, SyncStatus


# ==================== SYNC MODELS ====================


class FileChange(BaseModel):
    """One file to write to (or read from) a repository"""
    path: str = Field(..., min_length=1, description="Path relative to the repository root")
    content: str = Field(..., description="File content, encoded as described by `encoding`")
    encoding: FileEncoding = Field(default=FileEncoding.UTF8, description="Encoding of `content`")
    sha: str | None = Field(None, description="Blob SHA of the previous version, if known")

    model_config = ConfigDict(from_attributes=True)


class SyncResult(BaseModel):
    """Outcome of pushing file changes as one commit"""
    success: bool
    files_changed: int = Field(default=0, description="Number of files included in the commit")
    errors: list[str] = Field(default_factory=list)
    commit_sha: str | None = Field(None, description="SHA of the new commit")
    commit_url: str | None = Field(None, description="Browsable URL of the new commit")

    model_config = ConfigDict(from_attributes=True)


class PullResult(BaseModel):
    """Outcome of reading top-level files from a branch"""
    files: list[FileChange] = Field(default_factory=list)
    success: bool
    errors: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ProjectSyncStatus(BaseModel):
    """Persisted sync state of a project"""
    project_id: UUID
    enabled: bool
    repo_name: str | None = None
    repo_url: str | None = None
    sync_status: SyncStatus
    last_sync_at: datetime | None = None
    last_commit_sha: str | None = None
    sync_errors: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class SyncFilesRequest(BaseModel):
    """Request to push files of a project to its repository"""
    project_id: UUID
    account_id: UUID
    files: list[FileChange] = Field(..., description="Files to commit")
    commit_message: str = Field(..., min_length=1)
    branch: str = Field(default="main", min_length=1)


class ProjectSyncRequest(BaseModel):
    """Request body for POST /api/projects/{id}/sync"""
    account_id: UUID
    files: list[FileChange]
    commit_message: str = Field(..., min_length=1)
    branch: str = Field(default="main", min_length=1)


class PullFilesRequest(BaseModel):
    """Request to read files of a project's repository"""
    project_id: UUID
    account_id: UUID
    branch: str = Field(default="main", min_length=1)
    paths: list[str] | None = Field(None, description="Only return files under these path prefixes")


# ==================== BRANCH MODELS ====================


class BranchInfo(BaseModel):
    """Branch summary"""
    name: str
    sha: str
    protected: bool = False
    default: bool = False

    model_config = ConfigDict(from_attributes=True)


class LastCommitInfo(BaseModel):
    """Latest commit of a branch"""
    sha: str
    message: str
    author: str
    date: datetime


class BranchDetails(BaseModel):
    """Branch with protection and comparison data against the default branch"""
    name: str
    sha: str
    is_default: bool
    is_protected: bool
    ahead: int = 0
    behind: int = 0
    last_commit: LastCommitInfo


class CreateBranchRequest(BaseModel):
    """Request to create a branch from another branch"""
    account_id: UUID
    repo_name: str = Field(..., min_length=1)
    branch_name: str = Field(..., min_length=1)
    from_branch: str = Field(default="main", min_length=1)


class ProtectionRules(BaseModel):
    """Branch protection settings applied after branch creation"""
    require_pull_request: bool = False
    require_code_owner_reviews: bool = False
    require_status_checks: list[str] = Field(default_factory=list)
    enforce_admins: bool = False


class CreateProtectedBranchRequest(BaseModel):
    """Request to create a branch and optionally protect it"""
    account_id: UUID
    repo_name: str = Field(..., min_length=1)
    branch_name: str = Field(..., min_length=1)
    source_ref: str = Field(default="main", min_length=1)
    protection_rules: ProtectionRules | None = None


class FileDiffRequest(BaseModel):
    """Request for the patch of one file between two branches"""
    account_id: UUID
    repo_name: str = Field(..., min_length=1)
    file_path: str = Field(..., min_length=1)
    base_branch: str = Field(..., min_length=1)
    head_branch: str = Field(..., min_length=1)


class FileDiffResponse(BaseModel):
    """Unified patch for one file"""
    file_path: str
    patch: str


# ==================== COMMIT MODELS ====================


class CommitAuthor(BaseModel):
    name: str
    email: str
    date: datetime


class CommitStats(BaseModel):
    additions: int = 0
    deletions: int = 0
    total: int = 0


class CommitFileInfo(BaseModel):
    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0


class CommitInfo(BaseModel):
    """Commit with statistics and touched files"""
    sha: str
    message: str
    author: CommitAuthor
    stats: CommitStats
    files: list[CommitFileInfo] = Field(default_factory=list)


# ==================== PULL REQUEST / MERGE MODELS ====================


class PullRequestChanges(BaseModel):
    additions: int = Field(0, description="Commits the head branch is ahead by")
    deletions: int = Field(0, description="Commits the head branch is behind by")
    changed_files: int = 0


class CheckInfo(BaseModel):
    name: str
    status: CheckStatus
    description: str


class MergeConflict(BaseModel):
    """Conflict reported for a file (conflict detection is left to GitHub)"""
    file: str
    content: str = ""


class PullRequestPreview(BaseModel):
    """Generated title/description and change summary for a prospective PR"""
    title: str
    description: str
    changes: PullRequestChanges
    conflicts: list[MergeConflict] = Field(default_factory=list)
    checks: list[CheckInfo] = Field(default_factory=list)


class MergeRequest(BaseModel):
    """Request to merge a pull request"""
    account_id: UUID
    repo_name: str = Field(..., min_length=1)
    pull_number: int = Field(..., gt=0)
    merge_method: MergeMethod = MergeMethod.MERGE
    merge_message: str | None = None


# ==================== RELEASE MODELS ====================


class CreateReleaseRequest(BaseModel):
    """Request to create a release, optionally with a generated changelog"""
    account_id: UUID
    repo_name: str = Field(..., min_length=1)
    tag_name: str = Field(..., min_length=1)
    release_name: str = Field(..., min_length=1)
    description: str = ""
    is_draft: bool = False
    is_prerelease: bool = False
    generate_changelog: bool = True

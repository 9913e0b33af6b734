"""
Pydantic contracts (API request/response models).
"""

from genstack.models.contracts.accounts import (
    GitHubAccountCreate,
    GitHubAccountPublic,
    GitHubAccountTokenUpdate,
)
from genstack.models.contracts.actions import (
    CancelWorkflowRunRequest,
    CreateWorkflowRequest,
    TriggerWorkflowRequest,
    WorkflowFileInfo,
    WorkflowRunInfo,
    WorkflowRunLogs,
    WorkflowTemplate,
)
from genstack.models.contracts.common import ErrorResponse, OperationResult
from genstack.models.contracts.github import (
    BranchDetails,
    BranchInfo,
    CheckInfo,
    CommitAuthor,
    CommitFileInfo,
    CommitInfo,
    CommitStats,
    CreateBranchRequest,
    CreateProtectedBranchRequest,
    CreateReleaseRequest,
    FileChange,
    FileDiffRequest,
    FileDiffResponse,
    LastCommitInfo,
    MergeConflict,
    MergeRequest,
    ProjectSyncRequest,
    ProjectSyncStatus,
    ProtectionRules,
    PullFilesRequest,
    PullRequestChanges,
    PullRequestPreview,
    PullResult,
    SyncFilesRequest,
    SyncResult,
)
from genstack.models.contracts.projects import (
    ProjectCreate,
    ProjectPublic,
    ProjectRepositoryLink,
    ProjectUpdate,
)

__all__ = [
    # Accounts
    "GitHubAccountCreate",
    "GitHubAccountPublic",
    "GitHubAccountTokenUpdate",
    # Actions
    "CancelWorkflowRunRequest",
    "CreateWorkflowRequest",
    "TriggerWorkflowRequest",
    "WorkflowFileInfo",
    "WorkflowRunInfo",
    "WorkflowRunLogs",
    "WorkflowTemplate",
    # Common
    "ErrorResponse",
    "OperationResult",
    # Sync / branches / commits / releases
    "BranchDetails",
    "BranchInfo",
    "CheckInfo",
    "CommitAuthor",
    "CommitFileInfo",
    "CommitInfo",
    "CommitStats",
    "CreateBranchRequest",
    "CreateProtectedBranchRequest",
    "CreateReleaseRequest",
    "FileChange",
    "FileDiffRequest",
    "FileDiffResponse",
    "LastCommitInfo",
    "MergeConflict",
    "MergeRequest",
    "ProjectSyncRequest",
    "ProjectSyncStatus",
    "ProtectionRules",
    "PullFilesRequest",
    "PullRequestChanges",
    "PullRequestPreview",
    "PullResult",
    "SyncFilesRequest",
    "SyncResult",
    # Projects
    "ProjectCreate",
    "ProjectPublic",
    "ProjectRepositoryLink",
    "ProjectUpdate",
]

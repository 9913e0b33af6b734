"""
Enumeration types used across the application.
"""

from enum import Enum


class SyncStatus(str, Enum):
    """Repository sync status of a project"""
    PENDING = "pending"
    SYNCED = "synced"
    ERROR = "error"


class FileEncoding(str, Enum):
    """Encoding of FileChange.content"""
    UTF8 = "utf-8"
    BASE64 = "base64"


class MergeMethod(str, Enum):
    """Pull request merge strategies supported by GitHub"""
    MERGE = "merge"
    SQUASH = "squash"
    REBASE = "rebase"


class WorkflowCategory(str, Enum):
    """Workflow template categories"""
    CI = "ci"
    DEPLOYMENT = "deployment"
    TESTING = "testing"
    SECURITY = "security"
    UTILITY = "utility"


class CheckStatus(str, Enum):
    """Simplified check run status for pull request previews"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"

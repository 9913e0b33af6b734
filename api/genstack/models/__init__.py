"""
GenStack Models

ORM models (database tables):
    from genstack.models import Project, GitHubAccount
    from genstack.models.orm.projects import Project  # Granular access

Pydantic contracts (API request/response):
    from genstack.models import FileChange, SyncResult
    from genstack.models.contracts.github import FileChange  # Granular access

Enums:
    from genstack.models import SyncStatus
    from genstack.models.enums import SyncStatus
"""

# ORM models (database tables)
from genstack.models.orm import Base, GitHubAccount, Project

# Pydantic schemas (API request/response)
from genstack.models.contracts import *  # noqa: F401, F403
from genstack.models.contracts import __all__ as _contracts_all

# Enums
from genstack.models.enums import (
    CheckStatus,
    FileEncoding,
    MergeMethod,
    SyncStatus,
    WorkflowCategory,
)

__all__ = [
    # ORM models
    "Base",
    "GitHubAccount",
    "Project",
    # Enums
    "CheckStatus",
    "FileEncoding",
    "MergeMethod",
    "SyncStatus",
    "WorkflowCategory",
    *_contracts_all,
]

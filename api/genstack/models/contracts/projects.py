"""
Project contract models.

Creating a project and binding it to a repository. The sync status
fields are read-only here; they are written by the sync pipeline.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from genstack.models.enums import SyncStatus


# ==================== REPOSITORY BINDING ====================


class ProjectRepositoryLink(BaseModel):
    """Bind a project to a GitHub repository, creating it if asked"""
    account_id: UUID = Field(..., description="GitHub account that owns the repository")
    repo_name: str | None = Field(
        None,
        max_length=100,
        description="Repository name; derived from the project name when omitted",
    )
    create_repo: bool = Field(
        default=True,
        description="Create the repository; when False it must already exist",
    )
    private: bool = Field(default=True, description="Visibility of a created repository")
    gitignore_template: str | None = Field(None, description="e.g. Node, Python")
    license_template: str | None = Field(None, description="e.g. mit, apache-2.0")


# ==================== PROJECT CRUD ====================


class ProjectCreate(BaseModel):
    """Request to create a project"""
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    organization_id: UUID | None = None
    github: ProjectRepositoryLink | None = Field(
        None, description="Bind the new project to a repository"
    )


class ProjectUpdate(BaseModel):
    """Request to rename or re-describe a project"""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class ProjectPublic(BaseModel):
    """Project as returned by the API"""
    id: UUID
    name: str
    description: str | None = None
    owner_id: UUID
    organization_id: UUID | None = None
    github_enabled: bool = False
    github_repo_name: str | None = None
    github_repo_url: str | None = None
    github_account_id: UUID | None = None
    github_sync_status: SyncStatus = SyncStatus.PENDING
    github_last_sync_at: datetime | None = None
    github_last_commit_sha: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

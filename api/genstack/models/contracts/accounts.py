"""
GitHub account contract models.

Tokens are accepted on input but never part of any response model.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class GitHubAccountCreate(BaseModel):
    """Request to link a GitHub account"""
    nickname: str = Field(..., min_length=1, max_length=50)
    token: str = Field(..., min_length=1, description="GitHub personal access token")
    organization_id: UUID | None = None


class GitHubAccountTokenUpdate(BaseModel):
    """Request to replace the stored token of an account"""
    token: str = Field(..., min_length=1)


class GitHubAccountPublic(BaseModel):
    """Linked account as returned by the API"""
    id: UUID
    nickname: str
    username: str
    email: str | None = None
    avatar_url: str | None = None
    github_id: int
    github_type: str
    scopes: list[str] = Field(default_factory=list)
    can_create_repo: bool = False
    can_create_private_repo: bool = False
    is_active: bool
    is_default: bool
    validation_status: str
    last_used_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

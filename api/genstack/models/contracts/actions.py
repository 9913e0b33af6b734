"""
GitHub Actions contract models.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from genstack.models.enums import WorkflowCategory


class WorkflowTemplate(BaseModel):
    """Built-in workflow file that can be added to a repository"""
    name: str
    description: str
    file_name: str = Field(..., description="File name under .github/workflows/")
    content: str
    category: WorkflowCategory

    model_config = ConfigDict(frozen=True)


class WorkflowFileInfo(BaseModel):
    """Workflow registered in a repository"""
    id: int
    name: str
    path: str
    state: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    url: str
    html_url: str
    badge_url: str

    model_config = ConfigDict(from_attributes=True)


class WorkflowRunInfo(BaseModel):
    """One run of a workflow"""
    id: int
    name: str | None = None
    status: str | None = None
    conclusion: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    html_url: str
    run_number: int

    model_config = ConfigDict(from_attributes=True)


class WorkflowRunLogs(BaseModel):
    """Where to download the log archive of a run"""
    run_id: int
    logs_url: str
    message: str


class CreateWorkflowRequest(BaseModel):
    """Request to add a workflow template to a repository"""
    account_id: UUID
    repo_name: str = Field(..., min_length=1)
    template_name: str = Field(..., min_length=1)
    branch: str = Field(default="main", min_length=1)


class TriggerWorkflowRequest(BaseModel):
    """Request to dispatch a workflow run"""
    account_id: UUID
    repo_name: str = Field(..., min_length=1)
    workflow_id: int | str = Field(..., description="Workflow id or file name")
    ref: str = Field(default="main", min_length=1)
    inputs: dict[str, Any] = Field(default_factory=dict)


class CancelWorkflowRunRequest(BaseModel):
    """Request body for cancelling a run"""
    account_id: UUID
    repo_name: str = Field(..., min_length=1)

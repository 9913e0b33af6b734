"""
Shared contract models.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OperationResult(BaseModel):
    """Outcome of a write operation against GitHub.

    Orchestration methods return this instead of raising once remote
    work has begun. `data` carries the mapped response on success.
    """
    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human readable outcome")
    error_code: str | None = Field(
        None, description="Machine readable failure kind: conflict, not_found, upstream"
    )
    data: dict[str, Any] | None = Field(None, description="Operation specific payload")

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def ok(cls, message: str, data: dict[str, Any] | None = None) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def failed(cls, message: str, error_code: str | None = None) -> "OperationResult":
        return cls(success=False, message=message, error_code=error_code)


class ErrorResponse(BaseModel):
    """Error body returned by routers"""
    detail: str

    model_config = ConfigDict(from_attributes=True)

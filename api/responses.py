"""Response envelopes.

Success bodies are {"success": true, "data": ...}; failures are built by
api.error_handlers and documented here as ErrorResponse.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class ErrorContent(BaseModel):
    """Error information container."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")
    details: Optional[dict[str, Any]] = Field(
        default=None,
        description="Additional error context",
    )


class ErrorResponse(BaseModel):
    """Standard error response format.

    Example:
        {
            "success": false,
            "error": {"code": "FORBIDDEN", "message": "Only the workspace owner can delete it"}
        }
    """

    success: bool = Field(default=False)
    error: ErrorContent = Field(description="Error information")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope around a payload.

    Use with a type parameter for the payload:
        ApiResponse[WorkspaceBundle]
    """

    success: bool = Field(default=True, description="Operation succeeded")
    data: T


class WebhookAck(BaseModel):
    """Acknowledgement returned to Stripe for every verified event."""

    received: bool = True


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    403: {"model": ErrorResponse, "description": "Not allowed"},
    404: {"model": ErrorResponse, "description": "Not found"},
    500: {"model": ErrorResponse, "description": "Downstream failure"},
}

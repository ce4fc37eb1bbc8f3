"""HTTP-facing exception taxonomy.

Every error the API reports derives from ClinicdeskException, which pairs
an HTTP status with a machine-readable code. Domain errors raised under
clinicdesk/ are translated into these at the service seam.
"""

from typing import Any, Optional


class ClinicdeskException(Exception):
    """Base exception for API errors.

    Attributes:
        message: Short human-readable reason, safe to show to the caller
        error_code: Machine-readable code (e.g. "NOT_FOUND")
        details: Optional extra context for the client
        status_code: HTTP status (set by subclasses)
    """

    status_code: int = 500
    default_error_code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """The "error" object of the response body."""
        result = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(ClinicdeskException):
    """Unknown plan, no-op change, bad field (HTTP 400)."""

    status_code = 400
    default_error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class AuthenticationError(ClinicdeskException):
    """Missing or invalid caller identity (HTTP 401)."""

    status_code = 401
    default_error_code = "AUTHENTICATION_FAILED"
    default_message = "Authentication required"


class AuthorizationError(ClinicdeskException):
    """Caller is known but not allowed, e.g. a non-owner (HTTP 403)."""

    status_code = 403
    default_error_code = "FORBIDDEN"
    default_message = "Permission denied"


class NotFoundError(ClinicdeskException):
    """Workspace, profile or membership absent (HTTP 404)."""

    status_code = 404
    default_error_code = "NOT_FOUND"
    default_message = "Resource not found"


class DownstreamError(ClinicdeskException):
    """A Stripe call or a storage write failed (HTTP 500).

    The message stays generic; the cause is logged, never returned.
    """

    status_code = 500
    default_error_code = "DOWNSTREAM_FAILURE"
    default_message = "Downstream operation failed"

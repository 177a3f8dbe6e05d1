"""Custom exception classes for the application."""

from typing import Any


class SnippyError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# Authentication / authorization
class AuthenticationError(SnippyError):
    """Missing or invalid access token."""

    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class InvalidTokenError(AuthenticationError):
    """Invalid or expired token."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class NotOwnerError(SnippyError):
    """Caller does not own the resource."""

    status_code = 403

    def __init__(self, resource_type: str = "resource") -> None:
        super().__init__(f"Unauthorized: not {resource_type} owner")


# Lookups
class UserNotFoundError(SnippyError):
    """User not found."""

    status_code = 404

    def __init__(self, identifier: str | None = None) -> None:
        message = f"User not found: {identifier}" if identifier else "User not found"
        super().__init__(message)


class SnippetNotFoundError(SnippyError):
    """Snippet not found (or not visible to the caller)."""

    status_code = 404

    def __init__(self, short_id: str) -> None:
        super().__init__(f"Snippet not found: {short_id}")


class CommentNotFoundError(SnippyError):
    """Comment not found."""

    status_code = 404

    def __init__(self, comment_id: str) -> None:
        super().__init__(f"Comment not found: {comment_id}")


# Validation / conflicts
class ValidationError(SnippyError):
    """Data validation failed."""

    status_code = 400


class InvalidUsernameError(ValidationError):
    """Requested username is reserved or malformed."""

    def __init__(self, username: str) -> None:
        super().__init__(f"Username not allowed: {username}")


class ConflictError(SnippyError):
    """A unique constraint was violated."""

    status_code = 409

    def __init__(self, message: str = "Conflict: unique constraint violated") -> None:
        super().__init__(message)


class IdentifierAssignmentError(SnippyError):
    """A generated identifier collided at commit time; the caller may retry."""

    status_code = 503

    def __init__(self, field: str) -> None:
        super().__init__(
            f"{field} generation failed - please try again",
            details={"field": field},
        )


class ServiceUnavailableError(SnippyError):
    """A backing service is unreachable."""

    status_code = 503

    def __init__(self, message: str = "Service temporarily unavailable") -> None:
        super().__init__(message)


class RateLimitExceededError(SnippyError):
    """Too many requests in the current window."""

    status_code = 429

    def __init__(self, limiter: str, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(
            "Too many requests, please try again later.",
            details={"limiter": limiter, "retry_after": retry_after},
        )

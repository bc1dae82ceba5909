"""
Error taxonomy - typed failures for every layer of the marketplace core.

Invariants:
    - ValidationError, NotFoundError, AuthorizationError are never retried
    - TransientError is the only retryable failure (store timeout / unavailable)
    - 401 and 403 share one message so callers cannot probe which resources exist
"""

from typing import Any

ACCESS_DENIED_MESSAGE = "Access denied"


class MarketplaceError(Exception):
    """Base exception. The API error handler turns it into a JSON envelope."""

    code = "internal_error"
    http_status = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_response(self) -> dict:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"errors": body}


class ValidationError(MarketplaceError):
    """Malformed input, uniqueness violation, self-follow.

    ``field_errors`` maps a field name to a list of messages, e.g.
    ``{"email": ["is already taken."]}``.
    """

    code = "validation_error"
    http_status = 422

    def __init__(self, message: str = "Validation failed", field_errors: dict[str, list[str]] | None = None):
        super().__init__(message, details=field_errors)
        self.field_errors = field_errors or {}

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(f"{field} {message}", {field: [message]})


class NotFoundError(MarketplaceError):
    code = "not_found"
    http_status = 404

    def __init__(self, resource: str, key: Any = None):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.key = key


class AuthenticationError(MarketplaceError):
    """Bad credentials, missing or expired token."""

    code = "unauthenticated"
    http_status = 401

    def __init__(self, message: str = ACCESS_DENIED_MESSAGE):
        super().__init__(message)


class AuthorizationError(MarketplaceError):
    """Authenticated, but not the owner of the resource."""

    code = "forbidden"
    http_status = 403

    def __init__(self, message: str = ACCESS_DENIED_MESSAGE):
        super().__init__(message)


class TransientError(MarketplaceError):
    """Backing store unavailable or timed out. Safe to retry."""

    code = "service_unavailable"
    http_status = 503

    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message)


class RateLimitedError(MarketplaceError):
    code = "rate_limited"
    http_status = 429

    def __init__(self, retry_after_seconds: int):
        super().__init__("Too many requests")
        self.retry_after_seconds = retry_after_seconds

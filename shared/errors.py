"""
Shared error handling for the dashboard data layer.

Every failure the REST backend can produce is normalized into an ``ApiError``
subclass carrying a human-readable ``message``. The cache layer only ever
uses that message (or a localized fallback); the subclasses exist so the
retry policy can tell transient failures from permanent ones.
"""

from typing import Dict, Any, Optional


class DashboardError(Exception):
    """Base exception for the dashboard data layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ApiError(DashboardError):
    """Error raised by the REST client for any failed request."""

    retryable = False

    def __init__(
        self,
        message: str = "Request failed",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        code: str = "API_ERROR",
    ):
        super().__init__(code, message, details)
        self.status_code = status_code


class NetworkError(ApiError):
    """The request could not complete (connection refused, DNS, reset)."""

    retryable = True

    def __init__(self, message: str = "Network error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, None, details, code="NETWORK_ERROR")


class RequestTimeoutError(ApiError):
    """The request exceeded its time budget."""

    retryable = True

    def __init__(self, message: str = "Request timeout - please try again", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, None, details, code="TIMEOUT_ERROR")


class ValidationError(ApiError):
    """The payload was rejected, either locally or by the server."""

    def __init__(self, message: str = "Validation failed", status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code, details, code="VALIDATION_ERROR")


class AuthorizationError(ApiError):
    """Missing session or insufficient role."""

    def __init__(self, message: str = "Authorization failed", status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code, details, code="AUTHORIZATION_ERROR")


class NotFoundError(ApiError):
    """The identifier no longer exists on the server."""

    def __init__(self, message: str = "Not found", status_code: Optional[int] = 404,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code, details, code="NOT_FOUND")


class ServerError(ApiError):
    """The server failed while handling a well-formed request."""

    retryable = True

    def __init__(self, message: str = "Server error", status_code: Optional[int] = 500,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code, details, code="SERVER_ERROR")


def error_for_status(status_code: int, message: str, details: Optional[Dict[str, Any]] = None) -> ApiError:
    """Map an HTTP status to the matching ``ApiError`` subclass."""
    if status_code in (400, 409, 422):
        return ValidationError(message, status_code, details)
    if status_code in (401, 403):
        return AuthorizationError(message, status_code, details)
    if status_code == 404:
        return NotFoundError(message, status_code, details)
    if status_code == 408:
        return RequestTimeoutError(message, details)
    if status_code >= 500:
        return ServerError(message, status_code, details)
    return ApiError(message, status_code, details)


def is_retryable(exc: BaseException) -> bool:
    """Whether a failed read is worth one more attempt."""
    if isinstance(exc, ApiError):
        return exc.retryable
    return not isinstance(exc, DashboardError)

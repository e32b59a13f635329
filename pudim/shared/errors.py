"""
Standardized errors for upstream fetches and API responses.
"""

import json
from typing import Optional

from .types import StatsError

# Tagged upstream failure codes returned by the GitHub collector
NOT_FOUND = "not_found"
RATE_LIMITED = "rate_limited"
UPSTREAM_UNAVAILABLE = "upstream_unavailable"
HTTP_ERROR = "http_error"
NETWORK_ERROR = "network_error"
TIMEOUT = "timeout"
DNS_ERROR = "dns_error"
UNKNOWN_ERROR = "unknown_error"

STATS_ERROR_CODES = (
    NOT_FOUND,
    RATE_LIMITED,
    UPSTREAM_UNAVAILABLE,
    HTTP_ERROR,
    NETWORK_ERROR,
    TIMEOUT,
    DNS_ERROR,
    UNKNOWN_ERROR,
)

_MESSAGES = {
    NOT_FOUND: "User not found",
    RATE_LIMITED: "GitHub API rate limit exceeded. Please try again later.",
    UPSTREAM_UNAVAILABLE: "GitHub API is temporarily unavailable. Please try again later.",
    NETWORK_ERROR: "Network error. Please check your connection and try again.",
    TIMEOUT: "Request timed out. Please try again.",
    DNS_ERROR: "DNS resolution failed. Please check your internet connection.",
}


def stats_error(code: str, status_code: Optional[int] = None, error_name: Optional[str] = None) -> StatsError:
    """Build the user-facing tagged error for a failed stats fetch."""
    if code == HTTP_ERROR:
        message = f"Failed to fetch user data (HTTP {status_code})"
    elif code in _MESSAGES:
        message = _MESSAGES[code]
    else:
        code = UNKNOWN_ERROR
        message = f"Failed to fetch GitHub data. Please try again later. (Error: {error_name or 'Unknown'})"
    return {"error": message, "code": code}


class APIError(Exception):
    """Base class for API errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> dict:
        """Convert to API Gateway response format."""
        body = {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }
        if self.details:
            body["error"]["details"] = self.details

        return {
            "statusCode": self.status_code,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(body),
        }


class InvalidRequestError(APIError):
    """Raised for malformed parameters or bodies."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="invalid_request",
            message=message,
            status_code=400,
            details=details,
        )


class UserNotFoundError(APIError):
    """Raised when GitHub has no such user."""

    def __init__(self, message: str = _MESSAGES[NOT_FOUND]):
        super().__init__(code=NOT_FOUND, message=message, status_code=404)


class UpstreamRateLimitedError(APIError):
    """Raised when GitHub rejects us for rate limiting."""

    def __init__(self, message: str = _MESSAGES[RATE_LIMITED], retry_after_seconds: int = 60):
        super().__init__(
            code=RATE_LIMITED,
            message=message,
            status_code=429,
            details={"retry_after_seconds": retry_after_seconds},
        )
        self.retry_after_seconds = retry_after_seconds

    def to_response(self) -> dict:
        response = super().to_response()
        response["headers"]["Retry-After"] = str(self.retry_after_seconds)
        return response


class UpstreamError(APIError):
    """Raised for any other upstream or transport failure."""

    _STATUS = {
        UPSTREAM_UNAVAILABLE: 503,
        HTTP_ERROR: 502,
        NETWORK_ERROR: 502,
        DNS_ERROR: 502,
        TIMEOUT: 504,
    }

    def __init__(self, code: str, message: str):
        super().__init__(code=code, message=message, status_code=self._STATUS.get(code, 500))


class InternalError(APIError):
    """Raised for internal server errors."""

    def __init__(self, message: str = "An internal error occurred"):
        super().__init__(code="internal_error", message=message, status_code=500)


def api_error_for(error: StatsError) -> APIError:
    """Map a tagged stats error to the APIError a handler should return."""
    code = error.get("code", UNKNOWN_ERROR)
    message = error.get("error", "")
    if code == NOT_FOUND:
        return UserNotFoundError(message)
    if code == RATE_LIMITED:
        return UpstreamRateLimitedError(message)
    return UpstreamError(code, message)

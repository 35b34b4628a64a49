"""
Shared error handling for the Sportify schedule service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class SportifyError(Exception):
    """Base exception for Sportify services."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(SportifyError):
    """Validation-related errors."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class RateLimitError(SportifyError):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Dict[str, Any]] = None):
        super().__init__("RATE_LIMIT_ERROR", message, details)


class ExternalServiceError(SportifyError):
    """Upstream provider errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)


class CacheError(SportifyError):
    """Base class for read-through cache failures."""


class CorruptEntryError(CacheError):
    """A persisted entry exists but cannot be decoded.

    Treated as a miss by the cache engine; never surfaced over HTTP.
    """

    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__("CORRUPT_ENTRY", f"Corrupt cache entry for '{key}': {reason}", {"key": key})


class StoreUnavailableError(CacheError):
    """The cache directory cannot be read or written."""

    status_code = 503

    def __init__(self, key: str, operation: str, cause: Optional[BaseException] = None):
        self.key = key
        self.operation = operation
        self.cause = cause
        details: Dict[str, Any] = {"key": key, "operation": operation}
        if cause is not None:
            details["error"] = str(cause)
        super().__init__("STORE_UNAVAILABLE", f"Cache store {operation} failed for '{key}'", details)


class FetchFailedError(CacheError):
    """The upstream fetch failed and no cached entry could stand in for it."""

    status_code = 502

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(
            "FETCH_FAILED",
            f"Upstream fetch failed for '{key}' and no cached entry exists",
            {"key": key, "error": str(cause)},
        )


class InvalidCacheKeyError(CacheError, ValueError):
    """The cache key cannot be mapped onto a safe path."""

    status_code = 400

    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__("INVALID_CACHE_KEY", f"Invalid cache key '{key}': {reason}", {"key": key})

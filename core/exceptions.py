"""
Custom exceptions for the sync pipeline with structured error context.

Every exception carries a context dictionary so that failures can be
logged and persisted to the sync log without losing the details of
which endpoint, entity, or chunk was involved.

Exception Hierarchy:
    SyncException (base)
    ├── ConfigurationError          fatal, aborts the run before any entity
    ├── SyncCancelledError
    ├── ExtractionError
    │   └── FetchError              aborts one entity's pagination only
    │       ├── AuthenticationError (401, 403)
    │       ├── ResourceNotFoundError (404)
    │       ├── RateLimitError (429)
    │       └── NetworkError (transport failures, 5xx)
    ├── TransformationError
    │   └── MappingError            one record failed canonical validation
    └── LoadError
        └── UpsertError             one chunk or one row failed to upsert
"""

from typing import Optional, Dict, Any
from datetime import datetime


class SyncException(Exception):
    """
    Base exception for all sync-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (endpoint, entity, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        context = {k: v for k, v in self.context.items() if k != "error_timestamp"}
        if context:
            context_str = ", ".join(f"{k}={v}" for k, v in context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


class ConfigurationError(SyncException):
    """
    Missing or invalid source credentials or target connection settings.

    This is the only fatal tier: it is raised before a sync run is recorded
    and makes the batch job exit non-zero.
    """
    pass


class SyncCancelledError(SyncException):
    """Raised when an external cancellation signal stops an entity."""
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(SyncException):
    """Base exception for source data extraction failures."""
    pass


class FetchError(ExtractionError):
    """
    A page request failed.

    Context should include:
        - url: The request URL that failed
        - status_code: HTTP status code (if applicable)
        - page: 1-based page number
        - response_body: Response body (truncated)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.status_code = status_code
        if status_code is not None:
            self.context["status_code"] = status_code


class AuthenticationError(FetchError):
    """Authentication failures (HTTP 401, 403)."""
    pass


class ResourceNotFoundError(FetchError):
    """Endpoint not available for this tenant (HTTP 404)."""
    pass


class RateLimitError(FetchError):
    """Rate limiting (HTTP 429). Not retried within a run."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        status_code: Optional[int] = 429,
        retry_after: Optional[int] = None
    ):
        super().__init__(message, context, original_exception, status_code)
        self.retry_after = retry_after
        if retry_after:
            self.context["retry_after"] = retry_after


class NetworkError(FetchError):
    """Transport failures, timeouts and server errors (5xx)."""
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(SyncException):
    """Base exception for mapping failures."""
    pass


class MappingError(TransformationError):
    """
    A raw record produced values that failed canonical validation.

    Context should include:
        - entity_type: Entity being mapped
        - external_key: Resolved identity of the record (if any)
        - field_errors: Validation messages
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(SyncException):
    """Base exception for store write failures."""
    pass


class UpsertError(LoadError):
    """
    Exception raised when an upsert statement fails.

    Context should include:
        - table_name: Target table
        - conflict_key: Conflict column
        - row_count: Rows in the failed statement
    """
    pass

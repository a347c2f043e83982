"""
Custom exceptions for the legislative ETL engine with structured error context.

This module provides the exception hierarchy used throughout the pipeline.
Each exception carries context information for debugging and for the
run summary.

Exception Hierarchy:
    ETLException (base)
    ├── ValidationError              (bad run options, fails before any request)
    ├── ExtractionError
    │   ├── ApiError                 (non-2xx or transport failure)
    │   │   └── NotFoundError        (HTTP 404)
    │   └── OperationFailedError     (retries exhausted)
    ├── LoadError
    │   ├── InvalidPathError         (malformed store path/id)
    │   ├── OversizedDocumentError   (document above the store limit)
    │   └── BatchCommitError         (commit timeout/transport failure)
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ETLException(Exception):
    """
    Base exception for all ETL-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (endpoint, path, label, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
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


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(ETLException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts
    - Server errors (HTTP 5xx)
    - Rate limiting (HTTP 429)
    """
    pass


class NonRetryableError(ETLException):
    """
    Mixin for errors that should NOT trigger retry logic.

    The retry executor re-raises these after the first attempt:
    - Resource not found (HTTP 404)
    - Bad request (HTTP 400)
    - Invalid store paths
    - Invalid run options
    """
    pass


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationError(NonRetryableError):
    """
    Exception raised when run options are invalid.

    Context should include:
        - errors: List of validation messages
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for data extraction failures."""
    pass


class ApiError(ExtractionError):
    """
    Exception raised when an upstream API request fails.

    Attributes:
        status_code: HTTP status code (None for transport errors)
        endpoint: Requested path
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        context = dict(context or {})
        context.setdefault("status_code", status_code)
        context.setdefault("endpoint", endpoint)
        super().__init__(message, context, original_exception)
        self.status_code = status_code
        self.endpoint = endpoint


class RetryableApiError(RetryableError, ApiError):
    """Server errors, timeouts and network failures."""
    pass


class BadRequestError(NonRetryableError, ApiError):
    """HTTP 400, usually a wrong parameter set for the endpoint."""
    pass


class NotFoundError(NonRetryableError, ApiError):
    """Resource not found (HTTP 404). Usually selects a fallback branch."""

    def __init__(
        self,
        endpoint: str,
        message: str = "Resource not found",
        original_exception: Optional[BaseException] = None
    ):
        super().__init__(
            f"{message}: {endpoint}",
            status_code=404,
            endpoint=endpoint,
            original_exception=original_exception
        )


class OperationFailedError(ExtractionError):
    """
    Exception raised when an operation failed on every retry attempt.

    Attributes:
        label: Label of the retried operation
        last_error: The error raised by the final attempt
        attempts: Number of attempts made
    """

    def __init__(self, label: str, last_error: BaseException, attempts: int):
        super().__init__(
            f"{label} failed after {attempts} attempts: {last_error}",
            context={"label": label, "attempts": attempts},
            original_exception=last_error
        )
        self.label = label
        self.last_error = last_error
        self.attempts = attempts


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for data loading failures."""
    pass


class InvalidPathError(NonRetryableError, LoadError):
    """
    Exception raised for a malformed document path or id.

    Always a programming error in the caller.
    """
    pass


class OversizedDocumentError(NonRetryableError, LoadError):
    """
    Raised (and absorbed by the batch writer) when a document exceeds
    the store's size limit.

    Context should include:
        - path: Document path
        - size_bytes: Estimated serialized size
        - limit_bytes: Configured ceiling
    """
    pass


class BatchCommitError(LoadError):
    """
    Exception raised when a batch commit times out or the transport fails.

    Context should include:
        - operations: Number of operations in the lost batch
    """
    pass

"""
Core utilities and configuration for the legislative ETL engine.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.exceptions import ApiError, NotFoundError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging(verbose=True)

    # Per-family request policy
    policy = settings.api_policy("camara")
"""

__all__ = [
    "settings",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ValidationError",
    "ExtractionError",
    "ApiError",
    "RetryableApiError",
    "BadRequestError",
    "NotFoundError",
    "OperationFailedError",
    "LoadError",
    "InvalidPathError",
    "OversizedDocumentError",
    "BatchCommitError",
    "RetryableError",
    "NonRetryableError",
]

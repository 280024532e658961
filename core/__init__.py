"""
Core utilities and configuration for the practice sync service.

This package provides foundational components used throughout the sync pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import create_engine, create_session_maker
    from core.exceptions import FetchError, ConfigurationError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Fail fast on missing credentials
    settings.require_sync_configuration()
"""

__all__ = [
    "settings",
    "create_engine",
    "create_session_maker",
    "setup_logging",
    # Exceptions
    "SyncException",
    "ConfigurationError",
    "SyncCancelledError",
    "ExtractionError",
    "FetchError",
    "AuthenticationError",
    "ResourceNotFoundError",
    "RateLimitError",
    "NetworkError",
    "TransformationError",
    "MappingError",
    "LoadError",
    "UpsertError",
]

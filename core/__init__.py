"""
Core utilities and configuration for the XML reader service.

Modules:
    config: Application configuration and environment variable management
    database: Database engine and session management
    exceptions: Exception hierarchy with structured context
    logging: Logging configuration
    validation: Field-scoped validation failure collection

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import TrackerScanError, ConfigurationError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "async_session_maker",
    "setup_logging",
    "FailureCollector",
    "ValidationFailure",
    # Exceptions
    "ETLException",
    "ConfigurationError",
    "TrackerError",
    "TrackerScanError",
    "TrackerCommitError",
    "StagingError",
    "StagingWriteError",
    "FinalizeDrainError",
    "ExtractionError",
    "XMLExtractionError",
    "FileActionError",
    "ProcessingError",
]

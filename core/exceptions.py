"""
Custom exceptions for the XML reader pipeline with structured error context.

Every exception carries a context dictionary so that failures which are
deliberately non-fatal (tracker commit, staging writes, drain) can still be
logged with enough detail to reconstruct what was skipped.

Exception Hierarchy:
    ETLException (base)
    ├── ConfigurationError
    ├── TrackerError
    │   ├── TrackerScanError
    │   └── TrackerCommitError
    ├── StagingError
    │   ├── StagingWriteError
    │   └── FinalizeDrainError
    ├── ExtractionError
    │   └── XMLExtractionError
    ├── FileActionError
    └── ProcessingError
"""

from typing import Optional, Dict, Any, List, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from core.validation import ValidationFailure


class ETLException(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (table name, path, etc.)
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
# Configuration Errors
# ============================================================================

class ConfigurationError(ETLException):
    """
    Raised when a reader configuration fails validation.

    All failures found in one validation pass are carried together in
    ``failures`` so the caller can report every offending field at once.
    """

    def __init__(
        self,
        message: str,
        failures: Optional[List["ValidationFailure"]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context)
        self.failures = list(failures or [])
        if self.failures:
            self.context["failures"] = [f.to_dict() for f in self.failures]

    @property
    def properties(self) -> List[str]:
        """Names of every config property that has at least one failure."""
        names: List[str] = []
        for failure in self.failures:
            for name in failure.properties:
                if name not in names:
                    names.append(name)
        return names


# ============================================================================
# Tracker Errors
# ============================================================================

class TrackerError(ETLException):
    """Base exception for processed-file tracker failures."""
    pass


class TrackerScanError(TrackerError):
    """
    Raised when the tracker table cannot be scanned at prepare time.

    Fatal: the run is aborted before any file is read.

    Context should include:
        - table_name: Name of the tracker table
    """
    pass


class TrackerCommitError(TrackerError):
    """
    Raised when processed filenames cannot be written to the tracker.

    Context should include:
        - table_name: Name of the tracker table
        - file_count: Number of filenames that were being committed
    """
    pass


# ============================================================================
# Staging Errors
# ============================================================================

class StagingError(ETLException):
    """Base exception for pending-commit staging failures."""
    pass


class StagingWriteError(StagingError):
    """
    Raised when a worker cannot write its processed-file artifact.

    Context should include:
        - staging_path: Staging directory of the run
        - filename: File whose artifact failed
    """
    pass


class FinalizeDrainError(StagingError):
    """
    Raised when the staging directory cannot be enumerated at finalization.

    Context should include:
        - staging_path: Staging directory of the run
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for data extraction failures."""
    pass


class XMLExtractionError(ExtractionError):
    """
    Raised when an XML file cannot be read or parsed.

    Context should include:
        - filename: Path of the XML file
        - node_path: Node path being extracted
        - line_number: Line where the parser stopped (if applicable)
    """
    pass


class FileActionError(ETLException):
    """
    Raised when the post-process action (delete/archive/move) fails.

    Context should include:
        - filename: Path of the processed file
        - action: Action that failed
        - target_folder: Destination folder (archive/move only)
    """
    pass


class ProcessingError(ETLException):
    """Raised by the runner when one or more workers failed during a run."""
    pass

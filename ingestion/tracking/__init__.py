"""
Processed-file tracking.

Modules:
    key_value: Durable byte key-value store abstraction (SQL and in-memory)
    tracker: ProcessedFileTracker, filename → last processed time with expiry
    staging: PendingCommitStaging, per-run artifacts written by workers
"""

from ingestion.tracking.key_value import KeyValueStore, SQLKeyValueStore, InMemoryKeyValueStore
from ingestion.tracking.tracker import ExpiryPolicy, ProcessedFileTracker
from ingestion.tracking.staging import PendingCommitStaging, StagingArea

__all__ = [
    "KeyValueStore",
    "SQLKeyValueStore",
    "InMemoryKeyValueStore",
    "ExpiryPolicy",
    "ProcessedFileTracker",
    "PendingCommitStaging",
    "StagingArea",
]

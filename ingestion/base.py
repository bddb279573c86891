"""
Abstract batch source with a prepare → process → finalize lifecycle
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional
import logging
import uuid

from models.base import RunStatus
from schemas.records import XMLRecord
from ingestion.tracking.staging import StagingArea

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """What the runner knows about the run it is executing"""
    logical_start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    arguments: Dict[str, str] = field(default_factory=dict)
    run_id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def logical_start_millis(self) -> int:
        start = self.logical_start_time
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        return int(start.timestamp() * 1000)


@dataclass
class ProcessingPlan:
    """Outcome of prepare: the files workers must read

    ``excluded`` holds the listed files skipped because they were already processed.
    """
    files: List[str]
    excluded: FrozenSet[str] = frozenset()
    staging_area: Optional[StagingArea] = None


@dataclass
class FinalizeResult:
    status: RunStatus
    files_committed: int = 0
    error_message: Optional[str] = None


class BatchSource(ABC):
    """
    Abstract base class for batch sources.

    Lifecycle:
    - prepare_run: validate, compute what to read (single-threaded)
    - read_file / complete_file: per-file worker steps, may run in parallel
    - on_run_finish: called exactly once with the outcome of processing
    """

    def __init__(self, reference_name: str):
        self.reference_name = reference_name
        self.state: Optional[RunStatus] = None

    def _transition(self, state: RunStatus) -> None:
        logger.info(
            f"[{self.reference_name}] {self.state.value if self.state else 'new'} -> {state.value}"
        )
        self.state = state

    @abstractmethod
    async def prepare_run(self, context: RunContext) -> ProcessingPlan:
        pass

    @abstractmethod
    def read_file(self, filename: str) -> List[XMLRecord]:
        """Extract records from one file (blocking)"""
        pass

    @abstractmethod
    def complete_file(self, filename: str) -> None:
        """Post-process a file whose records were all loaded (blocking)"""
        pass

    @abstractmethod
    async def on_run_finish(self, succeeded: bool, context: RunContext) -> FinalizeResult:
        pass

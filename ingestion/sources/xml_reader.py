"""
XML reader source with processed-file tracking

Coordinates one run of the reader:

    PREPARING   validate config, load exclusion set, create staging area,
                list the files to read
    PROCESSING  workers read files, apply the post-process action and stage
                each fully handled filename
    FINALIZING  on success drain the staging area into the tracker, on
                failure leave the tracker untouched; always drop the staging
                area
    COMMITTED / FAILED

Only this class writes the tracker, and only once per successful run. A
failed or cancelled run therefore leaves the tracker exactly as it found it,
and the next run reprocesses the same files.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from fsspec import AbstractFileSystem
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    ConfigurationError,
    FinalizeDrainError,
    StagingWriteError,
    TrackerCommitError,
)
from ingestion.base import BatchSource, FinalizeResult, ProcessingPlan, RunContext
from ingestion.extractors.file_actions import apply_file_action
from ingestion.extractors.xml_extractor import XMLFileSource
from ingestion.tracking.key_value import KeyValueStore, SQLKeyValueStore
from ingestion.tracking.staging import PendingCommitStaging, StagingArea
from ingestion.tracking.tracker import ExpiryPolicy, ProcessedFileTracker, utc_now
from models.base import RunStatus
from schemas.config import XMLReaderConfig
from schemas.records import XMLRecord

logger = logging.getLogger(__name__)


class XMLReaderSource(BatchSource):
    """
    Reads XML node records from files, skipping files already processed.

    Tracking is enabled by ``tableName``. The tracker table lives in ``store``
    when given, otherwise in a SQL key-value table opened on ``db_session``.
    """

    def __init__(
        self,
        config: XMLReaderConfig,
        fs: AbstractFileSystem,
        db_session: Optional[AsyncSession] = None,
        store: Optional[KeyValueStore] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        super().__init__(config.reference_name)
        self.config = config
        self.fs = fs
        self.db = db_session
        self.store = store
        self.clock = clock

        # Set by prepare_run
        self.active_config: Optional[XMLReaderConfig] = None
        self.tracker: Optional[ProcessedFileTracker] = None
        self.staging: Optional[PendingCommitStaging] = None
        self.staging_area: Optional[StagingArea] = None
        self.file_source: Optional[XMLFileSource] = None

    def _open_store(self, table_name: str) -> KeyValueStore:
        if self.store is not None:
            return self.store
        if self.db is None:
            raise ConfigurationError(
                "File tracking needs a database session or a key-value store",
                context={"reference_name": self.reference_name, "table_name": table_name}
            )
        return SQLKeyValueStore(self.db, table_name)

    @staticmethod
    def staging_run_id(config: XMLReaderConfig, context: RunContext) -> str:
        return f"{config.table_name}{context.logical_start_millis}"

    # ------------------------------------------------------------------
    # PREPARING
    # ------------------------------------------------------------------

    async def prepare_run(self, context: RunContext) -> ProcessingPlan:
        """
        Validate the config and decide which files this run reads.

        Raises:
            ConfigurationError: Invalid config or unresolved macros
            TrackerScanError: Tracker table could not be read
        """
        self._transition(RunStatus.PREPARING)

        try:
            config = self.config.resolve_macros(context.arguments)
            config.validate_or_raise()
            self.active_config = config

            excluded = frozenset()
            if config.tracking_enabled:
                self.tracker = ProcessedFileTracker(self._open_store(config.table_name), clock=self.clock)

                if config.is_reprocessing_required():
                    logger.info(f"[{self.reference_name}] Reprocessing requested, exclusion list ignored")
                else:
                    excluded = await self.tracker.load_exclusion_set(ExpiryPolicy(config.expiry_days))

                self.staging = PendingCommitStaging(self.fs, config.temporary_folder)
                self.staging_area = await asyncio.to_thread(
                    self.staging.create_staging_area, self.staging_run_id(config, context)
                )

            self.file_source = XMLFileSource(
                fs=self.fs,
                path=config.path,
                node_path=config.node_path,
                pattern=config.pattern,
                exclusions=excluded
            )
            files = await asyncio.to_thread(self.file_source.list_files)

        except Exception:
            self._release_staging()
            self._transition(RunStatus.FAILED)
            raise

        self._transition(RunStatus.PROCESSING)
        return ProcessingPlan(files=files, excluded=self.file_source.skipped, staging_area=self.staging_area)

    # ------------------------------------------------------------------
    # PROCESSING (worker side)
    # ------------------------------------------------------------------

    def read_file(self, filename: str) -> List[XMLRecord]:
        return self.file_source.read_records(filename)

    def complete_file(self, filename: str) -> None:
        """
        Apply the post-process action, then stage the filename.

        A staging failure only means the file is read again next run, so it
        is logged instead of failing the worker.
        """
        config = self.active_config
        apply_file_action(self.fs, filename, config.file_action, config.target_folder)

        if self.staging_area is None:
            return
        try:
            self.staging.record_processed(self.staging_area, filename)
        except StagingWriteError as e:
            logger.error(
                f"[{self.reference_name}] Could not stage {filename}; it will be reprocessed",
                extra={"error_context": e.to_dict()}
            )

    # ------------------------------------------------------------------
    # FINALIZING
    # ------------------------------------------------------------------

    async def on_run_finish(self, succeeded: bool, context: RunContext) -> FinalizeResult:
        """
        Commit staged filenames if the run succeeded; always drop staging.

        Drain and commit errors are logged and do not change the outcome
        reported for the run.
        """
        self._transition(RunStatus.FINALIZING)
        files_committed = 0
        error_message = None

        try:
            if self.staging_area is not None:
                if succeeded:
                    try:
                        filenames = await asyncio.to_thread(self.staging.drain, self.staging_area)
                        files_committed = await self.tracker.commit(filenames, self.clock())
                    except (FinalizeDrainError, TrackerCommitError) as e:
                        error_message = e.message
                        logger.error(
                            f"[{self.reference_name}] Processed files not recorded: {e.message}",
                            extra={"error_context": e.to_dict()}
                        )
                else:
                    logger.warning(
                        f"[{self.reference_name}] Run failed, processed files stay eligible for the next run"
                    )
        finally:
            if self.staging_area is not None:
                await asyncio.to_thread(self._release_staging)

        self._transition(RunStatus.COMMITTED if succeeded else RunStatus.FAILED)
        return FinalizeResult(
            status=self.state,
            files_committed=files_committed,
            error_message=error_message
        )

    def _release_staging(self) -> None:
        if self.staging is not None and self.staging_area is not None:
            self.staging.discard(self.staging_area)
        self.staging_area = None

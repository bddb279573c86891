# ============================================================================
# File: ingestion/runner.py
# Description: Runs a batch source through prepare, parallel processing and
#              finalization, recording every run in xml_reader_runs
# ============================================================================
"""
Pipeline Runner - executes one run of a batch source.

Phases:
1. Prepare  - the source validates its config and lists the files to read
2. Process  - files are handled by concurrent workers (blocking I/O in threads)
3. Finalize - the source is told whether processing succeeded, exactly once

A file failure does not stop the other workers, but it fails the run: the
source then skips its tracker commit and the runner raises ProcessingError
once finalization is done.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import asyncio
import logging

from core.config import settings
from core.exceptions import ETLException, ProcessingError
from ingestion.base import BatchSource, FinalizeResult, ProcessingPlan, RunContext
from ingestion.loaders.record_loader import RecordLoader
from models.base import RunStatus
from models.xml_run import XMLReaderRun

logger = logging.getLogger(__name__)


@dataclass
class FileOutcome:
    filename: str
    records_loaded: int = 0
    error: Optional[str] = None


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


class PipelineRunner:
    """
    Batch source runner.

    Responsibilities:
    - Drive the source lifecycle (prepare → process → finalize)
    - Bound worker concurrency
    - Load emitted records
    - Record accurate run metrics
    """

    def __init__(
        self,
        db_session: AsyncSession,
        loader: Optional[RecordLoader] = None,
        max_workers: Optional[int] = None
    ):
        self.db = db_session
        self.loader = loader or RecordLoader(db_session)
        self.max_workers = max_workers or settings.MAX_WORKERS

    async def run(self, source: BatchSource, context: Optional[RunContext] = None) -> Dict[str, Any]:
        """
        Execute one run of ``source``.

        Returns:
            Dictionary with run statistics:
            - status: "success" or "failed"
            - run_status: terminal RunStatus value
            - files_discovered / files_excluded / files_processed / files_failed
            - records_emitted, files_committed

        Raises:
            ConfigurationError: Invalid reader configuration
            TrackerScanError: Tracker could not be read at prepare time
            ProcessingError: One or more files failed (after finalization)
            ETLException: For unexpected errors
        """
        context = context or RunContext()
        run = await self._start_run(source, context)

        # --------------------------------------------------
        # PHASE 1: PREPARE
        # --------------------------------------------------
        try:
            plan = await source.prepare_run(context)

        except ETLException as e:
            logger.error(
                f"Prepare failed for {source.reference_name}: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            await self._complete_run(run, RunStatus.FAILED, error_message=e.message, error_details=e.to_dict())
            raise

        except Exception as e:
            logger.exception(f"Unexpected error preparing {source.reference_name}")
            await self._complete_run(run, RunStatus.FAILED, error_message=str(e))
            raise ETLException(
                "Unexpected error during prepare",
                context={"reference_name": source.reference_name},
                original_exception=e
            )

        run.status = RunStatus.PROCESSING
        run.files_discovered = len(plan.files)
        run.files_excluded = len(plan.excluded)
        await self.db.commit()

        # --------------------------------------------------
        # PHASE 2: PROCESS
        # --------------------------------------------------
        try:
            outcomes = await self._process(source, plan, run.id)
        except asyncio.CancelledError:
            logger.warning(f"Run of {source.reference_name} cancelled during processing")
            await source.on_run_finish(False, context)
            await self._complete_run(run, RunStatus.FAILED, error_message="cancelled")
            raise

        failed = [o for o in outcomes if o.error]
        records_emitted = sum(o.records_loaded for o in outcomes)
        succeeded = not failed

        # --------------------------------------------------
        # PHASE 3: FINALIZE
        # --------------------------------------------------
        finalize: FinalizeResult = await source.on_run_finish(succeeded, context)

        error_message = None
        error_details = None
        if failed:
            error_message = f"{len(failed)} of {len(outcomes)} files failed"
            error_details = {"failed_files": {o.filename: o.error for o in failed}}
        elif finalize.error_message:
            error_message = finalize.error_message

        await self._complete_run(
            run,
            finalize.status,
            files_processed=len(outcomes) - len(failed),
            files_failed=len(failed),
            files_committed=finalize.files_committed,
            records_emitted=records_emitted,
            error_message=error_message,
            error_details=error_details
        )

        result = {
            "status": "success" if succeeded else "failed",
            "run_id": str(context.run_id),
            "run_status": finalize.status.value,
            "files_discovered": len(plan.files),
            "files_excluded": len(plan.excluded),
            "files_processed": len(outcomes) - len(failed),
            "files_failed": len(failed),
            "records_emitted": records_emitted,
            "files_committed": finalize.files_committed,
        }

        logger.info(
            f"Run of {source.reference_name} finished: {result['run_status']} - "
            f"Files: {result['files_processed']}/{result['files_discovered']}, "
            f"Records: {records_emitted}, Committed: {finalize.files_committed}"
        )

        if not succeeded:
            raise ProcessingError(
                error_message,
                context={
                    "reference_name": source.reference_name,
                    "run_id": str(context.run_id),
                    **error_details
                }
            )

        return result

    async def _process(self, source: BatchSource, plan: ProcessingPlan, etl_run_id: int) -> List[FileOutcome]:
        semaphore = asyncio.Semaphore(self.max_workers)
        # AsyncSession is not safe for concurrent use
        load_lock = asyncio.Lock()

        async def handle(filename: str) -> FileOutcome:
            async with semaphore:
                try:
                    records = await asyncio.to_thread(source.read_file, filename)

                    async with load_lock:
                        try:
                            loaded = await self.loader.load(records, source.reference_name, etl_run_id=etl_run_id)
                        except Exception:
                            await self.db.rollback()
                            raise

                    await asyncio.to_thread(source.complete_file, filename)
                    return FileOutcome(filename=filename, records_loaded=loaded)

                except Exception as e:
                    logger.error(
                        f"Processing failed for {filename}: {str(e)}",
                        extra={"error_context": e.to_dict() if isinstance(e, ETLException) else {"file": filename}}
                    )
                    return FileOutcome(filename=filename, error=str(e))

        logger.info(f"Processing {len(plan.files)} files with up to {self.max_workers} workers")
        return list(await asyncio.gather(*(handle(f) for f in plan.files)))

    async def _start_run(self, source: BatchSource, context: RunContext) -> XMLReaderRun:
        config = getattr(source, "config", None)
        run = XMLReaderRun(
            run_id=context.run_id,
            reference_name=source.reference_name,
            table_name=getattr(config, "table_name", None),
            status=RunStatus.PREPARING,
            logical_start_time=_naive_utc(context.logical_start_time),
            started_at=datetime.utcnow(),
            config_snapshot=config.snapshot() if config is not None else None
        )
        self.db.add(run)
        await self.db.commit()
        await self.db.refresh(run)
        return run

    async def _complete_run(self, run: XMLReaderRun, status: RunStatus, **stats: Any) -> None:
        # A rollback during processing expires the instance
        await self.db.refresh(run)
        run.status = status
        run.completed_at = datetime.utcnow()
        run.duration_seconds = (run.completed_at - run.started_at).total_seconds()
        for name, value in stats.items():
            setattr(run, name, value)
        await self.db.commit()

"""
Processed-file tracker inspection and manual reprocessing
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db
from schemas.api import TrackedFileResponse, TrackerResponse
from ingestion.tracking.key_value import SQLKeyValueStore
from ingestion.tracking.tracker import ProcessedFileTracker
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/tracker", tags=["Tracker"])


@router.get("/{table_name}", response_model=TrackerResponse)
async def get_tracked_files(table_name: str, db: AsyncSession = Depends(get_db)):
    """List every file recorded in a tracker table"""
    tracker = ProcessedFileTracker(SQLKeyValueStore(db, table_name))
    tracked = await tracker.tracked_files()

    return TrackerResponse(
        table_name=table_name,
        total_files=len(tracked),
        files=[
            TrackedFileResponse(filename=name, processed_at=processed_at)
            for name, processed_at in sorted(tracked.items())
        ]
    )


@router.delete("/{table_name}/{filename:path}", status_code=204)
async def forget_tracked_file(table_name: str, filename: str, db: AsyncSession = Depends(get_db)):
    """
    Remove one file from a tracker table.

    The file becomes eligible again and is read by the next run. This is an
    operator override that writes outside the run lifecycle: runs only commit
    entries, and a run already in progress keeps the exclusion set it loaded.
    """
    tracker = ProcessedFileTracker(SQLKeyValueStore(db, table_name))
    if not await tracker.forget(filename):
        raise HTTPException(status_code=404, detail=f"'{filename}' is not tracked in '{table_name}'")

"""
Reader run history endpoint
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from api.dependencies import get_db
from schemas.api import RunListResponse, RunSummary
from models.base import RunStatus
from models.xml_run import XMLReaderRun
from typing import Optional
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Runs"])


@router.get("/runs", response_model=RunListResponse)
async def list_runs(
    reference_name: Optional[str] = Query(None, description="Filter by reader reference name"),
    status: Optional[RunStatus] = Query(None, description="Filter by run status"),
    limit: int = Query(20, ge=1, le=200, description="Number of runs to return"),
    db: AsyncSession = Depends(get_db)
):
    """Most recent runs first"""
    request_id = f"req_{uuid.uuid4().hex[:12]}"
    logger.info(f"[{request_id}] GET /runs - reference_name={reference_name}, status={status}")

    filters = []
    if reference_name:
        filters.append(XMLReaderRun.reference_name == reference_name)
    if status:
        filters.append(XMLReaderRun.status == status)

    total_result = await db.execute(
        select(func.count()).select_from(XMLReaderRun).where(*filters)
    )
    result = await db.execute(
        select(XMLReaderRun)
        .where(*filters)
        .order_by(XMLReaderRun.id.desc())
        .limit(limit)
    )

    return RunListResponse(
        runs=[RunSummary.model_validate(run) for run in result.scalars().all()],
        total=total_result.scalar() or 0
    )

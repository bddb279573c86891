"""
Health check endpoint with database and reader run status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, text, func
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, RunSummary
from models.base import RunStatus
from models.xml_run import XMLReaderRun
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Latest run of every configured reader
    """

    # Check database connectivity
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    latest_runs = []
    failed_sources = 0

    if db_connected:
        try:
            latest = (
                select(
                    XMLReaderRun.reference_name,
                    func.max(XMLReaderRun.id).label("max_id")
                )
                .group_by(XMLReaderRun.reference_name)
                .subquery()
            )
            result = await db.execute(
                select(XMLReaderRun)
                .join(latest, XMLReaderRun.id == latest.c.max_id)
                .order_by(XMLReaderRun.reference_name)
            )
            for run in result.scalars().all():
                if run.status == RunStatus.FAILED:
                    failed_sources += 1
                latest_runs.append(RunSummary.model_validate(run))
        except Exception as e:
            logger.error(f"Failed to fetch reader runs: {str(e)}")

    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        latest_runs=latest_runs,
        total_sources=len(latest_runs),
        failed_sources=failed_sources
    )

"""
Health check endpoint with database and latest sync run status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, text
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, LatestRunInfo
from models.sync_log import SyncRun
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
    - Latest sync run status
    """

    # Check database connectivity
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    latest_run = None
    if db_connected:
        try:
            result = await db.execute(
                select(SyncRun).order_by(SyncRun.started_at.desc(), SyncRun.id.desc()).limit(1)
            )
            run = result.scalars().first()
            if run is not None:
                latest_run = LatestRunInfo.model_validate(run)
        except Exception as e:
            logger.error(f"Failed to fetch latest sync run: {str(e)}")

    # Status is derived by the validator in HealthCheckResponse
    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        latest_run=latest_run
    )

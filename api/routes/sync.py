"""
Sync run history, replication health and manual trigger endpoints
"""

from datetime import timedelta
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from api.dependencies import get_db
from schemas.api import (
    SyncRunResponse,
    SyncRunsResponse,
    SyncHealthResponse,
    EntityHealthInfo,
    SyncTriggerResponse,
)
from models.sync_log import SyncRun
from pipeline.entities import ENTITIES
from pipeline.orchestrator import execute_sync, is_sync_running
from pipeline.reporter import classify_sync_health, query_last_success_times
from core.config import settings
from core.exceptions import ConfigurationError, SyncException
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sync", tags=["Sync"])


@router.get("/runs", response_model=SyncRunsResponse)
async def list_sync_runs(
    limit: int = Query(10, ge=1, le=100, description="Number of recent runs to return"),
    db: AsyncSession = Depends(get_db)
):
    """Recent sync runs, newest first, each with its per-entity rows."""
    result = await db.execute(
        select(SyncRun)
        .options(selectinload(SyncRun.entity_logs))
        .order_by(SyncRun.started_at.desc(), SyncRun.id.desc())
        .limit(limit)
    )
    runs = [SyncRunResponse.model_validate(run) for run in result.scalars().all()]
    return SyncRunsResponse(runs=runs, count=len(runs))


@router.get("/health", response_model=SyncHealthResponse)
async def sync_health(db: AsyncSession = Depends(get_db)):
    """
    Replication freshness.

    An entity is stale when it never completed successfully or its last
    success is older than SYNC_STALE_AFTER_HOURS.
    """
    health = classify_sync_health(
        await query_last_success_times(db),
        [definition.name for definition in ENTITIES],
        stale_after=timedelta(hours=settings.SYNC_STALE_AFTER_HOURS)
    )
    return SyncHealthResponse(
        status=health.status,
        stale_after_hours=settings.SYNC_STALE_AFTER_HOURS,
        stale_entities=health.stale_entities,
        entities=[EntityHealthInfo.model_validate(e) for e in health.entities]
    )


async def _run_in_background(incremental: bool, request_id: str):
    try:
        summary = await execute_sync(settings, incremental=incremental)
        logger.info(f"[{request_id}] Manual sync run {summary.run_id} {summary.status.value}")
    except SyncException as e:
        logger.error(f"[{request_id}] Manual sync failed: {e.message}", extra={"error_context": e.to_dict()})
    except Exception as e:
        logger.error(f"[{request_id}] Manual sync failed: {e}")


@router.post("/run", response_model=SyncTriggerResponse, status_code=202)
async def trigger_sync(
    request: Request,
    background_tasks: BackgroundTasks,
    incremental: Optional[bool] = Query(None, description="Override SYNC_INCREMENTAL")
):
    """Start a sync run in the background."""
    try:
        settings.require_sync_configuration()
    except ConfigurationError as e:
        logger.warning(f"Manual sync rejected: {e.message}")
        raise HTTPException(status_code=503, detail=e.to_dict())

    use_incremental = settings.SYNC_INCREMENTAL if incremental is None else incremental

    if is_sync_running():
        return SyncTriggerResponse(
            status="already_running",
            incremental=use_incremental,
            message="A sync run is already in progress"
        )

    request_id = getattr(request.state, "request_id", "-")
    background_tasks.add_task(_run_in_background, use_incremental, request_id)
    logger.info(f"[{request_id}] Manual sync accepted (incremental={use_incremental})")
    return SyncTriggerResponse(
        status="accepted",
        incremental=use_incremental,
        message="Sync run started in the background"
    )

"""
Sync reporting: persisted audit trail and staleness classification.

The orchestrator talks to a SyncReporter; DatabaseSyncReporter writes the
sync_runs / sync_log rows that dashboards and alerting read. It opens its
own sessions so a writer rollback can never discard audit rows.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from models.base import EntityStatus, FetchOutcome, SyncRunStatus, SyncType
from models.sync_log import SyncRun, SyncLog
from pipeline.results import EntityResult, SyncRunSummary
from core.exceptions import LoadError
import logging

logger = logging.getLogger(__name__)


class SyncReporter(ABC):
    """Where run and entity results go."""

    @abstractmethod
    async def start_run(self, sync_type: SyncType, started_at: datetime) -> Optional[int]:
        """
        Record a new run in RUNNING state.

        Returns:
            Run id, passed back to the other calls

        Raises:
            LoadError: if the run cannot be recorded at all
        """
        pass

    @abstractmethod
    async def record_entity(self, run_id: Optional[int], result: EntityResult) -> None:
        """Persist one entity result. Must not raise."""
        pass

    @abstractmethod
    async def finish_run(self, run_id: Optional[int], summary: SyncRunSummary) -> None:
        """Finalize the run row. Must not raise."""
        pass

    @abstractmethod
    async def last_success_times(self) -> Dict[str, datetime]:
        """Most recent DONE completion per entity type."""
        pass

    @abstractmethod
    async def incremental_watermarks(self) -> Dict[str, datetime]:
        """
        Start of the most recent clean run per entity type.

        Clean means DONE with a complete fetch and no failed rows, so a
        record that failed to write is fetched again by the next
        incremental run. Must not raise.
        """
        pass


class DatabaseSyncReporter(SyncReporter):
    """Persist to sync_runs and sync_log."""

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def start_run(self, sync_type: SyncType, started_at: datetime) -> Optional[int]:
        try:
            async with self.session_maker() as session:
                run = SyncRun(
                    sync_type=sync_type,
                    status=SyncRunStatus.RUNNING,
                    started_at=started_at
                )
                session.add(run)
                await session.commit()
                await session.refresh(run)
                logger.info(f"Sync run {run.id} ({run.run_id}) started")
                return run.id
        except Exception as e:
            raise LoadError(
                "Failed to record sync run",
                context={"operation": "INSERT", "table_name": "sync_runs"},
                original_exception=e
            )

    async def record_entity(self, run_id: Optional[int], result: EntityResult) -> None:
        if run_id is None:
            return
        try:
            async with self.session_maker() as session:
                session.add(SyncLog(
                    sync_run_id=run_id,
                    entity_type=result.entity_type,
                    status=result.status,
                    fetch_outcome=result.fetch_outcome,
                    pages_fetched=result.pages_fetched,
                    records_fetched=result.fetched,
                    duplicates_dropped=result.duplicates_dropped,
                    records_synced=result.synced,
                    records_failed=result.errors,
                    started_at=result.started_at,
                    completed_at=result.completed_at,
                    duration_seconds=result.duration_seconds,
                    error_message=result.error_message
                ))
                await session.commit()
        except Exception as e:
            logger.error(
                f"Failed to record {result.entity_type} result for run {run_id}: {e}",
                extra={"error_context": result.to_dict()}
            )

    async def finish_run(self, run_id: Optional[int], summary: SyncRunSummary) -> None:
        if run_id is None:
            return
        try:
            async with self.session_maker() as session:
                run = await session.get(SyncRun, run_id)
                if run is None:
                    logger.error(f"Sync run {run_id} disappeared before it could be finalized")
                    return

                failed = summary.failed_entities
                run.status = summary.status
                run.completed_at = summary.completed_at
                run.duration_seconds = summary.duration_seconds
                run.entities_total = len(summary.entities)
                run.entities_failed = len(failed)
                run.records_fetched = summary.fetched
                run.records_synced = summary.synced
                run.records_failed = summary.errors
                run.error_message = (
                    f"{len(failed)} entity types had errors: {', '.join(failed)}" if failed else None
                )
                run.summary = summary.to_dict()
                await session.commit()
        except Exception as e:
            logger.error(
                f"Failed to finalize sync run {run_id}: {e}",
                extra={"error_context": summary.to_dict()}
            )

    async def last_success_times(self) -> Dict[str, datetime]:
        try:
            async with self.session_maker() as session:
                return await query_last_success_times(session)
        except Exception as e:
            logger.error(f"Failed to read last successful syncs: {e}")
            return {}

    async def incremental_watermarks(self) -> Dict[str, datetime]:
        try:
            async with self.session_maker() as session:
                return await query_clean_run_starts(session)
        except Exception as e:
            # no watermark means a full fetch, never a skipped record
            logger.error(f"Failed to read incremental watermarks, fetching everything: {e}")
            return {}


# ============================================================================
# Audit trail queries
# ============================================================================

async def query_last_success_times(session: AsyncSession) -> Dict[str, datetime]:
    """Latest completed_at of a DONE result, per entity type"""
    result = await session.execute(
        select(SyncLog.entity_type, func.max(SyncLog.completed_at))
        .where(SyncLog.status == EntityStatus.DONE)
        .group_by(SyncLog.entity_type)
    )
    return {entity: completed for entity, completed in result.all() if completed}


async def query_clean_run_starts(session: AsyncSession) -> Dict[str, datetime]:
    """
    Latest started_at of a clean result, per entity type.

    started_at precedes the first page request, so records modified while
    that fetch was running are still at or after the watermark.
    """
    result = await session.execute(
        select(SyncLog.entity_type, func.max(SyncLog.started_at))
        .where(
            SyncLog.status == EntityStatus.DONE,
            SyncLog.fetch_outcome == FetchOutcome.COMPLETE,
            SyncLog.records_failed == 0
        )
        .group_by(SyncLog.entity_type)
    )
    return {entity: started for entity, started in result.all() if started}


# ============================================================================
# Health classification
# ============================================================================

@dataclass
class EntityHealth:
    entity_type: str
    last_success_at: Optional[datetime]
    stale: bool


@dataclass
class SyncHealth:
    status: str  # healthy, warning, critical
    stale_entities: List[str] = field(default_factory=list)
    entities: List[EntityHealth] = field(default_factory=list)


def classify_sync_health(
    last_success: Dict[str, datetime],
    entity_types: Sequence[str],
    stale_after: timedelta = timedelta(hours=24),
    now: Optional[datetime] = None
) -> SyncHealth:
    """
    Classify replication freshness.

    An entity is stale if it never completed successfully or its last
    success is older than stale_after. No stale entities is healthy, up to
    two is a warning, more is critical.
    """
    now = now or datetime.utcnow()
    entities = []
    for entity_type in entity_types:
        last = last_success.get(entity_type)
        stale = last is None or now - last > stale_after
        entities.append(EntityHealth(entity_type=entity_type, last_success_at=last, stale=stale))

    stale_entities = [e.entity_type for e in entities if e.stale]
    if not stale_entities:
        status = "healthy"
    elif len(stale_entities) <= 2:
        status = "warning"
    else:
        status = "critical"

    return SyncHealth(status=status, stale_entities=stale_entities, entities=entities)

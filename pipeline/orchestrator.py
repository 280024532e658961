# ============================================================================
# File: pipeline/orchestrator.py
# Description: Sync orchestrator with per-entity failure isolation
# ============================================================================
"""
Sync Orchestrator - runs every entity type Fetch → Dedup → Map → Write.

This module provides:
- Dependency-ordered execution of entity types
- Per-entity failure isolation (one entity failing never stops the run)
- Per-record mapping errors and per-row write errors counted, not raised
- Cooperative cancellation between pages and between entity types
- Per-parent fetches for child endpoints (notes of each work item)
- Incremental mode filtering on LastModifiedDateTime from the last clean run
- A run summary persisted through the SyncReporter
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from pipeline.entities import ENTITIES, EntityDefinition, dependency_order
from pipeline.paginator import KarbonPaginator
from pipeline.dedup import IdentityDeduplicator
from pipeline.writer import BatchWriter, SQLAlchemyUpsertTarget
from pipeline.reporter import SyncReporter, DatabaseSyncReporter
from pipeline.results import EntityResult, SyncRunSummary
from models.base import EntityStatus, FetchOutcome, SyncType
from core.config import Settings, settings as default_settings
from core.database import create_engine, create_session_maker
from core.exceptions import SyncException, MappingError, ResourceNotFoundError
from sqlalchemy.ext.asyncio import async_sessionmaker
import logging
import httpx

logger = logging.getLogger(__name__)

# one sync at a time per process (API trigger and scheduler share it)
_run_lock = asyncio.Lock()


def is_sync_running() -> bool:
    return _run_lock.locked()


@dataclass
class FetchReport:
    """How fetching one entity type ended, over one endpoint or many parents"""
    outcome: FetchOutcome = FetchOutcome.COMPLETE
    pages: int = 0
    error: Optional[SyncException] = None
    parents: int = 0
    parents_failed: int = 0


class SyncOrchestrator:
    """
    Sync Orchestrator

    Responsibilities:
    - Execute entity types in dependency order
    - Isolate failures per entity and keep going
    - Aggregate an auditable run summary
    - Finalize the run exactly once
    """

    def __init__(
        self,
        paginator: KarbonPaginator,
        writer: BatchWriter,
        reporter: SyncReporter,
        entities: Optional[Sequence[EntityDefinition]] = None,
        app_url: Optional[str] = None,
        incremental: bool = False,
        cancel_event: Optional[asyncio.Event] = None
    ):
        self.paginator = paginator
        self.writer = writer
        self.reporter = reporter
        self.entities = dependency_order(entities if entities is not None else ENTITIES)
        self.app_url = app_url
        self.incremental = incremental
        self.cancel_event = cancel_event

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    async def run(self) -> SyncRunSummary:
        """
        Execute a full sync run.

        Returns:
            Finalized SyncRunSummary (completed or completed_with_errors)

        Raises:
            LoadError: if the reporter cannot record the run at all
        """
        summary = SyncRunSummary(
            sync_type=SyncType.INCREMENTAL if self.incremental else SyncType.FULL
        )
        summary.run_id = await self.reporter.start_run(summary.sync_type, summary.started_at)

        since: Dict[str, datetime] = {}
        if self.incremental:
            since = await self.reporter.incremental_watermarks()

        logger.info(
            f"Sync run {summary.run_id} started ({summary.sync_type.value}): "
            f"{', '.join(d.name for d in self.entities)}"
        )

        for index, definition in enumerate(self.entities, start=1):
            if self.cancelled:
                summary.cancelled = True
                result = self._not_started(definition, "Sync cancelled before this entity started")
            else:
                logger.info(f"[{index}/{len(self.entities)}] Syncing {definition.name}")
                result = await self.sync_entity(definition, since.get(definition.name))

            summary.entities.append(result)
            await self.reporter.record_entity(summary.run_id, result)

        summary.finalize()
        await self.reporter.finish_run(summary.run_id, summary)

        logger.info(
            f"Sync run {summary.run_id} {summary.status.value} in {summary.duration_seconds:.1f}s - "
            f"Fetched: {summary.fetched}, Synced: {summary.synced}, Errors: {summary.errors}"
        )
        for result in summary.entities:
            logger.info(
                f"  {result.entity_type:<15} {result.status.value:<7} "
                f"Fetched: {result.fetched:>5} | Synced: {result.synced:>5} | Errors: {result.errors:>3}"
            )
        return summary

    @staticmethod
    def _not_started(definition: EntityDefinition, message: str) -> EntityResult:
        now = datetime.utcnow()
        return EntityResult(
            entity_type=definition.name,
            status=EntityStatus.FAILED,
            fetch_outcome=FetchOutcome.CANCELLED,
            error_message=message,
            started_at=now,
            completed_at=now
        )

    def _params_for(self, definition: EntityDefinition, modified_since: Optional[datetime]) -> Dict[str, str]:
        params = dict(definition.params)
        if self.incremental and definition.incremental and modified_since is not None:
            params["$filter"] = f"LastModifiedDateTime ge {modified_since.strftime('%Y-%m-%dT%H:%M:%SZ')}"
        return params

    async def _fetch(self, endpoint: str, params: Dict[str, str]) -> Tuple[List[Any], FetchReport]:
        pagination = self.paginator.paginate(endpoint, params, self.cancel_event)
        records = [record async for record in pagination]
        return records, FetchReport(
            outcome=pagination.outcome,
            pages=pagination.pages,
            error=pagination.error
        )

    async def _fetch_per_parent(
        self,
        definition: EntityDefinition,
        params: Dict[str, str]
    ) -> Tuple[List[Any], FetchReport]:
        """
        Fetch a child endpoint once per stored parent row.

        Each record is tagged with its parent key. A 404 means the parent has
        nothing attached (or is gone in Karbon) and is not a failure. Any other
        failed parent marks the whole fetch failed, but the remaining parents
        are still fetched and everything gathered is kept.
        """
        fan_out = definition.fan_out
        parent_keys = await self.writer.target.stored_keys(fan_out.parent)
        report = FetchReport(parents=len(parent_keys))
        records: List[Any] = []

        logger.info(f"{definition.name}: fetching for {len(parent_keys)} {fan_out.parent.__tablename__}")

        for index, parent_key in enumerate(parent_keys, start=1):
            pagination = self.paginator.paginate(
                definition.endpoint.format(key=parent_key), params, self.cancel_event
            )
            async for record in pagination:
                if isinstance(record, dict):
                    records.append({**record, fan_out.key_field: parent_key})
            report.pages += pagination.pages

            if pagination.outcome == FetchOutcome.CANCELLED:
                report.outcome = FetchOutcome.CANCELLED
                report.error = pagination.error
                break

            if pagination.outcome != FetchOutcome.COMPLETE and not isinstance(pagination.error, ResourceNotFoundError):
                report.parents_failed += 1
                report.error = report.error or pagination.error
                if pagination.outcome == FetchOutcome.FAILED or report.outcome == FetchOutcome.COMPLETE:
                    report.outcome = pagination.outcome

            if index % 200 == 0:
                logger.info(f"{definition.name}: {index}/{len(parent_keys)} parents, {len(records)} records")

        return records, report

    async def sync_entity(
        self,
        definition: EntityDefinition,
        modified_since: Optional[datetime] = None
    ) -> EntityResult:
        """
        Fetch → Dedup → Map → Write for one entity type.

        Never raises: any exception is recorded on the result with the
        counts reached so far.
        """
        result = EntityResult(entity_type=definition.name, started_at=datetime.utcnow())
        fetch_failed = False

        try:
            # --------------------------------------------------
            # FETCH
            # --------------------------------------------------
            result.status = EntityStatus.FETCHING
            params = self._params_for(definition, modified_since)
            if definition.fan_out is None:
                raw, fetch = await self._fetch(definition.endpoint, params)
            else:
                raw, fetch = await self._fetch_per_parent(definition, params)
            result.pages_fetched = fetch.pages
            result.fetch_outcome = fetch.outcome

            if fetch.outcome != FetchOutcome.COMPLETE:
                fetch_failed = True
                if fetch.error is not None:
                    result.error_message = fetch.error.message
                elif fetch.outcome == FetchOutcome.CANCELLED:
                    result.error_message = f"Cancelled after {fetch.pages} pages"
                else:
                    result.error_message = (
                        f"Stopped at the {self.paginator.max_pages}-page bound; data may be incomplete"
                    )
                if fetch.parents_failed:
                    result.error_message = (
                        f"{fetch.parents_failed} of {fetch.parents} parent fetches failed, "
                        f"first: {result.error_message}"
                    )

            records = definition.expand(raw)
            result.fetched = len(records)

            mapper = definition.mapper_class(self.app_url)
            deduplicated = IdentityDeduplicator(
                mapper.key, definition.secondary_identity
            ).deduplicate(records, label=definition.name)
            result.duplicates_dropped = deduplicated.dropped

            # --------------------------------------------------
            # MAP
            # --------------------------------------------------
            result.status = EntityStatus.MAPPING
            synced_at = datetime.utcnow()
            canonical = []
            skipped = 0

            for record in deduplicated.records:
                try:
                    mapped = mapper.map(record, synced_at)
                except MappingError as e:
                    result.errors += 1
                    logger.error(
                        f"{definition.name}: {e.message}",
                        extra={"error_context": e.to_dict()}
                    )
                    continue
                if mapped is None:
                    skipped += 1
                else:
                    canonical.append(mapped)

            if skipped:
                logger.warning(f"{definition.name}: skipped {skipped} records without a usable identity")

            # --------------------------------------------------
            # WRITE
            # --------------------------------------------------
            result.status = EntityStatus.WRITING
            if canonical:
                written = await self.writer.write(definition.model, canonical, definition.conflict_key)
                result.synced = written.synced
                result.errors += written.errors
                if written.errors and not result.error_message:
                    result.error_message = (
                        f"{written.errors} rows failed to write: " + "; ".join(written.error_messages)
                    )

            total_failure = result.errors > 0 and result.synced == 0
            result.status = EntityStatus.FAILED if fetch_failed or total_failure else EntityStatus.DONE

        except SyncException as e:
            logger.error(
                f"{definition.name} failed while {result.status.value}: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            result.error_message = f"{result.status.value}: {e.message}"
            result.status = EntityStatus.FAILED

        except Exception as e:
            logger.exception(f"Unexpected error syncing {definition.name}")
            result.error_message = f"{result.status.value}: {type(e).__name__}: {e}"
            result.status = EntityStatus.FAILED

        result.completed_at = datetime.utcnow()
        logger.info(
            f"{definition.name}: {result.status.value} - fetched {result.fetched}, "
            f"synced {result.synced}, errors {result.errors}"
        )
        return result


async def execute_sync(
    config: Settings = default_settings,
    incremental: Optional[bool] = None,
    cancel_event: Optional[asyncio.Event] = None,
    session_maker: Optional[async_sessionmaker] = None,
    client: Optional[httpx.AsyncClient] = None,
    entities: Optional[Sequence[EntityDefinition]] = None
) -> SyncRunSummary:
    """
    Validate configuration and run one sync.

    Raises:
        ConfigurationError: missing credentials or database URL; raised
            before anything is written
        LoadError: the run could not be recorded
    """
    config.require_sync_configuration()

    engine = None
    if session_maker is None:
        engine = create_engine(config.DATABASE_URL)
        session_maker = create_session_maker(engine)

    try:
        async with _run_lock:
            paginator = KarbonPaginator(
                access_key=config.KARBON_ACCESS_KEY,
                bearer_token=config.KARBON_BEARER_TOKEN,
                base_url=config.KARBON_BASE_URL,
                max_pages=config.SYNC_MAX_PAGES,
                timeout=config.REQUEST_TIMEOUT,
                client=client
            )
            async with session_maker() as session, paginator:
                orchestrator = SyncOrchestrator(
                    paginator=paginator,
                    writer=BatchWriter(SQLAlchemyUpsertTarget(session), config.SYNC_BATCH_SIZE),
                    reporter=DatabaseSyncReporter(session_maker),
                    entities=entities,
                    app_url=config.KARBON_APP_URL,
                    incremental=config.SYNC_INCREMENTAL if incremental is None else incremental,
                    cancel_event=cancel_event
                )
                return await orchestrator.run()
    finally:
        if engine is not None:
            await engine.dispose()

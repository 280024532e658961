"""
Karbon → practice database sync pipeline.

Modules:
    paginator: Karbon API client and lazy OData pagination
    mapping: Declarative raw → canonical record mappers
    dedup: Identity-based duplicate removal within a fetch
    entities: Entity registry and dependency ordering
    writer: Batched idempotent upserts
    reporter: sync_runs / sync_log audit trail and health classification
    orchestrator: Runs every entity type with failure isolation
    scheduler: Periodic sync with APScheduler

Usage:
    from pipeline.orchestrator import execute_sync

    summary = await execute_sync()
"""

__all__ = [
    "KarbonPaginator",
    "IdentityDeduplicator",
    "ENTITIES",
    "BatchWriter",
    "DatabaseSyncReporter",
    "SyncOrchestrator",
    "execute_sync",
    "SyncScheduler",
]

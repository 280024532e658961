"""
SQLAlchemy ORM models for database tables.

This package defines the target store schema using SQLAlchemy ORM models:

Models:
    base: Base declarative class, shared column types, enums and the
        CanonicalMixin (id, external_key, karbon_url, audit timestamps)
    people: TeamMember, Contact
    organizations: Organization, ClientGroup
    work: WorkStatus, WorkItem, KarbonTask, Note
    billing: TimesheetEntry, Invoice
    sync_log: SyncRun and SyncLog audit trail

Database Schema:
    Every canonical table carries a unique external_key, which is the
    conflict key for idempotent upserts. JSON columns become JSONB on
    PostgreSQL. References between tables are plain key columns holding
    another table's external_key.

Usage:
    from models.people import TeamMember, Contact
    from models.sync_log import SyncRun, SyncLog
    from models.base import SyncRunStatus, EntityStatus

Relationships:
    - SyncRun → SyncLog (one-to-many, one row per entity type)
    - ClientGroup, WorkItem, KarbonTask, Note, TimesheetEntry, Invoice reference
      other canonical rows by external_key
"""

__all__ = [
    "Base",
    "SyncRunStatus",
    "EntityStatus",
    "FetchOutcome",
    "SyncType",
    "TeamMember",
    "Contact",
    "Organization",
    "ClientGroup",
    "WorkStatus",
    "WorkItem",
    "KarbonTask",
    "Note",
    "TimesheetEntry",
    "Invoice",
    "SyncRun",
    "SyncLog",
]

from sqlalchemy import Column, String, Enum, DateTime, Float, Integer, Text, Index, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from models.base import Base, IdType, JSONType, SyncRunStatus, SyncType, EntityStatus, FetchOutcome


class SyncRun(Base):
    """
    One execution of the sync orchestrator.

    Purpose:
    - Audit trail of all sync runs
    - Run-level summary for the operations dashboard
    - Created in RUNNING state, finalized exactly once
    """
    __tablename__ = "sync_runs"

    id = Column(IdType, primary_key=True, autoincrement=True)
    run_id = Column(Uuid, default=uuid.uuid4, unique=True, nullable=False, index=True)

    sync_type = Column(Enum(SyncType), default=SyncType.FULL, nullable=False)
    status = Column(Enum(SyncRunStatus), default=SyncRunStatus.RUNNING, nullable=False, index=True)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    entities_total = Column(Integer, default=0)
    entities_failed = Column(Integer, default=0)
    records_fetched = Column(Integer, default=0)
    records_synced = Column(Integer, default=0)
    records_failed = Column(Integer, default=0)

    # Error tracking
    error_message = Column(Text, nullable=True)
    summary = Column(JSONType, nullable=True)  # per-entity breakdown

    entity_logs = relationship("SyncLog", back_populates="sync_run", order_by="SyncLog.id")

    __table_args__ = (
        Index("idx_sync_run_status_started", "status", "started_at"),
    )


class SyncLog(Base):
    """
    One row per entity-type result within a sync run.

    Read-only consumers (dashboards, alerting) depend on this shape only.
    """
    __tablename__ = "sync_log"

    id = Column(IdType, primary_key=True, autoincrement=True)
    sync_run_id = Column(IdType, ForeignKey("sync_runs.id"), nullable=False, index=True)

    entity_type = Column(String(64), nullable=False, index=True)
    status = Column(Enum(EntityStatus), nullable=False)
    fetch_outcome = Column(Enum(FetchOutcome), nullable=True)

    # Statistics
    pages_fetched = Column(Integer, default=0)
    records_fetched = Column(Integer, default=0)
    duplicates_dropped = Column(Integer, default=0)
    records_synced = Column(Integer, default=0)
    records_failed = Column(Integer, default=0)

    # Timestamps
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    error_message = Column(Text, nullable=True)

    sync_run = relationship("SyncRun", back_populates="entity_logs")

    __table_args__ = (
        Index("idx_sync_log_entity_completed", "entity_type", "completed_at"),
    )

"""
Per-entity and per-run result records produced by the orchestrator
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from models.base import EntityStatus, FetchOutcome, SyncRunStatus, SyncType


@dataclass
class EntityResult:
    """Outcome of one entity type within a sync run."""

    entity_type: str
    status: EntityStatus = EntityStatus.PENDING
    fetch_outcome: Optional[FetchOutcome] = None
    pages_fetched: int = 0
    fetched: int = 0
    duplicates_dropped: int = 0
    synced: int = 0
    errors: int = 0
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def has_errors(self) -> bool:
        return (
            self.status == EntityStatus.FAILED
            or self.errors > 0
            or self.fetch_outcome not in (None, FetchOutcome.COMPLETE)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_type": self.entity_type,
            "status": self.status.value,
            "fetch_outcome": self.fetch_outcome.value if self.fetch_outcome else None,
            "pages_fetched": self.pages_fetched,
            "fetched": self.fetched,
            "duplicates_dropped": self.duplicates_dropped,
            "synced": self.synced,
            "errors": self.errors,
            "error_message": self.error_message,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class SyncRunSummary:
    """Aggregate of a whole run; finalized exactly once."""

    sync_type: SyncType = SyncType.FULL
    run_id: Optional[int] = None
    status: SyncRunStatus = SyncRunStatus.RUNNING
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    entities: List[EntityResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def fetched(self) -> int:
        return sum(e.fetched for e in self.entities)

    @property
    def synced(self) -> int:
        return sum(e.synced for e in self.entities)

    @property
    def errors(self) -> int:
        return sum(e.errors for e in self.entities)

    @property
    def failed_entities(self) -> List[str]:
        return [e.entity_type for e in self.entities if e.has_errors]

    def finalize(self) -> "SyncRunSummary":
        if self.status != SyncRunStatus.RUNNING:
            raise RuntimeError("Sync run already finalized")
        self.completed_at = datetime.utcnow()
        self.status = (
            SyncRunStatus.COMPLETED_WITH_ERRORS if self.failed_entities
            else SyncRunStatus.COMPLETED
        )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "sync_type": self.sync_type.value,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "fetched": self.fetched,
            "synced": self.synced,
            "errors": self.errors,
            "cancelled": self.cancelled,
            "entities": [e.to_dict() for e in self.entities],
        }

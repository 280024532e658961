"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from uuid import UUID
from models.base import SyncRunStatus, SyncType, EntityStatus, FetchOutcome


# ============================================================================
# Sync Run Schemas
# ============================================================================

class SyncLogResponse(BaseModel):
    """Per-entity result within a run"""
    entity_type: str
    status: EntityStatus
    fetch_outcome: Optional[FetchOutcome] = None
    pages_fetched: int = 0
    records_fetched: int = 0
    duplicates_dropped: int = 0
    records_synced: int = 0
    records_failed: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    error_message: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True


class SyncRunResponse(BaseModel):
    """Run-level summary with its entity rows"""
    id: int
    run_id: UUID
    sync_type: SyncType
    status: SyncRunStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    entities_total: int = 0
    entities_failed: int = 0
    records_fetched: int = 0
    records_synced: int = 0
    records_failed: int = 0
    error_message: Optional[str] = None
    entity_logs: List[SyncLogResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True
        use_enum_values = True


class SyncRunsResponse(BaseModel):
    """Recent sync runs, newest first"""
    runs: List[SyncRunResponse] = Field(default_factory=list)
    count: int = 0


class SyncTriggerResponse(BaseModel):
    """Response to a manual sync request"""
    status: str = Field(..., description="accepted or already_running")
    incremental: bool
    message: str


# ============================================================================
# Health Schemas
# ============================================================================

class EntityHealthInfo(BaseModel):
    entity_type: str
    last_success_at: Optional[datetime] = None
    stale: bool

    class Config:
        from_attributes = True


class SyncHealthResponse(BaseModel):
    """Replication freshness per entity type"""
    status: str = Field(..., description="healthy, warning or critical")
    stale_after_hours: int
    stale_entities: List[str] = Field(default_factory=list)
    entities: List[EntityHealthInfo] = Field(default_factory=list)

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "status": "warning",
                "stale_after_hours": 24,
                "stale_entities": ["invoices"],
                "entities": [
                    {"entity_type": "users", "last_success_at": "2024-01-15T10:00:00", "stale": False},
                    {"entity_type": "invoices", "last_success_at": None, "stale": True}
                ]
            }
        }


class LatestRunInfo(BaseModel):
    run_id: UUID
    status: SyncRunStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    entities_failed: int = 0

    class Config:
        from_attributes = True
        use_enum_values = True


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    latest_run: Optional[LatestRunInfo] = None
    # declared last so the validator sees the fields above
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")

    @validator("status", pre=True, always=True)
    def determine_status(cls, v, values):
        """Determine overall health status"""
        if not values.get("database_connected", False):
            return "unhealthy"
        latest = values.get("latest_run")
        if latest is not None and latest.status == SyncRunStatus.COMPLETED_WITH_ERRORS.value:
            return "degraded"
        return "healthy"

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "latest_run": {
                    "run_id": "6f1c1c56-4b0c-4f57-9a39-8f0f2b1d7a10",
                    "status": "completed",
                    "started_at": "2024-01-15T10:00:00Z",
                    "completed_at": "2024-01-15T10:04:12Z",
                    "entities_failed": 0
                }
            }
        }


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str
    detail: Optional[Dict[str, Any]] = None

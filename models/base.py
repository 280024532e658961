from datetime import datetime
from sqlalchemy import Column, DateTime, String, JSON, BigInteger, Integer
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# SQLite only autoincrements INTEGER primary keys
IdType = BigInteger().with_variant(Integer(), "sqlite")


# ============================================================================
# ENUMS
# ============================================================================

class SyncRunStatus(str, enum.Enum):
    """Sync run status"""
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


class EntityStatus(str, enum.Enum):
    """Per-entity processing status"""
    PENDING = "pending"
    FETCHING = "fetching"
    MAPPING = "mapping"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


class FetchOutcome(str, enum.Enum):
    """How pagination for one entity ended"""
    COMPLETE = "complete"
    TRUNCATED = "truncated"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SyncType(str, enum.Enum):
    """Full replication or modified-since replication"""
    FULL = "full"
    INCREMENTAL = "incremental"


class CanonicalMixin:
    """
    Columns shared by every canonical table.

    external_key is the upsert conflict key: one row per source identity.
    """
    id = Column(IdType, primary_key=True, autoincrement=True)
    external_key = Column(String(255), unique=True, nullable=False, index=True)
    karbon_url = Column(String(2048), nullable=True)

    last_synced_at = Column(DateTime, nullable=True, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

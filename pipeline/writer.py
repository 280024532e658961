"""
Batch upsert of canonical records with idempotent INSERT ... ON CONFLICT
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Type, Union
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from models.base import Base
from core.config import settings
from core.exceptions import UpsertError
import logging

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

# columns never overwritten on conflict
PROTECTED_COLUMNS = ("id", "created_at")


@dataclass
class WriteResult:
    synced: int = 0
    errors: int = 0
    error_messages: List[str] = field(default_factory=list)

    def record_error(self, message: str, keep: int = 5):
        self.errors += 1
        if len(self.error_messages) < keep:
            self.error_messages.append(message)


class UpsertTarget(ABC):
    """A store that can insert-or-update rows on a conflict column."""

    @abstractmethod
    async def upsert(self, model: Type[Base], rows: List[Row], conflict_key: str) -> None:
        """
        Upsert rows atomically.

        Raises:
            UpsertError: if the statement fails (nothing from it is kept)
        """
        pass

    async def stored_keys(self, model: Type[Base], conflict_key: str = "external_key") -> List[str]:
        """Conflict-key values already in the table, oldest row first"""
        raise NotImplementedError(f"{type(self).__name__} cannot list stored keys")


class SQLAlchemyUpsertTarget(UpsertTarget):
    """
    Upsert through an AsyncSession.

    Ensures:
    - Merge semantics: conflicting rows are updated, never ignored
    - id, created_at and the conflict key are never overwritten
    - Each statement commits on its own; failures roll back
    """

    INSERTS = {
        "postgresql": postgresql_insert,
        "sqlite": sqlite_insert,
    }

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    def _insert(self, model: Type[Base]):
        dialect = self.db.bind.dialect.name
        try:
            return self.INSERTS[dialect](model.__table__)
        except KeyError:
            raise UpsertError(
                f"Upsert is not supported on dialect {dialect}",
                context={"table_name": model.__tablename__, "dialect": dialect}
            )

    async def upsert(self, model: Type[Base], rows: List[Row], conflict_key: str) -> None:
        if not rows:
            return

        now = datetime.utcnow()
        values = [
            {**row, "created_at": row.get("created_at") or now, "updated_at": row.get("updated_at") or now}
            for row in rows
        ]

        stmt = self._insert(model).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[conflict_key],
            set_={
                name: stmt.excluded[name]
                for name in values[0]
                if name not in PROTECTED_COLUMNS and name != conflict_key
            }
        )

        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            raise UpsertError(
                f"Upsert into {model.__tablename__} failed",
                context={
                    "table_name": model.__tablename__,
                    "conflict_key": conflict_key,
                    "row_count": len(rows),
                    "operation": "UPSERT"
                },
                original_exception=e
            )

    async def stored_keys(self, model: Type[Base], conflict_key: str = "external_key") -> List[str]:
        table = model.__table__
        result = await self.db.execute(
            select(table.c[conflict_key]).order_by(table.c.id)
        )
        return [key for key in result.scalars().all() if key]


class BatchWriter:
    """
    Write canonical records in fixed-size chunks.

    A failed chunk is retried one row at a time so a single bad record
    costs one error, not a hundred. Row-level failures never raise.
    """

    def __init__(self, target: UpsertTarget, batch_size: Optional[int] = None):
        self.target = target
        self.batch_size = batch_size or settings.SYNC_BATCH_SIZE

    @staticmethod
    def _as_row(record: Union[BaseModel, Row]) -> Row:
        if isinstance(record, BaseModel):
            return record.dict()
        return dict(record)

    async def write(
        self,
        model: Type[Base],
        records: Sequence[Union[BaseModel, Row]],
        conflict_key: str = "external_key"
    ) -> WriteResult:
        """
        Upsert records in order-preserving chunks.

        Returns:
            WriteResult with synced and errors counts
        """
        result = WriteResult()
        rows = [self._as_row(r) for r in records]
        table = model.__tablename__

        for start in range(0, len(rows), self.batch_size):
            chunk = rows[start:start + self.batch_size]
            batch_no = start // self.batch_size + 1

            try:
                await self.target.upsert(model, chunk, conflict_key)
                result.synced += len(chunk)
                logger.debug(f"{table} batch {batch_no}: upserted {len(chunk)} rows")
                continue
            except Exception as e:
                logger.warning(
                    f"{table} batch {batch_no} ({len(chunk)} rows) failed, retrying row by row: {e}"
                )

            for row in chunk:
                try:
                    await self.target.upsert(model, [row], conflict_key)
                    result.synced += 1
                except Exception as e:
                    key = row.get(conflict_key)
                    result.record_error(f"{key}: {e}")
                    logger.error(
                        f"{table}: row {key} failed to upsert",
                        extra={"error_context": e.to_dict() if isinstance(e, UpsertError) else {"error": str(e)}}
                    )

        logger.info(f"{table}: synced {result.synced}, errors {result.errors}")
        return result

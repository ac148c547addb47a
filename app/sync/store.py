"""Durable local queue of writes not yet confirmed by the remote store."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.enums import EntityType, OperationKind
from app.core.exceptions import LocalStoreError, ServiceError
from app.core.models import PendingOperation
from app.sync.schemas import PendingOperationRecord

logger = logging.getLogger(__name__)


class PendingOperationStore:
    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def enqueue(
        self,
        entity_type: EntityType,
        operation_kind: OperationKind,
        payload: Optional[Dict[str, Any]] = None,
        target_id: Optional[str] = None,
    ) -> PendingOperationRecord:
        """Append an operation. Never merged with earlier operations on the same record."""
        entity_type = EntityType(entity_type)
        operation_kind = OperationKind(operation_kind)
        if operation_kind is not OperationKind.CREATE and not target_id:
            raise ServiceError(f"{operation_kind.value} operations need a target id", 400)

        async with self._session_factory() as db:
            try:
                obj = PendingOperation(
                    entity_type=entity_type.value,
                    operation_kind=operation_kind.value,
                    payload=dict(payload or {}),
                    target_id=target_id,
                    enqueued_at=datetime.now(timezone.utc),
                )
                db.add(obj)
                await db.commit()
                await db.refresh(obj)
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.error("Could not queue %s %s: %s", operation_kind.value, entity_type.value, exc)
                raise LocalStoreError("Could not save the change locally; it was not queued") from exc
            logger.info("Queued %s %s (op %s)", operation_kind.value, entity_type.value, obj.id)
            return PendingOperationRecord.model_validate(obj)

    async def get_all(self) -> List[PendingOperationRecord]:
        async with self._session_factory() as db:
            result = await db.execute(select(PendingOperation).order_by(PendingOperation.seq))
            return [PendingOperationRecord.model_validate(o) for o in result.scalars().all()]

    async def remove(self, operation_id: str) -> bool:
        async with self._session_factory() as db:
            try:
                result = await db.execute(delete(PendingOperation).where(PendingOperation.id == operation_id))
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                raise LocalStoreError("Could not remove a synced operation from the local queue") from exc
            return result.rowcount > 0

    async def count(self) -> int:
        async with self._session_factory() as db:
            result = await db.execute(select(func.count()).select_from(PendingOperation))
            return int(result.scalar_one())

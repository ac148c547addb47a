"""Offline-aware reads and writes for entity collections.

Connected: the remote store is written first, then the local mirror.
Disconnected: the local mirror is written and a PendingOperation is queued for
the next sync pass.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from app.core.enums import ENTITY_TABLES, EntityType, OperationKind
from app.core.notices import NoticeBoard
from app.remote.base import Filter, RemoteStore, eq
from app.sync.connection import ConnectionMonitor
from app.sync.local_records import LocalRecordStore
from app.sync.store import PendingOperationStore

logger = logging.getLogger(__name__)

OFFLINE_TITLE = "Success (Offline)"


def _target(record_id: str, school_id: Optional[str]) -> List[Filter]:
    filters = [eq("id", record_id)]
    if school_id is not None:
        filters.append(eq("school_id", school_id))
    return filters


class WriteOutcome(BaseModel):
    success: bool = True
    offline: bool = False
    operation_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    source: Optional[str] = None  # server | local


class OfflineAwareWriter:
    def __init__(
        self,
        remote: RemoteStore,
        pending: PendingOperationStore,
        local_records: LocalRecordStore,
        monitor: ConnectionMonitor,
        notices: NoticeBoard,
    ) -> None:
        self._remote = remote
        self._pending = pending
        self._local = local_records
        self._monitor = monitor
        self._notices = notices

    @property
    def is_connected(self) -> bool:
        return self._monitor.is_connected

    async def create(self, entity_type: EntityType, data: Dict[str, Any]) -> WriteOutcome:
        entity_type = EntityType(entity_type)
        table = ENTITY_TABLES[entity_type]
        document = {**data, "id": data.get("id") or str(uuid.uuid4())}

        if self.is_connected:
            result = await self._remote.insert(table, document)
            stored = result.unwrap(f"Failed to create {entity_type.value}")
            document = stored[0] if stored else document
            await self._local.put(table, document)
            return WriteOutcome(data=document, source="server")

        op = await self._pending.enqueue(entity_type, OperationKind.CREATE, document, target_id=document["id"])
        await self._local.put(table, document)
        self._notices.push(OFFLINE_TITLE, "Created successfully. Will sync when online.")
        return WriteOutcome(offline=True, operation_id=op.id, data=document, source="local")

    async def update(
        self, entity_type: EntityType, record_id: str, values: Dict[str, Any], school_id: Optional[str] = None
    ) -> WriteOutcome:
        entity_type = EntityType(entity_type)
        table = ENTITY_TABLES[entity_type]
        values = {k: v for k, v in values.items() if k != "id"}

        if self.is_connected:
            result = await self._remote.update(table, values, _target(record_id, school_id))
            stored = result.unwrap(f"Failed to update {entity_type.value}")
            document = stored[0] if stored else {**values, "id": record_id}
            await self._local.put(table, document)
            return WriteOutcome(data=document, source="server")

        op = await self._pending.enqueue(entity_type, OperationKind.UPDATE, values, target_id=record_id)
        await self._local.put(table, {**values, "id": record_id})
        document = await self._local.get(table, record_id)
        self._notices.push(OFFLINE_TITLE, "Updated successfully. Will sync when online.")
        return WriteOutcome(offline=True, operation_id=op.id, data=document, source="local")

    async def save(
        self,
        entity_type: EntityType,
        data: Dict[str, Any],
        record_id: Optional[str] = None,
        school_id: Optional[str] = None,
    ) -> WriteOutcome:
        """Create when no id is given, update otherwise."""
        if record_id:
            return await self.update(entity_type, record_id, data, school_id=school_id)
        return await self.create(entity_type, data)

    async def delete(self, entity_type: EntityType, record_id: str, school_id: Optional[str] = None) -> WriteOutcome:
        entity_type = EntityType(entity_type)
        table = ENTITY_TABLES[entity_type]

        if self.is_connected:
            result = await self._remote.delete(table, _target(record_id, school_id))
            result.unwrap(f"Failed to delete {entity_type.value}")
            await self._local.remove(table, record_id)
            return WriteOutcome(source="server")

        op = await self._pending.enqueue(entity_type, OperationKind.DELETE, {}, target_id=record_id)
        await self._local.remove(table, record_id)
        self._notices.push(OFFLINE_TITLE, "Deleted successfully. Will sync when online.")
        return WriteOutcome(offline=True, operation_id=op.id, source="local")

    async def get(
        self, entity_type: EntityType, record_id: str, school_id: Optional[str] = None
    ) -> Optional[WriteOutcome]:
        """Local copy first; the remote store when connected, caching what it returns.

        With ``school_id`` a record owned by another school reads as missing.
        """
        table = ENTITY_TABLES[EntityType(entity_type)]
        local = await self._local.get(table, record_id)
        if local is not None:
            if school_id is not None and local.get("school_id") not in (None, school_id):
                return None
            return WriteOutcome(data=local, source="local")
        if not self.is_connected:
            return None
        result = await self._remote.select(table, _target(record_id, school_id), limit=1)
        row = result.unwrap(f"Failed to load {table}") and result.first()
        if not row:
            return None
        await self._local.put(table, row)
        return WriteOutcome(data=row, source="server")

    async def list(self, entity_type: EntityType, school_id: str) -> List[Dict[str, Any]]:
        """A school's rows: from the remote store when connected, else from the local mirror."""
        table = ENTITY_TABLES[EntityType(entity_type)]
        if self.is_connected:
            result = await self._remote.select(table, [eq("school_id", school_id)])
            return result.unwrap(f"Failed to load {table}")
        logger.debug("Offline: serving %s from the local mirror", table)
        return await self._local.list(table, school_id=school_id)

"""Local copies of remote entity collections, keyed by collection + record id."""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.exceptions import LocalStoreError
from app.core.models import LocalRecord


class LocalRecordStore:
    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def put(self, collection: str, record: Dict[str, Any]) -> None:
        async with self._session_factory() as db:
            try:
                obj = await db.get(LocalRecord, (collection, str(record["id"])))
                if obj is None:
                    db.add(
                        LocalRecord(
                            collection=collection,
                            record_id=str(record["id"]),
                            school_id=record.get("school_id"),
                            data=dict(record),
                        )
                    )
                else:
                    obj.data = {**(obj.data or {}), **record}
                    obj.school_id = record.get("school_id", obj.school_id)
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                raise LocalStoreError(f"Could not save {collection} record locally") from exc

    async def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        async with self._session_factory() as db:
            obj = await db.get(LocalRecord, (collection, record_id))
            return dict(obj.data) if obj is not None else None

    async def remove(self, collection: str, record_id: str) -> bool:
        async with self._session_factory() as db:
            try:
                result = await db.execute(
                    delete(LocalRecord).where(
                        LocalRecord.collection == collection,
                        LocalRecord.record_id == record_id,
                    )
                )
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                raise LocalStoreError(f"Could not delete local {collection} record") from exc
            return result.rowcount > 0

    async def list(self, collection: str, school_id: Optional[str] = None) -> List[Dict[str, Any]]:
        stmt = select(LocalRecord).where(LocalRecord.collection == collection)
        if school_id is not None:
            stmt = stmt.where(LocalRecord.school_id == school_id)
        async with self._session_factory() as db:
            result = await db.execute(stmt.order_by(LocalRecord.record_id))
            return [dict(r.data) for r in result.scalars().all()]

    async def replace_collections(self, snapshot: Dict[str, Iterable[Dict[str, Any]]]) -> None:
        """Overwrite whole collections with a remote snapshot, in one transaction."""
        async with self._session_factory() as db:
            try:
                for collection, rows in snapshot.items():
                    await db.execute(delete(LocalRecord).where(LocalRecord.collection == collection))
                    for row in rows:
                        db.add(
                            LocalRecord(
                                collection=collection,
                                record_id=str(row["id"]),
                                school_id=row.get("school_id"),
                                data=dict(row),
                            )
                        )
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                raise LocalStoreError("Could not store the downloaded data locally") from exc

"""Collection/document access to the document-store backend.

Documents are rows keyed by ``id`` in a collection; the store is reached through
the same RemoteStore contract, so it can be pointed at its own hosted project.
"""

from typing import Optional, Sequence

from app.remote.base import Filter, RemoteResult, RemoteStore, Row, eq

NOTIFICATIONS = "notifications"
SUBJECT_ASSIGNMENTS = "subject_assignments"
PASSWORD_RESET_CODES = "passwordResetCodes"
TEACHER_ATTENDANCE = "teacher_attendance"
SCHOOL_ADMINS = "schooladmin"


class DocumentStore:
    def __init__(self, remote: RemoteStore) -> None:
        self.remote = remote

    async def get(self, collection: str, doc_id: str) -> RemoteResult:
        result = await self.remote.select(collection, [eq("id", doc_id)], limit=1)
        if result.error:
            return result
        return RemoteResult(data=result.first())

    async def set(self, collection: str, doc_id: str, data: Row) -> RemoteResult:
        document = {**data, "id": doc_id}
        result = await self.remote.upsert(collection, document, on_conflict="id")
        if result.error:
            return result
        return RemoteResult(data=result.first() or document)

    async def update(self, collection: str, doc_id: str, values: Row) -> RemoteResult:
        result = await self.remote.update(collection, values, [eq("id", doc_id)])
        if result.error:
            return result
        return RemoteResult(data=result.first())

    async def delete(self, collection: str, doc_id: str) -> RemoteResult:
        return await self.remote.delete(collection, [eq("id", doc_id)])

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> RemoteResult:
        return await self.remote.select(collection, filters, order_by=order_by, descending=descending, limit=limit)

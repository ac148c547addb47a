"""Sync Executor: reconciles the local pending queue with the remote store."""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import httpx

from app.core.enums import ENTITY_TABLES, EntityType, OperationKind
from app.core.notices import NoticeBoard
from app.remote.background import BackgroundSyncQueue
from app.remote.base import RemoteResult, RemoteStore, eq
from app.sync.connection import ConnectionMonitor
from app.sync.local_records import LocalRecordStore
from app.sync.schemas import DownloadReport, OperationFailure, PendingOperationRecord, SyncReport
from app.sync.settings import SyncSettingsManager
from app.sync.store import PendingOperationStore

logger = logging.getLogger(__name__)

DOWNLOAD_TABLES = tuple(ENTITY_TABLES.values())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncExecutor:
    def __init__(
        self,
        remote: RemoteStore,
        pending: PendingOperationStore,
        local_records: LocalRecordStore,
        settings: SyncSettingsManager,
        monitor: ConnectionMonitor,
        notices: NoticeBoard,
        clock: Callable[[], datetime] = _utcnow,
        background_queue: Optional[BackgroundSyncQueue] = None,
        replay_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._remote = remote
        self._pending = pending
        self._local = local_records
        self._settings = settings
        self._monitor = monitor
        self._notices = notices
        self._clock = clock
        self._background_queue = background_queue
        self._replay_client = replay_client
        # shared by sync and download: never two drains at once
        self._is_syncing = False
        self._last_sync_time: Optional[datetime] = None

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    @property
    def last_sync_time(self) -> Optional[datetime]:
        # before the first pass of this process, the time persisted by an earlier one
        return self._last_sync_time or self._settings.settings.last_sync_time

    def _precondition(self) -> Optional[str]:
        if not self._monitor.is_connected:
            return "offline"
        if self._is_syncing:
            return "sync already in progress"
        return None

    async def _apply(self, op: PendingOperationRecord) -> RemoteResult:
        table = ENTITY_TABLES[EntityType(op.entity_type)]
        if op.operation_kind is OperationKind.CREATE:
            row = dict(op.payload)
            if op.target_id:
                row.setdefault("id", op.target_id)
            return await self._remote.insert(table, row)
        if op.operation_kind is OperationKind.UPDATE:
            return await self._remote.update(table, dict(op.payload), [eq("id", op.target_id)])
        return await self._remote.delete(table, [eq("id", op.target_id)])

    async def sync_pending_operations(self) -> SyncReport:
        """Drain the queue in enqueue order. Failed operations stay queued; the rest are kept applied."""
        reason = self._precondition()
        if reason:
            logger.debug("Sync skipped: %s", reason)
            return SyncReport(skipped=True, reason=reason)

        self._is_syncing = True
        try:
            operations = await self._pending.get_all()
            failures: List[OperationFailure] = []
            applied = 0
            for op in operations:
                result = await self._apply(op)
                if result.error is not None:
                    logger.warning(
                        "Pending %s %s (op %s) failed: %s",
                        op.operation_kind.value,
                        op.entity_type.value,
                        op.id,
                        result.error.message,
                    )
                    failures.append(
                        OperationFailure(
                            operation_id=op.id,
                            entity_type=op.entity_type,
                            operation_kind=op.operation_kind,
                            error=result.error.message,
                        )
                    )
                    continue
                await self._pending.remove(op.id)
                applied += 1

            if self._background_queue is not None and self._replay_client is not None:
                await self._background_queue.replay(self._replay_client)

            completed_at = self._clock()
            self._last_sync_time = completed_at
            await self._settings.update_settings(last_sync_time=completed_at)
        finally:
            self._is_syncing = False

        if operations:
            if failures:
                self._notices.push(
                    "Sync incomplete",
                    f"{applied} of {len(operations)} changes synced; {len(failures)} will be retried.",
                    variant="destructive",
                )
            else:
                self._notices.push("Sync complete", f"{applied} changes synced with the server.")
        logger.info("Sync pass finished: %s applied, %s failed", applied, len(failures))
        return SyncReport(
            attempted=len(operations),
            applied=applied,
            failed=failures,
            completed_at=completed_at,
        )

    async def download_all_data(self, school_id: str) -> DownloadReport:
        """Replace local collections with the remote snapshot for one school.

        Pending operations are not merged or touched; sync first to keep local-only changes.
        """
        reason = self._precondition()
        if reason:
            return DownloadReport(skipped=True, reason=reason, school_id=school_id)

        self._is_syncing = True
        try:
            snapshot: Dict[str, list] = {}
            for table in DOWNLOAD_TABLES:
                result = await self._remote.select(table, [eq("school_id", school_id)])
                snapshot[table] = result.unwrap(f"Failed to download {table}")
            await self._local.replace_collections(snapshot)
        finally:
            self._is_syncing = False

        self._notices.push("Download complete", "All school data is now available offline.")
        return DownloadReport(
            school_id=school_id,
            collections={table: len(rows) for table, rows in snapshot.items()},
            completed_at=self._clock(),
        )

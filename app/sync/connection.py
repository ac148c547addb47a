"""
Connection Monitor: best-effort "can we reach the remote database" signal.

The signal combines the client's network-online flag (reported through
browser online/offline events) with a count-only probe against the remote
store. A network-class probe failure means disconnected; any other error
(e.g. permission) means the service answered, so we count as connected.
A "connected" reading is advisory only: a broken write path is discovered
when a real write fails.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from app.core.notices import NoticeBoard
from app.remote.base import RemoteStore

logger = logging.getLogger(__name__)

PROBE_TABLE = "schooladmin"

OFFLINE_TITLE = "Connection Issue"
OFFLINE_MESSAGE = "You're currently offline. The app will sync when connection is restored."
UNREACHABLE_MESSAGE = "Unable to connect to the database. Please check your internet connection."

ConnectionListener = Callable[[bool], Awaitable[None]]


class ConnectionMonitor:
    def __init__(
        self,
        remote: RemoteStore,
        notices: NoticeBoard,
        probe_table: str = PROBE_TABLE,
    ) -> None:
        self._remote = remote
        self._notices = notices
        self._probe_table = probe_table
        self._is_connected = True
        self._network_online = True
        # one-shot latch: one "offline" notice until connectivity returns
        self._offline_notice_shown = False
        self._listeners: List[ConnectionListener] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    def subscribe(self, listener: ConnectionListener) -> None:
        self._listeners.append(listener)

    async def _set_connected(self, connected: bool) -> None:
        changed = connected != self._is_connected
        self._is_connected = connected
        if changed:
            logger.info("Remote connection %s", "restored" if connected else "lost")
            for listener in self._listeners:
                await listener(connected)

    def _notify_offline(self, message: str) -> None:
        if not self._offline_notice_shown:
            self._notices.push(OFFLINE_TITLE, message, variant="destructive")
            self._offline_notice_shown = True

    async def probe(self) -> bool:
        """Count-only existence query against the remote store."""
        result = await self._remote.count(self._probe_table)
        if result.error is None:
            return True
        if result.error.is_network:
            logger.warning("Connection probe failed: %s", result.error.message)
            return False
        # Reachable, just not authorized (or similar) for this query.
        logger.debug("Connection probe answered with %s; treating as connected", result.error.kind)
        return True

    async def check(self) -> bool:
        if not self._network_online:
            await self._set_connected(False)
            self._notify_offline(OFFLINE_MESSAGE)
            return False

        reachable = await self.probe()
        if not reachable:
            await self._set_connected(False)
            self._notify_offline(UNREACHABLE_MESSAGE)
            return False

        if not self._is_connected:
            self._offline_notice_shown = False
        await self._set_connected(True)
        return True

    async def handle_online(self) -> None:
        self._network_online = True
        self._offline_notice_shown = False
        self._notices.push("Connected", "Your connection has been restored.")
        await self._set_connected(True)

    async def handle_offline(self) -> None:
        self._network_online = False
        self._notify_offline(OFFLINE_MESSAGE)
        await self._set_connected(False)

    async def _probe_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            await self.check()

    def start(self, interval_seconds: float) -> None:
        if self._task is None and interval_seconds > 0:
            self._task = asyncio.create_task(self._probe_loop(interval_seconds), name="connection-probe")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

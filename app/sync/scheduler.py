"""
Sync Scheduler: decides *when* to sync; the executor decides *how*.

States:
  IDLE     auto-sync disabled (or settings not loaded yet), no deadline
  ARMED    one deadline at ``now + interval``
  RUNNING  a timer-driven sync pass is in progress

``next_deadline`` is the single source of truth for the timer. Any change to
the interval or the auto-sync toggle recomputes it from "now". ``tick()``
fires the timer when the injected clock has passed the deadline, which keeps
the state machine testable without real sleeps; ``run()`` is the asyncio
loop that calls it in production.

Independently of the timer, a connection transition to "connected" with a
non-empty queue fires a sync, at most once per cooldown window.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from app.core.enums import SchedulerState
from app.core.exceptions import ServiceError
from app.core.notices import NoticeBoard
from app.sync.connection import ConnectionMonitor
from app.sync.executor import SyncExecutor
from app.sync.schemas import SyncReport, SyncSettings
from app.sync.settings import SyncSettingsManager
from app.sync.store import PendingOperationStore

logger = logging.getLogger(__name__)

RECONNECT_COOLDOWN = timedelta(seconds=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncScheduler:
    def __init__(
        self,
        executor: SyncExecutor,
        settings: SyncSettingsManager,
        monitor: ConnectionMonitor,
        pending: PendingOperationStore,
        notices: NoticeBoard,
        clock: Callable[[], datetime] = _utcnow,
        reconnect_cooldown: timedelta = RECONNECT_COOLDOWN,
    ) -> None:
        self._executor = executor
        self._settings = settings
        self._monitor = monitor
        self._pending = pending
        self._notices = notices
        self._clock = clock
        self._cooldown = reconnect_cooldown

        self._state = SchedulerState.IDLE
        self._next_deadline: Optional[datetime] = None
        self._last_attempt: Optional[datetime] = None
        self._wakeup = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        settings.subscribe(self._on_settings_changed)
        monitor.subscribe(self.on_connection_change)

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def next_deadline(self) -> Optional[datetime]:
        return self._next_deadline

    @property
    def last_attempt(self) -> Optional[datetime]:
        return self._last_attempt

    # ----- timer -----

    def rearm(self) -> None:
        """Cancel any outstanding deadline and compute the next one from now."""
        current = self._settings.settings
        if not self._settings.is_loaded or not current.auto_sync_enabled:
            self._next_deadline = None
            if self._state is not SchedulerState.RUNNING:
                self._state = SchedulerState.IDLE
        else:
            self._next_deadline = self._clock() + timedelta(minutes=current.sync_interval_minutes)
            if self._state is not SchedulerState.RUNNING:
                self._state = SchedulerState.ARMED
            logger.debug("Next background sync at %s", self._next_deadline.isoformat())
        self._wakeup.set()

    async def _on_settings_changed(self, previous: SyncSettings, updated: SyncSettings) -> None:
        if (
            previous.auto_sync_enabled != updated.auto_sync_enabled
            or previous.sync_interval_minutes != updated.sync_interval_minutes
        ):
            self.rearm()

    async def tick(self) -> bool:
        """Fire the timer if its deadline has passed. Returns True when it fired."""
        if self._state is not SchedulerState.ARMED or self._next_deadline is None:
            return False
        if self._clock() < self._next_deadline:
            return False

        self._next_deadline = None
        if not self._monitor.is_connected:
            # Offline at the deadline: silently wait for the next interval.
            self._state = SchedulerState.IDLE
            self.rearm()
            return True

        self._state = SchedulerState.RUNNING
        try:
            pending_before = await self._pending.count()
            report = await self._run_sync()
            if report is not None and not report.skipped and pending_before > 0:
                self._notices.push("Background Sync", "Your changes have been synced with the server")
        finally:
            self._state = SchedulerState.IDLE
            self.rearm()
        return True

    # ----- reconnect trigger -----

    async def on_connection_change(self, connected: bool) -> bool:
        """Sync right away on reconnect when work is queued. Returns True if a sync ran."""
        if not connected or not self._settings.is_loaded:
            return False
        if self._state is SchedulerState.RUNNING or self._executor.is_syncing:
            return False
        if await self._pending.count() == 0:
            return False
        now = self._clock()
        if self._last_attempt is not None and now - self._last_attempt <= self._cooldown:
            logger.debug("Reconnect sync throttled (last attempt %s)", self._last_attempt.isoformat())
            return False
        self._last_attempt = now
        await self._run_sync()
        return True

    def record_manual_attempt(self) -> None:
        self._last_attempt = self._clock()

    async def _run_sync(self) -> Optional[SyncReport]:
        try:
            return await self._executor.sync_pending_operations()
        except ServiceError as exc:
            logger.error("Background sync error: %s", exc.message, exc_info=True)
            self._notices.push("Sync failed", exc.message, variant="destructive")
            return None
        except Exception as exc:
            logger.exception("Unexpected background sync error")
            self._notices.push("Sync failed", str(exc) or type(exc).__name__, variant="destructive")
            return None

    # ----- asyncio driver -----

    def _seconds_until_deadline(self) -> Optional[float]:
        if self._next_deadline is None:
            return None
        return max((self._next_deadline - self._clock()).total_seconds(), 0.0)

    async def run(self) -> None:
        while True:
            self._wakeup.clear()
            timeout = self._seconds_until_deadline()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=timeout)
                continue  # deadline moved; recompute
            except asyncio.TimeoutError:
                pass
            try:
                await self.tick()
            except Exception:
                # the loop outlives any single pass; make sure a deadline is set again
                logger.exception("Sync timer tick failed")
                if self._next_deadline is None or self._clock() >= self._next_deadline:
                    self._state = SchedulerState.IDLE
                    self.rearm()

    def start(self) -> None:
        if self._task is None:
            self.rearm()
            self._task = asyncio.create_task(self.run(), name="sync-scheduler")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Sync scheduler task ended with an error")
            self._task = None
        self._next_deadline = None
        self._state = SchedulerState.IDLE

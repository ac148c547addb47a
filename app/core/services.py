"""Application service container.

Builds the backends and the sync subsystem once per application and owns
their lifecycle (startup/shutdown). Routers reach it through ``get_services``.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import httpx
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from app.auth.session import SessionStore
from app.core.config import Settings
from app.core.email_service import EmailService
from app.core.local_state import LocalStateStore
from app.core.notices import NoticeBoard
from app.db.session import build_engine, build_session_factory, init_models
from app.remote.background import BackgroundSyncQueue
from app.remote.base import AuthClient, RemoteStore
from app.remote.documents import DocumentStore
from app.remote.memory import InMemoryAuthClient, InMemoryRemoteStore
from app.remote.rest import RestAuthClient, RestRemoteStore
from app.sync.connection import ConnectionMonitor
from app.sync.executor import SyncExecutor
from app.sync.local_records import LocalRecordStore
from app.sync.scheduler import SyncScheduler
from app.sync.settings import SyncSettingsManager
from app.sync.store import PendingOperationStore
from app.sync.writer import OfflineAwareWriter

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AppServices:
    def __init__(
        self,
        *,
        engine: AsyncEngine,
        session_factory: async_sessionmaker,
        remote: RemoteStore,
        documents_remote: RemoteStore,
        auth: AuthClient,
        email: EmailService,
        request_remote: Optional[RemoteStore] = None,
        background_queue: Optional[BackgroundSyncQueue] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = _utcnow,
        reconnect_cooldown: timedelta = timedelta(seconds=30),
        probe_interval_seconds: float = 60,
        reset_code_ttl: timedelta = timedelta(minutes=15),
    ) -> None:
        self.engine = engine
        self.session_factory = session_factory
        # drained by the executor; request handlers write through request_remote
        self.sync_remote = remote
        self.remote = request_remote or remote
        self.documents = DocumentStore(documents_remote)
        self.auth = auth
        self.email = email
        self.background_queue = background_queue
        self.http_client = http_client
        self.clock = clock
        self.probe_interval_seconds = probe_interval_seconds
        self.reset_code_ttl = reset_code_ttl

        self.notices = NoticeBoard()
        self.state = LocalStateStore(session_factory)
        self.session = SessionStore(self.state)
        self.pending = PendingOperationStore(session_factory)
        self.local_records = LocalRecordStore(session_factory)
        self.sync_settings = SyncSettingsManager(self.state)
        self.monitor = ConnectionMonitor(remote, self.notices)
        self.executor = SyncExecutor(
            remote,
            self.pending,
            self.local_records,
            self.sync_settings,
            self.monitor,
            self.notices,
            clock=clock,
            background_queue=background_queue,
            replay_client=http_client,
        )
        self.scheduler = SyncScheduler(
            self.executor,
            self.sync_settings,
            self.monitor,
            self.pending,
            self.notices,
            clock=clock,
            reconnect_cooldown=reconnect_cooldown,
        )
        self.writer = OfflineAwareWriter(self.remote, self.pending, self.local_records, self.monitor, self.notices)
        if background_queue is not None:
            background_queue.subscribe(self._on_background_sync_complete)

        self._started = False

    async def _on_background_sync_complete(self, message: Dict[str, Any]) -> None:
        if message.get("replayed"):
            self.notices.push("Background Sync", "Your changes have been synced with the server")

    async def startup(self, start_background: bool = True) -> None:
        """Create local tables, load settings, take a first connection reading and flush
        leftover queued work when connected. Safe to call twice."""
        if self._started:
            return
        self._started = True
        await init_models(self.engine)
        await self.sync_settings.load()
        await self.monitor.check()
        # work left queued by a previous run goes out now, not at the first deadline
        await self.scheduler.on_connection_change(self.monitor.is_connected)
        if start_background:
            self.scheduler.start()
            self.monitor.start(self.probe_interval_seconds)
        else:
            self.scheduler.rearm()
        logger.info("Services started (connected=%s)", self.monitor.is_connected)

    async def shutdown(self) -> None:
        if not self._started:
            return
        self._started = False
        await self.scheduler.stop()
        await self.monitor.stop()
        await self.auth.close()
        await self.remote.close()
        await self.sync_remote.close()
        await self.documents.remote.close()
        if self.http_client is not None:
            await self.http_client.aclose()
        await self.engine.dispose()


def _email_from(config: Settings) -> EmailService:
    return EmailService(
        config.gmail_user,
        config.gmail_app_password,
        host=config.smtp_host,
        port=config.smtp_port,
        from_name=config.mail_from_name,
    )


def _common_kwargs(config: Settings) -> Dict[str, Any]:
    return {
        "reconnect_cooldown": timedelta(seconds=config.sync_reconnect_cooldown_seconds),
        "probe_interval_seconds": config.connection_probe_interval_seconds,
        "reset_code_ttl": timedelta(minutes=config.reset_code_ttl_minutes),
    }


def build_memory_services(
    config: Settings,
    *,
    database_url: Optional[str] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> AppServices:
    """In-process backends; the local database is still a real SQLite file."""
    engine = build_engine(database_url or config.local_database_url)
    return AppServices(
        engine=engine,
        session_factory=build_session_factory(engine),
        remote=InMemoryRemoteStore(),
        documents_remote=InMemoryRemoteStore(),
        auth=InMemoryAuthClient(),
        email=_email_from(config),
        clock=clock,
        **_common_kwargs(config),
    )


def build_services(config: Settings) -> AppServices:
    if config.remote_backend == "memory":
        return build_memory_services(config)
    if config.remote_backend != "rest":
        raise ValueError(f"Unknown REMOTE_BACKEND {config.remote_backend!r}")
    if not config.supabase_url:
        raise ValueError("SUPABASE_URL is required when REMOTE_BACKEND=rest")

    client = httpx.AsyncClient(timeout=config.remote_timeout_seconds)
    queue = BackgroundSyncQueue(max_retention=timedelta(minutes=config.background_sync_retention_minutes))
    store = RestRemoteStore(config.supabase_url, config.supabase_anon_key, client=client)
    documents = RestRemoteStore(
        config.documents_url or config.supabase_url,
        config.documents_key or config.supabase_anon_key,
        client=client,
    )
    auth = RestAuthClient(
        config.supabase_url,
        config.supabase_anon_key,
        service_key=config.supabase_service_key,
        client=client,
    )
    engine = build_engine(config.local_database_url)
    return AppServices(
        engine=engine,
        session_factory=build_session_factory(engine),
        remote=store,
        request_remote=store.queued(queue),
        documents_remote=documents,
        auth=auth,
        email=_email_from(config),
        background_queue=queue,
        http_client=client,
        **_common_kwargs(config),
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services

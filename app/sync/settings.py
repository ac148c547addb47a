"""User sync preferences, persisted in the local state store."""

import logging
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from app.core.exceptions import LocalStoreError, ServiceError
from app.core.local_state import SYNC_SETTINGS, LocalStateStore
from app.sync.schemas import SyncSettings

logger = logging.getLogger(__name__)

SettingsListener = Callable[[SyncSettings, SyncSettings], Awaitable[None]]


class SyncSettingsManager:
    def __init__(self, state: LocalStateStore) -> None:
        self._state = state
        self._settings = SyncSettings()
        self._is_loaded = False
        self._listeners: List[SettingsListener] = []

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    @property
    def settings(self) -> SyncSettings:
        return self._settings.model_copy()

    def subscribe(self, listener: SettingsListener) -> None:
        self._listeners.append(listener)

    async def load(self) -> SyncSettings:
        try:
            saved: Optional[dict] = await self._state.get(SYNC_SETTINGS)
            if saved:
                self._settings = SyncSettings.model_validate(saved)
        except ValidationError as exc:
            logger.error("Stored sync settings are invalid, using defaults: %s", exc)
        except LocalStoreError as exc:
            logger.error("Error loading sync settings, using defaults: %s", exc.message)
        finally:
            self._is_loaded = True
        return self.settings

    async def update_settings(self, **changes) -> None:
        """Merge partial changes, persist them, then tell listeners."""
        previous = self._settings
        try:
            updated = SyncSettings.model_validate({**previous.model_dump(), **changes})
        except ValidationError as exc:
            raise ServiceError(exc.errors()[0]["msg"], 400) from exc
        self._settings = updated

        try:
            await self._state.set(SYNC_SETTINGS, updated.model_dump(mode="json"))
        except LocalStoreError as exc:
            # The in-memory settings stay applied for this process.
            logger.error("Error saving sync settings: %s", exc.message)

        for listener in self._listeners:
            await listener(previous, updated)

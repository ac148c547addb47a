"""Key/value flags persisted in the local database (the app's "localStorage")."""

import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.exceptions import LocalStoreError
from app.core.models import LocalStateEntry

logger = logging.getLogger(__name__)

ADMIN_ID = "adminId"
ADMIN_NAME = "adminName"
ADMIN_ROLE = "adminRole"
ADMIN_EMAIL = "adminEmail"
ADMIN_GENDER = "adminGender"
REMEMBERED_EMAIL = "rememberedEmail"
HAS_LOGGED_IN_BEFORE = "hasLoggedInBefore"
SYNC_SETTINGS = "sync-settings"

SESSION_KEYS = (ADMIN_ID, ADMIN_NAME, ADMIN_ROLE, ADMIN_EMAIL, ADMIN_GENDER, HAS_LOGGED_IN_BEFORE)


class LocalStateStore:
    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def get(self, key: str, default: Any = None) -> Any:
        async with self._session_factory() as db:
            try:
                entry = await db.get(LocalStateEntry, key)
            except SQLAlchemyError as exc:
                logger.error("Failed to read local state %s: %s", key, exc)
                raise LocalStoreError("Failed to read local state") from exc
            return entry.value if entry is not None else default

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        keys = list(keys)
        async with self._session_factory() as db:
            result = await db.execute(select(LocalStateEntry).where(LocalStateEntry.key.in_(keys)))
            return {e.key: e.value for e in result.scalars().all()}

    async def set(self, key: str, value: Any) -> None:
        await self.set_many({key: value})

    async def set_many(self, values: Dict[str, Any]) -> None:
        async with self._session_factory() as db:
            try:
                for key, value in values.items():
                    entry = await db.get(LocalStateEntry, key)
                    if entry is None:
                        db.add(LocalStateEntry(key=key, value=value))
                    else:
                        entry.value = value
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.error("Failed to persist local state %s: %s", sorted(values), exc)
                raise LocalStoreError("Failed to save local state") from exc

    async def remove(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        async with self._session_factory() as db:
            try:
                await db.execute(delete(LocalStateEntry).where(LocalStateEntry.key.in_(keys)))
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                raise LocalStoreError("Failed to clear local state") from exc

    async def get_str(self, key: str) -> Optional[str]:
        value = await self.get(key)
        return str(value) if value is not None else None

"""Signed-in admin flags kept in the local state store.

Login populates them, logout clears them. ``rememberedEmail`` outlives a
logout so the login form can be prefilled.
"""

from typing import Dict, Optional

from app.core.local_state import (
    ADMIN_EMAIL,
    ADMIN_GENDER,
    ADMIN_ID,
    ADMIN_NAME,
    ADMIN_ROLE,
    HAS_LOGGED_IN_BEFORE,
    REMEMBERED_EMAIL,
    SESSION_KEYS,
    LocalStateStore,
)
from app.core.normalize import AdminProfile


class SessionStore:
    def __init__(self, state: LocalStateStore) -> None:
        self._state = state

    async def begin(self, admin: AdminProfile, remember_email: Optional[bool] = None) -> None:
        flags = {
            ADMIN_ID: admin.id,
            ADMIN_NAME: admin.name,
            ADMIN_ROLE: admin.role or "Principal",
            HAS_LOGGED_IN_BEFORE: admin.has_logged_in_before,
        }
        if admin.email:
            flags[ADMIN_EMAIL] = admin.email
        if admin.gender:
            flags[ADMIN_GENDER] = admin.gender
        if remember_email and admin.email:
            flags[REMEMBERED_EMAIL] = admin.email
        await self._state.set_many(flags)
        if remember_email is False:
            await self._state.remove([REMEMBERED_EMAIL])

    async def end(self) -> None:
        await self._state.remove(SESSION_KEYS)

    async def current(self) -> Dict[str, object]:
        return await self._state.get_many(SESSION_KEYS + (REMEMBERED_EMAIL,))

    async def mark_logged_in_before(self) -> None:
        await self._state.set(HAS_LOGGED_IN_BEFORE, True)

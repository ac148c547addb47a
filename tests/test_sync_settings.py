import pytest
from sqlalchemy import text

from app.core.exceptions import LocalStoreError, ServiceError
from app.core.local_state import SYNC_SETTINGS
from app.sync.settings import SyncSettingsManager


@pytest.mark.asyncio
async def test_defaults_when_nothing_saved(services) -> None:
    current = services.sync_settings.settings
    assert services.sync_settings.is_loaded is True
    assert current.auto_sync_enabled is True
    assert current.sync_interval_minutes == 5


@pytest.mark.asyncio
async def test_update_is_persisted_and_reloaded(services) -> None:
    await services.sync_settings.update_settings(sync_interval_minutes=15, auto_sync_enabled=False)

    stored = await services.state.get(SYNC_SETTINGS)
    assert stored["sync_interval_minutes"] == 15

    fresh = SyncSettingsManager(services.state)
    loaded = await fresh.load()
    assert loaded.sync_interval_minutes == 15
    assert loaded.auto_sync_enabled is False


@pytest.mark.asyncio
async def test_interval_outside_choices_is_rejected(services) -> None:
    with pytest.raises(ServiceError):
        await services.sync_settings.update_settings(sync_interval_minutes=7)
    assert services.sync_settings.settings.sync_interval_minutes == 5


@pytest.mark.asyncio
async def test_corrupt_saved_settings_fall_back_to_defaults(services) -> None:
    await services.state.set(SYNC_SETTINGS, {"sync_interval_minutes": 42})
    fresh = SyncSettingsManager(services.state)
    loaded = await fresh.load()
    assert fresh.is_loaded is True
    assert loaded.sync_interval_minutes == 5


@pytest.mark.asyncio
async def test_unreadable_local_store_falls_back_to_defaults(services) -> None:
    async with services.engine.begin() as conn:
        await conn.execute(text("DROP TABLE local_state"))

    with pytest.raises(LocalStoreError):
        await services.state.get("anything")

    fresh = SyncSettingsManager(services.state)
    loaded = await fresh.load()

    assert fresh.is_loaded is True
    assert loaded.auto_sync_enabled is True
    assert loaded.sync_interval_minutes == 5

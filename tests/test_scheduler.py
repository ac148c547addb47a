import asyncio
from datetime import timedelta

import pytest

from app.core.config import settings
from app.core.enums import EntityType, OperationKind, SchedulerState
from app.core.services import build_memory_services


async def _queue_two_class_creates(services) -> None:
    for n in (1, 2):
        await services.pending.enqueue(
            EntityType.CLASS,
            OperationKind.CREATE,
            {"id": f"C{n}", "name": f"JSS {n}A", "level": f"JSS {n}", "school_id": "school-1"},
            target_id=f"C{n}",
        )


@pytest.mark.asyncio
async def test_armed_after_startup(services, clock) -> None:
    assert services.scheduler.state is SchedulerState.ARMED
    assert services.scheduler.next_deadline == clock.now + timedelta(minutes=5)


@pytest.mark.asyncio
async def test_interval_change_cancels_previous_deadline(services, clock) -> None:
    start = clock.now
    clock.advance(minutes=2)
    await services.sync_settings.update_settings(sync_interval_minutes=15)
    assert services.scheduler.next_deadline == start + timedelta(minutes=17)

    clock.advance(minutes=3)  # the old 5 minute deadline
    assert await services.scheduler.tick() is False
    assert services.executor.last_sync_time is None

    clock.advance(minutes=12)
    assert await services.scheduler.tick() is True
    assert services.executor.last_sync_time == clock.now
    assert services.scheduler.next_deadline == clock.now + timedelta(minutes=15)


@pytest.mark.asyncio
async def test_disabling_auto_sync_clears_the_deadline(services) -> None:
    await services.sync_settings.update_settings(auto_sync_enabled=False)
    assert services.scheduler.state is SchedulerState.IDLE
    assert services.scheduler.next_deadline is None
    assert await services.scheduler.tick() is False


@pytest.mark.asyncio
async def test_timer_drains_queue_and_posts_background_notice(services, clock) -> None:
    await _queue_two_class_creates(services)
    clock.advance(minutes=5)

    assert await services.scheduler.tick() is True
    assert await services.pending.count() == 0
    assert len(services.remote.rows("classes")) == 2
    assert "Background Sync" in [n.title for n in services.notices.recent()]


@pytest.mark.asyncio
async def test_offline_at_deadline_waits_for_next_interval(services, clock) -> None:
    await _queue_two_class_creates(services)
    await services.monitor.handle_offline()
    clock.advance(minutes=5)

    assert await services.scheduler.tick() is True
    assert await services.pending.count() == 2
    assert services.scheduler.next_deadline == clock.now + timedelta(minutes=5)


@pytest.mark.asyncio
async def test_reconnect_with_queued_work_syncs_immediately(services, clock) -> None:
    services.remote.offline = True
    await services.monitor.check()
    await _queue_two_class_creates(services)
    deadline = services.scheduler.next_deadline

    services.remote.offline = False
    await services.monitor.handle_online()

    assert await services.pending.count() == 0
    assert services.scheduler.last_attempt == clock.now
    # the timer is independent of the reconnect trigger
    assert services.scheduler.next_deadline == deadline


@pytest.mark.asyncio
async def test_reconnect_within_cooldown_is_throttled(services, clock) -> None:
    services.scheduler.record_manual_attempt()
    await services.monitor.handle_offline()
    await _queue_two_class_creates(services)

    clock.advance(seconds=10)
    await services.monitor.handle_online()
    assert await services.pending.count() == 2

    await services.monitor.handle_offline()
    clock.advance(seconds=25)
    await services.monitor.handle_online()
    assert await services.pending.count() == 0


@pytest.mark.asyncio
async def test_reconnect_with_empty_queue_does_nothing(services) -> None:
    await services.monitor.handle_offline()
    await services.monitor.handle_online()
    assert services.scheduler.last_attempt is None
    assert services.executor.last_sync_time is None


@pytest.mark.asyncio
async def test_unexpected_error_during_sync_keeps_the_timer_armed(services, clock, monkeypatch) -> None:
    await _queue_two_class_creates(services)
    working_insert = services.sync_remote.insert

    async def unreadable_insert(table, rows):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")

    monkeypatch.setattr(services.sync_remote, "insert", unreadable_insert)
    clock.advance(minutes=5)

    assert await services.scheduler.tick() is True
    assert services.scheduler.state is SchedulerState.ARMED
    assert services.scheduler.next_deadline == clock.now + timedelta(minutes=5)
    assert services.executor.is_syncing is False
    assert await services.pending.count() == 2
    assert "Sync failed" in [n.title for n in services.notices.recent()]

    monkeypatch.setattr(services.sync_remote, "insert", working_insert)
    clock.advance(minutes=5)

    assert await services.scheduler.tick() is True
    assert await services.pending.count() == 0


@pytest.mark.asyncio
async def test_timer_loop_survives_a_failing_tick(services, clock, monkeypatch) -> None:
    calls = []

    async def failing_tick():
        calls.append(clock.now)
        raise RuntimeError("local database is locked")

    monkeypatch.setattr(services.scheduler, "tick", failing_tick)
    services.scheduler.start()
    clock.advance(minutes=5)  # the loop finds its deadline already passed

    for _ in range(100):
        if calls and services.scheduler.next_deadline == clock.now + timedelta(minutes=5):
            break
        await asyncio.sleep(0.01)

    loop_tasks = [t for t in asyncio.all_tasks() if t.get_name() == "sync-scheduler"]
    assert len(calls) == 1
    assert loop_tasks and not loop_tasks[0].done()
    assert services.scheduler.state is SchedulerState.ARMED
    assert services.scheduler.next_deadline == clock.now + timedelta(minutes=5)

    await services.scheduler.stop()
    assert loop_tasks[0].done()


async def _restart(tmp_path, clock):
    svc = build_memory_services(settings, database_url=f"sqlite+aiosqlite:///{tmp_path}/restart.db", clock=clock)
    await svc.startup(start_background=False)
    return svc


@pytest.mark.asyncio
async def test_startup_flushes_work_left_by_a_previous_run(tmp_path, clock) -> None:
    first = await _restart(tmp_path, clock)
    await first.pending.enqueue(
        EntityType.STUDENT, OperationKind.CREATE, {"id": "S1", "school_id": "school-1"}, target_id="S1"
    )
    await first.shutdown()

    second = await _restart(tmp_path, clock)
    try:
        assert await second.pending.count() == 0
        assert [s["id"] for s in second.remote.rows("students")] == ["S1"]
        assert second.scheduler.next_deadline == clock.now + timedelta(minutes=5)
    finally:
        await second.shutdown()


@pytest.mark.asyncio
async def test_last_sync_time_survives_a_restart(tmp_path, clock) -> None:
    first = await _restart(tmp_path, clock)
    await first.executor.sync_pending_operations()
    synced_at = clock.now
    await first.shutdown()

    clock.advance(hours=2)
    second = await _restart(tmp_path, clock)
    try:
        assert second.executor.last_sync_time == synced_at
    finally:
        await second.shutdown()

import asyncio

import pytest

from app.core.enums import EntityType, OperationKind
from app.remote.base import CONFLICT, RemoteError


async def _enqueue_classes(services, ids):
    ops = []
    for class_id in ids:
        ops.append(
            await services.pending.enqueue(
                EntityType.CLASS,
                OperationKind.CREATE,
                {"id": class_id, "name": class_id, "level": "JSS 1", "school_id": "school-1"},
                target_id=class_id,
            )
        )
    return ops


@pytest.mark.asyncio
async def test_all_operations_applied_in_order(services) -> None:
    await _enqueue_classes(services, ["C1", "C2", "C3"])
    await services.pending.enqueue(EntityType.CLASS, OperationKind.UPDATE, {"name": "C2-renamed"}, target_id="C2")
    await services.pending.enqueue(EntityType.CLASS, OperationKind.DELETE, target_id="C3")

    report = await services.executor.sync_pending_operations()

    assert report.attempted == 5
    assert report.applied == 5
    assert await services.pending.get_all() == []
    rows = {r["id"]: r for r in services.remote.rows("classes")}
    assert set(rows) == {"C1", "C2"}
    assert rows["C2"]["name"] == "C2-renamed"


@pytest.mark.asyncio
async def test_one_failure_leaves_only_that_operation_queued(services) -> None:
    ops = await _enqueue_classes(services, ["C1", "C2", "C3", "C4"])

    def reject_c3(operation, table, payload):
        if operation == "insert" and isinstance(payload, dict) and payload.get("id") == "C3":
            return RemoteError(message="duplicate key", kind=CONFLICT)
        return None

    services.remote.fail_when(reject_c3)
    report = await services.executor.sync_pending_operations()

    assert report.applied == 3
    assert [f.operation_id for f in report.failed] == [ops[2].id]
    remaining = await services.pending.get_all()
    assert [o.id for o in remaining] == [ops[2].id]

    later = await services.pending.enqueue(EntityType.CLASS, OperationKind.UPDATE, {"capacity": 30}, target_id="C1")
    assert [o.id for o in await services.pending.get_all()] == [ops[2].id, later.id]


@pytest.mark.asyncio
async def test_sync_is_skipped_while_offline(services) -> None:
    await _enqueue_classes(services, ["C1"])
    await services.monitor.handle_offline()

    report = await services.executor.sync_pending_operations()

    assert report.skipped is True
    assert report.reason == "offline"
    assert await services.pending.count() == 1


@pytest.mark.asyncio
async def test_download_replaces_local_collections_and_leaves_queue_alone(services) -> None:
    services.remote.rows("classes").extend(
        [
            {"id": "R1", "name": "SSS 1A", "level": "SSS 1", "school_id": "school-1"},
            {"id": "R2", "name": "Other", "level": "SSS 2", "school_id": "school-2"},
        ]
    )
    await services.local_records.put("classes", {"id": "STALE", "school_id": "school-1"})
    queued = await _enqueue_classes(services, ["LOCAL1"])
    before = await services.pending.get_all()

    report = await services.executor.download_all_data("school-1")

    assert report.collections["classes"] == 1
    assert await services.pending.get_all() == before
    assert [o.id for o in before] == [queued[0].id]
    local = await services.local_records.list("classes", school_id="school-1")
    assert [r["id"] for r in local] == ["R1"]


@pytest.mark.asyncio
async def test_second_call_while_syncing_is_rejected_not_queued(services, monkeypatch) -> None:
    await _enqueue_classes(services, ["C1"])
    entered = asyncio.Event()
    release = asyncio.Event()
    real_insert = services.sync_remote.insert

    async def slow_insert(table, rows):
        entered.set()
        await release.wait()
        return await real_insert(table, rows)

    monkeypatch.setattr(services.sync_remote, "insert", slow_insert)
    first = asyncio.create_task(services.executor.sync_pending_operations())
    await asyncio.wait_for(entered.wait(), timeout=2)

    second = await services.executor.sync_pending_operations()
    download = await services.executor.download_all_data("school-1")

    assert services.executor.is_syncing is True
    assert second.skipped is True
    assert second.reason == "sync already in progress"
    assert download.skipped is True

    release.set()
    report = await first

    assert report.attempted == 1
    assert report.applied == 1
    assert await services.pending.count() == 0
    assert [c["id"] for c in services.remote.rows("classes")] == ["C1"]
    assert services.executor.is_syncing is False

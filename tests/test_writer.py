import pytest

from app.core.enums import EntityType, OperationKind
from app.core.exceptions import RemoteCallError


@pytest.mark.asyncio
async def test_online_create_writes_remote_then_local(services) -> None:
    outcome = await services.writer.create(EntityType.STUDENT, {"id": "S1", "school_id": "school-1", "firstname": "Aminata"})

    assert outcome.offline is False
    assert outcome.source == "server"
    assert services.remote.rows("students")[0]["firstname"] == "Aminata"
    assert (await services.local_records.get("students", "S1"))["firstname"] == "Aminata"
    assert await services.pending.count() == 0


@pytest.mark.asyncio
async def test_offline_writes_are_queued_and_mirrored(services) -> None:
    await services.monitor.handle_offline()

    created = await services.writer.create(EntityType.SUBJECT, {"school_id": "school-1", "name": "Biology"})
    updated = await services.writer.update(EntityType.SUBJECT, created.data["id"], {"name": "Biology II"})
    deleted = await services.writer.delete(EntityType.SUBJECT, "OLD")

    assert created.offline and updated.offline and deleted.offline
    ops = await services.pending.get_all()
    assert [o.operation_kind for o in ops] == [OperationKind.CREATE, OperationKind.UPDATE, OperationKind.DELETE]
    assert ops[0].target_id == created.data["id"]
    assert updated.data["name"] == "Biology II"
    assert services.remote.rows("subjects") == []
    assert "Success (Offline)" in [n.title for n in services.notices.recent()]


@pytest.mark.asyncio
async def test_save_dispatches_on_record_id(services) -> None:
    created = await services.writer.save(EntityType.TEACHER, {"school_id": "school-1", "firstname": "Kadi"})
    await services.writer.save(EntityType.TEACHER, {"firstname": "Kadiatu"}, record_id=created.data["id"])

    assert services.remote.rows("teachers")[0]["firstname"] == "Kadiatu"


@pytest.mark.asyncio
async def test_online_remote_error_is_raised_and_nothing_queued(services) -> None:
    services.remote.fail_table("grades", "permission denied")

    with pytest.raises(RemoteCallError) as exc_info:
        await services.writer.create(EntityType.GRADE, {"school_id": "school-1", "score": 55})

    assert exc_info.value.status_code == 403
    assert await services.pending.count() == 0


@pytest.mark.asyncio
async def test_get_prefers_local_and_caches_remote(services) -> None:
    services.remote.rows("classes").append({"id": "C1", "school_id": "school-1", "name": "SSS 1A"})

    first = await services.writer.get(EntityType.CLASS, "C1")
    assert first.source == "server"
    second = await services.writer.get(EntityType.CLASS, "C1")
    assert second.source == "local"

    await services.monitor.handle_offline()
    assert await services.writer.get(EntityType.CLASS, "missing") is None

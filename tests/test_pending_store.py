import pytest

from app.core.enums import EntityType, OperationKind
from app.core.exceptions import ServiceError


@pytest.mark.asyncio
async def test_enqueue_keeps_order_and_never_merges(services) -> None:
    first = await services.pending.enqueue(EntityType.CLASS, OperationKind.CREATE, {"id": "C1", "name": "JSS 1A"}, "C1")
    second = await services.pending.enqueue(EntityType.CLASS, OperationKind.UPDATE, {"name": "JSS 1B"}, "C1")
    third = await services.pending.enqueue(EntityType.STUDENT, OperationKind.DELETE, target_id="S9")

    ops = await services.pending.get_all()
    assert [o.id for o in ops] == [first.id, second.id, third.id]
    assert ops[1].payload == {"name": "JSS 1B"}
    assert await services.pending.count() == 3


@pytest.mark.asyncio
async def test_remove_drops_only_that_operation(services) -> None:
    a = await services.pending.enqueue(EntityType.GRADE, OperationKind.CREATE, {"score": 70})
    b = await services.pending.enqueue(EntityType.GRADE, OperationKind.CREATE, {"score": 80})

    assert await services.pending.remove(a.id) is True
    assert await services.pending.remove(a.id) is False
    assert [o.id for o in await services.pending.get_all()] == [b.id]


@pytest.mark.asyncio
async def test_update_without_target_is_rejected(services) -> None:
    with pytest.raises(ServiceError):
        await services.pending.enqueue(EntityType.SUBJECT, OperationKind.UPDATE, {"name": "Maths"})
    assert await services.pending.count() == 0

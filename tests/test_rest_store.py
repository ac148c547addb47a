import httpx
import pytest

from app.remote.background import BackgroundSyncQueue
from app.remote.base import CONFLICT, INVALID, NETWORK, NOT_FOUND, PERMISSION, UNKNOWN
from app.remote.rest import RestRemoteStore, encode_filters

BASE_URL = "https://school-db.example.co"


def _store(handler, background_queue=None) -> RestRemoteStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RestRemoteStore(BASE_URL, "anon-key", client=client, background_queue=background_queue)


def test_encode_filters() -> None:
    params = encode_filters(
        [
            ("school_id", "eq", "school-1"),
            ("class_id", "eq", None),
            ("level", "in", ["JSS 1", "JSS 2"]),
            ("is_active", "is", True),
            ("capacity", "gte", 30),
        ]
    )

    assert params == [
        ("school_id", "eq.school-1"),
        ("class_id", "is.null"),
        ("level", 'in.("JSS 1","JSS 2")'),
        ("is_active", "is.true"),
        ("capacity", "gte.30"),
    ]
    with pytest.raises(ValueError):
        encode_filters([("name", "like", "JSS%")])


@pytest.mark.asyncio
async def test_select_sends_filters_and_keys() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": "C1", "name": "JSS 1A"}])

    store = _store(handler)
    result = await store.select("classes", [("school_id", "eq", "school-1")], limit=1, order_by="name")

    assert result.error is None
    assert result.first() == {"id": "C1", "name": "JSS 1A"}
    request = seen[0]
    assert request.url.path == "/rest/v1/classes"
    assert request.url.params["school_id"] == "eq.school-1"
    assert request.url.params["order"] == "name.asc"
    assert request.url.params["limit"] == "1"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code, kind",
    [(401, PERMISSION), (403, PERMISSION), (404, NOT_FOUND), (409, CONFLICT), (422, INVALID), (500, UNKNOWN)],
)
async def test_error_status_becomes_error_value(status_code, kind) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"message": "rejected by server", "code": "P0001"})

    result = await _store(handler).insert("classes", {"id": "C1"})

    assert result.data is None
    assert result.error.kind == kind
    assert result.error.status_code == status_code
    assert result.error.message == "rejected by server"
    assert result.error.code == "P0001"


@pytest.mark.asyncio
async def test_count_reads_content_range() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "HEAD"
        assert request.headers["prefer"] == "count=exact"
        return httpx.Response(200, headers={"content-range": "*/42"})

    result = await _store(handler).count("students", [("class_id", "eq", "C1")])

    assert result.error is None
    assert result.count == 42


@pytest.mark.asyncio
async def test_non_json_success_body_is_an_error_value() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>Sign in to the hotel wifi</html>")

    result = await _store(handler).insert("classes", {"id": "C1"})

    assert result.data is None
    assert result.error.kind == UNKNOWN
    assert "Unreadable response" in result.error.message


@pytest.mark.asyncio
async def test_transport_failure_is_network_and_write_is_captured() -> None:
    queue = BackgroundSyncQueue()

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network unreachable", request=request)

    store = _store(handler, background_queue=queue)
    inserted = await store.insert("grades", {"id": "G1", "score": 78})
    selected = await store.select("grades")

    assert inserted.error.kind == NETWORK
    assert inserted.error.is_network
    assert selected.error.kind == NETWORK
    # only the write is kept for background replay
    assert len(queue) == 1


@pytest.mark.asyncio
async def test_empty_delete_body_is_an_empty_list() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204)

    result = await _store(handler).delete("classes", [("id", "eq", "C1")])

    assert result.error is None
    assert result.data == []

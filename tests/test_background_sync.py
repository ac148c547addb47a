from datetime import timedelta

import httpx
import pytest

from app.remote.background import BACKGROUND_SYNC_COMPLETE, BackgroundSyncQueue

DB = "https://school-db.example.co/rest/v1"


class Clock:
    def __init__(self) -> None:
        self.now = 1_700_000_000.0

    def __call__(self) -> float:
        return self.now


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_only_remote_writes_are_captured() -> None:
    queue = BackgroundSyncQueue()

    assert queue.capture("POST", f"{DB}/classes", {"id": "C1"}, {}) is True
    assert queue.capture("GET", f"{DB}/classes", None, {}) is False
    assert queue.capture("POST", "https://school-db.example.co/auth/v1/signup", {}, {}) is False
    assert len(queue) == 1


@pytest.mark.asyncio
async def test_replay_keeps_order_drops_expired_and_rejected() -> None:
    clock = Clock()
    queue = BackgroundSyncQueue(max_retention=timedelta(hours=24), clock=clock)
    messages = []

    async def subscriber(message):
        messages.append(message)

    queue.subscribe(subscriber)
    queue.capture("POST", f"{DB}/expired", {"n": 0}, {})
    clock.now += 25 * 3600
    for table in ("accepted", "server_error", "rejected", "unreachable"):
        queue.capture("POST", f"{DB}/{table}", {"table": table}, {"apikey": "anon-key"})

    sent = []

    def first_pass(request: httpx.Request) -> httpx.Response:
        table = request.url.path.rsplit("/", 1)[1]
        sent.append(table)
        if table == "unreachable":
            raise httpx.ConnectError("still offline", request=request)
        return httpx.Response({"accepted": 201, "server_error": 503, "rejected": 400}[table], json=[])

    message = await queue.replay(_client(first_pass))

    assert sent == ["accepted", "server_error", "rejected", "unreachable"]
    assert message["type"] == BACKGROUND_SYNC_COMPLETE
    assert message["timestamp"] == int(clock.now * 1000)
    assert (message["replayed"], message["dropped"], message["remaining"]) == (1, 2, 2)
    assert messages == [message]

    resent = []

    def second_pass(request: httpx.Request) -> httpx.Response:
        resent.append(request.url.path.rsplit("/", 1)[1])
        assert request.headers["apikey"] == "anon-key"
        return httpx.Response(201, json=[])

    again = await queue.replay(_client(second_pass))

    assert resent == ["server_error", "unreachable"]
    assert again["replayed"] == 2
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_replay_with_nothing_captured_is_silent() -> None:
    queue = BackgroundSyncQueue()
    messages = []

    async def subscriber(message):
        messages.append(message)

    queue.subscribe(subscriber)

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("nothing should be sent")

    assert await queue.replay(_client(handler)) is None
    assert messages == []

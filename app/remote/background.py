"""Background replay of remote writes that failed at the network level.

Network-only strategy for write URLs of the remote database: a POST that cannot
reach the server is captured here and replayed on the next sync pass, for up to
the retention window. After each replay every subscriber receives a
BACKGROUND_SYNC_COMPLETE message.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

BACKGROUND_SYNC_COMPLETE = "BACKGROUND_SYNC_COMPLETE"

Subscriber = Callable[[Dict[str, Any]], Awaitable[None]]


@dataclass
class QueuedRequest:
    method: str
    url: str
    body: Any
    headers: Dict[str, str]
    queued_at: float = field(default_factory=time.time)


def is_remote_write(method: str, url: str) -> bool:
    return method.upper() == "POST" and "/rest/v1/" in url


class BackgroundSyncQueue:
    def __init__(
        self,
        name: str = "remote-operations-queue",
        max_retention: timedelta = timedelta(hours=24),
        matcher: Callable[[str, str], bool] = is_remote_write,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.name = name
        self.max_retention = max_retention
        self._matcher = matcher
        self._clock = clock
        self._requests: List[QueuedRequest] = []
        self._subscribers: List[Subscriber] = []

    def __len__(self) -> int:
        return len(self._requests)

    def matches(self, method: str, url: str) -> bool:
        return self._matcher(method, url)

    def capture(self, method: str, url: str, body: Any, headers: Dict[str, str]) -> bool:
        """Keep a failed request for replay. Returns False when the route is not covered."""
        if not self.matches(method, url):
            return False
        self._requests.append(
            QueuedRequest(method=method.upper(), url=url, body=body, headers=dict(headers), queued_at=self._clock())
        )
        logger.info("%s: captured %s %s for background replay", self.name, method, url)
        return True

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def _expired(self, request: QueuedRequest) -> bool:
        return self._clock() - request.queued_at > self.max_retention.total_seconds()

    async def replay(self, client: httpx.AsyncClient) -> Optional[Dict[str, Any]]:
        """Re-send captured requests in order. Returns the broadcast message, or None if idle."""
        if not self._requests:
            return None

        pending, self._requests = self._requests, []
        replayed = dropped = 0
        for request in pending:
            if self._expired(request):
                dropped += 1
                logger.warning("%s: dropping %s %s after retention window", self.name, request.method, request.url)
                continue
            try:
                response = await client.request(request.method, request.url, json=request.body, headers=request.headers)
            except httpx.TransportError as exc:
                logger.info("%s: replay of %s still failing: %s", self.name, request.url, exc)
                self._requests.append(request)
                continue
            if response.status_code >= 500:
                self._requests.append(request)
                continue
            if response.status_code >= 400:
                # The server saw and rejected it; replaying again will not help.
                logger.warning(
                    "%s: replay of %s rejected with %s", self.name, request.url, response.status_code
                )
                dropped += 1
                continue
            replayed += 1

        message = {
            "type": BACKGROUND_SYNC_COMPLETE,
            "timestamp": int(self._clock() * 1000),
            "replayed": replayed,
            "dropped": dropped,
            "remaining": len(self._requests),
        }
        for subscriber in self._subscribers:
            await subscriber(message)
        return message

"""User-facing transient notices (what the web client renders as toasts)."""

import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Deque, List

logger = logging.getLogger(__name__)


@dataclass
class Notice:
    title: str
    description: str
    variant: str = "default"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return asdict(self)


class NoticeBoard:
    """Bounded in-memory list of notices waiting to be shown."""

    def __init__(self, maxlen: int = 100) -> None:
        self._notices: Deque[Notice] = deque(maxlen=maxlen)

    def push(self, title: str, description: str, variant: str = "default") -> Notice:
        notice = Notice(title=title, description=description, variant=variant)
        self._notices.append(notice)
        log = logger.warning if variant == "destructive" else logger.info
        log("notice: %s - %s", title, description)
        return notice

    def recent(self) -> List[Notice]:
        return list(self._notices)

    def drain(self) -> List[Notice]:
        items = list(self._notices)
        self._notices.clear()
        return items

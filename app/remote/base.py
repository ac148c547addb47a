"""Contracts for the hosted backends.

Every data call returns a RemoteResult; remote failures come back as an error
value and are never raised. Callers must check ``result.error``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.core.exceptions import RemoteCallError

NETWORK = "network"
PERMISSION = "permission"
NOT_FOUND = "not_found"
CONFLICT = "conflict"
INVALID = "invalid"
UNKNOWN = "unknown"

FILTER_OPS = ("eq", "neq", "gt", "gte", "lt", "lte", "in", "is")

Filter = Tuple[str, str, Any]
Row = Dict[str, Any]


@dataclass
class RemoteError:
    message: str
    kind: str = UNKNOWN
    status_code: Optional[int] = None
    code: Optional[str] = None

    @property
    def is_network(self) -> bool:
        return self.kind == NETWORK


@dataclass
class RemoteResult:
    data: Any = None
    error: Optional[RemoteError] = None
    count: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self, context: str = "") -> Any:
        """Return data, or raise RemoteCallError for an error value."""
        if self.error is not None:
            raise RemoteCallError(self.error, context)
        return self.data

    def first(self) -> Optional[Row]:
        if isinstance(self.data, list):
            return self.data[0] if self.data else None
        return self.data


def error_kind_for_status(status_code: int) -> str:
    if status_code in (401, 403):
        return PERMISSION
    if status_code in (404, 406):
        return NOT_FOUND
    if status_code == 409:
        return CONFLICT
    if status_code in (400, 422):
        return INVALID
    return UNKNOWN


class RemoteStore(ABC):
    """Table operations against the relational backend (or a document backend
    exposed through the same shape)."""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        *,
        columns: str = "*",
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> RemoteResult:
        ...

    @abstractmethod
    async def insert(self, table: str, rows: Any) -> RemoteResult:
        ...

    @abstractmethod
    async def upsert(self, table: str, row: Row, on_conflict: str = "id") -> RemoteResult:
        ...

    @abstractmethod
    async def update(self, table: str, values: Row, filters: Sequence[Filter]) -> RemoteResult:
        ...

    @abstractmethod
    async def delete(self, table: str, filters: Sequence[Filter]) -> RemoteResult:
        ...

    @abstractmethod
    async def count(self, table: str, filters: Sequence[Filter] = ()) -> RemoteResult:
        ...

    async def close(self) -> None:
        return None


class AuthClient(ABC):
    """Hosted auth provider. Returns RemoteResult like the data layer."""

    @abstractmethod
    async def sign_up(self, email: str, password: str, metadata: Optional[Row] = None) -> RemoteResult:
        ...

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> RemoteResult:
        ...

    @abstractmethod
    def oauth_authorize_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        ...

    @abstractmethod
    async def get_user(self, access_token: str) -> RemoteResult:
        ...

    @abstractmethod
    async def update_user_by_id(self, user_id: str, attributes: Row) -> RemoteResult:
        ...

    @abstractmethod
    async def delete_user(self, user_id: str) -> RemoteResult:
        ...

    async def close(self) -> None:
        return None


def eq(column: str, value: Any) -> Filter:
    return (column, "eq", value)


def in_(column: str, values: List[Any]) -> Filter:
    return (column, "in", list(values))

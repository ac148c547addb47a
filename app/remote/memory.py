"""In-process backends honoring the same {data, error} contract as the hosted ones.

Selected with REMOTE_BACKEND=memory for local development, and used by the
test-suite. ``offline`` makes every call fail like an unreachable server and
``fail_table`` injects errors for a single table.
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from app.remote.base import (
    CONFLICT,
    INVALID,
    NETWORK,
    NOT_FOUND,
    PERMISSION,
    AuthClient,
    Filter,
    RemoteError,
    RemoteResult,
    RemoteStore,
    Row,
)


def _matches(row: Row, filters: Sequence[Filter]) -> bool:
    for column, op, value in filters:
        current = row.get(column)
        if op == "eq" and current != value:
            return False
        if op == "neq" and current == value:
            return False
        if op == "in" and current not in value:
            return False
        if op == "is" and current is not value:
            return False
        if op in ("gt", "gte", "lt", "lte"):
            if current is None:
                return False
            if op == "gt" and not current > value:
                return False
            if op == "gte" and not current >= value:
                return False
            if op == "lt" and not current < value:
                return False
            if op == "lte" and not current <= value:
                return False
    return True


class InMemoryRemoteStore(RemoteStore):
    def __init__(self, tables: Optional[Dict[str, List[Row]]] = None) -> None:
        self.tables: Dict[str, List[Row]] = {k: [dict(r) for r in v] for k, v in (tables or {}).items()}
        self.offline = False
        self.calls: List[tuple] = []
        self._failures: Dict[str, RemoteError] = {}
        self._row_failures: List[Callable[[str, str, Any], Optional[RemoteError]]] = []

    # ----- failure injection -----

    def fail_table(self, table: str, message: str = "permission denied", kind: str = PERMISSION) -> None:
        self._failures[table] = RemoteError(message=message, kind=kind)

    def heal_table(self, table: str) -> None:
        self._failures.pop(table, None)

    def fail_when(self, predicate: Callable[[str, str, Any], Optional[RemoteError]]) -> None:
        """predicate(operation, table, payload) -> RemoteError to inject, or None."""
        self._row_failures.append(predicate)

    def _check(self, operation: str, table: str, payload: Any = None) -> Optional[RemoteError]:
        self.calls.append((operation, table, copy.deepcopy(payload)))
        if self.offline:
            return RemoteError(message="fetch failed: network unreachable", kind=NETWORK)
        if table in self._failures:
            return self._failures[table]
        for predicate in self._row_failures:
            error = predicate(operation, table, payload)
            if error is not None:
                return error
        return None

    def rows(self, table: str) -> List[Row]:
        return self.tables.setdefault(table, [])

    # ----- RemoteStore -----

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
        error = self._check("select", table, list(filters))
        if error:
            return RemoteResult(error=error)
        found = [copy.deepcopy(r) for r in self.rows(table) if _matches(r, filters)]
        if order_by:
            found.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=descending)
        if limit is not None:
            found = found[:limit]
        if columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            found = [{c: r.get(c) for c in wanted} for r in found]
        return RemoteResult(data=found)

    async def insert(self, table: str, rows: Any) -> RemoteResult:
        error = self._check("insert", table, rows)
        if error:
            return RemoteResult(error=error)
        batch = rows if isinstance(rows, list) else [rows]
        existing = {r.get("id") for r in self.rows(table)}
        inserted = []
        for row in batch:
            row = copy.deepcopy(row)
            row.setdefault("id", str(uuid.uuid4()))
            if row["id"] in existing:
                return RemoteResult(
                    error=RemoteError(message="duplicate key value violates unique constraint", kind=CONFLICT)
                )
            existing.add(row["id"])
            inserted.append(row)
        self.rows(table).extend(inserted)
        return RemoteResult(data=copy.deepcopy(inserted))

    async def upsert(self, table: str, row: Row, on_conflict: str = "id") -> RemoteResult:
        error = self._check("upsert", table, row)
        if error:
            return RemoteResult(error=error)
        row = copy.deepcopy(row)
        for current in self.rows(table):
            if current.get(on_conflict) == row.get(on_conflict):
                current.update(row)
                return RemoteResult(data=[copy.deepcopy(current)])
        row.setdefault("id", str(uuid.uuid4()))
        self.rows(table).append(row)
        return RemoteResult(data=[copy.deepcopy(row)])

    async def update(self, table: str, values: Row, filters: Sequence[Filter]) -> RemoteResult:
        error = self._check("update", table, values)
        if error:
            return RemoteResult(error=error)
        if not filters:
            return RemoteResult(error=RemoteError(message="UPDATE requires a WHERE clause", kind=INVALID))
        updated = []
        for current in self.rows(table):
            if _matches(current, filters):
                current.update(copy.deepcopy(values))
                updated.append(copy.deepcopy(current))
        return RemoteResult(data=updated)

    async def delete(self, table: str, filters: Sequence[Filter]) -> RemoteResult:
        error = self._check("delete", table, list(filters))
        if error:
            return RemoteResult(error=error)
        if not filters:
            return RemoteResult(error=RemoteError(message="DELETE requires a WHERE clause", kind=INVALID))
        kept, removed = [], []
        for current in self.rows(table):
            (removed if _matches(current, filters) else kept).append(current)
        self.tables[table] = kept
        return RemoteResult(data=removed)

    async def count(self, table: str, filters: Sequence[Filter] = ()) -> RemoteResult:
        error = self._check("count", table, list(filters))
        if error:
            return RemoteResult(error=error)
        return RemoteResult(count=sum(1 for r in self.rows(table) if _matches(r, filters)))


class InMemoryAuthClient(AuthClient):
    def __init__(self) -> None:
        self.users: Dict[str, Row] = {}
        self.offline = False
        self.fail_deletes = False

    def _unreachable(self) -> Optional[RemoteResult]:
        if self.offline:
            return RemoteResult(error=RemoteError(message="fetch failed: network unreachable", kind=NETWORK))
        return None

    def _by_email(self, email: str) -> Optional[Row]:
        for user in self.users.values():
            if user["email"].lower() == email.lower():
                return user
        return None

    async def sign_up(self, email: str, password: str, metadata: Optional[Row] = None) -> RemoteResult:
        unreachable = self._unreachable()
        if unreachable:
            return unreachable
        if self._by_email(email):
            return RemoteResult(error=RemoteError(message="User already registered", kind=INVALID, status_code=422))
        user_id = str(uuid.uuid4())
        self.users[user_id] = {
            "id": user_id,
            "email": email,
            "password": password,
            "user_metadata": dict(metadata or {}),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        return RemoteResult(data=self._public(self.users[user_id]))

    async def sign_in_with_password(self, email: str, password: str) -> RemoteResult:
        unreachable = self._unreachable()
        if unreachable:
            return unreachable
        user = self._by_email(email)
        if not user or user["password"] != password:
            return RemoteResult(
                error=RemoteError(message="Invalid login credentials", kind=INVALID, status_code=400)
            )
        return RemoteResult(
            data={"access_token": f"token-{user['id']}", "token_type": "bearer", "user": self._public(user)}
        )

    def oauth_authorize_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        params = [("provider", provider)]
        if redirect_to:
            params.append(("redirect_to", redirect_to))
        return f"memory://auth/v1/authorize?{urlencode(params)}"

    async def get_user(self, access_token: str) -> RemoteResult:
        user_id = access_token.removeprefix("token-")
        user = self.users.get(user_id)
        if not user:
            return RemoteResult(error=RemoteError(message="invalid JWT", kind=PERMISSION, status_code=401))
        return RemoteResult(data=self._public(user))

    async def update_user_by_id(self, user_id: str, attributes: Row) -> RemoteResult:
        unreachable = self._unreachable()
        if unreachable:
            return unreachable
        user = self.users.get(user_id)
        if not user:
            return RemoteResult(error=RemoteError(message="User not found", kind=NOT_FOUND, status_code=404))
        user.update(attributes)
        return RemoteResult(data=self._public(user))

    async def delete_user(self, user_id: str) -> RemoteResult:
        unreachable = self._unreachable()
        if unreachable:
            return unreachable
        if self.fail_deletes:
            return RemoteResult(error=RemoteError(message="not allowed", kind=PERMISSION, status_code=403))
        if self.users.pop(user_id, None) is None:
            return RemoteResult(error=RemoteError(message="User not found", kind=NOT_FOUND, status_code=404))
        return RemoteResult(data={"id": user_id})

    @staticmethod
    def _public(user: Row) -> Row:
        return {k: v for k, v in user.items() if k != "password"}

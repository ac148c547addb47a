"""HTTP clients for the hosted relational/auth backend (PostgREST + GoTrue dialect)."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

import httpx

from app.remote.background import BackgroundSyncQueue
from app.remote.base import (
    FILTER_OPS,
    NETWORK,
    UNKNOWN,
    AuthClient,
    Filter,
    RemoteError,
    RemoteResult,
    RemoteStore,
    Row,
    error_kind_for_status,
)

logger = logging.getLogger(__name__)


def _encode_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_filters(filters: Sequence[Filter]) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = []
    for column, op, value in filters:
        if op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {op}")
        if op == "in":
            items = ",".join(f'"{_encode_value(v)}"' for v in value)
            params.append((column, f"in.({items})"))
        elif op == "eq" and value is None:
            params.append((column, "is.null"))
        else:
            params.append((column, f"{op}.{_encode_value(value)}"))
    return params


def _error_from_response(response: httpx.Response) -> RemoteError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or body.get("msg") or body.get("error_description") or body.get("error")
    return RemoteError(
        message=message or f"HTTP {response.status_code}",
        kind=error_kind_for_status(response.status_code),
        status_code=response.status_code,
        code=body.get("code"),
    )


def _json_result(response: httpx.Response, empty: Any = None) -> RemoteResult:
    """Decode a 2xx body. A body that is not JSON (captive portal, proxy page) is an error value."""
    if not response.content:
        return RemoteResult(data=empty)
    try:
        return RemoteResult(data=response.json())
    except ValueError as exc:
        logger.warning("Unreadable %s body from %s: %s", response.status_code, response.request.url, exc)
        return RemoteResult(
            error=RemoteError(
                message=f"Unreadable response from server: {exc}",
                kind=UNKNOWN,
                status_code=response.status_code,
            )
        )


def _parse_content_range(value: Optional[str]) -> Optional[int]:
    # "0-9/42" or "*/42"
    if not value or "/" not in value:
        return None
    total = value.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


class _HttpBackend:
    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        background_queue: Optional[BackgroundSyncQueue] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or ""
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.background_queue = background_queue

    def _headers(self, extra: Optional[Dict[str, str]] = None, bearer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {bearer or self.api_key}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[List[Tuple[str, str]]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[Optional[httpx.Response], Optional[RemoteError]]:
        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"
        try:
            response = await self.client.request(method, url, json=json, headers=headers)
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            if self.background_queue is not None:
                self.background_queue.capture(method, url, json, headers or {})
            return None, RemoteError(message=f"fetch failed: {exc}", kind=NETWORK)
        if response.status_code >= 400:
            error = _error_from_response(response)
            logger.warning("%s %s -> %s %s", method, path, response.status_code, error.message)
            return response, error
        return response, None

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()


class RestRemoteStore(_HttpBackend, RemoteStore):
    def queued(self, background_queue: BackgroundSyncQueue) -> "RestRemoteStore":
        """Twin sharing the HTTP client whose failed writes are captured for background replay."""
        twin = RestRemoteStore(self.base_url, self.api_key, client=self.client, background_queue=background_queue)
        twin._owns_client = False
        return twin

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
        params = [("select", columns)] + encode_filters(filters)
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))
        response, error = await self._send("GET", f"/rest/v1/{table}", params=params, headers=self._headers())
        if error:
            return RemoteResult(error=error)
        return _json_result(response)

    async def insert(self, table: str, rows: Any) -> RemoteResult:
        response, error = await self._send(
            "POST",
            f"/rest/v1/{table}",
            json=rows,
            headers=self._headers({"Prefer": "return=representation"}),
        )
        if error:
            return RemoteResult(error=error)
        return _json_result(response)

    async def upsert(self, table: str, row: Row, on_conflict: str = "id") -> RemoteResult:
        response, error = await self._send(
            "POST",
            f"/rest/v1/{table}",
            params=[("on_conflict", on_conflict)],
            json=row,
            headers=self._headers({"Prefer": "resolution=merge-duplicates,return=representation"}),
        )
        if error:
            return RemoteResult(error=error)
        return _json_result(response)

    async def update(self, table: str, values: Row, filters: Sequence[Filter]) -> RemoteResult:
        response, error = await self._send(
            "PATCH",
            f"/rest/v1/{table}",
            params=encode_filters(filters),
            json=values,
            headers=self._headers({"Prefer": "return=representation"}),
        )
        if error:
            return RemoteResult(error=error)
        return _json_result(response)

    async def delete(self, table: str, filters: Sequence[Filter]) -> RemoteResult:
        response, error = await self._send(
            "DELETE",
            f"/rest/v1/{table}",
            params=encode_filters(filters),
            headers=self._headers({"Prefer": "return=representation"}),
        )
        if error:
            return RemoteResult(error=error)
        return _json_result(response, empty=[])

    async def count(self, table: str, filters: Sequence[Filter] = ()) -> RemoteResult:
        response, error = await self._send(
            "HEAD",
            f"/rest/v1/{table}",
            params=[("select", "count")] + encode_filters(filters),
            headers=self._headers({"Prefer": "count=exact"}),
        )
        if error:
            return RemoteResult(error=error)
        total = _parse_content_range(response.headers.get("content-range"))
        return RemoteResult(data=None, count=total)


class RestAuthClient(_HttpBackend, AuthClient):
    def __init__(self, base_url: str, api_key: Optional[str], service_key: Optional[str] = None, **kwargs) -> None:
        super().__init__(base_url, api_key, **kwargs)
        self.service_key = service_key

    def _admin_headers(self) -> Dict[str, str]:
        key = self.service_key or self.api_key
        return {"apikey": key, "Authorization": f"Bearer {key}", "Content-Type": "application/json"}

    async def sign_up(self, email: str, password: str, metadata: Optional[Row] = None) -> RemoteResult:
        response, error = await self._send(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": metadata or {}},
            headers=self._headers(),
        )
        if error:
            return RemoteResult(error=error)
        decoded = _json_result(response)
        if decoded.error or not isinstance(decoded.data, dict):
            return decoded
        # signup returns the user directly, or {user, session} when autoconfirm is on
        return RemoteResult(data=decoded.data.get("user", decoded.data))

    async def sign_in_with_password(self, email: str, password: str) -> RemoteResult:
        response, error = await self._send(
            "POST",
            "/auth/v1/token",
            params=[("grant_type", "password")],
            json={"email": email, "password": password},
            headers=self._headers(),
        )
        if error:
            return RemoteResult(error=error)
        return _json_result(response)

    def oauth_authorize_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        params = [("provider", provider)]
        if redirect_to:
            params.append(("redirect_to", redirect_to))
        return f"{self.base_url}/auth/v1/authorize?{urlencode(params)}"

    async def get_user(self, access_token: str) -> RemoteResult:
        response, error = await self._send("GET", "/auth/v1/user", headers=self._headers(bearer=access_token))
        if error:
            return RemoteResult(error=error)
        return _json_result(response)

    async def update_user_by_id(self, user_id: str, attributes: Row) -> RemoteResult:
        response, error = await self._send(
            "PUT", f"/auth/v1/admin/users/{user_id}", json=attributes, headers=self._admin_headers()
        )
        if error:
            return RemoteResult(error=error)
        return _json_result(response)

    async def delete_user(self, user_id: str) -> RemoteResult:
        response, error = await self._send("DELETE", f"/auth/v1/admin/users/{user_id}", headers=self._admin_headers())
        if error:
            return RemoteResult(error=error)
        return RemoteResult(data={"id": user_id})

"""
Supabase client for NexTicket.

Talks to the PostgREST row API (/rest/v1) and the Storage API (/storage/v1)
over a shared httpx.AsyncClient. No retries: every failure comes back as a
StoreError inside the StoreResult, and the caller decides what to do with it.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx

from nexticket.config import STORE_TIMEOUT_SECONDS, SUPABASE_ANON_KEY, SUPABASE_URL
from nexticket.errors import StoreError
from nexticket.infrastructure.store import Order, StoreResult
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter, time_block

logger = get_logger(__name__)

_SINGLE_OBJECT = "application/vnd.pgrst.object+json"


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_filter_params(filters: Mapping[str, Any] | None) -> dict[str, str]:
    """Translate equality predicates into PostgREST query params."""
    params: dict[str, str] = {}
    for column, value in (filters or {}).items():
        if value is None:
            params[column] = "is.null"
        else:
            params[column] = f"eq.{_format_value(value)}"
    return params


class SupabaseStore:
    """RemoteStore implementation backed by a Supabase project."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: float = STORE_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        # Read env vars fresh (settings may be stale if loaded before dotenv)
        self.url = (url or os.getenv("SUPABASE_URL") or SUPABASE_URL).rstrip("/")
        self.api_key = api_key or os.getenv("SUPABASE_ANON_KEY") or SUPABASE_ANON_KEY
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if not self.url or not self.api_key:
            logger.warning("SUPABASE_URL / SUPABASE_ANON_KEY not set - remote calls will fail")

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {self.api_key}",
                },
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # Row operations
    # -------------------------------------------------------------------------

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Mapping[str, Any] | None = None,
        order: Order | None = None,
        single: bool = False,
    ) -> StoreResult:
        params = {"select": _compact_columns(columns), **build_filter_params(filters)}
        if order is not None:
            params["order"] = f"{order.column}.{'asc' if order.ascending else 'desc'}"
        headers = {"Accept": _SINGLE_OBJECT} if single else None
        return await self._request("GET", f"/rest/v1/{table}", params=params, headers=headers)

    async def insert(
        self, table: str, rows: Mapping[str, Any] | list[Mapping[str, Any]]
    ) -> StoreResult:
        payload = [dict(r) for r in rows] if isinstance(rows, list) else dict(rows)
        return await self._request(
            "POST",
            f"/rest/v1/{table}",
            json_body=payload,
            headers={"Prefer": "return=representation"},
        )

    async def update(
        self, table: str, values: Mapping[str, Any], *, filters: Mapping[str, Any]
    ) -> StoreResult:
        if not filters:
            return StoreResult(error=StoreError("Refusing unfiltered update", code="no_filter"))
        return await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=build_filter_params(filters),
            json_body=dict(values),
            headers={"Prefer": "return=representation"},
        )

    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> StoreResult:
        if not filters:
            return StoreResult(error=StoreError("Refusing unfiltered delete", code="no_filter"))
        return await self._request(
            "DELETE",
            f"/rest/v1/{table}",
            params=build_filter_params(filters),
            headers={"Prefer": "return=representation"},
        )

    # -------------------------------------------------------------------------
    # File storage
    # -------------------------------------------------------------------------

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        *,
        content_type: str = "application/octet-stream",
    ) -> StoreResult:
        return await self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(path)}",
            content=content,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{bucket}/{quote(path)}"

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json_body: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> StoreResult:
        try:
            with time_block(f"store.{method.lower()}"):
                response = await self.client.request(
                    method,
                    path,
                    params=params,
                    json=json_body,
                    content=content,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            counter("store.timeout")
            logger.warning("Remote store %s %s timed out: %s", method, path, e)
            return StoreResult(error=StoreError("Remote store timed out", code="timeout"))
        except httpx.RequestError as e:
            counter("store.request_error")
            logger.error("Remote store %s %s failed: %s", method, path, e)
            return StoreResult(error=StoreError(f"Remote store unreachable: {e}", code="network"))

        if response.status_code >= 400:
            counter(f"store.http_{response.status_code}")
            error = _parse_error(response)
            logger.warning(
                "Remote store %s %s -> %s: %s", method, path, response.status_code, error.message
            )
            return StoreResult(error=error)

        if not response.content:
            return StoreResult(data=None)
        try:
            return StoreResult(data=response.json())
        except json.JSONDecodeError:
            return StoreResult(data=response.text)


def _compact_columns(columns: str) -> str:
    return ",".join(part.strip() for part in columns.split(",") if part.strip())


def _parse_error(response: httpx.Response) -> StoreError:
    """Build a StoreError from a PostgREST / Storage error body."""
    message = f"HTTP {response.status_code}"
    code: str | None = None
    try:
        body = response.json()
    except json.JSONDecodeError:
        body = None

    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or message
        code = body.get("code") or body.get("statusCode")
        if code is not None:
            code = str(code)

    return StoreError(str(message), status_code=response.status_code, code=code)


# Global instance
_store: SupabaseStore | None = None


def get_supabase_store() -> SupabaseStore:
    """Get or create the process-wide SupabaseStore."""
    global _store
    if _store is None:
        _store = SupabaseStore()
    return _store

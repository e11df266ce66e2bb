"""
Remote store contract.

The hosted backend exposes row operations on named tables and object
operations on named buckets. Every call returns a StoreResult carrying either
data or a StoreError; remote failures are values, never exceptions, so each
caller applies its own failure policy (alert, revert, log).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from nexticket.errors import StoreError


@dataclass(frozen=True)
class Order:
    """Ordering clause for select()."""

    column: str
    ascending: bool = True


@dataclass
class StoreResult:
    """(data, error) pair returned by every remote store call."""

    data: Any = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def rows(self) -> list[dict[str, Any]]:
        """Data normalized to a list of rows (empty on error or no data)."""
        if self.error is not None or self.data is None:
            return []
        if isinstance(self.data, list):
            return self.data
        return [self.data]


class RemoteStore(Protocol):
    """Narrow interface to the hosted row/file store."""

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Mapping[str, Any] | None = None,
        order: Order | None = None,
        single: bool = False,
    ) -> StoreResult: ...

    async def insert(
        self, table: str, rows: Mapping[str, Any] | list[Mapping[str, Any]]
    ) -> StoreResult: ...

    async def update(
        self, table: str, values: Mapping[str, Any], *, filters: Mapping[str, Any]
    ) -> StoreResult: ...

    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> StoreResult: ...

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        *,
        content_type: str = "application/octet-stream",
    ) -> StoreResult: ...

    def get_public_url(self, bucket: str, path: str) -> str: ...

    async def aclose(self) -> None: ...

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

Row = dict[str, Any]


class RowBackend(Protocol):
    """Row-level access to the hosted store, scoped to one authenticated identity."""

    async def current_user_id(self) -> str | None: ...

    async def table_exists(self, table: str) -> bool: ...

    async def insert(self, table: str, values: Row) -> Row | None: ...

    async def select(
        self,
        table: str,
        *,
        equals: Row | None = None,
        since: tuple[str, datetime] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]: ...

    async def update(self, table: str, values: Row, *, equals: Row) -> list[Row]: ...

    async def delete(self, table: str, *, equals: Row) -> int: ...

    async def aclose(self) -> None: ...

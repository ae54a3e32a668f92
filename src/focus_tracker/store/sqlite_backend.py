from __future__ import annotations

import asyncio
import logging
import sqlite3
from datetime import datetime
from typing import Any, Callable, TypeVar

from focus_tracker.errors import (
    MISSING_TABLE_CODE,
    SchemaMissingError,
    StoreReadError,
    StoreWriteError,
    looks_like_missing_table,
)
from focus_tracker.store.base import Row
from focus_tracker.store.database import Database

logger = logging.getLogger(__name__)

R = TypeVar("R")


class SqliteBackend:
    """Local store. Identity is fixed at construction; there is no sign-in flow."""

    def __init__(self, db: Database, user_id: str | None) -> None:
        self.db = db
        self.user_id = user_id

    async def current_user_id(self) -> str | None:
        return self.user_id

    async def table_exists(self, table: str) -> bool:
        return await self._run(self.db.table_exists, table, write=False)

    async def insert(self, table: str, values: Row) -> Row | None:
        return await self._run(self.db.insert_row, table, values, write=True)

    async def select(
        self,
        table: str,
        *,
        equals: Row | None = None,
        since: tuple[str, datetime] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        return await self._run(
            lambda: self.db.select_rows(
                table,
                equals=equals,
                since=since,
                order_by=order_by,
                descending=descending,
                limit=limit,
            ),
            write=False,
        )

    async def update(self, table: str, values: Row, *, equals: Row) -> list[Row]:
        return await self._run(self.db.update_rows, table, values, equals, write=True)

    async def delete(self, table: str, *, equals: Row) -> int:
        return await self._run(self.db.delete_rows, table, equals, write=True)

    async def aclose(self) -> None:
        return None

    async def _run(self, fn: Callable[..., R], *args: Any, write: bool) -> R:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as exc:
            message = str(exc)
            if looks_like_missing_table(message, None):
                raise SchemaMissingError(message, code=MISSING_TABLE_CODE) from exc
            logger.warning("sqlite store error write=%s: %s", write, message)
            if write:
                raise StoreWriteError(message) from exc
            raise StoreReadError(message) from exc

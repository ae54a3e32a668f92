from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from focus_tracker.cache import TimedCache
from focus_tracker.errors import (
    SchemaMissingError,
    StoreError,
    StoreReadError,
    StoreWriteError,
    looks_like_missing_table,
)
from focus_tracker.store.base import Row

logger = logging.getLogger(__name__)

MAX_ERROR_TEXT = 400


def _filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, datetime):
        return _iso(value)
    return str(value)


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _json_ready(values: Row) -> Row:
    ready: Row = {}
    for key, value in values.items():
        if isinstance(value, datetime):
            ready[key] = _iso(value)
        elif isinstance(value, tuple):
            ready[key] = list(value)
        else:
            ready[key] = value
    return ready


def _filters(equals: Row | None) -> dict[str, str]:
    return {key: f"eq.{_filter_value(value)}" for key, value in (equals or {}).items()}


class RestBackend:
    """PostgREST (Supabase) tables under ``/rest/v1`` plus the ``/auth/v1/user`` identity lookup."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        identity_cache: TimedCache[str] | None = None,
        timeout: float = 20,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
            "Accept": "application/json",
        }
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self._identity = identity_cache if identity_cache is not None else TimedCache()

    async def current_user_id(self) -> str | None:
        if not self.access_token:
            return None
        cached = self._identity.get("user")
        if cached is not None:
            return cached
        try:
            resp = await self._client.get("/auth/v1/user")
        except httpx.HTTPError as exc:
            logger.warning("auth lookup failed: %s", exc)
            return None
        if resp.status_code >= 400:
            logger.info("no authenticated user status=%s", resp.status_code)
            return None
        user_id = str(resp.json().get("id") or "")
        if not user_id:
            return None
        self._identity.put("user", user_id)
        return user_id

    async def table_exists(self, table: str) -> bool:
        try:
            resp = await self._client.get(f"/rest/v1/{table}", params={"select": "id", "limit": "1"})
        except httpx.HTTPError as exc:
            raise StoreReadError(f"{table} existence check failed: {exc}") from exc
        if resp.status_code < 400:
            return True
        error = self._error(resp, write=False)
        if resp.status_code == 404 or isinstance(error, SchemaMissingError):
            logger.info("table missing: %s", table)
            return False
        raise error

    async def insert(self, table: str, values: Row) -> Row | None:
        rows = await self._send(
            "POST",
            f"/rest/v1/{table}",
            write=True,
            json=[_json_ready(values)],
        )
        return rows[0] if rows else None

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
        params = {"select": "*", **_filters(equals)}
        if since is not None:
            column, start = since
            params[column] = f"gte.{_iso(start)}"
        if order_by is not None:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(max(1, int(limit)))
        return await self._send("GET", f"/rest/v1/{table}", write=False, params=params)

    async def update(self, table: str, values: Row, *, equals: Row) -> list[Row]:
        return await self._send(
            "PATCH",
            f"/rest/v1/{table}",
            write=True,
            params=_filters(equals),
            json=_json_ready(values),
        )

    async def delete(self, table: str, *, equals: Row) -> int:
        rows = await self._send("DELETE", f"/rest/v1/{table}", write=True, params=_filters(equals))
        return len(rows)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, *, write: bool, **kwargs: Any) -> list[Row]:
        headers = {"Prefer": "return=representation"} if write else None
        try:
            resp = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            message = f"{method} {path} failed: {exc}"
            if write:
                raise StoreWriteError(message) from exc
            raise StoreReadError(message) from exc
        if resp.status_code >= 400:
            raise self._error(resp, write=write)
        if not resp.content:
            return []
        data = resp.json()
        if isinstance(data, dict):
            return [data]
        return [row for row in data if isinstance(row, dict)]

    def _error(self, resp: httpx.Response, *, write: bool) -> StoreError:
        code: str | None = None
        message = resp.text[:MAX_ERROR_TEXT].replace("\n", " ")
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            code = str(payload.get("code")) if payload.get("code") is not None else None
            message = str(payload.get("message") or message)
        logger.warning("store error status=%s code=%s: %s", resp.status_code, code, message)
        if looks_like_missing_table(message, code):
            return SchemaMissingError(message, code=code)
        if write:
            return StoreWriteError(message, code=code)
        return StoreReadError(message, code=code)

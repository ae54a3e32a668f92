from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from focus_tracker.errors import (
    FOREIGN_KEY_CODE,
    SCHEMA_CACHE_MISS_CODE,
    SchemaMissingError,
    StoreReadError,
    StoreUnavailableError,
    StoreWriteError,
    looks_like_missing_table,
)
from focus_tracker.models import AggregateStats
from focus_tracker.notifications import NoticeBoard
from focus_tracker.recorder import AUTH_FAILURE, MISSING_TABLE_FAILURE, SessionRecorder
from focus_tracker.stats import StatsService
from focus_tracker.store import FocusStore, RestBackend

NOW = datetime(2026, 2, 4, 9, 0, tzinfo=timezone.utc)
BASE_URL = "https://demo.supabase.co"


class FakeSupabase:
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.missing: set[str] = set()
        self.insert_error: dict | None = None
        self.rows: dict[str, list[dict]] = {"focus_sessions": [], "tasks": []}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/auth/v1/user":
            if request.headers.get("authorization") != "Bearer user-jwt":
                return httpx.Response(401, json={"message": "invalid JWT"})
            return httpx.Response(200, json={"id": "u1", "email": "ada@example.com"})

        table = path.rsplit("/", 1)[-1]
        if table in self.missing:
            return httpx.Response(
                404,
                json={"code": "42P01", "message": f'relation "public.{table}" does not exist'},
            )
        if request.method == "POST":
            if self.insert_error is not None:
                return httpx.Response(409, json=self.insert_error)
            body = json.loads(request.content)
            row = {"id": f"{table}-{len(self.rows[table]) + 1}", **body[0]}
            self.rows[table].append(row)
            return httpx.Response(201, json=[row])
        if request.method == "GET":
            return httpx.Response(200, json=self.rows.get(table, []))
        if request.method == "DELETE":
            return httpx.Response(200, json=self.rows.get(table, [])[:1])
        return httpx.Response(200, json=[])


def _backend(fake: FakeSupabase, token: str | None = "user-jwt") -> RestBackend:
    return RestBackend(BASE_URL, "anon-key", token, transport=httpx.MockTransport(fake))


def _store(fake: FakeSupabase) -> FocusStore:
    return FocusStore(_backend(fake), clock=lambda: NOW)


def test_identity_lookup_is_cached() -> None:
    async def scenario() -> None:
        fake = FakeSupabase()
        backend = _backend(fake)
        assert await backend.current_user_id() == "u1"
        assert await backend.current_user_id() == "u1"
        assert len(fake.requests) == 1
        assert fake.requests[0].headers["apikey"] == "anon-key"
        await backend.aclose()

    asyncio.run(scenario())


def test_no_token_means_no_user() -> None:
    async def scenario() -> None:
        fake = FakeSupabase()
        assert await _backend(fake, token=None).current_user_id() is None
        assert fake.requests == []
        assert await _backend(fake, token="expired").current_user_id() is None

    asyncio.run(scenario())


def test_insert_asks_for_representation() -> None:
    async def scenario() -> None:
        fake = FakeSupabase()
        store = _store(fake)
        record = await store.record_session(25)
        assert record.id == "focus_sessions-1"
        assert record.duration_minutes == 25
        assert record.created_at == NOW

        post = [r for r in fake.requests if r.method == "POST"][0]
        assert post.headers["prefer"] == "return=representation"
        assert json.loads(post.content) == [
            {"user_id": "u1", "duration": 25, "created_at": "2026-02-04T09:00:00+00:00"}
        ]

    asyncio.run(scenario())


def test_select_filters_are_postgrest_params() -> None:
    async def scenario() -> None:
        fake = FakeSupabase()
        backend = _backend(fake)
        await backend.select(
            "tasks",
            equals={"user_id": "u1", "completed": True},
            since=("created_at", NOW),
            order_by="created_at",
            descending=True,
            limit=5,
        )
        params = fake.requests[-1].url.params
        assert params["user_id"] == "eq.u1"
        assert params["completed"] == "eq.true"
        assert params["created_at"] == "gte.2026-02-04T09:00:00+00:00"
        assert params["order"] == "created_at.desc"
        assert params["limit"] == "5"

    asyncio.run(scenario())


def test_missing_table_detected() -> None:
    async def scenario() -> None:
        fake = FakeSupabase()
        fake.missing.add("focus_sessions")
        backend = _backend(fake)
        assert await backend.table_exists("focus_sessions") is False
        assert await backend.table_exists("tasks") is True
        with pytest.raises(SchemaMissingError):
            await backend.select("focus_sessions")

    asyncio.run(scenario())


def test_missing_sessions_table_blocks_recording() -> None:
    async def scenario() -> None:
        fake = FakeSupabase()
        fake.missing.add("focus_sessions")
        with pytest.raises(StoreUnavailableError):
            await _store(fake).record_session(25)

        notices = NoticeBoard()
        outcome = await SessionRecorder(_store(fake), notices).record(25)
        assert not outcome.ok
        assert notices.list()[0].description == MISSING_TABLE_FAILURE

    asyncio.run(scenario())


def test_foreign_key_violation_reads_as_auth_problem() -> None:
    async def scenario() -> None:
        fake = FakeSupabase()
        fake.insert_error = {"code": FOREIGN_KEY_CODE, "message": "violates foreign key constraint"}
        with pytest.raises(StoreWriteError) as excinfo:
            await _store(fake).record_session(25)
        assert excinfo.value.code == FOREIGN_KEY_CODE

        notices = NoticeBoard()
        await SessionRecorder(_store(fake), notices).record(25)
        assert notices.list()[0].description == AUTH_FAILURE

    asyncio.run(scenario())


def test_transport_failure_on_read() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    async def scenario() -> None:
        backend = RestBackend(BASE_URL, "anon-key", "user-jwt", transport=httpx.MockTransport(handler))
        with pytest.raises(StoreReadError):
            await backend.table_exists("tasks")
        assert await backend.current_user_id() is None

    asyncio.run(scenario())


def test_delete_counts_returned_rows() -> None:
    async def scenario() -> None:
        fake = FakeSupabase()
        fake.rows["tasks"].append({"id": "t1", "user_id": "u1"})
        backend = _backend(fake)
        assert await backend.delete("tasks", equals={"id": "t1", "user_id": "u1"}) == 1
        assert fake.requests[-1].url.params["id"] == "eq.t1"

    asyncio.run(scenario())


def _schema_cache_miss(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/auth/v1/user":
        return httpx.Response(200, json={"id": "u1"})
    table = request.url.path.rsplit("/", 1)[-1]
    return httpx.Response(
        404,
        json={
            "code": SCHEMA_CACHE_MISS_CODE,
            "message": f"Could not find the table 'public.{table}' in the schema cache",
        },
    )


def test_schema_cache_miss_counts_as_missing_table() -> None:
    async def scenario() -> None:
        backend = RestBackend(BASE_URL, "anon-key", "user-jwt", transport=httpx.MockTransport(_schema_cache_miss))
        store = FocusStore(backend, clock=lambda: NOW)
        assert await backend.table_exists("focus_sessions") is False

        stats = await StatsService(store, clock=lambda: NOW).fetch_aggregate_stats("u1")
        assert stats == AggregateStats.zeroed()

        with pytest.raises(StoreUnavailableError):
            await store.record_session(25)
        with pytest.raises(SchemaMissingError):
            await backend.insert("focus_sessions", {"user_id": "u1", "duration": 25})

        notices = NoticeBoard()
        await SessionRecorder(store, notices).record(25)
        assert notices.list()[0].description == MISSING_TABLE_FAILURE

    asyncio.run(scenario())


def test_missing_column_is_not_a_missing_table() -> None:
    assert not looks_like_missing_table('column "colour" of relation "tasks" does not exist', "42703")
    assert looks_like_missing_table('relation "public.tasks" does not exist', "42P01")
    assert looks_like_missing_table("no such table: tasks", None)


def test_column_error_on_write_stays_a_write_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=[])
        return httpx.Response(400, json={"code": "42703", "message": 'column "colour" does not exist'})

    async def scenario() -> None:
        backend = RestBackend(BASE_URL, "anon-key", "user-jwt", transport=httpx.MockTransport(handler))
        with pytest.raises(StoreWriteError) as excinfo:
            await backend.insert("tasks", {"title": "x"})
        assert not isinstance(excinfo.value, SchemaMissingError)

    asyncio.run(scenario())

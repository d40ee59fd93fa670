from __future__ import annotations

import asyncio
import json
from pathlib import Path

import httpx

from labsite.services.cache import ClientRowCache, InMemoryCacheStore, JsonFileCacheStore, cache_key
from labsite.services.sheets import SheetsClient

GVIZ_TEXT = (
    "google.visualization.Query.setResponse("
    + json.dumps({"table": {"cols": [{"label": "id"}, {"label": "name"}], "rows": [{"c": [{"v": "1"}, {"v": "Ada"}]}]}})
    + ");"
)


class FakeClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_cached_rows_are_served_until_ttl_elapses() -> None:
    clock = FakeClock(1_700_000_000_000.0)
    cache = ClientRowCache(InMemoryCacheStore(), ttl_ms=300000, clock=clock)
    requests: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text=GVIZ_TEXT, request=request)

    async def run() -> list[int]:
        counts: list[int] = []
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = SheetsClient(cache=cache, client=http)
            await client.fetch_rows("doc", "members")
            counts.append(len(requests))
            cached = await client.fetch_rows("doc", "members")
            assert cached == [["id", "name"], ["1", "Ada"]]
            counts.append(len(requests))
            clock.now += 300000
            await client.fetch_rows("doc", "members")
            counts.append(len(requests))
            clock.now += 1
            await client.fetch_rows("doc", "members")
            counts.append(len(requests))
        return counts

    assert asyncio.run(run()) == [1, 1, 1, 2]
    assert requests[0].headers["cache-control"] == "no-store"


def test_cache_keys_are_scoped_by_document_and_tab() -> None:
    cache = ClientRowCache(InMemoryCacheStore(), ttl_ms=1000, clock=FakeClock(5000.0))
    cache.set(cache_key("doc", "members"), [["id"], ["1"]])

    assert cache.get(cache_key("doc", "members")) == [["id"], ["1"]]
    assert cache.get(cache_key("doc", "awards")) is None
    assert cache.get(cache_key("other", "members")) is None


def test_non_positive_ttl_disables_cache() -> None:
    store = InMemoryCacheStore()
    cache = ClientRowCache(store, ttl_ms=0, clock=FakeClock(5000.0))
    cache.set("key", [["id"]])

    assert store.get("key") is None
    assert cache.get("key") is None


def test_corrupt_entries_are_cache_misses() -> None:
    store = InMemoryCacheStore()
    cache = ClientRowCache(store, ttl_ms=1000, clock=FakeClock(5000.0))

    store.set("garbage", "{not json")
    store.set("wrong-shape", json.dumps({"ts": 4900, "data": "rows"}))
    store.set("no-timestamp", json.dumps({"data": [["id"]]}))
    store.set("list", json.dumps([1, 2]))

    assert cache.get("garbage") is None
    assert cache.get("wrong-shape") is None
    assert cache.get("no-timestamp") is None
    assert cache.get("list") is None


def test_explicit_timestamp_is_persisted() -> None:
    store = InMemoryCacheStore()
    cache = ClientRowCache(store, ttl_ms=1000, clock=FakeClock(5000.0))
    cache.set("key", [["id"]], timestamp=3000.0)

    assert json.loads(store.get("key") or "") == {"ts": 3000.0, "data": [["id"]]}
    assert cache.get("key") is None


def test_json_file_store_persists_between_instances(tmp_path: Path) -> None:
    clock = FakeClock(10_000.0)
    ClientRowCache(JsonFileCacheStore(tmp_path / "cache"), ttl_ms=1000, clock=clock).set("k", [["id"], ["7"]])

    reopened = ClientRowCache(JsonFileCacheStore(tmp_path / "cache"), ttl_ms=1000, clock=clock)
    assert reopened.get("k") == [["id"], ["7"]]
    assert JsonFileCacheStore(tmp_path / "missing").get("k") is None


def test_deeply_nested_entry_is_a_cache_miss() -> None:
    store = InMemoryCacheStore()
    store.set("deep", "[" * 40000)

    assert ClientRowCache(store, clock=FakeClock(1.0)).get("deep") is None


def test_json_file_store_replaces_entries_without_leftovers(tmp_path: Path) -> None:
    store = JsonFileCacheStore(tmp_path)

    store.set("sheets_cache:doc:members", '{"ts": 1, "data": []}')
    store.set("sheets_cache:doc:members", '{"ts": 2, "data": [["id"]]}')

    assert store.get("sheets_cache:doc:members") == '{"ts": 2, "data": [["id"]]}'
    assert [path.suffix for path in tmp_path.iterdir()] == [".json"]

import threading
import time

import pytest

from github_dashboard.core.cache import CachedFetch, CacheState, CacheStore, FetchRegistry


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


class CountingFetcher:
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def test_initial_pending_then_ready():
    store = CacheStore()
    before = time.time()
    fetch = CachedFetch(store, "x", lambda: {"items": [1, 2]})
    assert fetch.pending is True
    assert fetch.data is None
    assert fetch.last_updated is None
    assert fetch.state is CacheState.EMPTY

    fetch.mount()
    assert fetch.pending is False
    assert fetch.data == {"items": [1, 2]}
    assert before <= fetch.last_updated <= time.time()
    assert fetch.state is CacheState.READY


def test_mount_skips_fresh_data_and_refetches_stale():
    clock = FakeClock()
    fetcher = CountingFetcher(["a", "b"])
    fetch = CachedFetch(CacheStore(), "k", fetcher, stale_seconds=60, clock=clock)
    fetch.mount()
    fetch.mount()
    assert fetcher.calls == 1
    clock.now += 61
    assert fetch.is_stale
    fetch.mount()
    assert fetcher.calls == 2
    assert fetch.data == "b"


def test_failure_keeps_previous_data_and_timestamp():
    clock = FakeClock()
    fetch = CachedFetch(CacheStore(), "k", CountingFetcher(["good", RuntimeError("boom")]), clock=clock)
    fetch.refresh()
    stamp = fetch.last_updated
    clock.now += 500
    assert fetch.refresh() is None
    assert fetch.data == "good"
    assert fetch.last_updated == stamp
    assert isinstance(fetch.error, RuntimeError)
    assert fetch.is_refreshing is False
    assert fetch.pending is False


def test_failure_without_data_is_not_pending():
    fetch = CachedFetch(CacheStore(), "k", CountingFetcher([ValueError("nope")]))
    fetch.mount()
    assert fetch.data is None
    assert fetch.pending is False
    assert fetch.error is not None


def test_entry_is_shared_between_consumers():
    store = CacheStore()
    first = CachedFetch(store, "shared", lambda: [1])
    second = CachedFetch(store, "shared", lambda: pytest.fail("second consumer should not fetch"))
    first.mount()
    second.mount()
    assert second.data == [1]
    assert "shared" in store


def test_refreshing_state_keeps_data_visible():
    store = CacheStore()
    seen = {}

    def fetcher():
        seen["state"] = consumer.state
        seen["is_refreshing"] = consumer.is_refreshing
        seen["data"] = consumer.data
        return "new"

    store.set("k", "old", timestamp=1.0)
    consumer = CachedFetch(store, "k", fetcher)
    consumer.refresh()
    assert seen == {"state": CacheState.REFRESHING, "is_refreshing": True, "data": "old"}
    assert consumer.data == "new"
    assert consumer.state is CacheState.READY


def test_tick_skipped_while_hidden_or_in_flight():
    fetcher = CountingFetcher(["a", "b"])
    fetch = CachedFetch(CacheStore(), "k", fetcher)
    fetch.set_visible(False)
    assert fetch.tick() is False
    assert fetcher.calls == 0

    fetch.set_visible(True)  # no data yet: stale, so it fetches
    assert fetcher.calls == 1

    fetch.store.mark_refreshing("k", True)
    assert fetch.tick() is False
    fetch.store.mark_refreshing("k", False)
    assert fetch.tick() is True
    assert fetcher.calls == 2


def test_visibility_regain_refetches_only_when_stale():
    clock = FakeClock()
    fetcher = CountingFetcher(["a", "b"])
    fetch = CachedFetch(CacheStore(), "k", fetcher, stale_seconds=60, clock=clock)
    fetch.mount()
    fetch.set_visible(False)
    fetch.set_visible(True)
    assert fetcher.calls == 1
    fetch.set_visible(False)
    clock.now += 120
    fetch.set_visible(True)
    assert fetcher.calls == 2
    assert fetch.data == "b"


def test_invalidate_marks_stale_but_keeps_data():
    clock = FakeClock()
    fetch = CachedFetch(CacheStore(), "k", lambda: "v", clock=clock)
    fetch.mount()
    fetch.invalidate()
    assert fetch.is_stale
    assert fetch.data == "v"
    assert fetch.last_updated is None


def test_background_refresh_and_timer_teardown():
    store = CacheStore()
    fetch = CachedFetch(store, "bg", lambda: 42, refresh_interval=30)
    try:
        fetch.mount(background=True)
        fetch.refresh_in_background().result(timeout=5)
        assert fetch.data == 42
        assert fetch._timer is not None
    finally:
        fetch.close()
        store.shutdown()
    assert fetch._timer is None


def test_snapshot_bundles_consumer_state():
    fetch = CachedFetch(CacheStore(), "snap", lambda: ["row"], clock=FakeClock(50.0))
    before = fetch.snapshot()
    assert (before.data, before.pending, before.state) == (None, True, CacheState.EMPTY)
    fetch.refresh()
    after = fetch.snapshot()
    assert after.data == ["row"]
    assert after.pending is False
    assert after.is_refreshing is False
    assert after.error is None
    assert after.last_updated == 50.0
    assert after.state is CacheState.READY


def test_registry_rebinds_fetcher_for_existing_key():
    clock = FakeClock()
    registry = FetchRegistry(stale_seconds=60, clock=clock)
    try:
        registry.acquire("projects:acme", lambda: "old client")
        clock.now += 61
        fetch = registry.acquire("projects:acme", lambda: "new client")
        fetch.store.shutdown()
        assert fetch.data == "new client"
        assert registry.keys() == ["projects:acme"]
    finally:
        registry.close()


def test_registry_refreshes_stale_data_in_background():
    clock = FakeClock()
    calls = []
    release = threading.Event()

    def fetcher():
        calls.append(threading.current_thread().name)
        if len(calls) > 1:
            release.wait(timeout=5)
        return len(calls)

    registry = FetchRegistry(stale_seconds=60, clock=clock)
    try:
        fetch = registry.acquire("items:graphql:PVT_1", fetcher)
        assert calls == [threading.current_thread().name]
        clock.now += 61
        fetch = registry.acquire("items:graphql:PVT_1", fetcher)
        # the stale payload is served while the refetch is still blocked
        assert fetch.data == 1
        assert fetch.is_refreshing
        release.set()
        registry.store.shutdown()
        assert fetch.data == 2
        assert calls[1].startswith("cache-refresh")
    finally:
        release.set()
        registry.close()


def test_registry_replaces_key_in_slot_and_closes_all():
    registry = FetchRegistry(refresh_interval=60)
    first = registry.acquire("items:graphql:PVT_1", lambda: ["a"])
    assert first._timer is not None
    registry.acquire("items:graphql:PVT_2", lambda: ["b"])
    registry.acquire("views:PVT_2", lambda: ["view"])
    assert first._timer is None
    assert sorted(registry.keys()) == ["items:graphql:PVT_2", "views:PVT_2"]

    registry.close()
    assert registry.closed
    assert registry.keys() == []
    names = {"cache-timer-items:graphql:PVT_2", "cache-timer-views:PVT_2"}
    assert not [t for t in threading.enumerate() if t.name in names and t.is_alive()]

"""Client-side cache with background refresh for remote fetches.

A ``CacheStore`` holds one ``CacheEntry`` per key for the lifetime of the
session and is shared by every ``CachedFetch`` bound to that key, so a page
switch shows the last good payload immediately while a refresh runs.

Per key the consumer moves through ``EMPTY -> LOADING -> READY`` and then
``READY -> REFRESHING -> READY`` on every later fetch. A failed fetch keeps
the previous payload and timestamp and only records the error.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
import weakref
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .config import CACHE_MAX_WORKERS, DEFAULT_STALE_SECONDS

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheState(enum.Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    REFRESHING = "refreshing"


@dataclass(slots=True)
class CacheEntry:
    data: Any = None
    timestamp: float = 0.0  # epoch seconds of the last successful fetch; 0 = never
    is_refreshing: bool = False


class CacheStore:
    """Keyed cache entries plus the worker pool used for background refreshes."""

    def __init__(self, max_workers: int = CACHE_MAX_WORKERS):
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

    def get(self, key: str) -> CacheEntry:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = CacheEntry()
            return entry

    def set(self, key: str, data: Any, timestamp: float) -> CacheEntry:
        with self._lock:
            entry = self.get(key)
            entry.data = data
            entry.timestamp = timestamp
            entry.is_refreshing = False
            return entry

    def mark_refreshing(self, key: str, refreshing: bool) -> None:
        with self._lock:
            self.get(key).is_refreshing = refreshing

    def invalidate(self, key: str) -> None:
        """Mark ``key`` stale; its data stays visible until the next fetch lands."""
        with self._lock:
            if key in self._entries:
                self._entries[key].timestamp = 0.0

    def is_stale(self, key: str, stale_seconds: float, now: float) -> bool:
        with self._lock:
            timestamp = self.get(key).timestamp
        if not timestamp:
            return True
        return now - timestamp > stale_seconds

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def submit(self, fn: Callable[[], Any]) -> Future:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="cache-refresh"
                )
            executor = self._executor
        return executor.submit(fn)

    def shutdown(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)


@dataclass(slots=True)
class CacheSnapshot:
    data: Any
    pending: bool
    is_refreshing: bool
    error: Exception | None
    last_updated: float | None
    state: CacheState


class CachedFetch(Generic[T]):
    """One consumer of a shared cache key.

    Parameters
    ----------
    store : CacheStore
        Session-wide store; consumers of the same key share one entry.
    key : str
        Cache key.
    fetcher : callable
        Zero-argument function returning the payload. Exceptions are caught
        and exposed through :attr:`error`.
    stale_seconds : float
        Age after which cached data is refreshed on mount or on regaining
        visibility.
    refresh_interval : float, optional
        When set, :meth:`mount` starts a timer that refetches every
        ``refresh_interval`` seconds while the consumer is visible.
    clock : callable
        Returns the current epoch time; injectable for tests.
    """

    def __init__(
        self,
        store: CacheStore,
        key: str,
        fetcher: Callable[[], T],
        *,
        stale_seconds: float = DEFAULT_STALE_SECONDS,
        refresh_interval: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.key = key
        self._fetcher = fetcher
        self.stale_seconds = stale_seconds
        self.refresh_interval = refresh_interval
        self._clock = clock
        self.error: Exception | None = None
        self._visible = True
        self._stop = threading.Event()
        self._timer: threading.Thread | None = None

    # ------------------ State ------------------
    @property
    def entry(self) -> CacheEntry:
        return self.store.get(self.key)

    @property
    def data(self) -> T | None:
        return self.entry.data

    @property
    def pending(self) -> bool:
        """No data yet and no failure recorded: show a loading placeholder."""
        return self.entry.data is None and self.error is None

    @property
    def is_refreshing(self) -> bool:
        entry = self.entry
        return entry.is_refreshing and entry.data is not None

    @property
    def last_updated(self) -> float | None:
        return self.entry.timestamp or None

    @property
    def is_stale(self) -> bool:
        return self.store.is_stale(self.key, self.stale_seconds, self._clock())

    @property
    def fetcher(self) -> Callable[[], T]:
        return self._fetcher

    @fetcher.setter
    def fetcher(self, fetcher: Callable[[], T]) -> None:
        """Rebind the fetch function; the cached entry is kept."""
        self._fetcher = fetcher

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def state(self) -> CacheState:
        entry = self.entry
        if entry.data is None:
            return CacheState.LOADING if entry.is_refreshing else CacheState.EMPTY
        return CacheState.REFRESHING if entry.is_refreshing else CacheState.READY

    def snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(
            data=self.data,
            pending=self.pending,
            is_refreshing=self.is_refreshing,
            error=self.error,
            last_updated=self.last_updated,
            state=self.state,
        )

    # ------------------ Fetching ------------------
    def refresh(self) -> T | None:
        """Fetch now and store the result; returns the payload or None on failure."""
        self.store.mark_refreshing(self.key, True)
        try:
            data = self._fetcher()
        except Exception as exc:
            self.error = exc
            self.store.mark_refreshing(self.key, False)
            logger.warning("Fetch for cache key %s failed: %s", self.key, exc)
            return None
        self.error = None
        if data is None:
            self.store.mark_refreshing(self.key, False)
            return None
        self.store.set(self.key, data, self._clock())
        logger.debug("Cache key %s refreshed", self.key)
        return data

    def refresh_in_background(self) -> Future:
        # Flag before submitting so the caller sees REFRESHING immediately
        self.store.mark_refreshing(self.key, True)
        try:
            return self.store.submit(self.refresh)
        except RuntimeError:
            self.store.mark_refreshing(self.key, False)
            raise

    def mount(self, *, background: bool = False) -> None:
        """Fetch when data is missing or stale, then start the refresh timer.

        A fetch already in flight for the key is not issued again.
        """
        if (self.data is None or self.is_stale) and not self.entry.is_refreshing:
            if background:
                self.refresh_in_background()
            else:
                self.refresh()
        if self.refresh_interval and self._timer is None:
            self._stop.clear()
            self._timer = threading.Thread(
                target=self._run_timer, name=f"cache-timer-{self.key}", daemon=True
            )
            self._timer.start()

    def tick(self) -> bool:
        """One periodic refresh attempt; skipped while hidden or already refreshing."""
        if not self._visible:
            return False
        if self.entry.is_refreshing:
            logger.debug("Skipping refresh of %s: already in flight", self.key)
            return False
        self.refresh()
        return True

    def _run_timer(self) -> None:
        while not self._stop.wait(self.refresh_interval):
            self.tick()

    def set_visible(self, visible: bool) -> None:
        """Track surface visibility; regaining it refetches stale data."""
        was_hidden = not self._visible
        self._visible = visible
        if visible and was_hidden and self.is_stale:
            self.refresh()

    def invalidate(self) -> None:
        self.store.invalidate(self.key)

    # ------------------ Teardown ------------------
    def close(self) -> None:
        self._stop.set()
        timer, self._timer = self._timer, None
        if timer is not None and timer is not threading.current_thread():
            timer.join(timeout=1.0)

    def __enter__(self) -> CachedFetch[T]:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _close_consumers(consumers: dict[str, CachedFetch], store: CacheStore) -> None:
    for consumer in list(consumers.values()):
        consumer.close()
    consumers.clear()
    store.shutdown()


class FetchRegistry:
    """Session-scoped owner of every :class:`CachedFetch` a surface uses.

    Keys are grouped into slots (by default the text before the first ``:``,
    e.g. ``items`` for ``items:graphql:PVT_1``). Only one key per slot is
    active: acquiring a new key closes the consumer it replaces, so switching
    project leaves no timer behind. :meth:`close`, or garbage collection of
    the registry, tears down all consumers and the store's worker pool.
    """

    def __init__(
        self,
        store: CacheStore | None = None,
        *,
        stale_seconds: float = DEFAULT_STALE_SECONDS,
        refresh_interval: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store or CacheStore()
        self.stale_seconds = stale_seconds
        self.refresh_interval = refresh_interval
        self._clock = clock
        self._consumers: dict[str, CachedFetch] = {}
        self._active: dict[str, str] = {}
        self._lock = threading.RLock()
        self._finalizer = weakref.finalize(self, _close_consumers, self._consumers, self.store)

    @staticmethod
    def slot_for(key: str) -> str:
        return key.split(":", 1)[0]

    def acquire(self, key: str, fetcher: Callable[[], T], *, slot: str | None = None) -> CachedFetch[T]:
        """Consumer for ``key`` bound to ``fetcher``, mounted and visible.

        The first load runs synchronously; later stale refreshes run on the
        store's worker pool so cached data is served immediately.
        """
        slot = slot or self.slot_for(key)
        with self._lock:
            previous = self._active.get(slot)
            if previous is not None and previous != key:
                self._release_locked(previous)
            consumer = self._consumers.get(key)
            if consumer is None:
                consumer = CachedFetch(
                    self.store,
                    key,
                    fetcher,
                    stale_seconds=self.stale_seconds,
                    refresh_interval=self.refresh_interval,
                    clock=self._clock,
                )
                self._consumers[key] = consumer
            else:
                consumer.fetcher = fetcher
            self._active[slot] = key
        consumer.set_visible(True)
        consumer.mount(background=consumer.data is not None)
        return consumer

    def _release_locked(self, key: str) -> None:
        consumer = self._consumers.pop(key, None)
        for slot, active in list(self._active.items()):
            if active == key:
                del self._active[slot]
        if consumer is not None:
            consumer.close()
            logger.debug("Released cache consumer %s", key)

    def release(self, key: str) -> None:
        with self._lock:
            self._release_locked(key)

    def set_visible(self, visible: bool) -> None:
        """Propagate surface visibility to every active consumer."""
        with self._lock:
            consumers = list(self._consumers.values())
        for consumer in consumers:
            consumer.set_visible(visible)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._consumers)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._consumers

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self) -> None:
        self._finalizer()

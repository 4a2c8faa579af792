"""
Query Client.

An in-process query cache keyed by tuples such as
("section-data", section_id, query_name). Each key holds one QueryEntry
with the last data, its age, and the number of mounted observers.

Freshness rules (driven by FetchParameters):
- fetch() returns cached data without dispatching while it is fresh
- concurrent fetches for the same key share one in-flight request
- unobserved entries are evicted once their retention has elapsed
- pollers re-fetch on an interval and live in the caller's TaskScope

Cancelling a caller of fetch() never cancels the shared in-flight request;
other waiters still receive its result.
"""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .backoff import AdaptiveInterval
from .policy import FetchParameters
from .scope import TaskScope

logger = logging.getLogger(__name__)

QueryKey = tuple[Hashable, ...]
QueryFn = Callable[[], Awaitable[Any]]


class QueryStatus(str, Enum):
    IDLE = "idle"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(eq=False)
class QueryEntry:
    """Cached state for one query key. Times are in milliseconds."""

    key: QueryKey
    retention_ms: float
    data: Any = None
    error: BaseException | None = None
    status: QueryStatus = QueryStatus.IDLE
    updated_at: float | None = None
    fetch_count: int = 0
    version: int = 0
    observers: int = 0
    unobserved_since: float | None = None
    invalidated: bool = False
    in_flight: asyncio.Task | None = field(default=None, repr=False)

    @property
    def has_data(self) -> bool:
        return self.updated_at is not None


def _consume_exception(task: asyncio.Task) -> None:
    # Waiters may all be gone; retrieve so the loop does not warn.
    if not task.cancelled():
        task.exception()


class QueryClient:
    """
    Cache plus fetch coordinator.

    Example:
        client = QueryClient()
        params = CachePolicyResolver().resolve(section.data_source.cache_policy)
        data = await client.fetch(("section-data", "feed", "get_feed"), load_feed, params)
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            clock: Monotonic clock in seconds (injectable for tests)
        """
        self._clock = clock
        self._entries: dict[QueryKey, QueryEntry] = {}
        self._intervals: weakref.WeakSet[AdaptiveInterval] = weakref.WeakSet()

    def now_ms(self) -> float:
        return self._clock() * 1000

    # =========================================================================
    # Cache inspection
    # =========================================================================

    def peek(self, key: QueryKey) -> QueryEntry | None:
        """Entry for key, or None if absent or evicted."""
        entry = self._entries.get(key)
        if entry is not None and self._expired(entry):
            self._evict(entry)
            return None
        return entry

    def get_data(self, key: QueryKey) -> Any:
        entry = self.peek(key)
        return entry.data if entry is not None and entry.has_data else None

    def is_stale(self, entry: QueryEntry, params: FetchParameters) -> bool:
        if not entry.has_data or entry.invalidated:
            return True
        return self.now_ms() - entry.updated_at >= params.stale_time_ms

    def should_fetch(self, entry: QueryEntry | None, params: FetchParameters) -> bool:
        """
        Whether a non-forced fetch must dispatch.

        Poll data with no staleness window of its own is always stale, but
        within one interval of the last fetch the poller owns refreshing
        it. A declared staleness window is honoured as is.
        """
        if entry is None or entry.status != QueryStatus.SUCCESS:
            return True
        if not self.is_stale(entry, params):
            return False
        if entry.invalidated:
            return True
        if params.poller_owns_freshness:
            return self.now_ms() - entry.updated_at >= params.refetch_interval_ms
        return True

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: QueryKey) -> bool:
        return self.peek(key) is not None

    # =========================================================================
    # Fetching
    # =========================================================================

    async def fetch(
        self,
        key: QueryKey,
        query_fn: QueryFn,
        params: FetchParameters,
        *,
        force: bool = False,
    ) -> Any:
        """
        Return data for key, dispatching query_fn only when needed.

        Raises:
            Exception: Whatever query_fn raised
        """
        entry = self._ensure(key, params)
        if not force and not self.should_fetch(entry, params):
            return entry.data
        return await self._dispatch(entry, query_fn)

    async def _dispatch(self, entry: QueryEntry, query_fn: QueryFn) -> Any:
        task = entry.in_flight
        if task is None:
            task = asyncio.get_running_loop().create_task(
                self._run(entry, query_fn),
                name=f"query:{entry.key!r}",
            )
            task.add_done_callback(_consume_exception)
            task.add_done_callback(lambda t: self._settle(entry, t))
            entry.in_flight = task
        return await asyncio.shield(task)

    @staticmethod
    def _settle(entry: QueryEntry, task: asyncio.Task) -> None:
        # A task cancelled before its first step never reaches _run's finally.
        if entry.in_flight is task:
            entry.in_flight = None

    async def _run(self, entry: QueryEntry, query_fn: QueryFn) -> Any:
        entry.fetch_count += 1
        logger.debug(f"[query] Fetching {entry.key} (#{entry.fetch_count})")

        try:
            data = await query_fn()
        except Exception as e:
            entry.error = e
            entry.status = QueryStatus.ERROR
            logger.warning(f"[query] Fetch failed for {entry.key}: {e}")
            raise
        else:
            changed = not entry.has_data or data != entry.data
            entry.data = data
            entry.error = None
            entry.status = QueryStatus.SUCCESS
            entry.updated_at = self.now_ms()
            entry.invalidated = False
            if changed:
                entry.version += 1
            if entry.observers == 0:
                entry.unobserved_since = entry.updated_at
            return data
        finally:
            entry.in_flight = None

    def invalidate(self, key: QueryKey) -> bool:
        """Mark key stale so the next fetch dispatches. Keeps the data."""
        entry = self.peek(key)
        if entry is None:
            return False
        entry.invalidated = True
        return True

    def set_data(self, key: QueryKey, data: Any, params: FetchParameters) -> None:
        """Seed the cache (e.g. from a persisted snapshot)."""
        entry = self._ensure(key, params)
        if not entry.has_data or data != entry.data:
            entry.version += 1
        entry.data = data
        entry.error = None
        entry.status = QueryStatus.SUCCESS
        entry.updated_at = self.now_ms()
        entry.invalidated = False

    # =========================================================================
    # Observers and retention
    # =========================================================================

    def observe(self, key: QueryKey, params: FetchParameters) -> QueryEntry:
        """Register a mounted observer. Observed entries are never evicted."""
        entry = self._ensure(key, params)
        entry.observers += 1
        entry.unobserved_since = None
        return entry

    def release(self, key: QueryKey) -> None:
        """Drop an observer; retention starts when the last one leaves."""
        entry = self._entries.get(key)
        if entry is None or entry.observers == 0:
            return
        entry.observers -= 1
        if entry.observers == 0:
            entry.unobserved_since = self.now_ms()

    def gc(self) -> int:
        """Evict every expired entry. Returns the number evicted."""
        expired = [e for e in self._entries.values() if self._expired(e)]
        for entry in expired:
            self._evict(entry)
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def _ensure(self, key: QueryKey, params: FetchParameters) -> QueryEntry:
        entry = self.peek(key)
        if entry is None:
            entry = QueryEntry(
                key=key,
                retention_ms=params.retention_ms,
                unobserved_since=self.now_ms(),
            )
            self._entries[key] = entry
        else:
            entry.retention_ms = params.retention_ms
        return entry

    def _expired(self, entry: QueryEntry) -> bool:
        if entry.observers > 0 or entry.in_flight is not None:
            return False
        if entry.unobserved_since is None:
            return False
        return self.now_ms() - entry.unobserved_since >= entry.retention_ms

    def _evict(self, entry: QueryEntry) -> None:
        self._entries.pop(entry.key, None)
        logger.debug(f"[query] Evicted {entry.key}")

    # =========================================================================
    # Polling
    # =========================================================================

    def start_polling(
        self,
        key: QueryKey,
        query_fn: QueryFn,
        params: FetchParameters,
        scope: TaskScope,
        *,
        on_result: Callable[[Any], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> asyncio.Task:
        """
        Start a poll loop for key inside scope.

        Consecutive dispatches are at least one interval apart, measured
        from the last successful fetch or the last attempt, whichever is
        later. The loop ends when the scope closes.
        """
        if not params.polls:
            raise ValueError(f"Fetch parameters for {key} do not poll")

        interval = AdaptiveInterval(params.refetch_interval_ms, params.adaptive)
        self._intervals.add(interval)
        return scope.spawn(
            self._poll(key, query_fn, params, interval, on_result, on_error),
            name=f"poll:{key!r}",
        )

    async def _poll(
        self,
        key: QueryKey,
        query_fn: QueryFn,
        params: FetchParameters,
        interval: AdaptiveInterval,
        on_result: Callable[[Any], None] | None,
        on_error: Callable[[Exception], None] | None,
    ) -> None:
        last_attempt: float | None = None

        while True:
            entry = self.peek(key)
            anchor = last_attempt
            if entry is not None and entry.has_data:
                anchor = entry.updated_at if anchor is None else max(anchor, entry.updated_at)
            if anchor is None:
                anchor = self.now_ms()

            delay = max(0.0, anchor + interval.current_ms() - self.now_ms())
            await asyncio.sleep(delay / 1000)

            entry = self.peek(key)
            before = entry.version if entry is not None else 0
            last_attempt = self.now_ms()
            try:
                data = await self.fetch(key, query_fn, params, force=True)
            except Exception as e:
                if on_error is not None:
                    on_error(e)
                continue

            after = self.peek(key)
            interval.record_result(changed=after is not None and after.version != before)
            if on_result is not None:
                on_result(data)

    def set_background(self, background: bool) -> None:
        """App moved to/from the background; stretches adaptive pollers."""
        for interval in list(self._intervals):
            interval.set_background(background)

    def record_activity(self) -> None:
        """User interaction; adaptive pollers return to their base interval."""
        for interval in list(self._intervals):
            interval.record_activity()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def in_flight(self) -> list[asyncio.Task]:
        return [e.in_flight for e in self._entries.values() if e.in_flight is not None]

    async def close(self) -> None:
        """Cancel all in-flight requests."""
        tasks = self.in_flight()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

"""
Live badge counts.

A top bar element shows a badge when:
- it has a badgeSource: the count is fetched (30s staleness, refreshed
  every 60s, kept for 5 minutes after the element goes away)
- it has badge: true and no source: a static indicator with count 1

Display is capped ("9+" in the top bar, "99+" on navigation tabs); the
stored count is never truncated.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from blockwork.query import FetchParameters, QueryClient, QueryKey, TaskScope
from blockwork.schema import MenuAction, NavigationItem

logger = logging.getLogger(__name__)

BADGE_STALE_TIME_MS = 30_000
BADGE_REFETCH_INTERVAL_MS = 60_000
BADGE_RETENTION_MS = 5 * 60_000

TOPBAR_BADGE_CAP = 9
TAB_BADGE_CAP = 99

BadgeFetcher = Callable[[str], Awaitable[int]]
"""Looks up the count for an opaque badge source."""

BADGE_FETCH_PARAMETERS = FetchParameters(
    stale_time_ms=BADGE_STALE_TIME_MS,
    retention_ms=BADGE_RETENTION_MS,
    refetch_interval_ms=BADGE_REFETCH_INTERVAL_MS,
    strategy="poll",
)


def format_badge(count: int | None, cap: int = TOPBAR_BADGE_CAP) -> str | None:
    """
    Display text for a count.

    Example:
        format_badge(3)        # "3"
        format_badge(12)       # "9+"
        format_badge(12, 99)   # "12"
        format_badge(0)        # None
    """
    if not count or count <= 0:
        return None
    return f"{cap}+" if count > cap else str(count)


@dataclass(frozen=True, slots=True)
class Badge:
    count: int
    display: str | None
    live: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "display": self.display, "live": self.live}


def _coerce_count(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return max(0, int(value))
    if isinstance(value, dict) and "count" in value:
        return _coerce_count(value["count"])
    raise ValueError(f"Badge count must be a number, got {type(value).__name__}")


class BadgeResolver:
    """
    Resolves badges for top bar elements and navigation tabs.

    Example:
        resolver = BadgeResolver(api_client.get_badge_count)
        badge = await resolver.resolve(element)
        badge.display  # "9+"
    """

    def __init__(self, fetcher: BadgeFetcher | None = None, *, query_client: QueryClient | None = None):
        self._fetcher = fetcher
        self.query_client = query_client if query_client is not None else QueryClient()
        # element id -> badge source its cached count came from
        self._sources: dict[str, str] = {}

    @staticmethod
    def key(element_id: str) -> QueryKey:
        return ("badge", element_id)

    def has_live_source(self, element: MenuAction | NavigationItem) -> bool:
        return bool(element.badge_source) and self._fetcher is not None

    def _query_fn(self, source: str) -> Callable[[], Awaitable[int]]:
        async def run() -> int:
            return _coerce_count(await self._fetcher(source))

        return run

    async def count(self, element_id: str, source: str) -> int:
        """
        Live count for a source. Failures count as 0 (or the last known
        value) and are logged.
        """
        key = self.key(element_id)
        self._track_source(element_id, source)
        try:
            return await self.query_client.fetch(key, self._query_fn(source), BADGE_FETCH_PARAMETERS)
        except Exception as e:
            logger.warning(f"[topbar] Badge source '{source}' failed: {e}")
            last = self.query_client.get_data(key)
            return last if isinstance(last, int) else 0

    def _track_source(self, element_id: str, source: str) -> None:
        previous = self._sources.get(element_id)
        self._sources[element_id] = source
        if previous is not None and previous != source:
            logger.debug(f"[topbar] Badge source of '{element_id}' changed: {previous} -> {source}")
            self.query_client.invalidate(self.key(element_id))

    async def resolve(self, element: MenuAction, cap: int = TOPBAR_BADGE_CAP) -> Badge | None:
        """Badge for a top bar element, or None when it shows none."""
        if self.has_live_source(element):
            count = await self.count(element.id, element.badge_source)
            return Badge(count=count, display=format_badge(count, cap), live=True)

        if element.badge_source and self._fetcher is None:
            logger.debug(f"[topbar] No badge fetcher; '{element.id}' falls back to static badge")

        if element.badge:
            return Badge(count=1, display=format_badge(1, cap))
        return None

    async def navigation_badge(self, item: NavigationItem) -> Badge | None:
        """Badge for a navigation tab: live source beats the static count."""
        if self.has_live_source(item):
            count = await self.count(f"tab:{item.id}", item.badge_source)
            return Badge(count=count, display=format_badge(count, TAB_BADGE_CAP), live=True)

        if item.badge:
            return Badge(count=item.badge, display=format_badge(item.badge, TAB_BADGE_CAP))
        return None

    def start_polling(
        self,
        element: MenuAction,
        scope: TaskScope,
        on_count: Callable[[int], None],
    ) -> asyncio.Task:
        """Refresh a live badge every 60s inside scope."""
        if not self.has_live_source(element):
            raise ValueError(f"Element '{element.id}' has no live badge source")

        self._track_source(element.id, element.badge_source)
        return self.query_client.start_polling(
            self.key(element.id),
            self._query_fn(element.badge_source),
            BADGE_FETCH_PARAMETERS,
            scope,
            on_result=on_count,
            on_error=functools.partial(self._poll_failed, element.badge_source),
        )

    def _poll_failed(self, source: str, error: Exception) -> None:
        logger.warning(f"[topbar] Badge source '{source}' failed: {error}")

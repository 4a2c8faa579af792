"""
Pytest configuration and fixtures for Blockwork tests.
"""

import asyncio
import copy
import sys
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

# Add the repository root to path for imports
# This allows `from blockwork.render import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from blockwork.query import ScopeTracker, set_scope_tracker  # noqa: E402
from blockwork.registry import create_block_registry, reset_block_registry  # noqa: E402
from blockwork.schema import validate_structure  # noqa: E402

SAMPLE_STRUCTURE: dict[str, Any] = {
    "version": "1.0.0",
    "meta": {"appName": "Blockwork Demo", "defaultPage": "home"},
    "buildingBlocks": [
        {
            "id": "hero",
            "componentName": "HeroSection",
            "defaultProps": {"title": "Welcome", "subtitle": "Discover activities"},
        },
        {
            "id": "activity-card",
            "componentName": "ActivityCard",
            "defaultProps": {"limit": 5, "showAvatar": True},
        },
        {"id": "live-feed", "componentName": "LiveFeed"},
    ],
    "pages": [
        {
            "id": "home",
            "title": "Home",
            "containerLayout": {"paddingHorizontal": 16, "backgroundColor": "#FFFFFF"},
            "sections": [
                {
                    "id": "feed",
                    "buildingBlockId": "activity-card",
                    "layout": {"order": 2, "marginTop": 8},
                    "dataSource": {
                        "queryName": "get_feed",
                        "params": {"limit": 10},
                        "cachePolicy": {"strategy": "onLoad", "staleTimeMs": 300000},
                    },
                },
                {
                    "id": "hero",
                    "buildingBlockId": "hero",
                    "layout": {"order": 1},
                    "dataSource": {
                        "queryName": "get_hero",
                        "cachePolicy": {"strategy": "static"},
                    },
                },
            ],
        },
        {
            "id": "live",
            "title": "Live",
            "sections": [
                {
                    "id": "ticker",
                    "buildingBlockId": "live-feed",
                    "dataSource": {
                        "queryName": "get_ticker",
                        "cachePolicy": {"strategy": "poll", "intervalMs": 50},
                    },
                }
            ],
        },
    ],
    "navigation": [
        {"id": "tab-home", "label": "Home", "pageId": "home", "order": 1},
        {
            "id": "tab-live",
            "label": "Live",
            "pageId": "live",
            "order": 0,
            "badgeSource": "api://live/unread",
        },
        {"id": "tab-hidden", "label": "Hidden", "pageId": "home", "order": 2, "visible": False},
    ],
    "topBar": {
        "left": {"type": "logo", "id": "logo", "action": "none"},
        "center": {
            "type": "search",
            "id": "search",
            "action": "navigate://search",
            "placeholder": "Search activities",
        },
        "right": [
            {
                "type": "icon",
                "id": "notifications",
                "icon": "bell",
                "action": "navigate://notifications",
                "badge": True,
                "badgeSource": "api://notifications/unread-count",
            },
            {"type": "avatar", "id": "profile", "action": "navigate://profile"},
        ],
        "contextualActions": {
            "ActivityDetail": {
                "overflow": {
                    "type": "menu",
                    "id": "activity-menu",
                    "icon": "more-vertical",
                    "items": [
                        {"id": "share", "label": "Share", "action": "share://activity"},
                        {
                            "id": "report",
                            "label": "Report",
                            "action": "confirm://report",
                            "destructive": True,
                        },
                    ],
                }
            },
            "Discover": {
                "filter": {"type": "icon", "id": "discover-filter", "icon": "filter", "action": "bottomsheet://filters"}
            },
        },
    },
}


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingFetcher:
    """
    Section fetcher double.

    Records every (query_name, params) call; returns responses[query_name]
    (callables are invoked with params), raising for names in `failing`.
    """

    def __init__(self, responses: dict[str, Any] | None = None, *, delay: float = 0.0):
        self.responses = dict(responses or {})
        self.failing: set[str] = set()
        self.delay = delay
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def __call__(self, query_name: str, params: dict[str, Any]) -> Any:
        self.calls.append((query_name, params))
        if self.delay:
            await asyncio.sleep(self.delay)
        if query_name in self.failing:
            raise RuntimeError(f"{query_name} unavailable")
        response = self.responses.get(query_name, {})
        return response(params) if callable(response) else copy.deepcopy(response)

    def count(self, query_name: str) -> int:
        return sum(1 for name, _ in self.calls if name == query_name)


@pytest.fixture
def sample_structure_dict() -> dict[str, Any]:
    """Fresh copy of the sample structure document."""
    return copy.deepcopy(SAMPLE_STRUCTURE)


@pytest.fixture
def sample_structure(sample_structure_dict):
    """Validated sample structure."""
    return validate_structure(sample_structure_dict)


@pytest.fixture
def block_registry():
    """Isolated building block registry."""
    return create_block_registry()


@pytest.fixture(autouse=True)
def _reset_global_registry():
    """Keep the global registry from leaking between tests."""
    reset_block_registry()
    yield
    reset_block_registry()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recording_fetcher():
    return RecordingFetcher(
        {
            "get_hero": {"title": "Summer Activities", "image": "hero.png"},
            "get_feed": {"items": [{"id": "a1"}, {"id": "a2"}]},
            "get_ticker": {"count": 1},
        }
    )


@pytest_asyncio.fixture
async def task_scope_guard():
    """
    Fail the test if a scoped task outlives its owner.

    Every TaskScope created during the test is tracked. At teardown each
    one must be closed with no task still running.
    """
    tracker = ScopeTracker()
    set_scope_tracker(tracker)
    try:
        yield tracker
        await asyncio.sleep(0)
        open_scopes = [s.name for s in tracker.open_scopes()]
        leaked = [t.get_name() for t in tracker.leaked_tasks()]
        assert not open_scopes, f"Scopes never closed: {open_scopes}"
        assert not leaked, f"Tasks outlived their scope: {leaked}"
    finally:
        set_scope_tracker(None)

"""
Live Top Bar Example

This example demonstrates mounted (long-lived) rendering:
1. A top bar whose notification badge comes from a live source
2. Route changes that swap the contextual overflow menu
3. A mounted page with a polled section, stopped on unmount

Run: python examples/02-live-topbar/main.py
"""

import asyncio
import itertools
from typing import Any

from blockwork import MemoryStructureSource, PageRenderer, StructureStore, TopBar
from blockwork.registry import building_block
from blockwork.topbar import ActionRouter, BadgeResolver

STRUCTURE = {
    "version": "1.0.0",
    "meta": {"appName": "Scores", "defaultPage": "live"},
    "buildingBlocks": [{"id": "scoreboard", "componentName": "Scoreboard"}],
    "pages": [
        {
            "id": "live",
            "title": "Live",
            "sections": [
                {
                    "id": "scores",
                    "buildingBlockId": "scoreboard",
                    "dataSource": {
                        "queryName": "get_scores",
                        "cachePolicy": {"strategy": "poll", "intervalMs": 300},
                    },
                }
            ],
        }
    ],
    "topBar": {
        "left": {"type": "logo", "id": "logo", "action": "none"},
        "right": [
            {
                "type": "icon",
                "id": "notifications",
                "icon": "bell",
                "action": "navigate://notifications",
                "badgeSource": "api://notifications/unread-count",
            }
        ],
        "contextualActions": {
            "MatchDetail": {
                "overflow": {
                    "type": "menu",
                    "id": "match-menu",
                    "items": [{"id": "share", "label": "Share", "action": "share://match"}],
                }
            }
        },
    },
}


@building_block("scoreboard")
def scoreboard(props: dict[str, Any]) -> str:
    return f"{props['home']} - {props['away']}"


unread = itertools.count(7)
goals = itertools.count(0)


async def badge_count(source: str) -> int:
    """Stand-in for ContentApiClient.get_badge_count."""
    return next(unread)


async def fetch_section(query_name: str, params: dict[str, Any]) -> dict[str, Any]:
    return {"home": next(goals), "away": 1}


async def main():
    store = StructureStore(MemoryStructureSource(STRUCTURE))
    structure = await store.load()

    router = ActionRouter().on("navigate", lambda screen, ctx: print(f"  -> navigate to {screen} ({ctx.source_id})"))
    router.on("share", lambda target, ctx: print(f"  -> share {target} from {ctx.parent_id}/{ctx.source_id}"))

    bar = TopBar.from_structure(structure, handler=router, badge_resolver=BadgeResolver(badge_count))
    async with bar.mount("Live") as top:
        bell = top.current.find("notifications")
        print(f"Badge: {bell.badge.display}")
        top.press(bell.element)

        detail = await top.navigate("MatchDetail")
        menu = detail.overflow
        print(f"Overflow on MatchDetail: {[item.label for item in menu.items]}")
        top.press(menu.element, menu.items[0])

        home = await top.navigate("Live")
        print(f"Overflow on Live: {home.overflow}")

    renderer = PageRenderer(store, fetch_section)
    updates = []
    async with renderer.mount("live", on_update=updates.append) as page:
        print(f"Initial: {page.section('scores').output}")
        await asyncio.sleep(1.0)
    print(f"Polled updates: {[u.output for u in updates]}")


if __name__ == "__main__":
    asyncio.run(main())

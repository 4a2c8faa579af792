"""
Render Page Example

This example demonstrates a single render pass:
1. Load and validate a structure document from disk
2. Register building block implementations
3. Render a page with an in-memory data backend
4. Render again: cached sections are not refetched

The "map" section uses a block with no implementation and shows up as a
placeholder; the other sections still render.

Run: python examples/01-render-page/main.py
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

from blockwork import FileStructureSource, PageRenderer, StructureStore, register_building_block
from blockwork.context import GeolocationContext, RuntimeContextResolver, StaticContextSource

# =============================================================================
# Building Blocks
# =============================================================================


def hero(props: dict[str, Any]) -> str:
    return f"[Hero] {props['title']} - {props['subtitle']}"


def activity_list(props: dict[str, Any]) -> str:
    items = props.get("items") or []
    if not items:
        return f"[List] {props['emptyText']}"
    return "[List] " + ", ".join(item["name"] for item in items)


# =============================================================================
# Data Backend
# =============================================================================

calls: list[str] = []


async def fetch_section(query_name: str, params: dict[str, Any]) -> Any:
    """Stand-in for ContentApiClient.execute_query."""
    calls.append(query_name)
    await asyncio.sleep(0.05)

    if query_name == "get_hero":
        return {"title": "Summer is here"}
    if query_name == "get_nearby_activities":
        activities = ["Kayaking", "Climbing", "Food market", "Open-air cinema"]
        return {"items": [{"name": name} for name in activities[: params["limit"]]]}
    return {}


# =============================================================================
# Main
# =============================================================================


async def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    store = StructureStore(FileStructureSource(Path(__file__).parent))
    structure = await store.load()
    print(f"Structure: v{structure.version}, pages={[p.id for p in structure.pages]}")

    register_building_block("hero", hero)
    register_building_block("activity-list", activity_list)

    location = StaticContextSource(location=GeolocationContext(lat=52.37, lon=4.89))
    renderer = PageRenderer(
        store,
        fetch_section,
        context_resolver=RuntimeContextResolver(location_source=location),
    )

    page = await renderer.render("home")
    print(f"Page: {page.title} style={page.style}")
    for section in page.sections:
        detail = section.output if section.state.has_content else section.placeholder or section.error
        print(f"  {section.section_id:<8} {section.state.value:<14} {detail}")
    print()

    await renderer.render("home")
    print(f"Fetches after two passes: {calls}")


if __name__ == "__main__":
    asyncio.run(main())

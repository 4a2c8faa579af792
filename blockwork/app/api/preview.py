"""
Preview API for Blockwork.

Lets backend authors check how a structure document renders without a
client build:

    GET  /structure            current structure (camelCase JSON)
    POST /structure/refresh    re-read and re-validate the document
    GET  /pages/{page_id}      rendered section tree
    GET  /topbar?route=...     top bar for a route
    GET  /navigation           visible tabs with badges
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from fastapi.encoders import jsonable_encoder

from blockwork.errors import StructureInvalid
from blockwork.runtime import StructureNotLoaded

logger = logging.getLogger(__name__)

router = APIRouter(tags=["preview"])


def _structure_or_503():
    from blockwork.app.dependencies import get_store

    try:
        return get_store().structure
    except StructureNotLoaded as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


@router.get("/structure")
async def get_structure() -> dict[str, Any]:
    """Current structure document."""
    structure = _structure_or_503()
    return structure.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.post("/structure/refresh")
async def refresh_structure() -> dict[str, Any]:
    """
    Re-read the structure document.

    An invalid document is rejected with 422 and its issues; the previous
    structure stays active.
    """
    from blockwork.app.dependencies import get_preview_registry, get_store, register_preview_blocks

    try:
        structure = await get_store().refresh()
    except StructureInvalid as e:
        logger.warning(f"[app] Refresh rejected: {e}")
        raise HTTPException(
            status_code=422,
            detail={"message": "Invalid app structure", "issues": [i.to_dict() for i in e.issues]},
        ) from e

    register_preview_blocks(get_preview_registry(), structure)
    return {
        "version": structure.version,
        "pages": len(structure.pages),
        "buildingBlocks": len(structure.building_blocks),
    }


@router.get("/pages/{page_id}")
async def render_page(page_id: str) -> dict[str, Any]:
    """Render a page. Unknown pages return an empty page, not 404."""
    from blockwork.app.dependencies import get_renderer

    _structure_or_503()
    page = await get_renderer().render(page_id)
    return jsonable_encoder(page.to_dict())


@router.get("/topbar")
async def render_topbar(route: Optional[str] = None) -> dict[str, Any]:
    """Top bar as shown on route."""
    from blockwork.app.dependencies import get_badge_resolver
    from blockwork.topbar import TopBar

    structure = _structure_or_503()
    bar = TopBar.from_structure(structure, badge_resolver=get_badge_resolver())
    rendered = await bar.render(route)
    return rendered.to_dict()


@router.get("/navigation")
async def get_navigation() -> dict[str, Any]:
    """Visible navigation items in order, with resolved badges."""
    from blockwork.app.dependencies import get_badge_resolver, get_store

    _structure_or_503()
    items = get_store().navigation()
    resolver = get_badge_resolver()
    badges = await asyncio.gather(*(resolver.navigation_badge(item) for item in items))

    return {
        "items": [
            {
                **item.model_dump(mode="json", by_alias=True, exclude_none=True),
                "badge": badge.to_dict() if badge else None,
            }
            for item, badge in zip(items, badges)
        ]
    }

"""
Dependency Injection for the Blockwork preview app.

Provides process-wide instances of the structure store, query client,
renderer and badge resolver.

Structure source:
    BLOCKWORK_STRUCTURE_DIR set  -> structure files on disk, no backend;
                                    sections render with defaultProps only
    otherwise                    -> the content API

Preview blocks:
    Every building block in the structure is renderable in preview. Blocks
    registered in the global registry use their implementation; all others
    render as their props.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from blockwork.config import get_settings
from blockwork.context import RuntimeContextResolver, StaticContextSource
from blockwork.integrations import ContentApiClient
from blockwork.query import QueryClient
from blockwork.registry import BuildingBlockRegistry, create_block_registry, get_block_registry
from blockwork.render import PageRenderer
from blockwork.runtime import FileStructureSource, StructureSource, StructureStore
from blockwork.schema import AppStructure
from blockwork.topbar import BadgeResolver

logger = logging.getLogger(__name__)


def render_props(props: dict[str, Any]) -> dict[str, Any]:
    """Preview implementation: a block renders as its props."""
    return dict(props)


async def offline_fetcher(query_name: str, params: dict[str, Any]) -> dict[str, Any]:
    """Section fetcher used without a backend: no data, defaults only."""
    return {}


def register_preview_blocks(registry: BuildingBlockRegistry, structure: AppStructure) -> int:
    """
    Make every declared block renderable in preview.

    Returns:
        Number of blocks falling back to render_props
    """
    registry.clear()
    global_registry = get_block_registry()
    fallbacks = 0
    for block in structure.building_blocks:
        implementation = global_registry.resolve(block.id) or global_registry.resolve(block.component_name)
        if implementation is None:
            implementation = render_props
            fallbacks += 1
        registry.register(block.id, implementation)
    return fallbacks


# Global instances (initialized on first access)
_api_client: Optional[ContentApiClient] = None
_store: Optional[StructureStore] = None
_query_client: Optional[QueryClient] = None
_registry: Optional[BuildingBlockRegistry] = None
_renderer: Optional[PageRenderer] = None
_badge_resolver: Optional[BadgeResolver] = None
_context_source: Optional[StaticContextSource] = None


def get_api_client() -> Optional[ContentApiClient]:
    """Content API client, or None when structure files are used."""
    global _api_client
    settings = get_settings()
    if settings.uses_local_structure:
        return None
    if _api_client is None:
        _api_client = ContentApiClient(settings.content_api_config())
    return _api_client


def get_structure_source() -> StructureSource:
    settings = get_settings()
    if settings.uses_local_structure:
        return FileStructureSource(settings.structure_dir)
    return get_api_client()


def get_store() -> StructureStore:
    global _store
    if _store is None:
        _store = StructureStore(get_structure_source(), app_version=get_settings().app_version)
    return _store


def get_query_client() -> QueryClient:
    global _query_client
    if _query_client is None:
        _query_client = QueryClient()
    return _query_client


def get_preview_registry() -> BuildingBlockRegistry:
    global _registry
    if _registry is None:
        _registry = create_block_registry()
    return _registry


def get_context_source() -> StaticContextSource:
    """Context values for previews (set via the preview API or tests)."""
    global _context_source
    if _context_source is None:
        _context_source = StaticContextSource()
    return _context_source


def get_renderer() -> PageRenderer:
    global _renderer
    if _renderer is None:
        api = get_api_client()
        source = get_context_source()
        _renderer = PageRenderer(
            structure=get_store(),
            fetcher=api.execute_query if api is not None else offline_fetcher,
            registry=get_preview_registry(),
            query_client=get_query_client(),
            context_resolver=RuntimeContextResolver(
                user_source=source,
                location_source=source,
                filter_source=source,
            ),
        )
    return _renderer


def get_badge_resolver() -> BadgeResolver:
    global _badge_resolver
    if _badge_resolver is None:
        api = get_api_client()
        _badge_resolver = BadgeResolver(
            api.get_badge_count if api is not None else None,
            query_client=get_query_client(),
        )
    return _badge_resolver


async def initialize_services() -> None:
    """
    Load the structure and prepare preview blocks.

    Called from FastAPI lifespan.
    """
    structure = await get_store().load()
    fallbacks = register_preview_blocks(get_preview_registry(), structure)
    get_renderer()
    logger.info(
        f"[app] Structure v{structure.version} ready: {len(structure.pages)} pages, "
        f"{len(structure.building_blocks)} blocks ({fallbacks} rendered as props)"
    )


async def shutdown_services() -> None:
    """
    Cleanup all services on application shutdown.

    Called from FastAPI lifespan.
    """
    global _api_client
    if _query_client is not None:
        await _query_client.close()
    if _api_client is not None:
        await _api_client.close()
        _api_client = None


def reset_services() -> None:
    """Drop all instances (tests)."""
    global _api_client, _store, _query_client, _registry, _renderer, _badge_resolver, _context_source
    _api_client = None
    _store = None
    _query_client = None
    _registry = None
    _renderer = None
    _badge_resolver = None
    _context_source = None

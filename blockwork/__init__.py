"""
Blockwork - Server-driven UI rendering and caching engine.

A backend-authored structure document describes every page, its sections,
the building blocks that render them, where their data comes from and how
long it stays fresh. Blockwork validates that document and turns it into
rendered pages:

- **Structure Schema**: Validated, immutable app structure with field-path errors
- **Runtime Context**: User, location and filter values injected into queries
- **Cache Policies**: onLoad / static / poll mapped to staleness, retention, intervals
- **Building Block Registry**: Block ids mapped to implementations
- **Page Renderer**: Per-section state machine with fault isolation
- **Top Bar**: Route-aware slots, live badges, action dispatch

Quick Start:
    >>> from blockwork import PageRenderer, StructureStore, MemoryStructureSource
    >>> from blockwork import register_building_block
    >>>
    >>> register_building_block("hero", lambda props: f"<Hero {props['title']}>")
    >>> store = StructureStore(MemoryStructureSource(document))
    >>> await store.load()
    >>> renderer = PageRenderer(store, fetcher=api.execute_query)
    >>> page = await renderer.render("home")
"""

__version__ = "0.1.0"

from blockwork.errors import (
    BlockUnregistered,
    BlockworkError,
    InvalidPolicy,
    PageNotFound,
    SectionFetchFailed,
    StructureInvalid,
    StructureIssue,
)
from blockwork.registry import (
    BuildingBlockRegistry,
    create_block_registry,
    get_block_registry,
    register_building_block,
    reset_block_registry,
)
from blockwork.render import PageMount, PageRenderer, RenderedPage, RenderedSection, SectionState
from blockwork.runtime import FileStructureSource, MemoryStructureSource, StructureStore
from blockwork.schema import AppStructure, validate_structure
from blockwork.topbar import ActionContext, TopBar

__all__ = [
    "__version__",
    # Errors
    "BlockUnregistered",
    "BlockworkError",
    "InvalidPolicy",
    "PageNotFound",
    "SectionFetchFailed",
    "StructureInvalid",
    "StructureIssue",
    # Structure
    "AppStructure",
    "FileStructureSource",
    "MemoryStructureSource",
    "StructureStore",
    "validate_structure",
    # Registry
    "BuildingBlockRegistry",
    "create_block_registry",
    "get_block_registry",
    "register_building_block",
    "reset_block_registry",
    # Rendering
    "PageMount",
    "PageRenderer",
    "RenderedPage",
    "RenderedSection",
    "SectionState",
    # Top bar
    "ActionContext",
    "TopBar",
]

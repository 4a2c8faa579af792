"""
App Structure Schema.

The structure document is the blueprint of the entire app. It describes:
- Available building blocks (renderable units, referenced by id)
- Pages, each composed of sections
- Per-section layout and data source (query + cache policy)
- Bottom navigation and the context-aware top bar

Design Principle:
    No hardcoded screens. The client interprets this document and
    renders accordingly, so new pages ship without a client release.

Wire format is camelCase JSON. Python attributes are snake_case;
both spellings are accepted on input.

Usage:
    structure = AppStructure.model_validate(document)
    page = structure.page("home")
    block = structure.block(page.sections[0].building_block_id)
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator
from pydantic.alias_generators import to_camel

from .policy import CachePolicy, OnLoadPolicy

SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)

MENU_ACTION_TYPES = frozenset({"icon", "avatar", "logo", "search", "menu"})


class SchemaModel(BaseModel):
    """Base for structure models: camelCase aliases, immutable after load."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


# =============================================================================
# Building Blocks
# =============================================================================


class BuildingBlockDescriptor(SchemaModel):
    """
    A renderable unit referenced by id from page sections.

    Attributes:
        id: Unique key (e.g. "hero", "activity-card")
        component_name: Implementation key (e.g. "HeroSection")
        default_props: Literal defaults merged under fetched data
        description: Optional documentation
    """

    id: str = Field(..., min_length=1)
    component_name: str = Field(..., min_length=1)
    default_props: dict[str, Any] = Field(default_factory=dict)
    description: str | None = None


# =============================================================================
# Layout
# =============================================================================

FlexDirection = Literal["row", "column", "row-reverse", "column-reverse"]
FlexAlign = Literal["flex-start", "flex-end", "center", "stretch", "baseline"]
FlexJustify = Literal[
    "flex-start", "flex-end", "center", "space-between", "space-around", "space-evenly"
]
Dimension = float | str


class ShadowOffset(SchemaModel):
    width: float = 0
    height: float = 0


class SectionLayout(SchemaModel):
    """
    Framework-neutral box model for a section or page container.

    Only attributes that are set end up in the computed style.
    """

    flex: float | None = None
    flex_direction: FlexDirection | None = None
    justify_content: FlexJustify | None = None
    align_items: FlexAlign | None = None

    padding: float | None = None
    padding_top: float | None = None
    padding_bottom: float | None = None
    padding_left: float | None = None
    padding_right: float | None = None
    padding_horizontal: float | None = None
    padding_vertical: float | None = None

    margin: float | None = None
    margin_top: float | None = None
    margin_bottom: float | None = None
    margin_left: float | None = None
    margin_right: float | None = None
    margin_horizontal: float | None = None
    margin_vertical: float | None = None

    width: Dimension | None = None
    height: Dimension | None = None
    min_width: Dimension | None = None
    max_width: Dimension | None = None
    min_height: Dimension | None = None
    max_height: Dimension | None = None

    order: int | None = None

    background_color: str | None = None
    border_radius: float | None = None

    shadow_color: str | None = None
    shadow_offset: ShadowOffset | None = None
    shadow_opacity: float | None = None
    shadow_radius: float | None = None
    elevation: float | None = None


# =============================================================================
# Pages
# =============================================================================


class DataSource(SchemaModel):
    """Where a section's data comes from, and how it is cached."""

    query_name: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)
    cache_policy: CachePolicy = Field(default_factory=OnLoadPolicy)


class PageSection(SchemaModel):
    """
    Composition unit: building block + layout + data source.

    Section ids are unique within a page.
    """

    id: str = Field(..., min_length=1)
    building_block_id: str = Field(..., min_length=1)
    layout: SectionLayout = Field(default_factory=SectionLayout)
    data_source: DataSource


class PageMeta(SchemaModel):
    description: str | None = None
    requires_auth: bool = False
    header_shown: bool = True
    tab_bar_visible: bool = True


class PageDefinition(SchemaModel):
    """A complete page. Section storage order is not render order."""

    id: str = Field(..., min_length=1)
    title: str = ""
    screen_name: str | None = None
    container_layout: SectionLayout | None = None
    sections: list[PageSection] = Field(default_factory=list)
    meta: PageMeta | None = None


# =============================================================================
# Menu Actions / Top Bar
# =============================================================================


class MenuItem(SchemaModel):
    """Entry in an overflow menu."""

    id: str | None = None
    label: str | None = None
    icon: str | None = None
    action: str = "none"
    destructive: bool = False


class MenuAction(SchemaModel):
    """
    Universal unit for top bar elements.

    `type` is kept as a plain string so documents carrying element types
    this client does not know yet still validate; the top bar logs and
    skips them.

    Example:
        {"type": "icon", "id": "notifications", "icon": "bell",
         "action": "navigate://notifications",
         "badge": true, "badgeSource": "api://notifications/unread-count"}
    """

    type: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)
    action: str = "none"
    icon: str | None = None
    label: str | None = None
    style: str | None = None
    badge: bool = False
    badge_source: str | None = None
    placeholder: str | None = None
    destructive: bool = False
    items: list[MenuItem] = Field(default_factory=list)

    @property
    def is_known_type(self) -> bool:
        return self.type in MENU_ACTION_TYPES


class ContextualActions(SchemaModel):
    """Actions that appear only on one route."""

    filter: MenuAction | None = None
    overflow: MenuAction | None = None


class TopBarConfig(SchemaModel):
    left: MenuAction | None = None
    center: MenuAction | None = None
    right: list[MenuAction] = Field(default_factory=list)
    contextual_actions: dict[str, ContextualActions] = Field(default_factory=dict)

    def for_route(self, route: str | None) -> ContextualActions | None:
        """Contextual actions declared for a route, if any."""
        if route is None:
            return None
        return self.contextual_actions.get(route)


# =============================================================================
# Navigation / Theme / Meta
# =============================================================================


class NavigationItem(SchemaModel):
    id: str = Field(..., min_length=1)
    label: str = ""
    icon: str | None = None
    badge: int | None = Field(default=None, description="Static count (deprecated)")
    badge_source: str | None = None
    page_id: str = Field(..., min_length=1)
    order: int = 0
    visible: bool = True


class AppTheme(SchemaModel):
    primary_color: str = "#FF6B6B"
    secondary_color: str = "#4ECDC4"
    background_color: str = "#FFFFFF"
    surface_color: str = "#F7F7F7"
    text_color: str = "#333333"
    text_secondary: str = "#666666"
    border_color: str = "#E0E0E0"
    status_bar_style: Literal["light-content", "dark-content"] = "dark-content"
    font_family: str | None = None


class AppMeta(SchemaModel):
    app_name: str = Field(..., min_length=1)
    default_page: str = Field(..., min_length=1)
    theme: AppTheme = Field(default_factory=AppTheme)
    top_bar_config: TopBarConfig | None = None


class DataCacheDefaults(SchemaModel):
    strategy: Literal["onLoad", "poll"] = "onLoad"
    stale_time_ms: float | None = None


class CacheDefaults(SchemaModel):
    data: DataCacheDefaults | None = None


# =============================================================================
# Complete Structure
# =============================================================================


class AppStructure(SchemaModel):
    """
    The complete app definition.

    Dangling building block references are allowed here; the renderer
    turns them into placeholders. Use dangling_block_references() to
    report them.
    """

    version: str
    meta: AppMeta
    building_blocks: list[BuildingBlockDescriptor] = Field(default_factory=list)
    pages: list[PageDefinition] = Field(default_factory=list)
    navigation: list[NavigationItem] = Field(default_factory=list)
    top_bar: TopBarConfig | None = None
    cache_defaults: CacheDefaults | None = None

    _blocks_by_id: dict[str, BuildingBlockDescriptor] = PrivateAttr(default_factory=dict)
    _pages_by_id: dict[str, PageDefinition] = PrivateAttr(default_factory=dict)

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not SEMVER_PATTERN.match(value):
            raise ValueError(f"'{value}' is not a semantic version (MAJOR.MINOR.PATCH)")
        return value

    def model_post_init(self, __context: Any) -> None:
        self._blocks_by_id = {block.id: block for block in self.building_blocks}
        self._pages_by_id = {page.id: page for page in self.pages}

    @property
    def top_bar_config(self) -> TopBarConfig | None:
        """Effective top bar: `topBar`, falling back to `meta.topBarConfig`."""
        return self.top_bar if self.top_bar is not None else self.meta.top_bar_config

    @property
    def default_stale_time_ms(self) -> float | None:
        """Default staleness for onLoad policies without their own."""
        if self.cache_defaults and self.cache_defaults.data:
            return self.cache_defaults.data.stale_time_ms
        return None

    def block(self, block_id: str) -> BuildingBlockDescriptor | None:
        return self._blocks_by_id.get(block_id)

    def page(self, page_id: str) -> PageDefinition | None:
        return self._pages_by_id.get(page_id)

    def visible_navigation(self) -> list[NavigationItem]:
        """Visible navigation items sorted by order."""
        return sorted(
            (item for item in self.navigation if item.visible),
            key=lambda item: item.order,
        )

    def dangling_block_references(self) -> list[tuple[str, str, str]]:
        """(page_id, section_id, building_block_id) for unknown block ids."""
        return [
            (page.id, section.id, section.building_block_id)
            for page in self.pages
            for section in page.sections
            if section.building_block_id not in self._blocks_by_id
        ]

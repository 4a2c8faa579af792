"""
Page Renderer for Blockwork.

Turns a page definition into rendered sections:

    1. Look up the page (missing → empty page, not an error)
    2. Sort sections by layout.order
    3. Compute the container style (memoized per page definition)
    4. Per section, concurrently:
       - resolve descriptor and implementation (missing → placeholder)
       - resolve cache policy and $$ context placeholders
       - fetch through the QueryClient under key
         ("section-data", section_id, query_name)
       - merge defaultProps with fetched data and call the implementation

A failing section never affects its siblings.

Two ways to render:

    # One-shot pass (no background work)
    page = await renderer.render("home")

    # Mounted page: stale data is refetched in the background, poll
    # policies start pollers, all owned by the mount's TaskScope
    async with renderer.mount("home", on_update=redraw) as mount:
        page = mount.page
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from blockwork.context import RuntimeContext, RuntimeContextResolver, merge_context, resolve_params
from blockwork.errors import BlockUnregistered, InvalidPolicy, PageNotFound, SectionFetchFailed
from blockwork.query import CachePolicyResolver, FetchParameters, QueryClient, QueryKey, TaskScope
from blockwork.registry import BlockImplementation, BuildingBlockRegistry, get_block_registry
from blockwork.schema import AppStructure, BuildingBlockDescriptor, PageDefinition, PageSection

from .layout import layout_to_style
from .section import (
    PlaceholderReason,
    RenderedSection,
    SectionState,
    merge_props,
    sort_sections,
)

logger = logging.getLogger(__name__)

SectionFetcher = Callable[[str, dict[str, Any]], Awaitable[Any]]
"""Executes a named query: (query_name, params) -> data."""

SectionListener = Callable[[RenderedSection], None]


@runtime_checkable
class StructureProvider(Protocol):
    """Anything exposing the current AppStructure (e.g. StructureStore)."""

    @property
    def structure(self) -> AppStructure: ...


def section_query_key(section: PageSection) -> QueryKey:
    """Cache key of a section. Params are inputs, not part of the key."""
    return ("section-data", section.id, section.data_source.query_name)


@dataclass(frozen=True, slots=True)
class RenderedPage:
    """
    Outcome of a render pass.

    Attributes:
        page_id: Requested page id
        sections: Rendered sections in render order
        style: Container style
        title: Page title
        found: False when the page is not in the structure
    """

    page_id: str
    sections: tuple[RenderedSection, ...] = ()
    style: dict[str, Any] = field(default_factory=dict)
    title: str = ""
    found: bool = True

    @property
    def empty(self) -> bool:
        """Nothing to show: unknown page or a page without sections."""
        return not self.sections

    def section(self, section_id: str) -> RenderedSection | None:
        for section in self.sections:
            if section.section_id == section_id:
                return section
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pageId": self.page_id,
            "title": self.title,
            "found": self.found,
            "empty": self.empty,
            "style": self.style,
            "sections": [s.to_dict() for s in self.sections],
        }


@dataclass(frozen=True, slots=True)
class _ResolvedSection:
    """Everything needed to turn fetched data into a RenderedSection."""

    section: PageSection
    descriptor: BuildingBlockDescriptor
    implementation: BlockImplementation
    style: dict[str, Any]


class PageRenderer:
    """
    Renders pages of an AppStructure.

    Example:
        renderer = PageRenderer(
            structure=store,
            fetcher=api_client.execute_query,
            registry=get_block_registry(),
        )
        page = await renderer.render("home")
    """

    def __init__(
        self,
        structure: AppStructure | StructureProvider,
        fetcher: SectionFetcher,
        *,
        registry: BuildingBlockRegistry | None = None,
        query_client: QueryClient | None = None,
        context_resolver: RuntimeContextResolver | None = None,
        policy_resolver: CachePolicyResolver | None = None,
    ):
        """
        Args:
            structure: The structure, or a provider of the current one
            fetcher: Executes named queries for section data
            registry: Block implementations (default: global registry)
            query_client: Shared query cache (default: a new one)
            context_resolver: Runtime context (default: no sources)
            policy_resolver: Cache policy mapping
        """
        self._structure = structure
        self._fetcher = fetcher
        self._registry = registry if registry is not None else get_block_registry()
        self.query_client = query_client if query_client is not None else QueryClient()
        self._context_resolver = context_resolver or RuntimeContextResolver()
        self._policy_resolver = policy_resolver or CachePolicyResolver()
        # page id -> (last definition seen, its style)
        self._container_styles: dict[str, tuple[PageDefinition, dict[str, Any]]] = {}

    @property
    def structure(self) -> AppStructure:
        if isinstance(self._structure, AppStructure):
            return self._structure
        return self._structure.structure

    @property
    def registry(self) -> BuildingBlockRegistry:
        return self._registry

    def container_style(self, page: PageDefinition) -> dict[str, Any]:
        """Container style, computed once per page definition object."""
        cached = self._container_styles.get(page.id)
        if cached is not None and cached[0] is page:
            return cached[1]

        style = layout_to_style(page.container_layout)
        self._container_styles[page.id] = (page, style)
        return style

    async def render(self, page_id: str) -> RenderedPage:
        """Single render pass. Stale data is refetched inline."""
        return await self._render_pass(page_id, None)

    def mount(self, page_id: str, *, on_update: SectionListener | None = None) -> PageMount:
        """Create a mount for page_id. Call render() (or use async with)."""
        return PageMount(self, page_id, on_update=on_update)

    # =========================================================================
    # Render pass
    # =========================================================================

    async def _render_pass(self, page_id: str, mount: PageMount | None) -> RenderedPage:
        structure = self.structure
        page = structure.page(page_id)
        if page is None:
            self._container_styles.pop(page_id, None)
            logger.info(f"[renderer] {PageNotFound(page_id)}; rendering empty page")
            return RenderedPage(page_id=page_id, found=False)

        context = self._context_resolver.resolve()
        sections = sort_sections(page.sections)
        style = self.container_style(page)

        rendered = await asyncio.gather(
            *(self._render_section(structure, section, context, mount) for section in sections)
        )

        logger.debug(f"[renderer] Rendered page '{page_id}' with {len(rendered)} section(s)")
        return RenderedPage(
            page_id=page_id,
            sections=tuple(rendered),
            style=style,
            title=page.title,
        )

    async def _render_section(
        self,
        structure: AppStructure,
        section: PageSection,
        context: RuntimeContext,
        mount: PageMount | None,
    ) -> RenderedSection:
        style = layout_to_style(section.layout)
        block_id = section.building_block_id

        descriptor = structure.block(block_id)
        if descriptor is None:
            logger.warning(
                f"[renderer] Section '{section.id}' references unknown building block '{block_id}'"
            )
            return RenderedSection(
                section_id=section.id,
                block_id=block_id,
                state=SectionState.PENDING_BLOCK,
                style=style,
                placeholder=PlaceholderReason.MISSING_BLOCK,
            )

        implementation = self._registry.resolve(descriptor.id) or self._registry.resolve(
            descriptor.component_name
        )
        if implementation is None:
            logger.warning(f"[renderer] {BlockUnregistered(block_id, section.id)}")
            return RenderedSection(
                section_id=section.id,
                block_id=block_id,
                state=SectionState.PENDING_BLOCK,
                style=style,
                component_name=descriptor.component_name,
                placeholder=PlaceholderReason.UNREGISTERED,
            )

        resolved = _ResolvedSection(section, descriptor, implementation, style)

        try:
            params = self._policy_resolver.resolve(
                section.data_source.cache_policy,
                default_stale_time_ms=structure.default_stale_time_ms,
            )
        except InvalidPolicy as e:
            logger.error(f"[renderer] Invalid cache policy for section '{section.id}': {e}")
            return self._error_section(resolved, e)

        substituted = resolve_params(section.data_source.params, context)
        if not substituted.query_enabled:
            logger.debug(
                f"[renderer] Section '{section.id}' waiting on context: "
                f"{', '.join(substituted.missing_context)}"
            )
            return RenderedSection(
                section_id=section.id,
                block_id=block_id,
                state=SectionState.FETCHING,
                style=style,
                component_name=descriptor.component_name,
                missing_context=substituted.missing_context,
            )

        key = section_query_key(section)
        query_name = section.data_source.query_name
        query_fn = functools.partial(
            self._fetcher, query_name, merge_context(substituted.params, context)
        )

        if mount is not None:
            return await mount._render_mounted(resolved, key, query_fn, params)

        try:
            data = await self.query_client.fetch(key, query_fn, params)
        except Exception as e:
            return self._fetch_failed(resolved, e)
        return self._ready_section(resolved, data)

    # =========================================================================
    # Section results
    # =========================================================================

    def _ready_section(
        self,
        resolved: _ResolvedSection,
        data: Any,
        state: SectionState = SectionState.READY,
    ) -> RenderedSection:
        section = resolved.section
        props = merge_props(resolved.descriptor.default_props, data)
        try:
            output = resolved.implementation(props)
        except Exception as e:
            logger.error(
                f"[renderer] Building block '{resolved.descriptor.id}' failed "
                f"in section '{section.id}': {e}",
                exc_info=True,
            )
            return self._error_section(resolved, e, props=props)

        return RenderedSection(
            section_id=section.id,
            block_id=section.building_block_id,
            state=state,
            style=resolved.style,
            component_name=resolved.descriptor.component_name,
            props=props,
            output=output,
        )

    def _fetch_failed(self, resolved: _ResolvedSection, cause: Exception) -> RenderedSection:
        section = resolved.section
        error = SectionFetchFailed(section.id, section.data_source.query_name, cause)
        logger.warning(f"[renderer] {error}")
        return self._error_section(resolved, error)

    def _error_section(
        self,
        resolved: _ResolvedSection,
        error: Exception,
        props: dict[str, Any] | None = None,
    ) -> RenderedSection:
        return RenderedSection(
            section_id=resolved.section.id,
            block_id=resolved.section.building_block_id,
            state=SectionState.ERROR,
            style=resolved.style,
            component_name=resolved.descriptor.component_name,
            props=props,
            error=error,
        )


class PageMount:
    """
    A mounted page.

    Owns a TaskScope for background refetches and pollers, and an observer
    registration on every section query it renders. After each pass,
    pollers and observers of queries the pass no longer rendered are
    stopped and released. Results that arrive after unmount() are dropped.

    Example:
        mount = renderer.mount("home", on_update=lambda s: print(s.state))
        await mount.render()
        ...
        await mount.unmount()
    """

    def __init__(
        self,
        renderer: PageRenderer,
        page_id: str,
        *,
        on_update: SectionListener | None = None,
    ):
        self.page_id = page_id
        self._renderer = renderer
        self._on_update = on_update
        self.scope = TaskScope(f"page:{page_id}")
        self._mounted = True
        self._page: RenderedPage | None = None
        self._sections: dict[str, RenderedSection] = {}
        self._observed: set[QueryKey] = set()
        self._pollers: dict[QueryKey, asyncio.Task] = {}
        self._poll_params: dict[QueryKey, FetchParameters] = {}
        self._query_fns: dict[QueryKey, Callable[[], Awaitable[Any]]] = {}
        self._resolved: dict[QueryKey, _ResolvedSection] = {}
        # Queries reached by the current pass, and which of them poll
        self._pass_keys: set[QueryKey] = set()
        self._pass_polls: dict[QueryKey, FetchParameters] = {}
        # Sequence number of the last background update per section
        self._seq = 0
        self._applied_at: dict[str, int] = {}

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def page(self) -> RenderedPage | None:
        """Latest page, including updates from background work."""
        if self._page is None:
            return None
        sections = tuple(self._sections.get(s.section_id, s) for s in self._page.sections)
        return RenderedPage(
            page_id=self._page.page_id,
            sections=sections,
            style=self._page.style,
            title=self._page.title,
            found=self._page.found,
        )

    def section(self, section_id: str) -> RenderedSection | None:
        return self._sections.get(section_id)

    @property
    def pollers(self) -> list[asyncio.Task]:
        return [t for t in self._pollers.values() if not t.done()]

    async def render(self) -> RenderedPage:
        """Run a render pass for this mount."""
        if not self._mounted:
            raise RuntimeError(f"Page '{self.page_id}' is unmounted")

        started = self._seq
        self._pass_keys = set()
        self._pass_polls = {}
        page = await self._renderer._render_pass(self.page_id, self)
        if self._mounted:
            self._page = page
            current = {s.section_id for s in page.sections}
            for section_id in [s for s in self._sections if s not in current]:
                del self._sections[section_id]
                self._applied_at.pop(section_id, None)
            for section in page.sections:
                # Background work that finished during the pass is newer
                if self._applied_at.get(section.section_id, -1) > started:
                    continue
                self._sections[section.section_id] = section
            await self._sync_background(self._pass_keys, self._pass_polls)
        return self.page or page

    async def unmount(self) -> None:
        """Cancel all background work and release observed queries."""
        if not self._mounted:
            return
        self._mounted = False
        await self.scope.close()

        client = self._renderer.query_client
        for key in self._observed:
            client.release(key)
        self._observed.clear()
        self._pollers.clear()
        self._poll_params.clear()
        self._resolved.clear()
        logger.debug(f"[renderer] Unmounted page '{self.page_id}'")

    async def __aenter__(self) -> PageMount:
        await self.render()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.unmount()

    # =========================================================================
    # Mounted section rendering
    # =========================================================================

    async def _render_mounted(
        self,
        resolved: _ResolvedSection,
        key: QueryKey,
        query_fn: Callable[[], Awaitable[Any]],
        params: FetchParameters,
    ) -> RenderedSection:
        renderer = self._renderer
        client = renderer.query_client

        self._query_fns[key] = query_fn
        self._resolved[key] = resolved
        self._pass_keys.add(key)
        if key not in self._observed:
            client.observe(key, params)
            self._observed.add(key)

        entry = client.peek(key)
        if entry is not None and entry.has_data and client.should_fetch(entry, params):
            # Show what we have, refresh in the background
            self.scope.spawn(
                self._refresh(resolved, key, params),
                name=f"refetch:{resolved.section.id}",
            )
            rendered = renderer._ready_section(resolved, entry.data, SectionState.STALE_REFETCHING)
        else:
            try:
                data = await client.fetch(key, self._latest_query(key), params)
            except Exception as e:
                rendered = renderer._fetch_failed(resolved, e)
            else:
                rendered = renderer._ready_section(resolved, data)

        if params.polls:
            self._pass_polls[key] = params
        return rendered

    def _latest_query(self, key: QueryKey) -> Callable[[], Awaitable[Any]]:
        # Pollers and refetches always use the params of the latest pass
        async def run() -> Any:
            return await self._query_fns[key]()

        return run

    async def _refresh(self, resolved: _ResolvedSection, key: QueryKey, params: FetchParameters) -> None:
        renderer = self._renderer
        try:
            data = await renderer.query_client.fetch(key, self._latest_query(key), params, force=True)
        except Exception as e:
            if key in self._resolved:
                self._apply(renderer._fetch_failed(resolved, e))
            return
        # Dropped from the page while refetching
        if key in self._resolved:
            self._apply(renderer._ready_section(resolved, data))

    async def _sync_background(self, keys: set[QueryKey], polls: dict[QueryKey, FetchParameters]) -> None:
        """Stop pollers and release observers for queries the last pass left behind."""
        retired = []
        for key in list(self._pollers):
            task = self._pollers[key]
            if self._poll_params.get(key) == polls.get(key) and not task.done():
                continue
            del self._pollers[key]
            self._poll_params.pop(key, None)
            task.cancel()
            retired.append(task)
        if retired:
            await asyncio.gather(*retired, return_exceptions=True)
            logger.debug(f"[renderer] Stopped {len(retired)} poller(s) on page '{self.page_id}'")

        if not self._mounted:
            return

        client = self._renderer.query_client
        for key in self._observed - keys:
            client.release(key)
            self._query_fns.pop(key, None)
            self._resolved.pop(key, None)
        self._observed &= keys

        for key, params in polls.items():
            if key not in self._pollers:
                self._start_poller(key, params)

    def _start_poller(self, key: QueryKey, params: FetchParameters) -> None:
        client = self._renderer.query_client
        self._pollers[key] = client.start_polling(
            key,
            self._latest_query(key),
            params,
            self.scope,
            on_result=functools.partial(self._poll_result, key),
            on_error=functools.partial(self._poll_failed, key),
        )
        self._poll_params[key] = params
        logger.debug(f"[renderer] Polling {key} every {params.refetch_interval_ms}ms")

    def _poll_result(self, key: QueryKey, data: Any) -> None:
        resolved = self._resolved.get(key)
        if resolved is not None:
            self._apply(self._renderer._ready_section(resolved, data))

    def _poll_failed(self, key: QueryKey, error: Exception) -> None:
        resolved = self._resolved.get(key)
        if resolved is not None:
            self._apply(self._renderer._fetch_failed(resolved, error))

    def _apply(self, section: RenderedSection) -> None:
        if not self._mounted:
            return
        self._seq += 1
        self._applied_at[section.section_id] = self._seq
        self._sections[section.section_id] = section
        if self._on_update is not None:
            try:
                self._on_update(section)
            except Exception as e:
                logger.error(f"[renderer] Update listener failed: {e}", exc_info=True)

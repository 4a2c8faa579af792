"""
Context-Aware Top Bar.

Renders five slots:

    ┌──────────┬────────────────┬─────────────────────────────────┐
    │  left    │     center     │  right...  [filter] [overflow]  │
    └──────────┴────────────────┴─────────────────────────────────┘

left/center/right are fixed. filter and overflow come from
contextualActions[route] and change with navigation.

Element types: icon, avatar, logo, search, menu. Anything else is logged
and rendered as nothing so documents can ship new types ahead of client
support.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from blockwork.query import TaskScope
from blockwork.schema import AppStructure, MenuAction, MenuItem, TopBarConfig

from .actions import ActionContext, ActionDispatcher, ActionHandler, is_no_action
from .badges import Badge, BadgeResolver, format_badge

logger = logging.getLogger(__name__)

FIXED_SLOTS = ("left", "center", "right")
CONTEXTUAL_SLOTS = ("filter", "overflow")


@dataclass(frozen=True, slots=True)
class RenderedAction:
    """
    A top bar element ready to display.

    Attributes:
        element: The declared action element
        slot: left, center, right, filter or overflow
        badge: Resolved badge (None when the element shows none)
        items: Submenu items (menu elements only)
    """

    element: MenuAction
    slot: str
    badge: Badge | None = None
    items: tuple[MenuItem, ...] = ()

    @property
    def id(self) -> str:
        return self.element.id

    @property
    def type(self) -> str:
        return self.element.type

    @property
    def interactive(self) -> bool:
        return not is_no_action(self.element.action) or bool(self.items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "slot": self.slot,
            "action": self.element.action,
            "icon": self.element.icon,
            "label": self.element.label,
            "placeholder": self.element.placeholder,
            "interactive": self.interactive,
            "badge": self.badge.to_dict() if self.badge else None,
            "items": [item.model_dump(by_alias=True, exclude_none=True) for item in self.items],
        }


@dataclass(frozen=True, slots=True)
class RenderedTopBar:
    route: str | None
    left: RenderedAction | None = None
    center: RenderedAction | None = None
    right: tuple[RenderedAction, ...] = ()
    filter: RenderedAction | None = None
    overflow: RenderedAction | None = None

    @property
    def actions(self) -> list[RenderedAction]:
        """All rendered actions, left to right."""
        ordered = [self.left, self.center, *self.right, self.filter, self.overflow]
        return [a for a in ordered if a is not None]

    def find(self, element_id: str) -> RenderedAction | None:
        for action in self.actions:
            if action.id == element_id:
                return action
        return None

    def replace_badge(self, element_id: str, badge: Badge | None) -> RenderedTopBar:
        """Copy with one element's badge swapped."""

        def swap(action: RenderedAction | None) -> RenderedAction | None:
            if action is None or action.id != element_id:
                return action
            return dataclasses.replace(action, badge=badge)

        return dataclasses.replace(
            self,
            left=swap(self.left),
            center=swap(self.center),
            right=tuple(swap(a) for a in self.right),
            filter=swap(self.filter),
            overflow=swap(self.overflow),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "route": self.route,
            "left": self.left.to_dict() if self.left else None,
            "center": self.center.to_dict() if self.center else None,
            "right": [a.to_dict() for a in self.right],
            "filter": self.filter.to_dict() if self.filter else None,
            "overflow": self.overflow.to_dict() if self.overflow else None,
        }


class TopBar:
    """
    Top bar renderer and action entry point.

    Example:
        bar = TopBar.from_structure(structure, handler=router, badge_resolver=badges)
        rendered = await bar.render("ActivityDetail")
        bar.press(rendered.overflow.element, rendered.overflow.items[0])
    """

    def __init__(
        self,
        config: TopBarConfig | None,
        *,
        handler: ActionHandler | None = None,
        badge_resolver: BadgeResolver | None = None,
    ):
        self.config = config or TopBarConfig()
        self._handler = handler
        self._dispatcher = ActionDispatcher(handler)
        self.badges = badge_resolver or BadgeResolver()

    @classmethod
    def from_structure(cls, structure: AppStructure, **kwargs: Any) -> TopBar:
        return cls(structure.top_bar_config, **kwargs)

    def elements_for(self, route: str | None) -> list[tuple[str, MenuAction]]:
        """(slot, element) pairs shown on route, before type filtering."""
        config = self.config
        elements: list[tuple[str, MenuAction]] = []
        if config.left is not None:
            elements.append(("left", config.left))
        if config.center is not None:
            elements.append(("center", config.center))
        elements.extend(("right", element) for element in config.right)

        contextual = config.for_route(route)
        if contextual is not None:
            if contextual.filter is not None:
                elements.append(("filter", contextual.filter))
            if contextual.overflow is not None:
                elements.append(("overflow", contextual.overflow))
        return elements

    async def render(self, route: str | None) -> RenderedTopBar:
        """Render the bar for route, resolving badges concurrently."""
        elements = [
            (slot, element) for slot, element in self.elements_for(route) if self._supported(element)
        ]
        badges = await asyncio.gather(*(self.badges.resolve(element) for _, element in elements))

        slots: dict[str, Any] = {"left": None, "center": None, "right": [], "filter": None, "overflow": None}
        for (slot, element), badge in zip(elements, badges):
            rendered = self._render_element(slot, element, badge)
            if slot == "right":
                slots["right"].append(rendered)
            else:
                slots[slot] = rendered

        return RenderedTopBar(
            route=route,
            left=slots["left"],
            center=slots["center"],
            right=tuple(slots["right"]),
            filter=slots["filter"],
            overflow=slots["overflow"],
        )

    def mount(
        self,
        route: str | None,
        *,
        on_update: Callable[[RenderedTopBar], None] | None = None,
    ) -> TopBarMount:
        return TopBarMount(self, route, on_update=on_update)

    def press(
        self,
        element: MenuAction,
        item: MenuItem | None = None,
        *,
        dispatcher: ActionDispatcher | None = None,
    ) -> bool:
        """
        Dispatch the action of an element, or of one of its submenu items.

        Returns:
            True if the handler was invoked ("none" never invokes it)
        """
        dispatcher = dispatcher or self._dispatcher
        if item is None:
            return dispatcher.dispatch(element.action, ActionContext(source_id=element.id))

        source_id = item.id or item.label or element.id
        return dispatcher.dispatch(item.action, ActionContext(source_id=source_id, parent_id=element.id))

    # =========================================================================
    # Element rendering
    # =========================================================================

    def _supported(self, element: MenuAction) -> bool:
        if element.type in _ELEMENT_RENDERERS:
            return True
        logger.warning(f"[topbar] Unknown action type: {element.type} (element '{element.id}')")
        return False

    def _render_element(self, slot: str, element: MenuAction, badge: Badge | None) -> RenderedAction | None:
        renderer = _ELEMENT_RENDERERS.get(element.type)
        if renderer is None:
            return None
        return renderer(slot, element, badge)


def _render_plain(slot: str, element: MenuAction, badge: Badge | None) -> RenderedAction:
    return RenderedAction(element=element, slot=slot, badge=badge)


def _render_menu(slot: str, element: MenuAction, badge: Badge | None) -> RenderedAction:
    return RenderedAction(element=element, slot=slot, badge=badge, items=tuple(element.items))


_ELEMENT_RENDERERS: dict[str, Callable[[str, MenuAction, Badge | None], RenderedAction]] = {
    "icon": _render_plain,
    "avatar": _render_plain,
    "logo": _render_plain,
    "search": _render_plain,
    "menu": _render_menu,
}


class TopBarMount:
    """
    A mounted top bar.

    Live badges poll inside the mount's TaskScope. navigate() swaps the
    contextual slots and stops pollers of elements that left the bar;
    unmount() stops everything.
    """

    def __init__(
        self,
        bar: TopBar,
        route: str | None,
        *,
        on_update: Callable[[RenderedTopBar], None] | None = None,
    ):
        self.route = route
        self._bar = bar
        self._on_update = on_update
        self.scope = TaskScope(f"topbar:{route}")
        self._dispatcher = ActionDispatcher(bar._handler, scope=self.scope)
        self._pollers: dict[str, asyncio.Task] = {}
        self._poll_sources: dict[str, str] = {}
        self._current: RenderedTopBar | None = None
        self._mounted = True

    @property
    def current(self) -> RenderedTopBar | None:
        return self._current

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def pollers(self) -> dict[str, asyncio.Task]:
        return {k: t for k, t in self._pollers.items() if not t.done()}

    async def render(self) -> RenderedTopBar:
        if not self._mounted:
            raise RuntimeError("Top bar is unmounted")

        rendered = await self._bar.render(self.route)
        if not self._mounted:
            return rendered

        self._current = rendered
        await self._sync_pollers(rendered)
        return rendered

    async def navigate(self, route: str | None) -> RenderedTopBar:
        """Switch routes; contextual slots follow."""
        logger.debug(f"[topbar] Route changed: {self.route} -> {route}")
        self.route = route
        return await self.render()

    def press(self, element: MenuAction, item: MenuItem | None = None) -> bool:
        return self._bar.press(element, item, dispatcher=self._dispatcher)

    async def unmount(self) -> None:
        if not self._mounted:
            return
        self._mounted = False
        await self.scope.close()
        self._pollers.clear()
        self._poll_sources.clear()

    async def __aenter__(self) -> TopBarMount:
        await self.render()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.unmount()

    async def _sync_pollers(self, rendered: RenderedTopBar) -> None:
        live = {a.id: a.element for a in rendered.actions if self._bar.badges.has_live_source(a.element)}

        gone = []
        for element_id in list(self._pollers):
            element = live.get(element_id)
            task = self._pollers[element_id]
            # Restart when the element left the bar or now polls another source
            unchanged = element is not None and element.badge_source == self._poll_sources.get(element_id)
            if unchanged and not task.done():
                continue
            gone.append(self._pollers.pop(element_id))
            self._poll_sources.pop(element_id, None)
        for task in gone:
            task.cancel()
        if gone:
            await asyncio.gather(*gone, return_exceptions=True)
        if not self._mounted:
            return

        for element_id, element in live.items():
            if element_id in self._pollers:
                continue
            self._pollers[element_id] = self._bar.badges.start_polling(
                element,
                self.scope,
                on_count=lambda count, element_id=element_id: self._badge_changed(element_id, count),
            )
            self._poll_sources[element_id] = element.badge_source

    def _badge_changed(self, element_id: str, count: int) -> None:
        if not self._mounted or self._current is None:
            return
        self._current = self._current.replace_badge(
            element_id, Badge(count=count, display=format_badge(count), live=True)
        )
        if self._on_update is not None:
            self._on_update(self._current)

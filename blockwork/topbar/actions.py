"""
Action dispatch for top bar elements.

Action tokens are opaque to the renderer. They are handed, unchanged, to
one handler together with an ActionContext:

    handler("navigate://notifications", ActionContext(source_id="bell"))

The token "none" marks a decorative element; dispatching it never reaches
the handler.

ActionRouter is a ready-made handler that understands the common token
schemes:

    navigate://<screen>    modal://<name>      bottomsheet://<name>
    share://<content>      api://<endpoint>    confirm://<action>
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from blockwork.query import TaskScope

logger = logging.getLogger(__name__)

NO_ACTION = "none"
SCHEME_SEPARATOR = "://"
ACTION_SCHEMES = frozenset({"navigate", "modal", "bottomsheet", "share", "api", "confirm"})


@dataclass(frozen=True, slots=True)
class ActionContext:
    """
    Where an action came from.

    Attributes:
        source_id: Id of the pressed element (or submenu item)
        parent_id: Id of the menu element, for submenu items
    """

    source_id: str
    parent_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"sourceId": self.source_id}
        if self.parent_id is not None:
            data["parentId"] = self.parent_id
        return data


class ActionHandler(Protocol):
    """Receives every dispatched action. The return value is ignored."""

    def __call__(self, action: str, context: ActionContext) -> Any: ...


@dataclass(frozen=True, slots=True)
class ParsedAction:
    """An action token split into scheme and target."""

    scheme: str
    target: str
    raw: str

    @property
    def is_known(self) -> bool:
        return self.scheme in ACTION_SCHEMES


def is_no_action(action: str | None) -> bool:
    return action is None or action.strip() in ("", NO_ACTION)


def parse_action(action: str | None) -> ParsedAction | None:
    """
    Split "navigate://profile" into ParsedAction("navigate", "profile").

    Returns None for "none" (and empty tokens). Tokens without a scheme
    get an empty scheme.
    """
    if is_no_action(action):
        return None

    scheme, sep, target = action.partition(SCHEME_SEPARATOR)
    if not sep:
        return ParsedAction(scheme="", target=action, raw=action)
    return ParsedAction(scheme=scheme, target=target, raw=action)


class ActionDispatcher:
    """
    Fire-and-forget bridge to the action handler.

    Coroutines returned by the handler are scheduled, not awaited. With a
    scope they belong to it and are cancelled when it closes.
    """

    def __init__(self, handler: ActionHandler | None, *, scope: TaskScope | None = None):
        self._handler = handler
        self._scope = scope
        self._detached: set[asyncio.Task] = set()

    def dispatch(self, action: str | None, context: ActionContext) -> bool:
        """
        Send an action to the handler.

        Returns:
            True if the handler was invoked
        """
        if is_no_action(action):
            return False

        if self._handler is None:
            logger.warning(f"[topbar] No action handler; dropped '{action}' from {context.source_id}")
            return False

        logger.debug(f"[topbar] Dispatching '{action}' from {context.source_id}")
        try:
            result = self._handler(action, context)
        except Exception as e:
            logger.error(f"[topbar] Action handler failed for '{action}': {e}", exc_info=True)
            return True

        if inspect.isawaitable(result):
            self._schedule(result, action)
        return True

    def _schedule(self, awaitable: Awaitable[Any], action: str) -> None:
        name = f"action:{action}"
        if self._scope is not None and not self._scope.closed:
            self._scope.spawn(_drain(awaitable), name=name)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error(f"[topbar] No running event loop; dropped async result of '{action}'")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._detached.add(task)
        task.add_done_callback(self._detached.discard)
        task.add_done_callback(_log_failure)


async def _drain(awaitable: Awaitable[Any]) -> None:
    await awaitable


def _log_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"[topbar] Action task failed: {exc}")


RouteCallback = Callable[[str, ActionContext], Any]


class ActionRouter:
    """
    Handler that routes tokens by scheme.

    Example:
        router = ActionRouter()
        router.on("navigate", lambda screen, ctx: nav.push(screen))
        router.on("api", call_endpoint)

        bar = TopBar(config, handler=router)
    """

    def __init__(self, routes: dict[str, RouteCallback] | None = None):
        self._routes: dict[str, RouteCallback] = {}
        for scheme, callback in (routes or {}).items():
            self.on(scheme, callback)

    def on(self, scheme: str, callback: RouteCallback) -> ActionRouter:
        if scheme not in ACTION_SCHEMES:
            logger.warning(f"[topbar] Registering route for non-standard scheme '{scheme}'")
        self._routes[scheme] = callback
        return self

    @property
    def schemes(self) -> list[str]:
        return list(self._routes.keys())

    def __call__(self, action: str, context: ActionContext) -> Any:
        parsed = parse_action(action)
        if parsed is None:
            return None

        callback = self._routes.get(parsed.scheme)
        if callback is None:
            logger.warning(f"[topbar] Unknown action type: {parsed.scheme or action}")
            return None
        return callback(parsed.target, context)

"""
Context-aware top bar: slots, live badges and action dispatch.
"""

from .actions import (
    ACTION_SCHEMES,
    NO_ACTION,
    ActionContext,
    ActionDispatcher,
    ActionHandler,
    ActionRouter,
    ParsedAction,
    is_no_action,
    parse_action,
)
from .badges import (
    BADGE_REFETCH_INTERVAL_MS,
    BADGE_RETENTION_MS,
    BADGE_STALE_TIME_MS,
    TAB_BADGE_CAP,
    TOPBAR_BADGE_CAP,
    Badge,
    BadgeResolver,
    format_badge,
)
from .bar import RenderedAction, RenderedTopBar, TopBar, TopBarMount

__all__ = [
    "ACTION_SCHEMES",
    "BADGE_REFETCH_INTERVAL_MS",
    "BADGE_RETENTION_MS",
    "BADGE_STALE_TIME_MS",
    "TAB_BADGE_CAP",
    "TOPBAR_BADGE_CAP",
    "NO_ACTION",
    "ActionContext",
    "ActionDispatcher",
    "ActionHandler",
    "ActionRouter",
    "Badge",
    "BadgeResolver",
    "ParsedAction",
    "RenderedAction",
    "RenderedTopBar",
    "TopBar",
    "TopBarMount",
    "format_badge",
    "is_no_action",
    "parse_action",
]

"""
Structure Schemas.

JSON-serializable description of an app: building blocks, pages,
sections, cache policies, navigation and the top bar. Loaded once per
session and treated as read-only afterwards.
"""

from .policy import (
    AdaptivePolling,
    CachePolicy,
    OnLoadPolicy,
    PollPolicy,
    StaticPolicy,
    describe_policy,
)
from .structure import (
    MENU_ACTION_TYPES,
    AppMeta,
    AppStructure,
    AppTheme,
    BuildingBlockDescriptor,
    CacheDefaults,
    ContextualActions,
    DataSource,
    MenuAction,
    MenuItem,
    NavigationItem,
    PageDefinition,
    PageMeta,
    PageSection,
    SectionLayout,
    ShadowOffset,
    TopBarConfig,
)
from .validation import format_location, validate_structure

__all__ = [
    # Policies
    "AdaptivePolling",
    "CachePolicy",
    "OnLoadPolicy",
    "PollPolicy",
    "StaticPolicy",
    "describe_policy",
    # Structure
    "MENU_ACTION_TYPES",
    "AppMeta",
    "AppStructure",
    "AppTheme",
    "BuildingBlockDescriptor",
    "CacheDefaults",
    "ContextualActions",
    "DataSource",
    "MenuAction",
    "MenuItem",
    "NavigationItem",
    "PageDefinition",
    "PageMeta",
    "PageSection",
    "SectionLayout",
    "ShadowOffset",
    "TopBarConfig",
    # Validation
    "format_location",
    "validate_structure",
]

"""
Page Rendering.

Resolves page definitions into rendered sections, each with its own
state machine, data fetch and fault isolation.
"""

from .layout import layout_to_style
from .page import (
    PageMount,
    PageRenderer,
    RenderedPage,
    SectionFetcher,
    StructureProvider,
    section_query_key,
)
from .section import (
    PlaceholderReason,
    RenderedSection,
    SectionState,
    merge_props,
    sort_sections,
)

__all__ = [
    "PageMount",
    "PageRenderer",
    "PlaceholderReason",
    "RenderedPage",
    "RenderedSection",
    "SectionFetcher",
    "SectionState",
    "StructureProvider",
    "layout_to_style",
    "merge_props",
    "section_query_key",
    "sort_sections",
]

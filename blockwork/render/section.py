"""
Section render results.

Each section moves through its own states independently of its siblings:

    pending-block ──► fetching ──► ready ◄──► stale-refetching
                          │
                          └──────► error

pending-block: the building block is unknown or has no implementation yet
fetching: a query is in flight (or waiting on missing context)
ready: data merged into props and handed to the implementation
stale-refetching: ready data is shown while a background refetch runs
error: the fetch, the policy, or the implementation failed
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from blockwork.schema import PageSection


class SectionState(str, Enum):
    PENDING_BLOCK = "pending-block"
    FETCHING = "fetching"
    READY = "ready"
    ERROR = "error"
    STALE_REFETCHING = "stale-refetching"

    @property
    def is_terminal(self) -> bool:
        return self in (SectionState.READY, SectionState.ERROR)

    @property
    def has_content(self) -> bool:
        return self in (SectionState.READY, SectionState.STALE_REFETCHING)


class PlaceholderReason(str, Enum):
    """Why a pending-block section shows a placeholder."""

    MISSING_BLOCK = "missing-block"
    UNREGISTERED = "unregistered"


@dataclass(frozen=True, slots=True)
class RenderedSection:
    """
    Outcome of rendering one section.

    Attributes:
        section_id: Section id from the page definition
        block_id: Referenced building block id
        state: Current section state
        style: Section style computed from its layout
        component_name: Implementation key of the block (when known)
        props: Effective props (defaultProps merged with fetched data)
        output: Whatever the block implementation returned
        placeholder: Why a placeholder is shown (pending-block only)
        error: The failure behind an error state
        missing_context: Unresolved $$ placeholders holding the fetch back
    """

    section_id: str
    block_id: str
    state: SectionState
    style: dict[str, Any] = field(default_factory=dict)
    component_name: str | None = None
    props: dict[str, Any] | None = None
    output: Any = None
    placeholder: PlaceholderReason | None = None
    error: Exception | None = None
    missing_context: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "sectionId": self.section_id,
            "blockId": self.block_id,
            "state": self.state.value,
            "style": self.style,
            "componentName": self.component_name,
            "props": self.props,
            "output": self.output,
            "placeholder": self.placeholder.value if self.placeholder else None,
            "error": str(self.error) if self.error is not None else None,
            "missingContext": list(self.missing_context),
        }


def sort_sections(sections: Iterable[PageSection]) -> list[PageSection]:
    """Order by layout.order ascending; missing order counts as 0; stable."""
    return sorted(sections, key=lambda s: s.layout.order if s.layout.order is not None else 0)


def merge_props(default_props: Mapping[str, Any], data: Any) -> dict[str, Any]:
    """
    Effective props for a block: fetched data wins over defaults.

    Non-mapping data (e.g. a list) is passed as props["data"].
    """
    props = dict(default_props)
    if data is None:
        return props
    if isinstance(data, Mapping):
        props.update(data)
    else:
        props["data"] = data
    return props

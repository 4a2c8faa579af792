"""Section layout to style conversion."""

from __future__ import annotations

from typing import Any

from blockwork.schema import SectionLayout

# Positioning only, never part of the visual style
_NON_STYLE_FIELDS = {"order"}


def layout_to_style(layout: SectionLayout | None) -> dict[str, Any]:
    """
    Convert a SectionLayout to a camelCase style mapping.

    Only attributes that are set appear in the result.

    Example:
        layout_to_style(SectionLayout(padding_horizontal=16, order=2))
        # {"paddingHorizontal": 16}
    """
    if layout is None:
        return {}
    return layout.model_dump(by_alias=True, exclude_none=True, exclude=_NON_STYLE_FIELDS)

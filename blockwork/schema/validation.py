"""
Structure document validation.

Turns pydantic validation errors into StructureIssue objects with
readable field paths, and adds the cross-reference checks pydantic
cannot express on a single field (duplicate ids).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from blockwork.errors import StructureInvalid, StructureIssue

from .structure import AppStructure

logger = logging.getLogger(__name__)

# Tag segments pydantic inserts into locations of discriminated unions
_POLICY_TAGS = frozenset({"onLoad", "static", "poll"})


def format_location(loc: tuple[Any, ...]) -> str:
    """
    Render a pydantic error location as a field path.

    ("pages", 0, "sections", 1, "dataSource", "cachePolicy", "poll", "intervalMs")
    becomes "pages[0].sections[1].dataSource.cachePolicy.intervalMs".
    """
    path = ""
    previous: Any = None
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif previous == "cachePolicy" and part in _POLICY_TAGS:
            # Union tag, not a field
            pass
        else:
            path += f".{part}" if path else str(part)
        previous = part
    return path or "<root>"


def _issues_from_validation_error(error: ValidationError) -> list[StructureIssue]:
    return [
        StructureIssue(
            path=format_location(tuple(err["loc"])),
            message=err["msg"],
            code=err["type"],
        )
        for err in error.errors()
    ]


def _duplicate_issues(structure: AppStructure) -> list[StructureIssue]:
    issues: list[StructureIssue] = []

    seen: set[str] = set()
    for index, block in enumerate(structure.building_blocks):
        if block.id in seen:
            issues.append(
                StructureIssue(
                    path=f"buildingBlocks[{index}].id",
                    message=f"Duplicate building block id '{block.id}'",
                    code="duplicate_id",
                )
            )
        seen.add(block.id)

    seen = set()
    for page_index, page in enumerate(structure.pages):
        if page.id in seen:
            issues.append(
                StructureIssue(
                    path=f"pages[{page_index}].id",
                    message=f"Duplicate page id '{page.id}'",
                    code="duplicate_id",
                )
            )
        seen.add(page.id)

        section_ids: set[str] = set()
        for section_index, section in enumerate(page.sections):
            if section.id in section_ids:
                issues.append(
                    StructureIssue(
                        path=f"pages[{page_index}].sections[{section_index}].id",
                        message=f"Duplicate section id '{section.id}' in page '{page.id}'",
                        code="duplicate_id",
                    )
                )
            section_ids.add(section.id)

    return issues


def validate_structure(document: Mapping[str, Any] | str | bytes) -> AppStructure:
    """
    Validate a structure document.

    Args:
        document: Parsed JSON mapping, or raw JSON text

    Returns:
        Immutable AppStructure

    Raises:
        StructureInvalid: With one issue (and field path) per problem
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except ValueError as e:
            raise StructureInvalid(
                [StructureIssue(path="<root>", message=f"Malformed JSON: {e}", code="json_invalid")]
            ) from e

    if not isinstance(document, Mapping):
        raise StructureInvalid(
            [
                StructureIssue(
                    path="<root>",
                    message=f"Expected a JSON object, got {type(document).__name__}",
                    code="model_type",
                )
            ]
        )

    try:
        structure = AppStructure.model_validate(document)
    except ValidationError as e:
        issues = _issues_from_validation_error(e)
        logger.warning(f"[structure] Validation failed with {len(issues)} issue(s)")
        raise StructureInvalid(issues) from e

    issues = _duplicate_issues(structure)
    if issues:
        logger.warning(f"[structure] Validation failed with {len(issues)} issue(s)")
        raise StructureInvalid(issues)

    dangling = structure.dangling_block_references()
    for page_id, section_id, block_id in dangling:
        logger.warning(
            f"[structure] Section '{page_id}/{section_id}' references unknown "
            f"building block '{block_id}'; it will render a placeholder"
        )

    logger.info(
        f"[structure] Validated v{structure.version} | "
        f"blocks={len(structure.building_blocks)} | "
        f"pages={len(structure.pages)} | "
        f"navigation={len(structure.navigation)}"
    )
    return structure

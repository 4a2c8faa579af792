"""
Error taxonomy for Blockwork.

Document-level errors (StructureInvalid) are fatal to a render pass.
Everything else is scoped to a single page, section or policy and is
turned into a placeholder by the renderer instead of propagating.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class BlockworkError(Exception):
    """Base exception for all Blockwork errors."""

    pass


# =============================================================================
# Document-level
# =============================================================================


@dataclass(frozen=True, slots=True)
class StructureIssue:
    """
    A single validation problem in a structure document.

    Attributes:
        path: Field path, e.g. "pages[0].sections[1].dataSource.queryName"
        message: Human-readable description
        code: Machine-readable error type (from pydantic or our own checks)
    """

    path: str
    message: str
    code: str = "invalid"

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "message": self.message, "code": self.code}


class StructureInvalid(BlockworkError):
    """
    Raised when a structure document fails validation.

    Carries one issue per problem so callers can report the affected
    field paths instead of a single global failure.
    """

    def __init__(self, issues: list[StructureIssue]):
        self.issues = list(issues)
        summary = "; ".join(f"{i.path}: {i.message}" for i in self.issues[:5])
        if len(self.issues) > 5:
            summary += f" (+{len(self.issues) - 5} more)"
        super().__init__(f"Invalid app structure: {summary}")

    @property
    def paths(self) -> list[str]:
        """Field paths of all issues."""
        return [issue.path for issue in self.issues]


# =============================================================================
# Recoverable, render-scoped
# =============================================================================


class PageNotFound(BlockworkError):
    """Page id absent from the structure. Renders an empty page."""

    def __init__(self, page_id: str):
        self.page_id = page_id
        super().__init__(f"Page '{page_id}' is not defined in the structure")


class BlockUnregistered(BlockworkError):
    """
    A section references a block with no registered implementation.

    Expected during incremental rollout of new blocks.
    """

    def __init__(self, block_id: str, section_id: str | None = None):
        self.block_id = block_id
        self.section_id = section_id
        super().__init__(
            f"Building block '{block_id}' has no registered implementation"
            + (f" (section '{section_id}')" if section_id else "")
        )


class SectionFetchFailed(BlockworkError):
    """Data fetch for a section failed. Scoped to that section."""

    def __init__(
        self,
        section_id: str,
        query_name: str,
        cause: BaseException | None = None,
    ):
        self.section_id = section_id
        self.query_name = query_name
        self.cause = cause
        reason = f": {cause}" if cause is not None else ""
        super().__init__(f"Fetch failed for section '{section_id}' ({query_name}){reason}")


class InvalidPolicy(BlockworkError):
    """A cache policy resolves to a nonsensical parameter."""

    def __init__(self, message: str, *, field: str | None = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)

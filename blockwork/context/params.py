"""
Runtime parameter resolution.

Static section params may reference context values with the
$$NAMESPACE.FIELD pattern:

    {"exclude_user_id": "$$USER.ID", "lat": "$$GEOLOCATION.LAT"}

resolve_params() substitutes them from a RuntimeContext snapshot once per
render pass. merge_context() then overlays the context namespaces on top
of the (resolved) static params: context keys win on collision, static
params are only a fallback.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .runtime import RuntimeContext

logger = logging.getLogger(__name__)

CONTEXT_PREFIX = "$$"


@dataclass(frozen=True, slots=True)
class ResolvedParameters:
    """
    Result of substituting context variables into params.

    Attributes:
        params: Params ready for the query (unresolvable entries removed)
        query_enabled: False when a referenced context value is missing
        missing_context: The placeholders that could not be resolved
    """

    params: dict[str, Any] = field(default_factory=dict)
    query_enabled: bool = True
    missing_context: tuple[str, ...] = ()


def is_context_variable(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(CONTEXT_PREFIX)


def parse_context_path(path: str) -> tuple[str, str] | None:
    """
    Split "$$USER.EMAIL" into ("USER", "EMAIL").

    Returns None for anything that is not exactly $$NAMESPACE.FIELD.
    """
    if not is_context_variable(path):
        return None

    parts = path[len(CONTEXT_PREFIX):].split(".")
    if len(parts) != 2 or not all(parts):
        logger.warning(f"[context] Invalid context path: {path} (expected $$NAMESPACE.FIELD)")
        return None

    return parts[0], parts[1]


def resolve_params(params: Mapping[str, Any], context: RuntimeContext) -> ResolvedParameters:
    """
    Substitute $$NAMESPACE.FIELD placeholders from the context snapshot.

    Malformed paths are left as literal strings. Well-formed paths whose
    value is missing are dropped and disable the query.
    """
    resolved: dict[str, Any] = {}
    missing: list[str] = []
    namespaces = context.as_params()

    for key, value in params.items():
        parsed = parse_context_path(value) if is_context_variable(value) else None
        if parsed is None:
            resolved[key] = value
            continue

        namespace, name = parsed
        values = namespaces.get(namespace)
        if not values or values.get(name) is None:
            missing.append(value)
            continue

        resolved[key] = values[name]

    return ResolvedParameters(
        params=resolved,
        query_enabled=not missing,
        missing_context=tuple(missing),
    )


def merge_context(params: Mapping[str, Any], context: RuntimeContext) -> dict[str, Any]:
    """Overlay context namespaces on static params. Context wins."""
    return {**params, **context.as_params()}

"""
Runtime Context Layer.

Collects ambient session values (user, location, filters) into a
snapshot that the page renderer injects into section query params.
"""

from .params import (
    ResolvedParameters,
    is_context_variable,
    merge_context,
    parse_context_path,
    resolve_params,
)
from .runtime import (
    FilterSource,
    GeolocationContext,
    LocationSource,
    RuntimeContext,
    RuntimeContextResolver,
    StaticContextSource,
    UserContext,
    UserSource,
)

__all__ = [
    "FilterSource",
    "GeolocationContext",
    "LocationSource",
    "ResolvedParameters",
    "RuntimeContext",
    "RuntimeContextResolver",
    "StaticContextSource",
    "UserContext",
    "UserSource",
    "is_context_variable",
    "merge_context",
    "parse_context_path",
    "resolve_params",
]

"""
Runtime Context for Blockwork.

The runtime context is a snapshot of ambient, session-specific values
that sections may inject into their query parameters:

- USER: the authenticated user (None when logged out)
- GEOLOCATION: last known position (None without permission/fix)
- FILTER: active UI filter state (None when no filter store is wired)

The snapshot is recomputed on every render pass and never persisted.
Resolution is idempotent: unchanged sources yield equal snapshots with
equal fingerprints, so fetch keys built from it stay stable.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


# =============================================================================
# Context Namespaces
# =============================================================================


@dataclass(frozen=True, slots=True)
class UserContext:
    """Authenticated user identity."""

    id: str
    email: str = ""
    is_verified: bool = False
    is_2fa_enabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "ID": self.id,
            "EMAIL": self.email,
            "IS_VERIFIED": self.is_verified,
            "IS_2FA_ENABLED": self.is_2fa_enabled,
        }


@dataclass(frozen=True, slots=True)
class GeolocationContext:
    """Last known position."""

    lat: float
    lon: float
    accuracy: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"LAT": self.lat, "LON": self.lon}
        if self.accuracy is not None:
            data["ACCURACY"] = self.accuracy
        return data


@dataclass(frozen=True)
class RuntimeContext:
    """
    Snapshot of resolvable context variables.

    Each slot is None when its source has not produced a value yet.
    """

    user: UserContext | None = None
    geolocation: GeolocationContext | None = None
    filters: Mapping[str, Any] | None = field(default=None)

    def __post_init__(self) -> None:
        if self.filters is not None and not isinstance(self.filters, MappingProxyType):
            object.__setattr__(self, "filters", MappingProxyType(dict(self.filters)))

    def as_params(self) -> dict[str, Any]:
        """Namespaces keyed the way query parameters reference them."""
        return {
            "USER": self.user.to_dict() if self.user else None,
            "GEOLOCATION": self.geolocation.to_dict() if self.geolocation else None,
            "FILTER": dict(self.filters) if self.filters is not None else None,
        }

    def namespace(self, name: str) -> Mapping[str, Any] | None:
        """Values of one namespace ("USER", "GEOLOCATION", "FILTER")."""
        return self.as_params().get(name)

    def fingerprint(self) -> str:
        """Stable string form; equal snapshots give equal fingerprints."""
        return json.dumps(self.as_params(), sort_keys=True, default=str)

    def __hash__(self) -> int:
        return hash(self.fingerprint())

    @classmethod
    def empty(cls) -> RuntimeContext:
        return cls()


# =============================================================================
# Sources (external collaborators)
# =============================================================================


@runtime_checkable
class UserSource(Protocol):
    """Authenticated identity, owned by the auth layer."""

    def current_user(self) -> UserContext | None: ...


@runtime_checkable
class LocationSource(Protocol):
    """Last known geolocation, owned by the location service."""

    def last_known_location(self) -> GeolocationContext | None: ...


@runtime_checkable
class FilterSource(Protocol):
    """Active UI filter state, owned by the filter store."""

    def active_filters(self) -> Mapping[str, Any] | None: ...


class StaticContextSource:
    """
    In-memory source implementing all three protocols.

    Useful for tests, the preview app, and wiring values pushed from
    elsewhere (e.g. an auth callback calling set_user()).
    """

    def __init__(
        self,
        user: UserContext | None = None,
        location: GeolocationContext | None = None,
        filters: Mapping[str, Any] | None = None,
    ):
        self._user = user
        self._location = location
        self._filters = dict(filters) if filters is not None else None

    def set_user(self, user: UserContext | None) -> None:
        self._user = user

    def set_location(self, location: GeolocationContext | None) -> None:
        self._location = location

    def set_filters(self, filters: Mapping[str, Any] | None) -> None:
        self._filters = dict(filters) if filters is not None else None

    def current_user(self) -> UserContext | None:
        return self._user

    def last_known_location(self) -> GeolocationContext | None:
        return self._location

    def active_filters(self) -> Mapping[str, Any] | None:
        return dict(self._filters) if self._filters is not None else None


# =============================================================================
# Resolver
# =============================================================================


class RuntimeContextResolver:
    """
    Assembles a RuntimeContext from independently owned sources.

    A source that is missing, returns None, or raises yields None for its
    slot; resolution as a whole never fails.

    Example:
        resolver = RuntimeContextResolver(
            user_source=auth_state,
            location_source=location_service,
            filter_source=filter_store,
        )
        context = resolver.resolve()
    """

    def __init__(
        self,
        *,
        user_source: UserSource | None = None,
        location_source: LocationSource | None = None,
        filter_source: FilterSource | None = None,
    ):
        self._user_source = user_source
        self._location_source = location_source
        self._filter_source = filter_source

    def resolve(self) -> RuntimeContext:
        """Take a snapshot of all sources. Side-effect-free."""
        user = self._read("USER", self._user_source, "current_user")
        location = self._read("GEOLOCATION", self._location_source, "last_known_location")
        filters = self._read("FILTER", self._filter_source, "active_filters")
        return RuntimeContext(user=user, geolocation=location, filters=filters)

    def _read(self, namespace: str, source: Any, method: str) -> Any:
        if source is None:
            return None
        try:
            return getattr(source, method)()
        except Exception as e:
            logger.warning(f"[context] {namespace} source unavailable: {e}")
            return None

"""
Cache Policy Resolver.

Maps a declared CachePolicy to concrete fetch parameters:

    policy          stale_time_ms        retention_ms       refetch_interval_ms
    --------------  -------------------  -----------------  -------------------
    onLoad          staleTimeMs | 24h    gcTimeMs | 24h     None
    static          inf                  inf                None
    poll            0                    gcTimeMs | 24h     intervalMs

Retention must be >= staleness, otherwise a render could find data that is
still "fresh" but already evicted. Nonsensical values raise InvalidPolicy;
the resolver never clamps or silently defaults them.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from blockwork.errors import InvalidPolicy
from blockwork.schema.policy import AdaptivePolling, OnLoadPolicy, PollPolicy, StaticPolicy

logger = logging.getLogger(__name__)

INFINITE = math.inf

# Data stays fresh for the whole session unless the policy says otherwise
SESSION_STALE_TIME_MS = 24 * 60 * 60 * 1000
DEFAULT_RETENTION_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True, slots=True)
class FetchParameters:
    """
    Concrete parameters handed to the query client.

    Attributes:
        stale_time_ms: How long fetched data counts as fresh
        retention_ms: How long unobserved data is kept before eviction
        refetch_interval_ms: Base poll interval, None for no polling
        adaptive: Adaptive polling settings (poll only)
        strategy: The policy strategy these were resolved from
    """

    stale_time_ms: float
    retention_ms: float
    refetch_interval_ms: float | None = None
    adaptive: AdaptivePolling | None = None
    strategy: str = "onLoad"

    @property
    def polls(self) -> bool:
        return self.refetch_interval_ms is not None

    @property
    def poller_owns_freshness(self) -> bool:
        """Polled with zero staleness: the interval decides when to refetch."""
        return self.polls and self.stale_time_ms == 0


def _check_duration(value: float | None, field: str) -> None:
    if value is None:
        return
    if math.isnan(value) or value < 0:
        raise InvalidPolicy(f"{field} must be >= 0, got {value}", field=field, value=value)


class CachePolicyResolver:
    """
    Pure mapping from CachePolicy to FetchParameters.

    Example:
        resolver = CachePolicyResolver()
        params = resolver.resolve(PollPolicy(interval_ms=30_000))
        params.refetch_interval_ms  # 30000
    """

    def __init__(
        self,
        *,
        session_stale_time_ms: float = SESSION_STALE_TIME_MS,
        default_retention_ms: float = DEFAULT_RETENTION_MS,
    ):
        self._session_stale_time_ms = session_stale_time_ms
        self._default_retention_ms = default_retention_ms

    def resolve(
        self,
        policy: OnLoadPolicy | StaticPolicy | PollPolicy,
        *,
        default_stale_time_ms: float | None = None,
    ) -> FetchParameters:
        """
        Resolve a policy.

        Args:
            policy: Declared cache policy
            default_stale_time_ms: Structure-level default for onLoad
                policies without their own staleTimeMs

        Raises:
            InvalidPolicy: For non-positive poll intervals, negative
                durations, or retention shorter than staleness
        """
        _check_duration(policy.gc_time_ms, "gcTimeMs")

        if isinstance(policy, StaticPolicy):
            stale = INFINITE
        elif isinstance(policy, OnLoadPolicy):
            _check_duration(policy.stale_time_ms, "staleTimeMs")
            _check_duration(default_stale_time_ms, "cacheDefaults.data.staleTimeMs")
            if policy.stale_time_ms is not None:
                stale = policy.stale_time_ms
            elif default_stale_time_ms is not None:
                stale = default_stale_time_ms
            else:
                stale = self._session_stale_time_ms
        elif isinstance(policy, PollPolicy):
            stale = 0.0
            self._check_poll(policy)
        else:
            raise InvalidPolicy(f"Unknown cache policy: {policy!r}")

        retention = self._retention(policy, stale)

        return FetchParameters(
            stale_time_ms=stale,
            retention_ms=retention,
            refetch_interval_ms=policy.interval_ms if isinstance(policy, PollPolicy) else None,
            adaptive=policy.adaptive_polling if isinstance(policy, PollPolicy) else None,
            strategy=policy.strategy,
        )

    def _retention(self, policy: OnLoadPolicy | StaticPolicy | PollPolicy, stale: float) -> float:
        if policy.gc_time_ms is None:
            return max(self._default_retention_ms, stale)

        if policy.gc_time_ms < stale:
            raise InvalidPolicy(
                f"gcTimeMs ({policy.gc_time_ms}) must be >= staleness ({stale})",
                field="gcTimeMs",
                value=policy.gc_time_ms,
            )
        return policy.gc_time_ms

    def _check_poll(self, policy: PollPolicy) -> None:
        interval = policy.interval_ms
        if math.isnan(interval) or interval <= 0:
            raise InvalidPolicy(
                f"Poll interval must be > 0, got {interval}",
                field="intervalMs",
                value=interval,
            )

        adaptive = policy.adaptive_polling
        if adaptive is None or not adaptive.enabled:
            return

        if adaptive.min_interval <= 0:
            raise InvalidPolicy(
                f"adaptivePolling.minInterval must be > 0, got {adaptive.min_interval}",
                field="adaptivePolling.minInterval",
                value=adaptive.min_interval,
            )
        if adaptive.max_interval < adaptive.min_interval:
            raise InvalidPolicy(
                "adaptivePolling.maxInterval must be >= minInterval",
                field="adaptivePolling.maxInterval",
                value=adaptive.max_interval,
            )
        if adaptive.background_multiplier < 1:
            raise InvalidPolicy(
                "adaptivePolling.backgroundMultiplier must be >= 1",
                field="adaptivePolling.backgroundMultiplier",
                value=adaptive.background_multiplier,
            )

"""
Cache Policy Schema.

Defines how a section's data is cached and refetched. The backend
declares one policy per data source:

- onLoad: fetch once per session (optionally with a staleness window)
- static: fetch once, never refetch
- poll: refetch on an interval, optionally with adaptive backoff

The schema only checks shape. Semantic checks (e.g. non-positive poll
intervals, retention shorter than staleness) belong to the
CachePolicyResolver, which fails the affected section with InvalidPolicy
instead of rejecting the whole document.

Example:
    {"strategy": "poll", "intervalMs": 30000,
     "adaptivePolling": {"enabled": true, "maxInterval": 120000}}
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PolicyModel(BaseModel):
    """Base for policy models: camelCase wire format, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class AdaptivePolling(PolicyModel):
    """
    Adaptive polling configuration.

    Lets the poller slow down when results stop changing and when the
    app is in the background.
    """

    enabled: bool = Field(default=False, description="Enable adaptive polling")
    min_interval: int = Field(default=10_000, description="Minimum poll interval (ms)")
    max_interval: int = Field(default=120_000, description="Maximum poll interval (ms)")
    background_multiplier: float = Field(
        default=4.0,
        description="Slow down polling by this factor when backgrounded",
    )
    activity_boost: bool = Field(
        default=True,
        description="Reset to the base interval on user activity",
    )


class _BasePolicy(PolicyModel):
    gc_time_ms: float | None = Field(default=None, description="Retention override (ms)")
    description: str | None = None


class OnLoadPolicy(_BasePolicy):
    """Fetch once per session; fresh until staleTimeMs elapses."""

    strategy: Literal["onLoad"] = "onLoad"
    stale_time_ms: float | None = Field(default=None, description="Staleness window (ms)")


class StaticPolicy(_BasePolicy):
    """Fetch once, never refetch, even across navigation."""

    strategy: Literal["static"] = "static"
    # Accepted for wire compatibility; a static policy is always fresh.
    stale_time_ms: float | None = None


class PollPolicy(_BasePolicy):
    """Refetch on an interval."""

    strategy: Literal["poll"] = "poll"
    interval_ms: float = Field(
        ...,
        validation_alias=AliasChoices("intervalMs", "pollIntervalMs", "interval_ms"),
        description="Base poll interval (ms)",
    )
    adaptive_polling: AdaptivePolling | None = None

    @property
    def adaptive(self) -> bool:
        """Whether adaptive backoff is switched on."""
        return self.adaptive_polling is not None and self.adaptive_polling.enabled


CachePolicy = Annotated[
    Union[OnLoadPolicy, StaticPolicy, PollPolicy],
    Field(discriminator="strategy"),
]


def describe_policy(policy: OnLoadPolicy | StaticPolicy | PollPolicy) -> str:
    """Human-readable description for logs and the preview API."""
    if policy.description:
        return policy.description
    if isinstance(policy, OnLoadPolicy):
        if policy.stale_time_ms is not None:
            return f"Fetch on load, fresh for {policy.stale_time_ms:g}ms"
        return "Fetch on load, fresh for the session"
    if isinstance(policy, StaticPolicy):
        return "Static content (never refetch)"
    suffix = " (adaptive)" if policy.adaptive else ""
    return f"Auto-refresh every {policy.interval_ms:g}ms{suffix}"

"""
Poll interval strategies.

Polling sections start from the base interval their policy declares. With
adaptive polling enabled, the interval grows while results stay the same
and snaps back to the base when data changes or the user is active.

Backoff strategies here compute the growth; AdaptiveInterval tracks the
state for one poller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from blockwork.schema.policy import AdaptivePolling


class BackoffStrategy(ABC):
    """Interval calculation for the n-th consecutive unchanged result."""

    @abstractmethod
    def get_interval(self, base_ms: float, unchanged: int) -> float:
        """
        Args:
            base_ms: Starting interval
            unchanged: Consecutive unchanged results (0 = just changed)

        Returns:
            Interval in milliseconds
        """
        ...


@dataclass
class ConstantBackoff(BackoffStrategy):
    """Always the base interval."""

    def get_interval(self, base_ms: float, unchanged: int) -> float:
        return base_ms


@dataclass
class ExponentialBackoff(BackoffStrategy):
    """
    interval = base * (multiplier ^ unchanged), capped at max_ms.

    Example:
        backoff = ExponentialBackoff(multiplier=2.0, max_ms=120_000)
        # base 10s: 10s, 20s, 40s, 80s, 120s, 120s, ...
    """

    multiplier: float = 2.0
    max_ms: float = 120_000

    def get_interval(self, base_ms: float, unchanged: int) -> float:
        interval = base_ms * (self.multiplier ** unchanged)
        return min(interval, max(self.max_ms, base_ms))


@dataclass(eq=False)
class AdaptiveInterval:
    """
    Poll interval state for one poller.

    Without adaptive settings (or with them disabled) this always returns
    the base interval.
    """

    base_ms: float
    settings: AdaptivePolling | None = None
    _unchanged: int = field(default=0, init=False)
    _background: bool = field(default=False, init=False)
    _strategy: BackoffStrategy = field(init=False)

    def __post_init__(self) -> None:
        if self.enabled:
            self._strategy = ExponentialBackoff(max_ms=self.settings.max_interval)
        else:
            self._strategy = ConstantBackoff()

    @property
    def enabled(self) -> bool:
        return self.settings is not None and self.settings.enabled

    @property
    def unchanged(self) -> int:
        return self._unchanged

    @property
    def start_ms(self) -> float:
        """Interval used right after a change."""
        if self.enabled:
            return max(self.base_ms, self.settings.min_interval)
        return self.base_ms

    def current_ms(self) -> float:
        interval = self._strategy.get_interval(self.start_ms, self._unchanged)
        if self.enabled and self._background:
            interval *= self.settings.background_multiplier
        return interval

    def record_result(self, changed: bool) -> None:
        if changed:
            self._unchanged = 0
        else:
            self._unchanged += 1

    def record_activity(self) -> None:
        """User activity: back to the base interval when boosting is on."""
        if self.enabled and self.settings.activity_boost:
            self._unchanged = 0

    def set_background(self, background: bool) -> None:
        self._background = background

    def reset(self) -> None:
        self._unchanged = 0
        self._background = False

"""
Query Layer.

Cache policy resolution, the in-process query cache, poll interval
strategies and the task scopes background fetches run in.
"""

from .backoff import AdaptiveInterval, BackoffStrategy, ConstantBackoff, ExponentialBackoff
from .client import QueryClient, QueryEntry, QueryFn, QueryKey, QueryStatus
from .policy import (
    DEFAULT_RETENTION_MS,
    INFINITE,
    SESSION_STALE_TIME_MS,
    CachePolicyResolver,
    FetchParameters,
)
from .scope import ScopeTracker, TaskScope, get_scope_tracker, set_scope_tracker

__all__ = [
    "DEFAULT_RETENTION_MS",
    "INFINITE",
    "SESSION_STALE_TIME_MS",
    "AdaptiveInterval",
    "BackoffStrategy",
    "CachePolicyResolver",
    "ConstantBackoff",
    "ExponentialBackoff",
    "FetchParameters",
    "QueryClient",
    "QueryEntry",
    "QueryFn",
    "QueryKey",
    "QueryStatus",
    "ScopeTracker",
    "TaskScope",
    "get_scope_tracker",
    "set_scope_tracker",
]

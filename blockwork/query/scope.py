"""
Task Scopes.

Every background activity (poll loop, stale refetch, badge poller) runs as
an asyncio task owned by a TaskScope. Mounted units (a page, a top bar)
own exactly one scope and close it on unmount, which cancels everything
still running. Nothing survives its owner.

A ScopeTracker can be installed to observe every scope created; the test
suite uses it to fail when a task outlives its scope.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class TaskScope:
    """
    Owner of a set of asyncio tasks.

    Example:
        scope = TaskScope("page:home")
        scope.spawn(poll_loop(), name="poll:feed")
        ...
        await scope.close()  # cancels poll_loop
    """

    def __init__(self, name: str):
        self.name = name
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

        tracker = get_scope_tracker()
        if tracker is not None:
            tracker.track(self)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active(self) -> list[asyncio.Task]:
        """Tasks that have not finished yet."""
        return [t for t in self._tasks if not t.done()]

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task:
        """
        Start a task owned by this scope.

        Raises:
            RuntimeError: If the scope is already closed
        """
        if self._closed:
            coro.close()
            raise RuntimeError(f"TaskScope '{self.name}' is closed")

        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[scope] Task {task.get_name()} in '{self.name}' failed: {exc}")

    async def close(self) -> None:
        """Cancel all tasks and wait for them to finish. Idempotent."""
        self._closed = True
        tasks = list(self._tasks)
        if not tasks:
            return

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug(f"[scope] Closed '{self.name}', cancelled {len(tasks)} task(s)")

    async def __aenter__(self) -> TaskScope:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()


class ScopeTracker:
    """Records scopes so leaks can be detected after the fact."""

    def __init__(self) -> None:
        self.scopes: list[TaskScope] = []

    def track(self, scope: TaskScope) -> None:
        self.scopes.append(scope)

    def open_scopes(self) -> list[TaskScope]:
        return [s for s in self.scopes if not s.closed]

    def leaked_tasks(self) -> list[asyncio.Task]:
        """Tasks still running in scopes that have been closed."""
        return [t for s in self.scopes if s.closed for t in s.active]


_tracker: ScopeTracker | None = None


def get_scope_tracker() -> ScopeTracker | None:
    return _tracker


def set_scope_tracker(tracker: ScopeTracker | None) -> None:
    """Install (or remove, with None) the global scope tracker."""
    global _tracker
    _tracker = tracker

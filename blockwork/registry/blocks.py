"""
Building Block Registry for Blockwork.

Maps building block ids (as referenced by the structure document) to the
implementations that render them. An implementation is any callable that
takes the merged props and returns the rendered output:

    def hero(props: dict[str, Any]) -> Any: ...

The registry is process-wide with an init-once, overwrite-forever
lifecycle. Registration normally happens at startup; re-registering an id
replaces the previous implementation (hot reload during development).
Tests use create_block_registry() for an isolated instance, or
reset_block_registry() to drop the global one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

BlockImplementation = Callable[[dict[str, Any]], Any]


class BuildingBlockRegistry:
    """
    Registry of building block implementations.

    Example:
        # At app startup
        registry = get_block_registry()
        registry.register("hero", render_hero)
        registry.register("activity-card", render_activity_card)

        # In the renderer
        impl = registry.resolve("hero")
        if impl is not None:
            output = impl(props)
    """

    def __init__(self) -> None:
        self._blocks: dict[str, BlockImplementation] = {}

    def register(self, block_id: str, implementation: BlockImplementation) -> None:
        """
        Register a building block implementation.

        Args:
            block_id: Id referenced by sections' buildingBlockId
            implementation: Callable receiving merged props

        Note:
            An existing registration for block_id is replaced; the last
            registration wins.
        """
        if not callable(implementation):
            raise TypeError(f"Implementation for '{block_id}' must be callable")

        if block_id in self._blocks:
            logger.warning(f"[registry] Replacing building block: {block_id}")
        self._blocks[block_id] = implementation
        logger.debug(f"[registry] Registered building block: {block_id}")

    def resolve(self, block_id: str) -> BlockImplementation | None:
        """Implementation for block_id, or None when not registered."""
        return self._blocks.get(block_id)

    def has(self, block_id: str) -> bool:
        return block_id in self._blocks

    @property
    def registered_blocks(self) -> list[str]:
        return list(self._blocks.keys())

    def unregister(self, block_id: str) -> bool:
        """
        Remove a registration.

        Returns:
            True if the block was removed, False if it was not registered
        """
        if block_id in self._blocks:
            del self._blocks[block_id]
            logger.info(f"[registry] Unregistered building block: {block_id}")
            return True
        return False

    def clear(self) -> None:
        self._blocks.clear()
        logger.debug("[registry] Cleared all building blocks")

    def __len__(self) -> int:
        return len(self._blocks)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._blocks


# Global registry instance
_registry: BuildingBlockRegistry | None = None


def get_block_registry() -> BuildingBlockRegistry:
    """Global registry, created on first access."""
    global _registry
    if _registry is None:
        _registry = BuildingBlockRegistry()
    return _registry


def register_building_block(block_id: str, implementation: BlockImplementation) -> None:
    """
    Register a building block in the global registry.

    This is the only way new block types become renderable; call it before
    the first render of a page that references block_id.
    """
    get_block_registry().register(block_id, implementation)


def building_block(block_id: str) -> Callable[[BlockImplementation], BlockImplementation]:
    """
    Decorator form of register_building_block.

    Example:
        @building_block("hero")
        def hero(props):
            return {"title": props["title"]}
    """

    def decorator(implementation: BlockImplementation) -> BlockImplementation:
        register_building_block(block_id, implementation)
        return implementation

    return decorator


def create_block_registry() -> BuildingBlockRegistry:
    """Fresh, isolated registry (not the global one)."""
    return BuildingBlockRegistry()


def reset_block_registry() -> None:
    """Drop the global registry; the next access creates a new one."""
    global _registry
    if _registry is not None:
        _registry.clear()
    _registry = None

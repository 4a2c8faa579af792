"""Building block registry."""

from .blocks import (
    BlockImplementation,
    BuildingBlockRegistry,
    building_block,
    create_block_registry,
    get_block_registry,
    register_building_block,
    reset_block_registry,
)

__all__ = [
    "BlockImplementation",
    "BuildingBlockRegistry",
    "building_block",
    "create_block_registry",
    "get_block_registry",
    "register_building_block",
    "reset_block_registry",
]

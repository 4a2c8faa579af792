"""
Tests for the Building Block Registry.
"""

import pytest

from blockwork.registry import (
    BuildingBlockRegistry,
    building_block,
    create_block_registry,
    get_block_registry,
    register_building_block,
    reset_block_registry,
)


def render_hero(props):
    return {"kind": "hero", **props}


class TestBuildingBlockRegistry:
    """Tests for BuildingBlockRegistry."""

    def test_register_and_resolve(self):
        registry = BuildingBlockRegistry()
        registry.register("hero", render_hero)

        assert registry.resolve("hero") is render_hero
        assert registry.has("hero")
        assert "hero" in registry
        assert len(registry) == 1

    def test_resolve_unknown_returns_none(self):
        assert BuildingBlockRegistry().resolve("nope") is None

    def test_last_registration_wins(self, caplog):
        registry = BuildingBlockRegistry()
        registry.register("hero", render_hero)

        def replacement(props):
            return "v2"

        registry.register("hero", replacement)

        assert registry.resolve("hero") is replacement
        assert "Replacing building block: hero" in caplog.text

    def test_rejects_non_callable(self):
        with pytest.raises(TypeError):
            BuildingBlockRegistry().register("hero", "not callable")

    def test_unregister(self):
        registry = BuildingBlockRegistry()
        registry.register("hero", render_hero)

        assert registry.unregister("hero") is True
        assert registry.unregister("hero") is False
        assert registry.registered_blocks == []


class TestGlobalRegistry:
    def test_register_building_block(self):
        register_building_block("hero", render_hero)
        assert get_block_registry().resolve("hero") is render_hero

    def test_decorator(self):
        @building_block("card")
        def card(props):
            return props

        assert get_block_registry().resolve("card") is card
        assert card({"a": 1}) == {"a": 1}

    def test_reset_drops_registrations(self):
        register_building_block("hero", render_hero)
        reset_block_registry()
        assert not get_block_registry().has("hero")

    def test_isolated_registry(self):
        isolated = create_block_registry()
        isolated.register("hero", render_hero)
        assert isolated is not get_block_registry()
        assert not get_block_registry().has("hero")

"""
Tests for the Structure Schema.

Tests:
- AppStructure parsing (camelCase wire format, immutability, lookups)
- Validation issues with field paths
- Cross-reference checks (duplicate ids, dangling block references)
- Cache policy variants
"""

import json

import pytest
from pydantic import ValidationError

from blockwork.errors import StructureInvalid
from blockwork.schema import (
    AppStructure,
    OnLoadPolicy,
    PollPolicy,
    StaticPolicy,
    describe_policy,
    format_location,
    validate_structure,
)

# =============================================================================
# Parsing
# =============================================================================


class TestAppStructureParsing:
    """Tests for a valid structure document."""

    def test_parses_sample(self, sample_structure):
        assert sample_structure.version == "1.0.0"
        assert sample_structure.meta.app_name == "Blockwork Demo"
        assert [p.id for p in sample_structure.pages] == ["home", "live"]

    def test_block_and_page_lookup(self, sample_structure):
        block = sample_structure.block("hero")
        assert block.component_name == "HeroSection"
        assert block.default_props == {"title": "Welcome", "subtitle": "Discover activities"}
        assert sample_structure.page("home").title == "Home"
        assert sample_structure.block("nope") is None
        assert sample_structure.page("nope") is None

    def test_cache_policy_variants(self, sample_structure):
        home = sample_structure.page("home")
        feed, hero = home.sections
        assert isinstance(feed.data_source.cache_policy, OnLoadPolicy)
        assert feed.data_source.cache_policy.stale_time_ms == 300000
        assert isinstance(hero.data_source.cache_policy, StaticPolicy)

        ticker = sample_structure.page("live").sections[0]
        assert isinstance(ticker.data_source.cache_policy, PollPolicy)
        assert ticker.data_source.cache_policy.interval_ms == 50

    def test_default_cache_policy_is_on_load(self, sample_structure_dict):
        del sample_structure_dict["pages"][0]["sections"][0]["dataSource"]["cachePolicy"]
        structure = validate_structure(sample_structure_dict)
        policy = structure.page("home").sections[0].data_source.cache_policy
        assert isinstance(policy, OnLoadPolicy)
        assert policy.stale_time_ms is None

    def test_poll_interval_alias(self, sample_structure_dict):
        sample_structure_dict["pages"][1]["sections"][0]["dataSource"]["cachePolicy"] = {
            "strategy": "poll",
            "pollIntervalMs": 30000,
            "adaptivePolling": {"enabled": True, "maxInterval": 60000},
        }
        structure = validate_structure(sample_structure_dict)
        policy = structure.page("live").sections[0].data_source.cache_policy
        assert policy.interval_ms == 30000
        assert policy.adaptive is True
        assert policy.adaptive_polling.min_interval == 10_000
        assert policy.adaptive_polling.max_interval == 60000

    def test_is_immutable(self, sample_structure):
        with pytest.raises(ValidationError):
            sample_structure.version = "2.0.0"

    def test_accepts_json_text(self, sample_structure_dict):
        structure = validate_structure(json.dumps(sample_structure_dict))
        assert isinstance(structure, AppStructure)

    def test_visible_navigation_sorted(self, sample_structure):
        assert [item.id for item in sample_structure.visible_navigation()] == ["tab-live", "tab-home"]

    def test_top_bar_falls_back_to_meta(self, sample_structure_dict):
        top_bar = sample_structure_dict.pop("topBar")
        sample_structure_dict["meta"]["topBarConfig"] = top_bar
        structure = validate_structure(sample_structure_dict)
        assert structure.top_bar_config.left.id == "logo"

    def test_cache_defaults(self, sample_structure_dict):
        sample_structure_dict["cacheDefaults"] = {"data": {"strategy": "onLoad", "staleTimeMs": 60000}}
        structure = validate_structure(sample_structure_dict)
        assert structure.default_stale_time_ms == 60000

    def test_unknown_top_bar_type_still_validates(self, sample_structure_dict):
        sample_structure_dict["topBar"]["right"].append({"type": "hologram", "id": "future"})
        structure = validate_structure(sample_structure_dict)
        element = structure.top_bar_config.right[-1]
        assert element.type == "hologram"
        assert element.is_known_type is False
        assert element.action == "none"


# =============================================================================
# Validation issues
# =============================================================================


class TestValidationIssues:
    """Tests that failures report field paths."""

    def test_reports_nested_field_path(self, sample_structure_dict):
        del sample_structure_dict["pages"][0]["sections"][1]["dataSource"]["queryName"]

        with pytest.raises(StructureInvalid) as exc_info:
            validate_structure(sample_structure_dict)

        assert "pages[0].sections[1].dataSource.queryName" in exc_info.value.paths

    def test_policy_path_skips_union_tag(self, sample_structure_dict):
        sample_structure_dict["pages"][1]["sections"][0]["dataSource"]["cachePolicy"]["intervalMs"] = "fast"

        with pytest.raises(StructureInvalid) as exc_info:
            validate_structure(sample_structure_dict)

        assert exc_info.value.paths == ["pages[1].sections[0].dataSource.cachePolicy.intervalMs"]

    def test_unknown_strategy(self, sample_structure_dict):
        sample_structure_dict["pages"][0]["sections"][0]["dataSource"]["cachePolicy"] = {"strategy": "sometimes"}

        with pytest.raises(StructureInvalid) as exc_info:
            validate_structure(sample_structure_dict)

        issue = exc_info.value.issues[0]
        assert issue.path == "pages[0].sections[0].dataSource.cachePolicy"
        assert issue.code == "union_tag_invalid"

    def test_reports_every_issue(self, sample_structure_dict):
        sample_structure_dict["version"] = "one"
        del sample_structure_dict["meta"]["appName"]

        with pytest.raises(StructureInvalid) as exc_info:
            validate_structure(sample_structure_dict)

        assert set(exc_info.value.paths) == {"version", "meta.appName"}
        assert "version" in str(exc_info.value)

    def test_malformed_json(self):
        with pytest.raises(StructureInvalid) as exc_info:
            validate_structure("{not json")
        assert exc_info.value.issues[0].code == "json_invalid"
        assert exc_info.value.paths == ["<root>"]

    def test_non_object_document(self):
        with pytest.raises(StructureInvalid) as exc_info:
            validate_structure([1, 2, 3])
        assert "list" in exc_info.value.issues[0].message

    def test_duplicate_section_ids(self, sample_structure_dict):
        sections = sample_structure_dict["pages"][0]["sections"]
        sections[1]["id"] = sections[0]["id"]

        with pytest.raises(StructureInvalid) as exc_info:
            validate_structure(sample_structure_dict)

        issue = exc_info.value.issues[0]
        assert issue.path == "pages[0].sections[1].id"
        assert issue.code == "duplicate_id"

    def test_duplicate_block_ids(self, sample_structure_dict):
        sample_structure_dict["buildingBlocks"].append(
            {"id": "hero", "componentName": "OtherHero"}
        )

        with pytest.raises(StructureInvalid) as exc_info:
            validate_structure(sample_structure_dict)

        assert exc_info.value.paths == ["buildingBlocks[3].id"]

    def test_dangling_block_reference_is_not_an_error(self, sample_structure_dict):
        sample_structure_dict["pages"][0]["sections"][0]["buildingBlockId"] = "missing-block"
        structure = validate_structure(sample_structure_dict)
        assert structure.dangling_block_references() == [("home", "feed", "missing-block")]

    def test_non_positive_interval_passes_schema(self, sample_structure_dict):
        sample_structure_dict["pages"][1]["sections"][0]["dataSource"]["cachePolicy"]["intervalMs"] = 0
        structure = validate_structure(sample_structure_dict)
        assert structure.page("live").sections[0].data_source.cache_policy.interval_ms == 0


class TestFormatLocation:
    """Tests for format_location."""

    def test_indexes_and_fields(self):
        assert format_location(("pages", 0, "sections", 2, "id")) == "pages[0].sections[2].id"

    def test_empty_location(self):
        assert format_location(()) == "<root>"

    def test_drops_policy_tag(self):
        loc = ("pages", 0, "sections", 0, "dataSource", "cachePolicy", "onLoad", "staleTimeMs")
        assert format_location(loc) == "pages[0].sections[0].dataSource.cachePolicy.staleTimeMs"


class TestDescribePolicy:
    def test_descriptions(self):
        assert describe_policy(StaticPolicy()) == "Static content (never refetch)"
        assert describe_policy(OnLoadPolicy()) == "Fetch on load, fresh for the session"
        assert describe_policy(PollPolicy(interval_ms=30000)) == "Auto-refresh every 30000ms"

    def test_explicit_description_wins(self):
        assert describe_policy(StaticPolicy(description="Hero content")) == "Hero content"

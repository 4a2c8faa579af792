"""
Tests for the Runtime Context layer.

Tests:
- RuntimeContextResolver snapshot assembly and failure isolation
- Snapshot equality / fingerprint stability
- $$NAMESPACE.FIELD placeholder resolution
- Context merge precedence
"""

from unittest.mock import MagicMock

from blockwork.context import (
    GeolocationContext,
    RuntimeContext,
    RuntimeContextResolver,
    StaticContextSource,
    UserContext,
    is_context_variable,
    merge_context,
    parse_context_path,
    resolve_params,
)

USER = UserContext(id="u-42", email="ana@example.com", is_verified=True)
LOCATION = GeolocationContext(lat=52.37, lon=4.89, accuracy=12.0)


# =============================================================================
# Resolver
# =============================================================================


class TestRuntimeContextResolver:
    """Tests for RuntimeContextResolver.resolve()."""

    def test_assembles_all_sources(self):
        source = StaticContextSource(user=USER, location=LOCATION, filters={"category": "sports"})
        resolver = RuntimeContextResolver(user_source=source, location_source=source, filter_source=source)

        context = resolver.resolve()

        assert context.user == USER
        assert context.geolocation == LOCATION
        assert dict(context.filters) == {"category": "sports"}

    def test_missing_sources_yield_none(self):
        context = RuntimeContextResolver().resolve()
        assert context == RuntimeContext.empty()
        assert context.as_params() == {"USER": None, "GEOLOCATION": None, "FILTER": None}

    def test_failing_source_only_nulls_its_slot(self):
        broken = MagicMock()
        broken.last_known_location.side_effect = PermissionError("location denied")
        source = StaticContextSource(user=USER)
        resolver = RuntimeContextResolver(user_source=source, location_source=broken)

        context = resolver.resolve()

        assert context.user == USER
        assert context.geolocation is None

    def test_idempotent(self):
        source = StaticContextSource(user=USER, filters={"radius": 5})
        resolver = RuntimeContextResolver(user_source=source, filter_source=source)

        first = resolver.resolve()
        second = resolver.resolve()

        assert first == second
        assert hash(first) == hash(second)
        assert first.fingerprint() == second.fingerprint()

    def test_snapshot_does_not_follow_source(self):
        source = StaticContextSource(filters={"radius": 5})
        resolver = RuntimeContextResolver(filter_source=source)
        context = resolver.resolve()

        source.set_filters({"radius": 10})

        assert context.filters["radius"] == 5
        assert resolver.resolve().filters["radius"] == 10

    def test_as_params_namespaces(self):
        context = RuntimeContext(user=USER, geolocation=LOCATION)
        params = context.as_params()
        assert params["USER"] == {
            "ID": "u-42",
            "EMAIL": "ana@example.com",
            "IS_VERIFIED": True,
            "IS_2FA_ENABLED": False,
        }
        assert params["GEOLOCATION"] == {"LAT": 52.37, "LON": 4.89, "ACCURACY": 12.0}
        assert context.namespace("FILTER") is None


# =============================================================================
# Placeholders
# =============================================================================


class TestContextPlaceholders:
    """Tests for $$NAMESPACE.FIELD resolution."""

    def test_is_context_variable(self):
        assert is_context_variable("$$USER.ID")
        assert not is_context_variable("USER.ID")
        assert not is_context_variable(42)

    def test_parse_context_path(self):
        assert parse_context_path("$$GEOLOCATION.LAT") == ("GEOLOCATION", "LAT")
        assert parse_context_path("$$USER") is None
        assert parse_context_path("$$USER.ID.EXTRA") is None
        assert parse_context_path("plain") is None

    def test_resolves_from_snapshot(self):
        context = RuntimeContext(user=USER, geolocation=LOCATION)
        resolved = resolve_params(
            {"exclude_user_id": "$$USER.ID", "lat": "$$GEOLOCATION.LAT", "limit": 10},
            context,
        )
        assert resolved.params == {"exclude_user_id": "u-42", "lat": 52.37, "limit": 10}
        assert resolved.query_enabled is True
        assert resolved.missing_context == ()

    def test_missing_value_disables_query(self):
        resolved = resolve_params({"user_id": "$$USER.ID", "limit": 10}, RuntimeContext.empty())
        assert resolved.params == {"limit": 10}
        assert resolved.query_enabled is False
        assert resolved.missing_context == ("$$USER.ID",)

    def test_malformed_path_stays_literal(self):
        resolved = resolve_params({"tag": "$$nonsense"}, RuntimeContext.empty())
        assert resolved.params == {"tag": "$$nonsense"}
        assert resolved.query_enabled is True


class TestMergeContext:
    def test_context_wins_on_collision(self):
        context = RuntimeContext(user=USER)
        merged = merge_context({"USER": "static-fallback", "limit": 5}, context)
        assert merged["USER"]["ID"] == "u-42"
        assert merged["limit"] == 5
        assert merged["GEOLOCATION"] is None

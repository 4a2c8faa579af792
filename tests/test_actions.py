"""
Tests for action token parsing, routing and dispatch.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from blockwork.query import TaskScope
from blockwork.topbar import ActionContext, ActionDispatcher, ActionRouter, is_no_action, parse_action

CONTEXT = ActionContext(source_id="bell")


class TestParseAction:
    def test_scheme_and_target(self):
        parsed = parse_action("navigate://notifications")
        assert parsed.scheme == "navigate"
        assert parsed.target == "notifications"
        assert parsed.raw == "navigate://notifications"
        assert parsed.is_known

    def test_nested_target(self):
        assert parse_action("api://activities/42/join").target == "activities/42/join"

    @pytest.mark.parametrize("token", ["none", "", "  ", None])
    def test_no_action(self, token):
        assert is_no_action(token)
        assert parse_action(token) is None

    def test_token_without_scheme(self):
        parsed = parse_action("logout")
        assert parsed.scheme == ""
        assert parsed.target == "logout"
        assert not parsed.is_known

    def test_unknown_scheme(self):
        assert not parse_action("teleport://moon").is_known


class TestActionContext:
    def test_to_dict(self):
        assert CONTEXT.to_dict() == {"sourceId": "bell"}
        assert ActionContext("share", "menu").to_dict() == {"sourceId": "share", "parentId": "menu"}


class TestActionRouter:
    """Tests for scheme-based routing."""

    def test_routes_target_and_context(self):
        navigate = MagicMock(return_value="pushed")
        router = ActionRouter({"navigate": navigate})

        assert router("navigate://profile", CONTEXT) == "pushed"
        navigate.assert_called_once_with("profile", CONTEXT)

    def test_unknown_scheme_is_logged(self, caplog):
        router = ActionRouter().on("navigate", MagicMock())

        assert router("teleport://moon", CONTEXT) is None
        assert "Unknown action type: teleport" in caplog.text

    def test_non_standard_scheme_warns(self, caplog):
        router = ActionRouter().on("teleport", MagicMock())
        assert router.schemes == ["teleport"]
        assert "non-standard scheme 'teleport'" in caplog.text

    def test_none_is_ignored(self):
        navigate = MagicMock()
        assert ActionRouter({"navigate": navigate})("none", CONTEXT) is None
        navigate.assert_not_called()


class TestActionDispatcher:
    """Tests for ActionDispatcher."""

    def test_sync_handler(self):
        handler = MagicMock(return_value=None)
        assert ActionDispatcher(handler).dispatch("share://activity", CONTEXT) is True
        handler.assert_called_once_with("share://activity", CONTEXT)

    def test_none_not_dispatched(self):
        handler = MagicMock()
        assert ActionDispatcher(handler).dispatch("none", CONTEXT) is False
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_coroutine_scheduled_not_awaited(self):
        done = asyncio.Event()

        async def handler(action, context):
            done.set()

        dispatcher = ActionDispatcher(handler)
        assert dispatcher.dispatch("api://refresh", CONTEXT) is True
        assert not done.is_set()

        await asyncio.wait_for(done.wait(), timeout=1)

    def test_coroutine_outside_event_loop_is_dropped(self, caplog):
        async def navigate():
            pass

        coro = navigate()
        handler = MagicMock(return_value=coro)

        assert ActionDispatcher(handler).dispatch("navigate://profile", CONTEXT) is True

        handler.assert_called_once_with("navigate://profile", CONTEXT)
        assert coro.cr_frame is None
        assert "No running event loop" in caplog.text

    @pytest.mark.asyncio
    async def test_scoped_coroutine_cancelled_with_scope(self, task_scope_guard):
        started = asyncio.Event()

        async def handler(action, context):
            started.set()
            await asyncio.sleep(10)

        scope = TaskScope("test:actions")
        dispatcher = ActionDispatcher(handler, scope=scope)
        dispatcher.dispatch("api://slow", CONTEXT)
        await asyncio.wait_for(started.wait(), timeout=1)

        task, = scope.active
        await scope.close()
        assert task.cancelled()

"""Tests for tool-call dispatch."""

from __future__ import annotations

import json

import pytest

from context_engine.llm.types import ToolCall
from context_engine.orchestrator.dispatch import ToolCallRouter
from context_engine.tools.base import ToolContext, ToolScope
from context_engine.tools.registry import ToolRegistry
from context_engine.types import ErrorCode, ToolResult
from tests.mock_tools import (
    EchoTool,
    FailingTool,
    MainOnlyTool,
    PlainValueTool,
    SlowTool,
    StopTool,
)


def _call(name: str, args: dict | str | None = None, call_id: str = "c1") -> ToolCall:
    raw = args if isinstance(args, str) else json.dumps(args or {})
    return ToolCall(id=call_id, name=name, arguments_json=raw)


@pytest.fixture
def slow():
    return SlowTool(delay=0.1)


@pytest.fixture
def registry(slow):
    reg = ToolRegistry()
    for tool in (EchoTool(), FailingTool(), MainOnlyTool(), PlainValueTool(), StopTool(), slow):
        reg.register(tool)
    return reg


@pytest.fixture
def router(registry):
    return ToolCallRouter(registry, debounce=0.01)


@pytest.fixture
def ctx():
    return ToolContext(scope=ToolScope.MAIN)


class TestSingleCall:
    async def test_success(self, router, ctx):
        [result] = await router.dispatch([_call("echo", {"message": "hi"})], ctx)
        assert result.success
        assert result.data == {"message": "hi"}

    async def test_empty_batch(self, router, ctx):
        assert await router.dispatch([], ctx) == []

    async def test_single_call_skips_batcher(self, router, ctx):
        await router.dispatch([_call("echo", {"message": "hi"})], ctx)
        assert router.batcher.batches_formed == 0

    async def test_unknown_tool(self, router, ctx):
        [result] = await router.dispatch([_call("nope")], ctx)
        assert not result.success
        assert result.error_code == ErrorCode.UNKNOWN_TOOL
        assert "nope" in result.error

    async def test_permission_denied_for_subagent(self, router):
        ctx = ToolContext(scope=ToolScope.SUBAGENT, agent_id="github")
        [result] = await router.dispatch([_call("main_only")], ctx)
        assert result.error_code == ErrorCode.PERMISSION_DENIED
        assert "github" in result.error

    async def test_tool_outside_allow_list_denied(self, router):
        ctx = ToolContext(scope=ToolScope.SUBAGENT, allowed_tools={"slow"})
        [result] = await router.dispatch([_call("echo", {"message": "x"})], ctx)
        assert result.error_code == ErrorCode.PERMISSION_DENIED
        assert "subagent" in result.error

    async def test_invalid_json(self, router, ctx):
        [result] = await router.dispatch([_call("echo", '{"message": ')], ctx)
        assert result.error_code == ErrorCode.INVALID_ARGUMENTS

    async def test_non_object_arguments(self, router, ctx):
        [result] = await router.dispatch([_call("echo", "[1, 2]")], ctx)
        assert result.error_code == ErrorCode.INVALID_ARGUMENTS

    async def test_schema_violation(self, router, ctx):
        [result] = await router.dispatch([_call("echo", {})], ctx)
        assert result.error_code == ErrorCode.VALIDATION_ERROR

    async def test_handler_exception_becomes_error_result(self, router, ctx):
        [result] = await router.dispatch([_call("fail")], ctx)
        assert not result.success
        assert result.error_code == ErrorCode.TOOL_EXCEPTION
        assert "tool exploded" in result.error

    async def test_dict_result_is_coerced(self, router, ctx):
        [result] = await router.dispatch([_call("stop")], ctx)
        assert result.success
        assert result.stop_loop

    def test_dict_exit_flags_are_coerced(self):
        camel = ToolResult.coerce({"success": True, "stopLoop": True, "exitProcess": True})
        assert camel.stop_loop
        assert camel.exit_process
        assert camel.data == {}

        snake = ToolResult.coerce({"exit_process": True, "note": "bye"})
        assert snake.exit_process
        assert not snake.stop_loop
        assert snake.data == {"note": "bye"}

    async def test_plain_value_is_wrapped(self, router, ctx):
        [result] = await router.dispatch([_call("plain")], ctx)
        assert result.success
        assert result.data == {"output": "just text"}


class TestMultipleCalls:
    async def test_results_in_call_order(self, router, ctx):
        calls = [
            _call("slow", {"label": "a"}, "c1"),
            _call("echo", {"message": "b"}, "c2"),
            _call("nope", {}, "c3"),
        ]
        results = await router.dispatch(calls, ctx)
        assert len(results) == 3
        assert results[0].data == {"label": "a"}
        assert results[1].data == {"message": "b"}
        assert results[2].error_code == ErrorCode.UNKNOWN_TOOL
        assert router.batcher.batches_formed == 1

    async def test_calls_run_concurrently(self, router, ctx, slow):
        calls = [_call("slow", {"label": str(i)}, f"c{i}") for i in range(3)]
        results = await router.dispatch(calls, ctx)
        assert all(r.success for r in results)
        # Every call started before the first one finished.
        assert max(slow.started) < min(slow.finished)

    async def test_one_failure_does_not_affect_siblings(self, router, ctx):
        results = await router.dispatch(
            [_call("fail", {}, "c1"), _call("echo", {"message": "ok"}, "c2")], ctx
        )
        assert not results[0].success
        assert results[1].success


class TestObserver:
    async def test_observer_sees_every_result(self, registry, ctx):
        seen = []
        router = ToolCallRouter(
            registry, debounce=0.01, observer=lambda call, result: seen.append((call.id, result.success))
        )
        await router.dispatch(
            [_call("echo", {"message": "x"}, "c1"), _call("fail", {}, "c2")], ctx
        )
        assert sorted(seen) == [("c1", True), ("c2", False)]

    async def test_observer_errors_are_contained(self, registry, ctx):
        def broken(call, result):
            raise RuntimeError("observer broke")

        router = ToolCallRouter(registry, observer=broken)
        [result] = await router.dispatch([_call("echo", {"message": "x"})], ctx)
        assert result.success

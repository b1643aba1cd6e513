"""
Tool-call dispatch.

Runs a turn's tool calls and returns exactly one ``ToolResult`` per call, in
call order.  A single call executes directly; several calls are registered
with a ``CallBatcher`` whose coordinator runs every handler concurrently.

Every failure inside a call is turned into an error result; nothing raised by
a tool handler escapes ``dispatch``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Callable

from context_engine.llm.types import ToolCall
from context_engine.orchestrator.batcher import CallBatcher
from context_engine.tools.base import ToolContext, ToolScope
from context_engine.tools.registry import ToolRegistry
from context_engine.tools.validation import ToolValidator
from context_engine.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)

ResultObserver = Callable[[ToolCall, ToolResult], None]


class ToolCallRouter:
    """
    Parameters
    ----------
    registry : ToolRegistry
        Where tool names are looked up.
    debounce : float
        Batch window in seconds for multi-call turns.
    observer : callable
        Optional ``observer(call, result)`` invoked for every result.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        debounce: float = 0.05,
        observer: ResultObserver | None = None,
    ) -> None:
        self.registry = registry
        self.observer = observer
        self.batcher = CallBatcher(self._run_batch, debounce=debounce)

    async def dispatch(
        self, tool_calls: list[ToolCall], context: ToolContext
    ) -> list[ToolResult]:
        if not tool_calls:
            return []
        if len(tool_calls) == 1:
            return [await self.execute(tool_calls[0], context)]

        return list(
            await asyncio.gather(
                *(self.batcher.register((call, context)) for call in tool_calls)
            )
        )

    async def _run_batch(
        self, items: list[tuple[ToolCall, ToolContext]]
    ) -> list[ToolResult]:
        return list(
            await asyncio.gather(*(self.execute(call, ctx) for call, ctx in items))
        )

    async def execute(self, call: ToolCall, context: ToolContext) -> ToolResult:
        """
        Execute a single tool call.

        Steps:
        1. Registry lookup
        2. Permission check for the calling context
        3. Parse arguments
        4. Validate arguments against the tool schema
        5. Run the handler
        """
        result = await self._execute(call, context)
        if self.observer is not None:
            try:
                self.observer(call, result)
            except Exception:
                logger.exception("Result observer failed for %s", call.name)
        return result

    async def _execute(self, call: ToolCall, context: ToolContext) -> ToolResult:
        # 1. Registry lookup
        tool = self.registry.get(call.name)
        if tool is None:
            return ToolResult.failure(
                f"Unknown tool: {call.name}", ErrorCode.UNKNOWN_TOOL
            )

        # 2. Permission
        if not self.registry.is_permitted(tool, context):
            where = context.agent_id or ToolScope(context.scope).value
            return ToolResult.failure(
                f"Tool {call.name} is not available to {where}",
                ErrorCode.PERMISSION_DENIED,
            )

        # 3. Arguments
        try:
            params = json.loads(call.arguments_json)
        except ValueError as exc:
            return ToolResult.failure(
                f"Arguments are not valid JSON: {exc}", ErrorCode.INVALID_ARGUMENTS
            )
        if not isinstance(params, dict):
            return ToolResult.failure(
                "Arguments must be a JSON object", ErrorCode.INVALID_ARGUMENTS
            )

        # 4. Validate
        valid, error_msg = ToolValidator.validate(tool, params)
        if not valid:
            return ToolResult.failure(
                f"Validation error: {error_msg}", ErrorCode.VALIDATION_ERROR
            )

        # 5. Execute
        start = time.monotonic()
        try:
            raw = await tool.execute(params, context)
        except Exception as e:
            logger.warning("Tool %s raised: %s", call.name, e, exc_info=True)
            return ToolResult.failure(str(e) or type(e).__name__, ErrorCode.TOOL_EXCEPTION)

        result = ToolResult.coerce(raw)
        logger.debug(
            "Tool %s finished in %dms success=%s",
            call.name,
            int((time.monotonic() - start) * 1000),
            result.success,
        )
        return result

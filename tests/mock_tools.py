"""Mock tool implementations for testing."""

import asyncio

from context_engine.tools.base import Tool, ToolContext, ToolScope
from context_engine.types import ToolResult


class EchoTool(Tool):
    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echoes the input message back."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to echo"},
            },
            "required": ["message"],
        }

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        return ToolResult.ok(message=params.get("message", ""))


class SlowTool(Tool):
    """Sleeps, then reports when it started and finished."""

    def __init__(self, delay: float = 0.1):
        self.delay = delay
        self.started: list[float] = []
        self.finished: list[float] = []

    @property
    def name(self) -> str:
        return "slow"

    @property
    def description(self) -> str:
        return "Waits for a while before answering."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {"label": {"type": "string"}},
            "required": ["label"],
        }

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        loop = asyncio.get_running_loop()
        self.started.append(loop.time())
        await asyncio.sleep(self.delay)
        self.finished.append(loop.time())
        return ToolResult.ok(label=params["label"])


class FailingTool(Tool):
    @property
    def name(self) -> str:
        return "fail"

    @property
    def description(self) -> str:
        return "Always raises."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        raise RuntimeError("tool exploded")


class StopTool(Tool):
    """Returns a result asking the loop to stop."""

    @property
    def name(self) -> str:
        return "stop"

    @property
    def description(self) -> str:
        return "Stops the conversation loop."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, params: dict, context: ToolContext) -> dict:
        return {"success": True, "stopLoop": True}


class MainOnlyTool(Tool):
    @property
    def name(self) -> str:
        return "main_only"

    @property
    def description(self) -> str:
        return "Only the main conversation may call this."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    @property
    def scope(self) -> ToolScope:
        return ToolScope.MAIN

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        return ToolResult.ok()


class PlainValueTool(Tool):
    """Returns a bare value instead of a ToolResult."""

    @property
    def name(self) -> str:
        return "plain"

    @property
    def description(self) -> str:
        return "Returns a plain string."

    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    async def execute(self, params: dict, context: ToolContext):
        return "just text"

"""Session control tools for the main conversation."""

from __future__ import annotations

from typing import Callable

from context_engine.tools.base import Tool, ToolContext, ToolScope
from context_engine.types import ToolResult


class _ControlTool(Tool):
    @property
    def parameters(self) -> dict:
        return {"type": "object", "properties": {}}

    @property
    def scope(self) -> ToolScope:
        return ToolScope.MAIN


class ExitTool(_ControlTool):
    @property
    def name(self) -> str:
        return "exit"

    @property
    def description(self) -> str:
        return "Exit the chat session. Use when the user wants to quit."

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        result = ToolResult.ok(action="exit", message="Exiting context-engine session...")
        result.stop_loop = True
        result.exit_process = True
        return result


class HelpTool(_ControlTool):
    def __init__(self, show_help: Callable[[], None]):
        self.show_help = show_help

    @property
    def name(self) -> str:
        return "help"

    @property
    def description(self) -> str:
        return "Show context-engine version and usage tips when the user asks for help."

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        self.show_help()
        result = ToolResult.ok(action="help")
        result.stop_loop = True
        return result


class ClearTool(_ControlTool):
    def __init__(self, on_clear: Callable[[], None]):
        self.on_clear = on_clear

    @property
    def name(self) -> str:
        return "clear"

    @property
    def description(self) -> str:
        return "Clear the conversation history when the user wants to start fresh."

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        self.on_clear()
        result = ToolResult.ok(action="clear", message="Conversation cleared")
        result.stop_loop = True
        return result

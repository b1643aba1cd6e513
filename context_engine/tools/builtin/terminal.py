"""Shell command tool."""

from __future__ import annotations

import logging
from typing import Iterable

from context_engine.backends.batched import BatchedCommandRunner
from context_engine.config import DEFAULT_BLOCKED_COMMANDS
from context_engine.tools.base import Tool, ToolContext
from context_engine.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)


class TerminalTool(Tool):
    def __init__(
        self,
        runner: BatchedCommandRunner,
        blocked_commands: Iterable[str] | None = None,
    ):
        self.runner = runner
        patterns = DEFAULT_BLOCKED_COMMANDS if blocked_commands is None else blocked_commands
        self.blocked = [p.lower() for p in patterns if p.strip()]

    @property
    def name(self) -> str:
        return "terminal"

    @property
    def description(self) -> str:
        return "Execute a terminal command in the project directory and return its output."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The command to execute",
                },
            },
            "required": ["command"],
        }

    def is_blocked(self, command: str) -> bool:
        lowered = command.strip().lower()
        return any(pattern in lowered for pattern in self.blocked)

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        command = params["command"]
        if self.is_blocked(command):
            logger.info("Blocked command: %s", command)
            return ToolResult.failure(
                "Operation not permitted", ErrorCode.BLOCKED_COMMAND, command=command
            )

        result = await self.runner.execute(command, cwd=context.cwd)
        if result.success:
            return ToolResult.ok(command=command, output=result.output)
        return ToolResult.failure(
            result.error or "Command failed",
            command=command,
            output=result.output,
            exit_code=result.exit_code,
        )

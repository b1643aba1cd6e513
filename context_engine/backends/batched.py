"""
Batched command execution.

Terminal commands issued by the same turn (or by several sub-agents at once)
are gathered by a ``CallBatcher`` and run concurrently.  Each command appears
on the task board while it runs so that parallel output never interleaves.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from context_engine.backends.base import CommandResult
from context_engine.backends.local import CommandRunner
from context_engine.orchestrator.batcher import CallBatcher
from context_engine.ui.task_board import TaskBoard

logger = logging.getLogger(__name__)


class BatchedCommandRunner:
    def __init__(
        self,
        runner: CommandRunner | None = None,
        task_board: TaskBoard | None = None,
        *,
        debounce: float = 0.05,
    ) -> None:
        self.runner = runner or CommandRunner()
        self.task_board = task_board
        self.batcher = CallBatcher(self._run_batch, debounce=debounce)

    async def execute(self, command: str, cwd: str | Path | None = None) -> CommandResult:
        return await self.batcher.register((command, cwd))

    async def _run_batch(
        self, items: list[tuple[str, str | Path | None]]
    ) -> list[CommandResult]:
        if len(items) > 1:
            logger.info("Running %d commands concurrently", len(items))
        return list(
            await asyncio.gather(*(self._run_one(cmd, cwd) for cmd, cwd in items))
        )

    async def _run_one(self, command: str, cwd: str | Path | None) -> CommandResult:
        task_id = None
        if self.task_board is not None:
            task_id = self.task_board.create(f"Running: {command}", "Executing...")

        try:
            result = await self.runner.run(command, cwd=cwd)
        except Exception as exc:
            logger.warning("Command %r raised: %s", command, exc)
            result = CommandResult(command=command, success=False, error=str(exc))

        if task_id is not None:
            if result.success:
                self.task_board.complete(task_id, "Executed")
            else:
                self.task_board.fail(task_id, f"Failed: {result.error or 'error'}"[:120])
        return result

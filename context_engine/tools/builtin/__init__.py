"""Built-in tools and their registration."""

from __future__ import annotations

from typing import Callable, Iterable

from context_engine.backends.batched import BatchedCommandRunner
from context_engine.tools.builtin.control import ClearTool, ExitTool, HelpTool
from context_engine.tools.builtin.files import (
    CreateFileTool,
    DeleteFileTool,
    EditFileTool,
    GetFileContentTool,
    ListFilesTool,
    ReadGeneratedFileTool,
    ReadLinesTool,
)
from context_engine.tools.builtin.status import StatusUpdateTool
from context_engine.tools.builtin.terminal import TerminalTool
from context_engine.tools.registry import ToolRegistry
from context_engine.ui.task_board import TaskBoard


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    task_board: TaskBoard,
    runner: BatchedCommandRunner,
    blocked_commands: Iterable[str] | None = None,
    show_help: Callable[[], None] | None = None,
    on_clear: Callable[[], None] | None = None,
    disabled: Iterable[str] = (),
) -> list[str]:
    """Register the built-in catalog, skipping names in *disabled*."""
    tools = [
        GetFileContentTool(),
        ReadLinesTool(),
        CreateFileTool(),
        EditFileTool(),
        DeleteFileTool(),
        ListFilesTool(),
        ReadGeneratedFileTool(),
        TerminalTool(runner, blocked_commands),
        StatusUpdateTool(task_board),
        ExitTool(),
    ]
    if show_help is not None:
        tools.append(HelpTool(show_help))
    if on_clear is not None:
        tools.append(ClearTool(on_clear))

    skip = set(disabled)
    registered: list[str] = []
    for tool in tools:
        if tool.name in skip:
            continue
        registry.register(tool)
        registered.append(tool.name)
    return registered


__all__ = [
    "ClearTool",
    "CreateFileTool",
    "DeleteFileTool",
    "EditFileTool",
    "ExitTool",
    "GetFileContentTool",
    "HelpTool",
    "ListFilesTool",
    "ReadGeneratedFileTool",
    "ReadLinesTool",
    "StatusUpdateTool",
    "TerminalTool",
    "register_builtin_tools",
]

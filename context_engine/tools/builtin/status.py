"""Task board status tool."""

from __future__ import annotations

from context_engine.tools.base import Tool, ToolContext, ToolScope
from context_engine.types import ErrorCode, ToolResult
from context_engine.ui.task_board import TaskBoard


class StatusUpdateTool(Tool):
    def __init__(self, task_board: TaskBoard):
        self.task_board = task_board

    @property
    def name(self) -> str:
        return "statusUpdate"

    @property
    def description(self) -> str:
        return (
            "Create or update a task with a live status line. Create a task "
            "before long work, update it while working and complete it after."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["create", "update", "complete", "fail"],
                },
                "taskId": {
                    "type": "string",
                    "description": "Id returned by create; sub-agents may omit it",
                },
                "taskName": {
                    "type": "string",
                    "description": "Name of the task, required for create",
                },
                "status": {"type": "string", "description": "Status line"},
                "message": {
                    "type": "string",
                    "description": "Final message for complete or fail",
                },
            },
            "required": ["action"],
        }

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        action = params["action"]
        board = self.task_board

        if action == "create":
            name = params.get("taskName")
            if not name:
                return ToolResult.failure(
                    "taskName is required for create action", ErrorCode.INVALID_ARGUMENTS
                )
            task_id = board.create(name, params.get("status") or "Pending")
            return ToolResult.ok(taskId=task_id, message=f'Task "{name}" created with ID {task_id}')

        task_id = params.get("taskId")
        if not task_id and ToolScope(context.scope) is ToolScope.SUBAGENT:
            task_id = context.task_id
        if not task_id:
            return ToolResult.failure(
                f"taskId is required for {action} action", ErrorCode.INVALID_ARGUMENTS
            )
        if board.get(task_id) is None:
            return ToolResult.failure(f"Unknown task: {task_id}", ErrorCode.NOT_FOUND)

        if action == "update":
            status = params.get("status")
            if not status:
                return ToolResult.failure(
                    "status is required for update action", ErrorCode.INVALID_ARGUMENTS
                )
            board.update(task_id, status)
            return ToolResult.ok(message=f"Task {task_id} updated")

        if action == "complete":
            board.complete(task_id, params.get("message"))
            return ToolResult.ok(message=f"Task {task_id} completed")

        board.fail(task_id, params.get("message") or "Failed")
        return ToolResult.failure(
            params.get("message") or "Task failed",
            message=f"Task {task_id} marked as failed",
        )

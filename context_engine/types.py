import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolResult:
    success: bool
    data: dict = field(default_factory=dict)
    error: str | None = None
    error_code: str | None = None
    stop_loop: bool = False
    exit_process: bool = False

    @classmethod
    def ok(cls, **data: Any) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None, **data: Any) -> "ToolResult":
        return cls(success=False, data=data, error=error, error_code=error_code)

    @classmethod
    def coerce(cls, value: Any) -> "ToolResult":
        """Normalize a handler return value into a ``ToolResult``."""
        if isinstance(value, ToolResult):
            return value
        if isinstance(value, dict):
            data = dict(value)
            success = bool(data.pop("success", True))
            error = data.pop("error", None)
            camel_stop = data.pop("stopLoop", False)
            stop = bool(data.pop("stop_loop", False) or camel_stop)
            camel_exit = data.pop("exitProcess", False)
            exit_ = bool(data.pop("exit_process", False) or camel_exit)
            return cls(
                success=success,
                data=data,
                error=str(error) if error is not None else None,
                stop_loop=stop,
                exit_process=exit_,
            )
        return cls(success=True, data={"output": value})

    def to_payload(self) -> dict:
        payload: dict = {"success": self.success}
        payload.update(self.data)
        if self.error is not None:
            payload["error"] = self.error
        if self.error_code is not None:
            payload["error_code"] = self.error_code
        return payload

    def to_content(self) -> str:
        return json.dumps(self.to_payload(), default=str)


class ErrorCode:
    UNKNOWN_TOOL = "unknown_tool"
    PERMISSION_DENIED = "permission_denied"
    INVALID_ARGUMENTS = "invalid_arguments"
    VALIDATION_ERROR = "validation_error"
    TOOL_EXCEPTION = "tool_exception"
    BLOCKED_COMMAND = "blocked_command"
    NOT_FOUND = "not_found"

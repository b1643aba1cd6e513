from enum import Enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from context_engine.types import ToolResult


class ToolScope(str, Enum):
    MAIN = "main"
    SUBAGENT = "subagent"
    SHARED = "shared"


@dataclass
class ToolContext:
    """What a handler knows about the conversation that called it."""

    scope: ToolScope = ToolScope.MAIN
    agent_id: str | None = None
    cwd: Path = field(default_factory=Path.cwd)
    allowed_paths: list[str] | None = None
    allowed_tools: set[str] | None = None
    task_id: str | None = None
    extra: dict = field(default_factory=dict)

    def child(self, **changes) -> "ToolContext":
        values = {
            "scope": self.scope,
            "agent_id": self.agent_id,
            "cwd": self.cwd,
            "allowed_paths": self.allowed_paths,
            "allowed_tools": self.allowed_tools,
            "task_id": self.task_id,
            "extra": dict(self.extra),
        }
        values.update(changes)
        return ToolContext(**values)


def normalize_schema(schema: dict) -> dict:
    s = dict(schema or {})
    s.setdefault("type", "object")
    s.setdefault("properties", {})
    return s


class Tool(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> dict: ...

    @property
    def scope(self) -> ToolScope:
        return ToolScope.SHARED

    @property
    def agent_ids(self) -> frozenset[str] | None:
        """Agent ids allowed to see this tool; ``None`` means any."""
        return None

    def available_in(self, scope: ToolScope, agent_id: str | None = None) -> bool:
        if self.scope is not ToolScope.SHARED and self.scope is not ToolScope(scope):
            return False
        if self.agent_ids is not None and agent_id not in self.agent_ids:
            return False
        return True

    @abstractmethod
    async def execute(self, params: dict, context: ToolContext) -> ToolResult: ...

    def to_openai_schema(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": normalize_schema(self.parameters),
            },
        }

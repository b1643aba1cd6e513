"""Core types for the LLM subsystem."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Union


class Role:
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """
    A complete tool invocation reassembled from a model turn.

    ``arguments_json`` is kept verbatim so it can be replayed to the
    provider exactly as the model produced it.
    """

    id: str
    name: str
    arguments_json: str

    @property
    def arguments(self) -> dict:
        value = json.loads(self.arguments_json)
        return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class Message:
    """A single message in a conversation.  Never mutated once appended."""

    role: str
    content: str | None
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(
        cls, content: str | None, tool_calls: list[ToolCall] | None = None
    ) -> Message:
        # Providers reject an empty string next to tool calls; it must be null.
        if tool_calls and not content:
            content = None
        return cls(
            role=Role.ASSISTANT,
            content=content,
            tool_calls=tuple(tool_calls or ()),
        )

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> Message:
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContentDelta:
    """A fragment of assistant text."""

    text: str


@dataclass(frozen=True)
class ToolCallDelta:
    """
    An incremental fragment of one tool call.

    *index* is the call's position within the current turn and is stable
    across all fragments of that call.  Any of the other fields may be empty.
    """

    index: int
    id: str | None = None
    name: str = ""
    arguments: str = ""


@dataclass(frozen=True)
class EndOfTurn:
    """Marks the end of a model turn."""

    finish_reason: str | None = None


StreamEvent = Union[ContentDelta, ToolCallDelta, EndOfTurn]


@dataclass
class TurnResult:
    """
    The outcome of one streamed model turn.

    Produced by ``StreamReassembler.finalize``.
    """

    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    dropped: list[int] = field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

"""LLM subsystem -- providers, routing, and stream reassembly."""

from context_engine.llm.errors import TransportError
from context_engine.llm.types import (
    ContentDelta,
    EndOfTurn,
    Message,
    StreamEvent,
    ToolCall,
    ToolCallDelta,
    TurnResult,
)
from context_engine.llm.reassembler import StreamReassembler
from context_engine.llm.router import LLMRouter

__all__ = [
    "ContentDelta",
    "EndOfTurn",
    "LLMRouter",
    "Message",
    "StreamEvent",
    "StreamReassembler",
    "ToolCall",
    "ToolCallDelta",
    "TransportError",
    "TurnResult",
]

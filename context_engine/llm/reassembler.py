"""
Reassembles one model turn from its stream events.

Design goals:
  - Forward every ``ContentDelta`` to the optional ``on_content`` callback the
    moment it arrives, in arrival order, even when the turn ends up calling
    tools (models often narrate before a call).
  - Accumulate ``ToolCallDelta`` fragments keyed by ``index``.  The id is set
    by the first non-empty fragment; name and arguments are concatenated.
  - On ``finalize()`` emit only calls with an id, a name and arguments that
    parse as JSON.  Anything else is *dropped* and its index recorded -- a
    malformed call would poison the next request's history.
"""

from __future__ import annotations

import json
import logging
from typing import Callable

from context_engine.llm.types import (
    ContentDelta,
    EndOfTurn,
    StreamEvent,
    ToolCall,
    ToolCallDelta,
    TurnResult,
)

logger = logging.getLogger(__name__)


class StreamReassembler:
    """Buffers one turn's stream events and emits text plus finished calls."""

    def __init__(self, on_content: Callable[[str], None] | None = None) -> None:
        self._on_content = on_content
        self._parts: list[str] = []
        self._buf: dict[int, dict] = {}
        self._finalized = False
        self.ended = False
        self.finish_reason: str | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def consume(self, event: StreamEvent) -> None:
        """Feed a single stream event into the reassembler."""
        if self._finalized:
            raise RuntimeError("StreamReassembler already finalized")

        if isinstance(event, ContentDelta):
            if not event.text:
                return
            self._parts.append(event.text)
            if self._on_content is not None:
                self._on_content(event.text)
        elif isinstance(event, ToolCallDelta):
            self._merge(event)
        elif isinstance(event, EndOfTurn):
            self.ended = True
            self.finish_reason = event.finish_reason
        else:
            raise TypeError(f"Unsupported stream event: {event!r}")

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def finalize(self) -> TurnResult:
        """
        Close the turn and return its text and complete tool calls.

        Calls are ordered by their stream index.  Incomplete entries (for
        example from a truncated stream) are left out.
        """
        self._finalized = True
        calls: list[ToolCall] = []
        dropped: list[int] = []

        for idx in sorted(self._buf):
            call = self._complete(idx, self._buf[idx])
            if call is None:
                dropped.append(idx)
            else:
                calls.append(call)

        if dropped:
            logger.warning(
                "Dropped %d incomplete tool call(s) at index %s", len(dropped), dropped
            )

        return TurnResult(text=self.text, tool_calls=calls, dropped=dropped)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _merge(self, delta: ToolCallDelta) -> None:
        buf = self._buf.setdefault(delta.index, {"id": "", "name": "", "args": ""})

        if delta.id and not buf["id"]:
            buf["id"] = delta.id

        if delta.name:
            buf["name"] += delta.name

        if delta.arguments:
            buf["args"] += delta.arguments

    @staticmethod
    def _complete(idx: int, buf: dict) -> ToolCall | None:
        name = buf["name"].strip()
        if not (buf["id"] and name and buf["args"]):
            logger.debug("tool_call_incomplete idx=%s buf=%s", idx, buf)
            return None

        try:
            json.loads(buf["args"])
        except ValueError as exc:
            logger.debug("tool_call_json_parse_failed idx=%s err=%s", idx, exc)
            return None

        return ToolCall(id=buf["id"], name=name, arguments_json=buf["args"])

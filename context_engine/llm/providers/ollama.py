"""
Ollama provider.

Streams responses from a local Ollama instance via its ``/api/chat`` endpoint.
Supports tool calling when the Ollama model advertises it.

Dependencies: ``httpx``.
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator

import httpx

from context_engine.llm.errors import TransportError
from context_engine.llm.providers.base import Provider
from context_engine.llm.types import (
    ContentDelta,
    EndOfTurn,
    Message,
    StreamEvent,
    ToolCallDelta,
)

logger = logging.getLogger(__name__)


class OllamaProvider(Provider):
    """
    Provider for a local `Ollama <https://ollama.com>`_ instance.

    Parameters
    ----------
    url:
        Base URL of the Ollama HTTP API (e.g. ``"http://localhost:11434"``).
    model:
        Model tag, e.g. ``"llama3"`` or ``"mistral"``.
    timeout:
        HTTP request timeout in seconds.
    """

    def __init__(
        self,
        url: str = "http://localhost:11434",
        model: str = "llama3",
        timeout: float = 120.0,
    ) -> None:
        self._url = url.rstrip("/")
        self._model = model
        self._timeout = timeout
        self._call_seq = 0

    # ------------------------------------------------------------------
    # Provider interface
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return "ollama"

    @property
    def model(self) -> str:
        return self._model

    async def stream(
        self,
        system_prompt: str,
        messages: list[Message],
        tools: list[dict] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        body = self.build_body(system_prompt, messages, tools)
        async for event in self._stream_request(body):
            yield event

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def build_body(
        self,
        system_prompt: str,
        messages: list[Message],
        tools: list[dict] | None,
    ) -> dict:
        wire_messages: list[dict] = []
        if system_prompt:
            wire_messages.append({"role": "system", "content": system_prompt})

        for msg in messages:
            m: dict = {"role": msg.role, "content": msg.content or ""}

            if msg.tool_calls:
                m["tool_calls"] = [
                    {
                        "function": {
                            "name": tc.name,
                            "arguments": tc.arguments,  # Ollama expects dict, not string
                        },
                    }
                    for tc in msg.tool_calls
                ]

            wire_messages.append(m)

        body: dict = {
            "model": self._model,
            "messages": wire_messages,
            "stream": True,
        }

        if tools:
            body["tools"] = tools

        return body

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def _stream_request(self, body: dict) -> AsyncIterator[StreamEvent]:
        """
        Ollama streams newline-delimited JSON objects from ``/api/chat``.
        Each line is a complete JSON object.
        """
        url = f"{self._url}/api/chat"

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                async with client.stream("POST", url, json=body) as response:
                    if response.status_code >= 400:
                        await response.aread()
                        raise TransportError(
                            f"HTTP {response.status_code} from {url}",
                            status_code=response.status_code,
                            provider=self.name,
                        )

                    buffer = ""
                    next_index = 0
                    async for raw_bytes in response.aiter_bytes():
                        buffer += raw_bytes.decode("utf-8", errors="replace")

                        while "\n" in buffer:
                            line, buffer = buffer.split("\n", 1)
                            line = line.strip()
                            if not line:
                                continue

                            try:
                                data = json.loads(line)
                            except json.JSONDecodeError:
                                logger.warning(
                                    "Ollama: failed to parse line: %s",
                                    line[:200],
                                )
                                continue

                            for event in self.data_to_events(data, next_index):
                                if isinstance(event, ToolCallDelta):
                                    next_index += 1
                                yield event
                                if isinstance(event, EndOfTurn):
                                    return

                    # Process any remaining data in the buffer.
                    remaining = buffer.strip()
                    if remaining:
                        try:
                            data = json.loads(remaining)
                        except json.JSONDecodeError:
                            data = None
                        if data is not None:
                            for event in self.data_to_events(data, next_index):
                                if isinstance(event, ToolCallDelta):
                                    next_index += 1
                                yield event
                                if isinstance(event, EndOfTurn):
                                    return
        except httpx.TransportError as exc:
            raise TransportError(str(exc) or type(exc).__name__, provider=self.name) from exc

        # Safety: always end the turn.
        yield EndOfTurn()

    def data_to_events(self, data: dict, first_index: int = 0) -> list[StreamEvent]:
        """
        Convert a single Ollama JSON object to stream events.

        Tool calls are numbered from *first_index* so calls split across
        several objects of one turn keep distinct indices.
        """
        events: list[StreamEvent] = []

        message = data.get("message") or {}
        content = message.get("content") or ""
        if content:
            events.append(ContentDelta(content))

        # Ollama delivers each tool call whole and without an id.
        for idx, tc in enumerate(message.get("tool_calls") or [], start=first_index):
            func = tc.get("function") or {}
            self._call_seq += 1
            events.append(
                ToolCallDelta(
                    index=idx,
                    id=f"ollama_call_{self._call_seq}",
                    name=func.get("name", ""),
                    arguments=json.dumps(func.get("arguments") or {}),
                )
            )

        if data.get("done", False):
            events.append(EndOfTurn(data.get("done_reason")))
        return events

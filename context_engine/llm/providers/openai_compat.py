"""
OpenAI-compatible chat-completion provider.

Works with any endpoint that speaks the OpenAI ``/v1/chat/completions`` wire
protocol -- OpenAI itself, xAI, vLLM, LM Studio, LocalAI, etc.

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
"""

from __future__ import annotations

import asyncio
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


class OpenAICompatProvider(Provider):
    """
    Stream-capable provider for any OpenAI-API-compatible endpoint.

    Parameters
    ----------
    url:
        Base URL of the API, e.g. ``"https://api.openai.com/v1"`` or
        ``"https://api.x.ai/v1"``.
    model:
        Model identifier sent in the ``model`` field.
    api_key:
        Bearer token.  Pass ``""`` for unauthenticated local endpoints.
    timeout:
        HTTP request timeout in seconds.
    max_retries:
        Number of automatic retries on transient HTTP errors (5xx, 429).
    temperature:
        Sampling temperature.  ``None`` omits the field (reasoning models
        reject it).
    max_output:
        Maximum output tokens.
    """

    def __init__(
        self,
        url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o",
        api_key: str = "",
        timeout: float = 120.0,
        max_retries: int = 2,
        temperature: float | None = 0.3,
        max_output: int = 2000,
        label: str = "openai-compat",
    ) -> None:
        self._url = url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._temperature = temperature
        self._max_output = max_output
        self._label = label

    # ------------------------------------------------------------------
    # Provider interface
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._label

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
        headers = self._build_headers()
        async for event in self._stream_request(body, headers):
            yield event

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

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
            m: dict = {"role": msg.role, "content": msg.content}
            if msg.tool_calls:
                m["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": tc.arguments_json,
                        },
                    }
                    for tc in msg.tool_calls
                ]
            if msg.tool_call_id:
                m["tool_call_id"] = msg.tool_call_id
            wire_messages.append(m)

        body: dict = {
            "model": self._model,
            "messages": wire_messages,
            "stream": True,
            "max_tokens": self._max_output,
        }
        if self._temperature is not None:
            body["temperature"] = self._temperature
        if tools:
            body["tools"] = tools
            body["tool_choice"] = "auto"
        logger.debug(
            "REQUEST: model=%s tools=%d messages=%d",
            self._model,
            len(tools) if tools else 0,
            len(wire_messages),
        )
        return body

    # ------------------------------------------------------------------
    # Streaming request
    # ------------------------------------------------------------------

    async def _stream_request(
        self,
        body: dict,
        headers: dict[str, str],
    ) -> AsyncIterator[StreamEvent]:
        url = f"{self._url}/chat/completions"

        last_error: TransportError | None = None
        started = False
        for attempt in range(1 + self._max_retries):
            if attempt:
                logger.info("Retrying %s (attempt %d): %s", url, attempt + 1, last_error)
                await asyncio.sleep(min(2 ** (attempt - 1), 8))
            try:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    async with client.stream(
                        "POST", url, json=body, headers=headers
                    ) as response:
                        if response.status_code == 429 or response.status_code >= 500:
                            # Retryable -- read body so the connection is released.
                            await response.aread()
                            last_error = TransportError(
                                f"HTTP {response.status_code} from {url}",
                                status_code=response.status_code,
                                provider=self.name,
                            )
                            continue

                        if response.status_code >= 400:
                            detail = (await response.aread()).decode("utf-8", errors="replace")
                            raise TransportError(
                                f"HTTP {response.status_code}: {detail[:300]}",
                                status_code=response.status_code,
                                provider=self.name,
                            )

                        async for event in self._parse_sse_stream(response):
                            started = True
                            yield event
                        return  # success
            except httpx.TransportError as exc:
                last_error = TransportError(str(exc) or type(exc).__name__, provider=self.name)
                # Events already handed out cannot be replayed.
                if attempt < self._max_retries and not started:
                    continue
                raise last_error from exc

        if last_error is not None:
            raise last_error

    async def _parse_sse_stream(
        self, response: httpx.Response
    ) -> AsyncIterator[StreamEvent]:
        """
        Parse Server-Sent Events from the response byte stream.

        Each SSE event has the form::

            data: {json}\\n\\n

        The sentinel ``data: [DONE]`` terminates the stream.
        """
        buffer = ""
        finish_reason: str | None = None
        async for raw_bytes in response.aiter_bytes():
            buffer += raw_bytes.decode("utf-8", errors="replace")

            while "\n" in buffer:
                line, buffer = buffer.split("\n", 1)
                line = line.rstrip("\r")

                if not line or not line.startswith("data:"):
                    continue

                data_str = line[len("data:"):].strip()
                if data_str == "[DONE]":
                    yield EndOfTurn(finish_reason)
                    return

                try:
                    data = json.loads(data_str)
                except json.JSONDecodeError:
                    logger.warning("Failed to parse SSE data: %s", data_str[:200])
                    continue

                for event in self.sse_data_to_events(data):
                    if isinstance(event, EndOfTurn):
                        finish_reason = event.finish_reason
                    else:
                        yield event

        # If the stream ends without [DONE], still close the turn.
        yield EndOfTurn(finish_reason)

    @staticmethod
    def sse_data_to_events(data: dict) -> list[StreamEvent]:
        """Convert a parsed SSE ``data`` payload into stream events."""
        choices = data.get("choices")
        if not choices:
            return []

        choice = choices[0]
        delta = choice.get("delta") or {}
        events: list[StreamEvent] = []

        text = delta.get("content")
        if text:
            events.append(ContentDelta(text))

        for raw_tc in delta.get("tool_calls") or []:
            func = raw_tc.get("function") or {}
            events.append(
                ToolCallDelta(
                    index=raw_tc.get("index", 0),
                    id=raw_tc.get("id"),
                    name=func.get("name") or "",
                    arguments=func.get("arguments") or "",
                )
            )

        finish_reason = choice.get("finish_reason")
        if finish_reason is not None:
            events.append(EndOfTurn(finish_reason))
        return events

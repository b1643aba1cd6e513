"""Abstract base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from context_engine.llm.types import EndOfTurn, Message, StreamEvent


class Provider(ABC):
    """
    A provider encapsulates access to a single LLM endpoint.

    Implementations translate their native wire stream into
    ``StreamEvent`` objects and raise ``TransportError`` on failure.
    """

    @abstractmethod
    async def stream(
        self,
        system_prompt: str,
        messages: list[Message],
        tools: list[dict] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream one model turn.

        Yields ``StreamEvent`` objects.  The last event is ``EndOfTurn``.
        """
        ...
        # Make the method an async generator so sub-classes can ``yield``.
        # This line is unreachable but satisfies the type checker.
        if False:  # pragma: no cover
            yield EndOfTurn()  # type: ignore[misc]

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g. ``"openai-compat"``)."""
        ...

    @property
    def model(self) -> str | None:
        """Model identifier sent with each request, if any."""
        return None

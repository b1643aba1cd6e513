"""
LLM Router -- the provider registry the conversation engine talks to.

The router is the primary entry point for the rest of context-engine when it
needs a model turn.  It:

  1. Keeps the registered providers and which one is active.
  2. Streams ``StreamEvent`` objects from the active provider.
  3. Converts any adapter failure into a ``TransportError`` so callers only
     ever see one error type from the transport boundary.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

from context_engine.llm.errors import TransportError
from context_engine.llm.providers.base import Provider
from context_engine.llm.types import Message, StreamEvent

logger = logging.getLogger(__name__)


class LLMRouter:
    """
    Routes chat requests to a named provider.
    """

    def __init__(self) -> None:
        self._providers: dict[str, Provider] = {}
        self._active: str | None = None

    # ------------------------------------------------------------------
    # Provider management
    # ------------------------------------------------------------------

    def register_provider(self, name: str, provider: Provider) -> None:
        """Register a provider under *name*.  Overwrites any existing entry."""
        self._providers[name] = provider
        if self._active is None:
            self._active = name

    def set_active(self, name: str) -> None:
        """
        Switch the active provider.

        Raises ``KeyError`` if *name* has not been registered.
        """
        if name not in self._providers:
            raise KeyError(
                f"Unknown provider {name!r}. "
                f"Registered: {list(self._providers)}"
            )
        self._active = name

    @property
    def active_name(self) -> str | None:
        """Return the name of the currently active provider (or ``None``)."""
        return self._active

    @property
    def active_provider(self) -> Provider:
        """
        Return the active ``Provider`` instance.

        Raises ``RuntimeError`` if no provider is active.
        """
        if self._active is None or self._active not in self._providers:
            raise RuntimeError("No active LLM provider")
        return self._providers[self._active]

    @property
    def provider_names(self) -> list[str]:
        """Return the list of registered provider names."""
        return list(self._providers)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def stream(
        self,
        system_prompt: str,
        messages: list[Message],
        tools: list[dict] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream one model turn from the active provider.

        Raises ``TransportError`` for every failure reaching the endpoint.
        """
        try:
            provider = self.active_provider
        except RuntimeError as exc:
            raise TransportError(str(exc), kind="config") from exc

        try:
            async for event in provider.stream(system_prompt, messages, tools):
                yield event
        except TransportError:
            raise
        except Exception as exc:
            logger.debug("Provider %s failed", provider.name, exc_info=True)
            raise TransportError(
                f"{type(exc).__name__}: {exc}", provider=provider.name, kind="protocol"
            ) from exc

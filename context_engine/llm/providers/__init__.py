"""Provider adapters and the name -> adapter factory."""

from __future__ import annotations

import os

from context_engine.config import LLMProviderConfig
from context_engine.llm.providers.base import Provider
from context_engine.llm.providers.ollama import OllamaProvider
from context_engine.llm.providers.openai_compat import OpenAICompatProvider

DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "xai": "https://api.x.ai/v1",
    "ollama": "http://localhost:11434",
}

# Reasoning models reject sampling parameters.
_NO_TEMPERATURE_MODELS = ("grok-4-fast-reasoning", "o1", "o3", "o4-mini")


def create_provider(cfg: LLMProviderConfig) -> Provider:
    """
    Build the adapter for ``cfg.name``.

    Raises ``KeyError`` for an unknown provider name.
    """
    kind = cfg.name.lower()
    if kind not in DEFAULT_BASE_URLS:
        raise KeyError(
            f"Unknown provider {cfg.name!r}. Known: {sorted(DEFAULT_BASE_URLS)}"
        )

    url = cfg.api_base or DEFAULT_BASE_URLS[kind]
    if kind == "ollama":
        return OllamaProvider(url=url, model=cfg.model, timeout=float(cfg.timeout_seconds))

    temperature: float | None = cfg.temperature
    if cfg.model.startswith(_NO_TEMPERATURE_MODELS):
        temperature = None

    return OpenAICompatProvider(
        url=url,
        model=cfg.model,
        api_key=os.environ.get(cfg.api_key_env, ""),
        timeout=float(cfg.timeout_seconds),
        max_retries=cfg.max_retries,
        temperature=temperature,
        max_output=cfg.max_output_tokens,
        label=kind,
    )


__all__ = [
    "DEFAULT_BASE_URLS",
    "OllamaProvider",
    "OpenAICompatProvider",
    "Provider",
    "create_provider",
]

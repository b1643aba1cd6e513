"""
Sub-agent definitions.

An agent is a named system prompt, default instructions and the subset of
tools it may call.  Built-in agents ship with the package; more can be
dropped into a directory as YAML files::

    id: changelog
    name: Changelog
    description: Writes CHANGELOG entries from git history
    tools: [terminal, getFileContent, editFile, statusUpdate]
    allowed_paths: [CHANGELOG.md]
    system_prompt: |
      You maintain the project's changelog.
    default_instructions: |
      Summarise unreleased commits under a new heading.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Iterable

import yaml

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^[a-z0-9]+(?:[-_][a-z0-9]+)*$")

_REQUIRED = ("id", "name", "description", "system_prompt", "default_instructions")


class AgentConfigError(ValueError):
    """An agent definition is missing fields or malformed."""


@dataclass(frozen=True)
class AgentConfig:
    id: str
    name: str
    description: str
    system_prompt: str
    default_instructions: str
    tools: tuple[str, ...] = ()
    category: str = "general"
    allowed_paths: tuple[str, ...] = ()

    @property
    def tool_name(self) -> str:
        """Name under which the main conversation can delegate to this agent."""
        return "run_" + self.id.replace("-", "_")

    def validate(self) -> None:
        for fname in _REQUIRED:
            value = getattr(self, fname)
            if not isinstance(value, str) or not value.strip():
                raise AgentConfigError(f"Agent config missing required field: {fname}")
        if not _ID_RE.match(self.id):
            raise AgentConfigError(
                f"Agent id {self.id!r} must be lowercase letters, digits and dashes"
            )
        if not self.tools:
            raise AgentConfigError(f"Agent {self.id!r} declares no tools")
        if not all(isinstance(t, str) and t for t in self.tools):
            raise AgentConfigError(f"Agent {self.id!r}: tools must be non-empty strings")

    @classmethod
    def from_dict(cls, raw: dict) -> "AgentConfig":
        if not isinstance(raw, dict):
            raise AgentConfigError("Agent definition must be a mapping")
        # Accept the camelCase keys of hand-written definitions too.
        aliases = {
            "systemPrompt": "system_prompt",
            "defaultInstructions": "default_instructions",
            "allowedPaths": "allowed_paths",
        }
        data = {aliases.get(k, k): v for k, v in raw.items()}
        valid = {f.name for f in fields(cls)}
        missing = [f for f in _REQUIRED if f not in data]
        if missing:
            raise AgentConfigError(f"Agent config missing required field: {missing[0]}")
        for key in ("tools", "allowed_paths"):
            value = data.get(key)
            if value is None:
                data[key] = ()
            elif isinstance(value, (list, tuple)):
                data[key] = tuple(value)
            else:
                raise AgentConfigError(f"Agent config field {key} must be a list")
        config = cls(**{k: v for k, v in data.items() if k in valid})
        config.validate()
        return config


class AgentRegistry:
    def __init__(self, agents: Iterable[AgentConfig] = ()):
        self._agents: dict[str, AgentConfig] = {}
        for agent in agents:
            self.register(agent)

    def register(self, agent: AgentConfig, *, overwrite: bool = False) -> None:
        agent.validate()
        if agent.id in self._agents and not overwrite:
            raise AgentConfigError(f"Agent already registered: {agent.id}")
        self._agents[agent.id] = agent

    def unregister(self, agent_id: str) -> None:
        self._agents.pop(agent_id, None)

    def get(self, agent_id: str) -> AgentConfig | None:
        return self._agents.get(agent_id)

    def require(self, agent_id: str) -> AgentConfig:
        agent = self.get(agent_id)
        if agent is None:
            raise KeyError(agent_id)
        return agent

    def list(self) -> list[AgentConfig]:
        return sorted(self._agents.values(), key=lambda a: a.id)

    def load_directory(self, directory: str | Path) -> int:
        """Register every ``*.yaml``/``*.yml`` agent in *directory*.

        Invalid files are logged and skipped.  Agents from files replace
        registered agents with the same id.
        """
        root = Path(directory).expanduser()
        if not root.is_dir():
            logger.warning("Agent directory %s does not exist", root)
            return 0

        loaded = 0
        for path in sorted([*root.glob("*.yaml"), *root.glob("*.yml")]):
            try:
                with path.open("r", encoding="utf-8") as f:
                    raw = yaml.safe_load(f)
                agent = AgentConfig.from_dict(raw)
            except (OSError, yaml.YAMLError, AgentConfigError, TypeError) as exc:
                logger.warning("Skipping invalid agent file %s: %s", path.name, exc)
                continue
            self.register(agent, overwrite=True)
            loaded += 1
        return loaded

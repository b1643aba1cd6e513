from __future__ import annotations

import inspect
import logging
from importlib.metadata import entry_points
from typing import Any, Iterable

from context_engine.tools.base import Tool, ToolContext, ToolScope

logger = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool, *, overwrite: bool = False) -> None:
        if tool.name in self._tools and not overwrite:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        t = self.get(name)
        if not t:
            raise KeyError(name)
        return t

    def list(self, scope: ToolScope | None = None) -> list[Tool]:
        tools = list(self._tools.values())
        if scope is not None:
            tools = [t for t in tools if t.scope in (ToolScope.SHARED, ToolScope(scope))]
        return sorted(tools, key=lambda t: t.name)

    def for_context(
        self,
        scope: ToolScope,
        agent_id: str | None = None,
        allowed: Iterable[str] | None = None,
    ) -> list[Tool]:
        """Tools visible to a conversation running in *scope* as *agent_id*."""
        allowed_set = set(allowed) if allowed is not None else None
        return [
            t
            for t in self.list()
            if t.available_in(scope, agent_id)
            and (allowed_set is None or t.name in allowed_set)
        ]

    def is_permitted(self, tool: Tool, context: ToolContext) -> bool:
        if not tool.available_in(context.scope, context.agent_id):
            return False
        if context.allowed_tools is not None and tool.name not in context.allowed_tools:
            return False
        return True

    def to_openai_schema(
        self,
        scope: ToolScope | None = None,
        agent_id: str | None = None,
        allowed: Iterable[str] | None = None,
    ) -> list[dict]:
        if scope is None:
            tools = self.list()
        else:
            tools = self.for_context(scope, agent_id, allowed)
        return [t.to_openai_schema() for t in tools]

    def load_plugins(
        self,
        *,
        enabled: bool,
        group: str = "context_engine.tools",
        allow_distributions: set[str] | None = None,
        allow_tools: set[str] | None = None,
        services: dict[str, Any] | None = None,
    ) -> int:
        """Load tools from entry points, optionally injecting dependencies.

        Constructor parameters of a plugin tool class whose names appear in
        *services* (e.g. ``task_board``, ``runner``) are filled in from it.
        Tools that declare none of them are constructed with no arguments.
        """
        if not enabled:
            return 0
        loaded = 0
        for ep in entry_points(group=group):
            dist = getattr(ep, "dist", None)
            dist_name = getattr(dist, "name", None)
            if allow_distributions and dist_name and dist_name not in allow_distributions:
                continue
            if allow_tools and ep.name not in allow_tools:
                continue
            tool_cls = ep.load()
            kwargs: dict = {}
            if services:
                sig = inspect.signature(tool_cls)
                for pname in sig.parameters:
                    if pname in services:
                        kwargs[pname] = services[pname]
            self.register(tool_cls(**kwargs))
            logger.info("Loaded plugin tool %s from %s", ep.name, dist_name or "?")
            loaded += 1
        return loaded

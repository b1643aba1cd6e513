"""Exposes sub-agents to the main conversation as tools."""

from __future__ import annotations

from context_engine.agents.config import AgentConfig, AgentRegistry
from context_engine.agents.executor import SubAgentExecutor
from context_engine.tools.base import Tool, ToolContext, ToolScope
from context_engine.tools.registry import ToolRegistry
from context_engine.types import ToolResult


class DelegateTool(Tool):
    def __init__(self, agent: AgentConfig, executor: SubAgentExecutor):
        self.agent = agent
        self.executor = executor

    @property
    def name(self) -> str:
        return self.agent.tool_name

    @property
    def description(self) -> str:
        return f"Delegate to the {self.agent.name} agent: {self.agent.description}"

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "customInstructions": {
                    "type": "string",
                    "description": "Optional extra instructions for the agent",
                },
            },
        }

    @property
    def scope(self) -> ToolScope:
        return ToolScope.MAIN

    async def execute(self, params: dict, context: ToolContext) -> ToolResult:
        result = await self.executor.execute(
            self.agent, params.get("customInstructions"), context
        )
        payload = result.to_dict()
        error = payload.pop("error")
        payload.pop("success")
        if result.success:
            return ToolResult.ok(**payload)
        return ToolResult.failure(error or "Agent failed", **payload)


def register_agent_tools(
    tools: ToolRegistry,
    agents: AgentRegistry,
    executor: SubAgentExecutor,
    *,
    disabled: set[str] | frozenset[str] = frozenset(),
) -> list[str]:
    names: list[str] = []
    for agent in agents.list():
        if agent.id in disabled:
            continue
        tool = DelegateTool(agent, executor)
        tools.register(tool, overwrite=True)
        names.append(tool.name)
    return names

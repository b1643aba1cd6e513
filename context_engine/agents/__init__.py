"""Sub-agent definitions, execution and delegation tools."""

from context_engine.agents.builtin import BUILTIN_AGENTS
from context_engine.agents.config import AgentConfig, AgentConfigError, AgentRegistry
from context_engine.agents.executor import SubAgentExecutor, SubAgentResult
from context_engine.agents.tool import DelegateTool, register_agent_tools

__all__ = [
    "BUILTIN_AGENTS",
    "AgentConfig",
    "AgentConfigError",
    "AgentRegistry",
    "DelegateTool",
    "SubAgentExecutor",
    "SubAgentResult",
    "register_agent_tools",
]

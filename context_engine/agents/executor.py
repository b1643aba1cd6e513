"""
Sub-agent execution.

A sub-agent runs its own ``ConversationEngine`` in ``subagent`` scope: it
sees only the tools its definition lists, writes only under its allowed
paths and shows up on the task board as one task for its whole run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict

from context_engine.agents.config import AgentConfig
from context_engine.llm.errors import TransportError
from context_engine.llm.router import LLMRouter
from context_engine.llm.types import ToolCall
from context_engine.orchestrator.core import ConversationEngine
from context_engine.orchestrator.dispatch import ToolCallRouter
from context_engine.tools.base import ToolContext, ToolScope
from context_engine.tools.registry import ToolRegistry
from context_engine.types import ToolResult
from context_engine.ui.task_board import TaskBoard

logger = logging.getLogger(__name__)

_READ_TOOLS = ("getFileContent", "readLines", "readGeneratedFile")
_WRITE_TOOLS = ("createFile", "editFile")


@dataclass
class SubAgentResult:
    agent_id: str
    agent_name: str
    success: bool
    summary: str = ""
    output: str = ""
    files_created: list[str] = field(default_factory=list)
    files_read: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class _FileTracker:
    """Result observer recording which files a sub-agent touched."""

    def __init__(self, generated: set[str]):
        self.generated = generated
        self.created: list[str] = []
        self.read: list[str] = []

    def __call__(self, call: ToolCall, result: ToolResult) -> None:
        if not result.success:
            return
        path = call.arguments.get("filePath")
        if not path:
            return
        if call.name in _READ_TOOLS and path not in self.read:
            self.read.append(path)
        elif call.name in _WRITE_TOOLS and path not in self.created:
            self.created.append(path)
            self.generated.add(path)


class SubAgentExecutor:
    def __init__(
        self,
        router: LLMRouter,
        tools: ToolRegistry,
        task_board: TaskBoard,
        *,
        debounce: float = 0.05,
        max_turns: int = 50,
    ):
        self.router = router
        self.tools = tools
        self.task_board = task_board
        self.debounce = debounce
        self.max_turns = max_turns

    @staticmethod
    def build_prompt(agent: AgentConfig, custom_instructions: str | None = None) -> str:
        prompt = agent.default_instructions
        if custom_instructions and custom_instructions.strip():
            prompt += (
                "\n\n**Additional instructions from the user:**\n"
                f"{custom_instructions.strip()}\n\n"
                "Follow both the default instructions above and these additional "
                "instructions."
            )
        return prompt

    async def execute(
        self,
        agent: AgentConfig,
        custom_instructions: str | None = None,
        parent_context: ToolContext | None = None,
    ) -> SubAgentResult:
        parent = parent_context or ToolContext()
        task_id = self.task_board.create(agent.name, "Working...")

        generated: set[str] = set()
        tracker = _FileTracker(generated)
        context = ToolContext(
            scope=ToolScope.SUBAGENT,
            agent_id=agent.id,
            cwd=parent.cwd,
            allowed_paths=list(agent.allowed_paths) or None,
            allowed_tools=set(agent.tools),
            task_id=task_id,
            extra={"generated_files": generated},
        )
        engine = ConversationEngine(
            self.router,
            ToolCallRouter(self.tools, debounce=self.debounce, observer=tracker),
            system_prompt=agent.system_prompt,
            tools=self.tools.to_openai_schema(ToolScope.SUBAGENT, agent.id, agent.tools),
            context=context,
            max_turns=self.max_turns,
        )

        logger.info("Sub-agent %s started", agent.id)
        try:
            output = await engine.run(self.build_prompt(agent, custom_instructions))
        except TransportError as exc:
            self.task_board.fail(task_id, f"{agent.name} failed: {exc}")
            logger.warning("Sub-agent %s failed: %s", agent.id, exc)
            return SubAgentResult(
                agent_id=agent.id,
                agent_name=agent.name,
                success=False,
                files_created=tracker.created,
                files_read=tracker.read,
                error=str(exc),
            )
        except Exception as exc:
            self.task_board.fail(task_id, f"{agent.name} failed: {exc}")
            raise

        self.task_board.complete(task_id, f"{agent.name} completed")
        return SubAgentResult(
            agent_id=agent.id,
            agent_name=agent.name,
            success=True,
            summary=self.summarize(agent, tracker.created, tracker.read),
            output=output,
            files_created=tracker.created,
            files_read=tracker.read,
        )

    @staticmethod
    def summarize(agent: AgentConfig, created: list[str], read: list[str]) -> str:
        summary = f"{agent.name} completed successfully."
        if created:
            summary += f" Created {len(created)} file(s): {', '.join(created)}."
        if read:
            summary += f" Analyzed {len(read)} file(s)."
        return summary

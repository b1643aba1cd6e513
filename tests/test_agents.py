"""Tests for agent definitions, the sub-agent executor and delegation tools."""

from __future__ import annotations

import io
import json

import pytest
from rich.console import Console

from context_engine.agents import (
    BUILTIN_AGENTS,
    AgentConfig,
    AgentConfigError,
    AgentRegistry,
    DelegateTool,
    SubAgentExecutor,
    register_agent_tools,
)
from context_engine.backends import BatchedCommandRunner
from context_engine.llm.router import LLMRouter
from context_engine.tools.base import ToolContext, ToolScope
from context_engine.tools.builtin import register_builtin_tools
from context_engine.tools.registry import ToolRegistry
from context_engine.ui.task_board import TaskBoard, TaskState
from tests.mock_providers import (
    MockProvider,
    failing_provider,
    multi_tool_call_events,
    text_events,
    tool_call_events,
)

WRITER = AgentConfig(
    id="writer",
    name="Writer",
    description="Writes NOTES.md",
    system_prompt="You write notes.",
    default_instructions="Write NOTES.md.",
    tools=("createFile", "getFileContent", "readGeneratedFile", "statusUpdate"),
    allowed_paths=("NOTES.md",),
)


class TestAgentConfig:
    def test_builtin_agents_are_valid(self):
        for agent in BUILTIN_AGENTS:
            agent.validate()
        assert {a.id for a in BUILTIN_AGENTS} == {"agents-md", "github"}

    def test_tool_name(self):
        assert BUILTIN_AGENTS[0].tool_name == "run_agents_md"

    def test_from_dict_accepts_camel_case(self):
        agent = AgentConfig.from_dict(
            {
                "id": "changelog",
                "name": "Changelog",
                "description": "d",
                "systemPrompt": "s",
                "defaultInstructions": "i",
                "tools": ["terminal"],
                "allowedPaths": ["CHANGELOG.md"],
            }
        )
        assert agent.system_prompt == "s"
        assert agent.allowed_paths == ("CHANGELOG.md",)

    def test_missing_field(self):
        with pytest.raises(AgentConfigError, match="system_prompt"):
            AgentConfig.from_dict(
                {"id": "x", "name": "X", "description": "d", "default_instructions": "i", "tools": ["t"]}
            )

    def test_bad_id(self):
        bad = AgentConfig("Bad Id", "n", "d", "s", "i", tools=("t",))
        with pytest.raises(AgentConfigError, match="lowercase"):
            bad.validate()

    def test_no_tools(self):
        with pytest.raises(AgentConfigError, match="no tools"):
            AgentConfig("x", "n", "d", "s", "i").validate()


class TestAgentRegistry:
    def test_duplicate_rejected(self):
        reg = AgentRegistry([WRITER])
        with pytest.raises(AgentConfigError):
            reg.register(WRITER)

    def test_load_directory(self, tmp_path):
        (tmp_path / "good.yaml").write_text(
            "id: changelog\n"
            "name: Changelog\n"
            "description: Writes the changelog\n"
            "tools: [terminal, editFile]\n"
            "system_prompt: You maintain the changelog.\n"
            "default_instructions: Update it.\n"
        )
        (tmp_path / "bad.yml").write_text("id: broken\n")
        (tmp_path / "garbage.yaml").write_text(": : :\n  - [")

        reg = AgentRegistry(BUILTIN_AGENTS)
        assert reg.load_directory(tmp_path) == 1
        assert reg.require("changelog").tools == ("terminal", "editFile")
        assert reg.get("broken") is None

    def test_missing_directory(self, tmp_path):
        assert AgentRegistry().load_directory(tmp_path / "none") == 0


@pytest.fixture
def board():
    return TaskBoard(Console(file=io.StringIO()), tick=0.01, linger=0.0)


@pytest.fixture
def tools(board):
    reg = ToolRegistry()
    register_builtin_tools(reg, task_board=board, runner=BatchedCommandRunner(debounce=0.0))
    return reg


def _router(provider) -> LLMRouter:
    router = LLMRouter()
    router.register_provider("mock", provider)
    return router


class TestSubAgentExecutor:
    async def test_successful_run_tracks_files(self, tmp_path, board, tools):
        (tmp_path / "src.py").write_text("x = 1\n")
        provider = MockProvider(
            turns=[
                multi_tool_call_events(
                    [
                        ("getFileContent", {"filePath": "src.py"}, "c1"),
                        ("createFile", {"filePath": "NOTES.md", "content": "notes"}, "c2"),
                    ]
                ),
                tool_call_events("readGeneratedFile", {"filePath": "NOTES.md"}, call_id="c3"),
                text_events("Notes written."),
            ]
        )
        executor = SubAgentExecutor(_router(provider), tools, board, debounce=0.01)

        result = await executor.execute(WRITER, parent_context=ToolContext(cwd=tmp_path))
        await board.wait_idle()

        assert result.success
        assert result.output == "Notes written."
        assert result.files_created == ["NOTES.md"]
        assert result.files_read == ["src.py", "NOTES.md"]
        assert "Created 1 file(s): NOTES.md" in result.summary
        assert (tmp_path / "NOTES.md").read_text() == "notes"

        [task] = board.tasks()
        assert task.name == "Writer"
        assert task.state is TaskState.COMPLETED

    async def test_scope_and_tools_are_restricted(self, tmp_path, board, tools):
        provider = MockProvider(
            turns=[
                multi_tool_call_events(
                    [
                        ("terminal", {"command": "ls"}, "c1"),
                        ("createFile", {"filePath": "other.md", "content": "x"}, "c2"),
                    ]
                ),
                text_events("ok"),
            ]
        )
        executor = SubAgentExecutor(_router(provider), tools, board, debounce=0.01)
        await executor.execute(WRITER, parent_context=ToolContext(cwd=tmp_path))
        await board.wait_idle()

        offered = {t["function"]["name"] for t in provider.requests[0]["tools"]}
        assert offered == set(WRITER.tools)
        tool_msgs = [m for m in provider.requests[1]["messages"] if m.role == "tool"]
        payloads = [json.loads(m.content) for m in tool_msgs]
        assert payloads[0]["error_code"] == "permission_denied"
        assert payloads[1]["error_code"] == "permission_denied"
        assert not (tmp_path / "other.md").exists()

    async def test_custom_instructions_appended(self, board, tools):
        provider = MockProvider(turns=[text_events("ok")])
        executor = SubAgentExecutor(_router(provider), tools, board)
        await executor.execute(WRITER, "Keep it short")
        await board.wait_idle()

        prompt = provider.requests[0]["messages"][0].content
        assert prompt.startswith("Write NOTES.md.")
        assert "Keep it short" in prompt
        assert provider.requests[0]["system_prompt"] == "You write notes."

    async def test_transport_error_fails_task(self, board, tools):
        executor = SubAgentExecutor(_router(failing_provider(500)), tools, board)
        result = await executor.execute(WRITER)
        await board.wait_idle()

        assert not result.success
        assert "HTTP 500" in result.error
        assert board.tasks()[0].state is TaskState.FAILED

    def test_build_prompt_without_custom(self):
        assert SubAgentExecutor.build_prompt(WRITER, "   ") == "Write NOTES.md."


class TestDelegateTool:
    def test_register_agent_tools(self, board, tools):
        agents = AgentRegistry([*BUILTIN_AGENTS, WRITER])
        executor = SubAgentExecutor(LLMRouter(), tools, board)
        names = register_agent_tools(tools, agents, executor, disabled={"github"})
        assert names == ["run_agents_md", "run_writer"]
        assert tools.require("run_writer").scope is ToolScope.MAIN
        assert tools.get("run_github") is None

    async def test_delegate_returns_result_payload(self, tmp_path, board, tools):
        provider = MockProvider(turns=[text_events("Done.")])
        executor = SubAgentExecutor(_router(provider), tools, board)
        tool = DelegateTool(WRITER, executor)

        result = await tool.execute({}, ToolContext(cwd=tmp_path))
        await board.wait_idle()

        assert result.success
        assert result.data["agent_id"] == "writer"
        assert result.data["output"] == "Done."
        assert "error" not in result.data

    async def test_delegate_failure(self, board, tools):
        executor = SubAgentExecutor(_router(failing_provider(401)), tools, board)
        result = await DelegateTool(WRITER, executor).execute({}, ToolContext())
        await board.wait_idle()
        assert not result.success
        assert "HTTP 401" in result.error

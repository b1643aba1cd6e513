"""Tests for the command runners."""

from __future__ import annotations

import asyncio
import io
import sys

import pytest
from rich.console import Console

from context_engine.backends import BatchedCommandRunner, CommandResult, CommandRunner
from context_engine.ui.task_board import TaskBoard, TaskState

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell commands")


@pytest.fixture
def board():
    return TaskBoard(Console(file=io.StringIO()), tick=0.01, linger=0.0)


class TestCommandRunner:
    async def test_success_captures_stdout(self):
        result = await CommandRunner().run("echo hello")
        assert result.success
        assert result.output == "hello"
        assert result.exit_code == 0
        assert result.error is None

    async def test_failure_uses_stderr(self):
        result = await CommandRunner().run("echo oops >&2; exit 3")
        assert not result.success
        assert result.exit_code == 3
        assert result.error == "oops"

    async def test_failure_without_stderr(self):
        result = await CommandRunner().run("exit 1")
        assert result.error == "Command exited with status 1"

    async def test_stderr_used_when_stdout_empty(self):
        result = await CommandRunner().run("echo warn >&2")
        assert result.success
        assert result.output == "warn"

    async def test_cwd(self, tmp_path):
        (tmp_path / "marker.txt").write_text("x")
        result = await CommandRunner().run("ls", cwd=tmp_path)
        assert "marker.txt" in result.output

    async def test_pager_disabled(self):
        result = await CommandRunner().run("echo $PAGER")
        assert result.output == "cat"

    async def test_missing_cwd_is_a_failed_result(self, tmp_path):
        result = await CommandRunner().run("echo hi", cwd=tmp_path / "missing")
        assert not result.success
        assert result.exit_code == -1


class TestCommandResult:
    def test_to_dict_drops_empty_fields(self):
        d = CommandResult(command="ls", success=True, output="a").to_dict()
        assert "error" not in d
        assert "truncated" not in d
        assert d["output"] == "a"


class TestBatchedCommandRunner:
    async def test_concurrent_commands_share_a_batch(self, board):
        runner = BatchedCommandRunner(CommandRunner(), board, debounce=0.01)
        results = await asyncio.gather(
            runner.execute("echo one"),
            runner.execute("echo two"),
            runner.execute("exit 2"),
        )
        assert [r.output for r in results[:2]] == ["one", "two"]
        assert not results[2].success
        assert runner.batcher.batches_formed == 1

    async def test_commands_appear_on_task_board(self, board):
        runner = BatchedCommandRunner(CommandRunner(), board, debounce=0.01)
        await asyncio.gather(runner.execute("echo ok"), runner.execute("false"))
        tasks = {t.name: t for t in board.tasks()}
        assert tasks["Running: echo ok"].state is TaskState.COMPLETED
        assert tasks["Running: echo ok"].status == "Executed"
        assert tasks["Running: false"].state is TaskState.FAILED
        assert tasks["Running: false"].status.startswith("Failed:")
        await board.wait_idle()

    async def test_runner_exception_becomes_failed_result(self):
        class Exploding(CommandRunner):
            async def run(self, command, cwd=None):
                raise RuntimeError("no shell")

        runner = BatchedCommandRunner(Exploding(), debounce=0.0)
        result = await runner.execute("echo hi")
        assert not result.success
        assert result.error == "no shell"

    async def test_commands_run_in_parallel(self):
        runner = BatchedCommandRunner(CommandRunner(), debounce=0.01)
        loop = asyncio.get_running_loop()
        start = loop.time()
        await asyncio.gather(*(runner.execute("sleep 0.3") for _ in range(3)))
        assert loop.time() - start < 0.8

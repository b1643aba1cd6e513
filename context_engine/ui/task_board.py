"""
Live task board.

Shows every concurrently running task as one line of a block that is redrawn
in place on a fixed tick, so parallel updates never interleave on screen.
The repaint loop starts with the first task and stops shortly after the last
one finishes, leaving the final glyphs visible.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from rich.console import Console, Group
from rich.live import Live
from rich.text import Text

logger = logging.getLogger(__name__)

SPINNER_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")


class TaskState(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class Task:
    id: str
    name: str
    status: str
    state: TaskState = TaskState.RUNNING
    created_at: float = 0.0
    updated_at: float = 0.0

    @property
    def terminal(self) -> bool:
        return self.state in (TaskState.COMPLETED, TaskState.FAILED)

    @property
    def active(self) -> bool:
        return self.state is TaskState.RUNNING


class TaskBoard:
    """
    Parameters
    ----------
    console:
        Console the board draws on.
    tick:
        Seconds between repaints.
    linger:
        Seconds the loop keeps drawing after the last task finished.
    stale_after:
        Seconds without an update after which a running task is marked
        ``timed_out``.
    clock:
        Monotonic time source.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        tick: float = 0.08,
        linger: float = 0.5,
        stale_after: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.console = console or Console()
        self.tick = tick
        self.linger = linger
        self.stale_after = stale_after
        self._clock = clock
        self._tasks: dict[str, Task] = {}
        self._ids = itertools.count(1)
        self._frame = 0
        self._loop_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Task lifecycle
    # ------------------------------------------------------------------

    def create(self, name: str, status: str = "Starting...") -> str:
        now = self._clock()
        task_id = f"task_{next(self._ids)}"
        self._tasks[task_id] = Task(
            id=task_id, name=name, status=status, created_at=now, updated_at=now
        )
        self._ensure_loop()
        return task_id

    def update(self, task_id: str, status: str) -> None:
        task = self._tasks.get(task_id)
        if task is None or not task.active:
            return
        task.status = status
        task.updated_at = self._clock()

    def complete(self, task_id: str, message: str | None = None) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.terminal:
            return
        task.state = TaskState.COMPLETED
        task.status = message or "Completed"
        task.updated_at = self._clock()

    def fail(self, task_id: str, message: str) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.terminal:
            return
        task.state = TaskState.FAILED
        task.status = message
        task.updated_at = self._clock()

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def has_active(self) -> bool:
        return any(t.active for t in self._tasks.values())

    def check_stale(self) -> list[str]:
        """Mark running tasks without recent updates as timed out."""
        now = self._clock()
        stale: list[str] = []
        for task in self._tasks.values():
            if task.active and now - task.updated_at >= self.stale_after:
                task.state = TaskState.TIMED_OUT
                stale.append(task.id)
                logger.warning(
                    "Task %s (%s) has not reported for %.0fs",
                    task.id,
                    task.name,
                    now - task.updated_at,
                )
        return stale

    def clear_completed(self) -> None:
        for task_id in [t.id for t in self._tasks.values() if t.terminal]:
            del self._tasks[task_id]

    def reset(self) -> None:
        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()
        self._loop_task = None
        self._tasks.clear()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> Group:
        lines = [Text("Tasks:", style="bold")]
        for task in self._tasks.values():
            if task.state is TaskState.FAILED:
                symbol, style = Text("✖", style="red"), "red"
            elif task.state is TaskState.COMPLETED:
                symbol, style = Text("✔", style="green"), "green"
            elif task.state is TaskState.TIMED_OUT:
                symbol, style = Text("⚠", style="yellow"), "dim yellow"
            else:
                frame = SPINNER_FRAMES[self._frame % len(SPINNER_FRAMES)]
                symbol, style = Text(frame, style="cyan"), "yellow"
            lines.append(
                Text.assemble(
                    symbol,
                    " ",
                    (task.name, "white"),
                    ": ",
                    ("(", "dim"),
                    (task.status, style),
                    (")", "dim"),
                )
            )
        return Group(*lines)

    @property
    def rendering(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def wait_idle(self) -> None:
        """Wait until the repaint loop has stopped."""
        if self._loop_task is not None:
            await asyncio.wait([self._loop_task])

    def _ensure_loop(self) -> None:
        if self.rendering:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._loop_task = loop.create_task(self._repaint())

    async def _repaint(self) -> None:
        idle_since: float | None = None
        with Live(
            self.render(),
            console=self.console,
            auto_refresh=False,
            transient=False,
        ) as live:
            while True:
                await asyncio.sleep(self.tick)
                self._frame += 1
                self.check_stale()
                live.update(self.render(), refresh=True)

                if self.has_active():
                    idle_since = None
                    continue
                now = asyncio.get_running_loop().time()
                if idle_since is None:
                    idle_since = now
                if now - idle_since >= self.linger:
                    break

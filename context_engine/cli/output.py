"""Output formatting utilities for the CLI."""

from __future__ import annotations

import re

import yaml
from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from context_engine.agents.config import AgentConfig
from context_engine.tools.base import Tool, ToolScope

SCOPE_COLORS = {
    ToolScope.MAIN: "cyan",
    ToolScope.SUBAGENT: "magenta",
    ToolScope.SHARED: "green",
}

_MARKERS = {
    "[HEADLINE]": ("", "bold white"),
    "[NOTE]": ("ℹ ", "cyan"),
    "[WARNING]": ("⚠ ", "yellow"),
    "[QUOTE]": ("❝ ", "magenta"),
}

_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC = re.compile(r"(?<![\w*])\*([^*\s][^*]*)\*(?![\w*])")
_CODE = re.compile(r"`([^`]+)`")


def inline_markup(line: str) -> str:
    """Translate inline markdown (bold, italic, code) into rich markup."""
    out = escape(line)
    out = _CODE.sub(r"[yellow]\1[/yellow]", out)
    out = _BOLD.sub(r"[bold white]\1[/bold white]", out)
    out = _ITALIC.sub(r"[italic]\1[/italic]", out)
    return out


class StreamWriter:
    """
    Line-buffered renderer for streamed assistant text.

    Complete lines are rendered as they arrive.  Fenced code blocks are
    collected and printed as highlighted code without their fence lines.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self._buffer = ""
        self._code: list[str] | None = None
        self._lang = "text"

    @property
    def in_code_block(self) -> bool:
        return self._code is not None

    def write(self, text: str) -> None:
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            self._emit(line)

    def flush(self) -> None:
        if self._buffer:
            self._emit(self._buffer)
            self._buffer = ""
        if self._code is not None:
            self._print_code()

    def _emit(self, line: str) -> None:
        stripped = line.strip()
        if stripped.startswith("```"):
            if self._code is None:
                self._code = []
                self._lang = stripped[3:].strip() or "text"
            else:
                self._print_code()
            return

        if self._code is not None:
            self._code.append(line)
            return

        for marker, (prefix, style) in _MARKERS.items():
            if stripped.upper().startswith(marker):
                body = stripped[len(marker):].strip()
                self.console.print(Text(prefix + body, style=style))
                return

        if stripped in ("---", "___", "***"):
            self.console.print(Rule(style="dim"))
            return

        self.console.print(inline_markup(line), highlight=False)

    def _print_code(self) -> None:
        code = "\n".join(self._code or [])
        self._code = None
        if code:
            self.console.print(
                Syntax(code, self._lang, theme="monokai", background_color="default")
            )


class OutputFormatter:
    """Rich-based output formatting for the context-engine CLI."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def format_tool_list(self, tools: list[Tool]) -> None:
        table = Table(title="Registered Tools", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Scope", no_wrap=True)
        table.add_column("Description")

        for t in tools:
            color = SCOPE_COLORS.get(t.scope, "white")
            table.add_row(t.name, Text(t.scope.value, style=color), t.description)

        self.console.print(table)

    def format_agent_list(self, agents: list[AgentConfig]) -> None:
        if not agents:
            self.console.print("[dim]No agents registered.[/dim]")
            return

        table = Table(title="Agents", show_lines=True)
        table.add_column("Id", style="cyan", no_wrap=True)
        table.add_column("Tool", no_wrap=True)
        table.add_column("Category", no_wrap=True)
        table.add_column("Tools")
        table.add_column("Description")

        for a in agents:
            table.add_row(
                a.id, a.tool_name, a.category, ", ".join(a.tools), a.description
            )

        self.console.print(table)

    def format_config(self, config: dict) -> None:
        yaml_str = yaml.safe_dump(config, sort_keys=False, default_flow_style=False)
        self.console.print(Syntax(yaml_str, "yaml", theme="monokai"))

    def format_problems(self, problems: list[str]) -> None:
        if not problems:
            self.console.print("[green]Configuration is valid.[/green]")
            return
        for p in problems:
            self.console.print(f"  [red]✖[/red] {escape(p)}")

    def format_error(self, message: str) -> None:
        self.console.print(f"[red]Error:[/red] {escape(message)}")

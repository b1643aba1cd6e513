"""Interactive chat session handler."""

from __future__ import annotations

import asyncio

from rich.console import Console

from context_engine.cli.output import OutputFormatter, StreamWriter
from context_engine.llm.errors import TransportError
from context_engine.orchestrator.core import ConversationEngine
from context_engine.tools.registry import ToolRegistry
from context_engine.ui.task_board import TaskBoard

HELP_TEXT = (
    "  [bold]Commands:[/bold]\n"
    "  /exit     - Exit the chat\n"
    "  /tools    - List available tools\n"
    "  /clear    - Clear the conversation history\n"
    "  /switch   - Switch LLM provider\n"
    "  /help     - Show this help\n"
    "\n"
    "  [bold]Tips:[/bold]\n"
    "  Ask about the codebase in plain language; the assistant reads files,\n"
    "  runs commands and delegates to agents on its own.\n"
)


class ChatHandler:
    """
    Manages the interactive chat loop.

    Handles streaming output, inline commands and the control actions
    (help, clear, exit) that tools can trigger.
    """

    def __init__(
        self,
        engine: ConversationEngine | None,
        registry: ToolRegistry,
        task_board: TaskBoard,
        console: Console | None = None,
        version: str = "",
    ) -> None:
        self.engine = engine
        self.registry = registry
        self.task_board = task_board
        self.console = console or Console()
        self.formatter = OutputFormatter(self.console)
        self.writer = StreamWriter(self.console)
        self.version = version
        self._running = True

    def attach(self, engine: ConversationEngine) -> None:
        self.engine = engine
        engine.on_chunk = self.writer.write
        engine.on_flush = self.writer.flush

    @property
    def running(self) -> bool:
        return self._running and not (self.engine and self.engine.exit_requested)

    # ------------------------------------------------------------------
    # Control actions
    # ------------------------------------------------------------------

    def show_help(self) -> None:
        title = f"context-engine {self.version}".strip()
        self.console.print(f"[bold]{title}[/bold]\n" + HELP_TEXT)

    def clear(self) -> None:
        if self.engine is not None:
            self.engine.reset()
        self.task_board.clear_completed()
        self.console.print("[dim]Conversation cleared.[/dim]")

    async def handle_command(self, command: str) -> bool:
        """
        Handle inline commands. Returns True if the command was handled.
        """
        parts = command.strip().split(None, 1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd in ("/exit", "/quit"):
            self._running = False
            self.console.print("[dim]Goodbye.[/dim]")
            return True

        if cmd == "/tools":
            self.formatter.format_tool_list(self.registry.list())
            return True

        if cmd == "/clear":
            self.clear()
            return True

        if cmd == "/switch":
            router = self.engine.router
            if not arg:
                self.console.print(f"  Available providers: {', '.join(router.provider_names)}")
                self.console.print(f"  Active: {router.active_name}")
            else:
                try:
                    router.set_active(arg)
                    self.console.print(f"  Switched to provider: [bold]{arg}[/bold]")
                except KeyError as e:
                    self.formatter.format_error(str(e))
            return True

        if cmd == "/help":
            self.show_help()
            return True

        return False

    async def handle_input(self, user_input: str) -> str | None:
        """Run *user_input* through the engine, streaming the reply."""
        try:
            reply = await self.engine.run(user_input)
        except TransportError as e:
            self.writer.flush()
            self.formatter.format_error(str(e))
            return None
        finally:
            await self.task_board.wait_idle()
            self.task_board.clear_completed()

        if self.engine.exit_requested:
            self.console.print("[dim]Goodbye.[/dim]")
        return reply

    async def run_loop(self) -> None:
        """Main interactive loop."""
        self.console.print(
            "[bold]context-engine[/bold] - Codebase Assistant\n"
            "[dim]Type /help for commands, /exit to quit.[/dim]\n"
        )

        while self.running:
            try:
                user_input = await asyncio.get_running_loop().run_in_executor(
                    None, lambda: input("you> ").strip()
                )
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[dim]Goodbye.[/dim]")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                handled = await self.handle_command(user_input)
                if handled:
                    continue

            await self.handle_input(user_input)
            self.console.print()

"""
Main CLI application for context-engine.

Usage:
    context-engine chat [--provider NAME] [--profile NAME] [--model NAME] [-m TEXT]
    context-engine tools list [--scope main|subagent]
    context-engine agents list
    context-engine config show|validate
    context-engine version
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

import typer
from rich.console import Console

from context_engine.config import EngineConfig, load_config, validate_config

if TYPE_CHECKING:
    from context_engine.agents import AgentRegistry
    from context_engine.cli.chat import ChatHandler
    from context_engine.llm.router import LLMRouter
    from context_engine.orchestrator.core import ConversationEngine
    from context_engine.tools.registry import ToolRegistry
    from context_engine.ui.task_board import TaskBoard

VERSION = "0.1.0"

app = typer.Typer(name="context-engine", help="context-engine - Codebase Assistant CLI")
tools_app = typer.Typer(help="Tool management")
agents_app = typer.Typer(help="Agent management")
config_app = typer.Typer(help="Configuration management")

app.add_typer(tools_app, name="tools")
app.add_typer(agents_app, name="agents")
app.add_typer(config_app, name="config")

console = Console()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load(profile: str | None = None, overrides: dict | None = None) -> EngineConfig:
    try:
        return load_config(profile=profile, cli_overrides=overrides, search=True)
    except (KeyError, ValueError) as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1)


@dataclass
class Stack:
    config: EngineConfig
    router: LLMRouter
    tools: ToolRegistry
    agents: AgentRegistry
    task_board: TaskBoard
    engine: ConversationEngine
    handler: ChatHandler


def _build_router(cfg: EngineConfig):
    from context_engine.llm.providers import create_provider
    from context_engine.llm.router import LLMRouter

    router = LLMRouter()
    try:
        router.register_provider(cfg.llm.name, create_provider(cfg.llm))
    except KeyError as e:
        console.print(f"[yellow]Warning:[/yellow] Could not set up LLM provider: {e}")
        console.print("[dim]Chat will not work without a configured LLM provider.[/dim]")

    # Profiles with an llm section become switchable providers.
    for name in cfg.profiles:
        pcfg = cfg.profile_llm(name)
        if pcfg is None or name in router.provider_names:
            continue
        try:
            router.register_provider(name, create_provider(pcfg))
        except KeyError as e:
            logger.warning("Profile %s: %s", name, e)
    return router


def _build_tools(
    cfg: EngineConfig,
    router,
    task_board,
    *,
    show_help: Callable[[], None] | None = None,
    on_clear: Callable[[], None] | None = None,
):
    """Assemble the tool and agent registries."""
    from context_engine.agents import (
        BUILTIN_AGENTS,
        AgentRegistry,
        SubAgentExecutor,
        register_agent_tools,
    )
    from context_engine.backends import BatchedCommandRunner, CommandRunner
    from context_engine.tools.builtin import register_builtin_tools
    from context_engine.tools.registry import ToolRegistry

    debounce = cfg.orchestration.batch_debounce_ms / 1000.0
    registry = ToolRegistry()
    runner = BatchedCommandRunner(CommandRunner(), task_board, debounce=debounce)
    register_builtin_tools(
        registry,
        task_board=task_board,
        runner=runner,
        blocked_commands=cfg.tools.blocked_commands,
        show_help=show_help,
        on_clear=on_clear,
        disabled=cfg.tools.disabled,
    )

    registry.load_plugins(
        enabled=cfg.plugins.enabled,
        allow_distributions=set(cfg.plugins.allow_distributions) or None,
        allow_tools=set(cfg.plugins.allow_tools) or None,
        services={"task_board": task_board, "runner": runner, "console": console},
    )

    agents = AgentRegistry(BUILTIN_AGENTS)
    if cfg.agents.directory:
        agents.load_directory(cfg.agents.directory)
    for agent_id in cfg.agents.disabled:
        agents.unregister(agent_id)

    executor = SubAgentExecutor(
        router,
        registry,
        task_board,
        debounce=debounce,
        max_turns=cfg.orchestration.max_turns,
    )
    register_agent_tools(registry, agents, executor)
    return registry, agents


def _setup_stack(cfg: EngineConfig) -> Stack:
    """Wire up the full stack for chat."""
    from context_engine.cli.chat import ChatHandler
    from context_engine.orchestrator.core import ConversationEngine
    from context_engine.orchestrator.dispatch import ToolCallRouter
    from context_engine.prompts.system import build_project_context, build_system_prompt
    from context_engine.tools.base import ToolContext, ToolScope
    from context_engine.ui.task_board import TaskBoard

    task_board = TaskBoard(
        console,
        tick=cfg.tasks.tick_ms / 1000.0,
        linger=cfg.tasks.linger_ms / 1000.0,
        stale_after=cfg.tasks.stale_after_seconds,
    )
    router = _build_router(cfg)

    handler = ChatHandler(None, None, task_board, console=console, version=VERSION)
    registry, agents = _build_tools(
        cfg, router, task_board, show_help=handler.show_help, on_clear=handler.clear
    )
    handler.registry = registry

    context = ToolContext(scope=ToolScope.MAIN, cwd=Path.cwd())
    visible = registry.for_context(ToolScope.MAIN)
    system_prompt = build_system_prompt(
        tools=visible,
        agents=agents.list(),
        extra_sections=[build_project_context(context.cwd)],
    )

    engine = ConversationEngine(
        router,
        ToolCallRouter(registry, debounce=cfg.orchestration.batch_debounce_ms / 1000.0),
        system_prompt=system_prompt,
        tools=[t.to_openai_schema() for t in visible],
        context=context,
        max_turns=cfg.orchestration.max_turns,
        buffer_content=cfg.orchestration.buffer_content,
    )
    handler.attach(engine)
    return Stack(cfg, router, registry, agents, task_board, engine, handler)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def chat(
    provider: Optional[str] = typer.Option(None, help="LLM provider name (openai, xai, ollama)"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    model: Optional[str] = typer.Option(None, help="Model identifier"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Send one message and exit"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Start an interactive chat session."""
    from context_engine.cli.logs import setup_logging

    cfg = _load(profile, {"llm.name": provider, "llm.model": model})
    setup_logging(
        "DEBUG" if verbose else cfg.logging.level,
        console=Console(stderr=True),
        log_file=cfg.logging.file or None,
    )

    async def _run() -> None:
        stack = _setup_stack(cfg)
        if message:
            await stack.handler.handle_input(message)
            stack.handler.writer.flush()
        else:
            await stack.handler.run_loop()

    asyncio.run(_run())


@tools_app.command("list")
def tools_list(
    scope: Optional[str] = typer.Option(None, help="Only tools visible in this scope (main, subagent)"),
):
    """List registered tools."""
    from context_engine.cli.output import OutputFormatter
    from context_engine.llm.router import LLMRouter
    from context_engine.tools.base import ToolScope
    from context_engine.ui.task_board import TaskBoard

    cfg = _load()
    registry, _agents = _build_tools(
        cfg, LLMRouter(), TaskBoard(console), show_help=lambda: None, on_clear=lambda: None
    )

    scope_filter = None
    if scope:
        try:
            scope_filter = ToolScope(scope.lower())
        except ValueError:
            console.print(f"[red]Unknown scope:[/red] {scope}")
            raise typer.Exit(1)

    formatter = OutputFormatter(console)
    formatter.format_tool_list(registry.list(scope_filter))


@agents_app.command("list")
def agents_list():
    """List available agents."""
    from context_engine.cli.output import OutputFormatter
    from context_engine.llm.router import LLMRouter
    from context_engine.ui.task_board import TaskBoard

    cfg = _load()
    _registry, agents = _build_tools(cfg, LLMRouter(), TaskBoard(console))
    OutputFormatter(console).format_agent_list(agents.list())


@config_app.command("show")
def config_show(profile: Optional[str] = typer.Option(None, help="Config profile name")):
    """Show effective config."""
    from context_engine.cli.output import OutputFormatter

    cfg = _load(profile)
    formatter = OutputFormatter(console)
    formatter.format_config(cfg.to_dict())


@config_app.command("validate")
def config_validate(profile: Optional[str] = typer.Option(None, help="Config profile name")):
    """Validate config and report problems."""
    from context_engine.cli.output import OutputFormatter

    cfg = _load(profile)
    if cfg.source:
        console.print(f"  Loaded from: {cfg.source}")
    else:
        console.print("  [dim]No config file found, using defaults.[/dim]")
    console.print(f"  LLM provider: {cfg.llm.name} ({cfg.llm.model})")

    problems = validate_config(cfg)
    OutputFormatter(console).format_problems(problems)
    if problems:
        raise typer.Exit(1)


@app.command()
def version():
    """Show version."""
    console.print(f"context-engine v{VERSION}")


def main():
    app()


if __name__ == "__main__":
    main()

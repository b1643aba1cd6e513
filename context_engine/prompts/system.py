"""System prompt builder."""

from __future__ import annotations

import os
from pathlib import Path

from context_engine.agents.config import AgentConfig
from context_engine.tools.base import Tool

_SKIP_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build"}
_MAX_DOC_BYTES = 20_000


def build_system_prompt(
    tools: list[Tool] | None = None,
    agents: list[AgentConfig] | None = None,
    extra_sections: list[str] | None = None,
) -> str:
    """
    Build the system prompt for the main conversation.

    Assembles the assistant's role, output and tool conventions, the tool
    and agent catalogs and any extra sections into a single prompt string.
    """
    sections: list[str] = []

    sections.append(
        "You are context-engine, an expert codebase analysis and development "
        "assistant. You have access to the user's project files through tools "
        "and can help them understand, modify, and improve their codebase. "
        "Do not tell the user to read files or run commands themselves -- you "
        "have the tools to do it directly."
    )

    sections.append(OUTPUT_SECTION)
    sections.append(TOOL_DISCIPLINE_SECTION)

    if tools:
        tool_lines = [f"- **{t.name}**: {t.description}" for t in tools]
        sections.append("## Available Tools\n\n" + "\n".join(tool_lines))

    if agents:
        agent_lines = [
            f"- **{a.tool_name}** ({a.name}): {a.description}" for a in agents
        ]
        sections.append(
            "## Agents\n\n"
            "Delegate self-contained jobs to an agent by calling its tool. "
            "Several agents may run at the same time.\n\n" + "\n".join(agent_lines)
        )

    if extra_sections:
        sections.extend(extra_sections)

    return "\n\n".join(sections)


def build_project_context(root: str | Path, max_files: int = 500) -> str:
    """Describe the project layout, inlining top-level markdown documents."""
    root = Path(root)
    paths: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS and not d.startswith("."))
        for fname in sorted(filenames):
            paths.append((Path(dirpath) / fname).relative_to(root).as_posix())
            if len(paths) >= max_files:
                break
        if len(paths) >= max_files:
            break

    if not paths:
        return "## Project\n\nNo project files found in the current directory."

    parts = [
        "## Project Structure",
        f"The project has {len(paths)} file(s)"
        + (" (listing truncated)" if len(paths) >= max_files else "")
        + ":",
        "\n".join(paths),
    ]
    for rel in paths:
        if "/" in rel or not rel.lower().endswith(".md"):
            continue
        data = (root / rel).read_bytes()[:_MAX_DOC_BYTES]
        parts.append(f"### {rel}\n\n{data.decode('utf-8', errors='replace')}")

    parts.append(
        "To read any other file use the getFileContent tool with the exact path."
    )
    return "\n\n".join(parts)


OUTPUT_SECTION = """## Output Conventions

- Be helpful, direct and technical; keep answers readable in a terminal.
- Use **bold** for emphasis, *italic* for notes and `inline code` for identifiers.
- Start a line with [HEADLINE], [NOTE], [WARNING] or [QUOTE] to style it.
- Put code in fenced code blocks.
- Reference specific files and line numbers when relevant.
- If you don't know something, say so."""

TOOL_DISCIPLINE_SECTION = """## Tool Discipline

- Read a file with getFileContent before editing it.
- When you need several independent tools, call them in the same turn; they run in parallel.
- Use statusUpdate to show progress during long operations.
- Do not simulate user replies between tool calls.
- If a tool returns an error, report it clearly and suggest alternatives."""

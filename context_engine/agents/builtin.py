"""Agents that ship with context-engine."""

from context_engine.agents.config import AgentConfig

AGENTS_MD = AgentConfig(
    id="agents-md",
    name="AGENTS.md",
    description="Writes an AGENTS.md file that briefs AI coding agents on this codebase",
    category="documentation",
    tools=("listFiles", "getFileContent", "readLines", "createFile", "readGeneratedFile", "statusUpdate"),
    allowed_paths=("AGENTS.md",),
    system_prompt=(
        "You are an expert assistant creating a comprehensive AGENTS.md file for "
        "this codebase. AGENTS.md gives instructions specifically to AI coding "
        "agents. Use standard markdown with these sections: Project Overview, "
        "Setup commands, Code style, Dev environment tips, Testing instructions "
        "and PR instructions. Base every statement on files you have read."
    ),
    default_instructions=(
        "List the project files, read the ones that explain how the project is "
        "built, run and tested, then create AGENTS.md in the project root. "
        "Report progress with statusUpdate."
    ),
)

GITHUB = AgentConfig(
    id="github",
    name="GitHub",
    description="Git and GitHub analysis using terminal commands",
    category="analysis",
    tools=("terminal", "statusUpdate"),
    system_prompt="You analyze git repositories and GitHub data by running terminal commands.",
    default_instructions=(
        "Answer the user's question by running whatever read-only git or gh "
        "commands you need via the terminal tool, then parse the output to give "
        "a clear answer."
    ),
)

BUILTIN_AGENTS = (AGENTS_MD, GITHUB)

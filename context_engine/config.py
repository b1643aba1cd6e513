"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < profile < env vars < CLI flags
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG_PATHS = (
    "./context-engine.yaml",
    "./context-engine.yml",
    "~/.config/context-engine/config.yaml",
    "~/.context-engine/config.yaml",
)

DEFAULT_BLOCKED_COMMANDS = [
    "rm -rf",
    "rm -fr",
    "sudo rm",
    "git push --force",
    "git push -f",
    "git reset --hard",
    "git clean -fd",
    "git commit",
    "git push",
    "git pull",
    "git merge",
    "git rebase",
    "gh pr create",
    "gh pr merge",
    "gh issue create",
    "gh release create",
    "gh auth",
    "gh api -X POST",
    "gh api -X PATCH",
    "gh api -X DELETE",
]


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMProviderConfig:
    name: str = "openai"
    model: str = "gpt-4o"
    api_base: str = ""
    api_key_env: str = "OPENAI_API_KEY"
    max_output_tokens: int = 2_000
    temperature: float = 0.3
    timeout_seconds: int = 120
    max_retries: int = 2


@dataclass
class OrchestrationConfig:
    batch_debounce_ms: int = 50
    max_turns: int = 50
    buffer_content: bool = True


@dataclass
class TasksConfig:
    tick_ms: int = 80
    linger_ms: int = 500
    stale_after_seconds: float = 60.0


@dataclass
class ToolsConfig:
    disabled: list[str] = field(default_factory=list)
    blocked_commands: list[str] = field(
        default_factory=lambda: list(DEFAULT_BLOCKED_COMMANDS)
    )


@dataclass
class PluginsConfig:
    enabled: bool = False
    allow_distributions: list[str] = field(default_factory=list)
    allow_tools: list[str] = field(default_factory=list)


@dataclass
class AgentsConfig:
    directory: str = ""
    disabled: list[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = ""


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class EngineConfig:
    llm: LLMProviderConfig = field(default_factory=LLMProviderConfig)
    orchestration: OrchestrationConfig = field(default_factory=OrchestrationConfig)
    tasks: TasksConfig = field(default_factory=TasksConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    plugins: PluginsConfig = field(default_factory=PluginsConfig)
    agents: AgentsConfig = field(default_factory=AgentsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)
    source: str | None = field(default=None, repr=False)

    def set(self, dotpath: str, value: Any) -> None:
        """Set a value using dot notation (e.g. 'llm.model')."""
        _apply_dotpath(self, dotpath, value)

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("source", None)
        return d

    def profile_llm(self, name: str) -> LLMProviderConfig | None:
        """Return the llm section of profile *name* layered on ``self.llm``."""
        overlay = (self.profiles.get(name) or {}).get("llm")
        if not overlay:
            return None
        return _build_section(LLMProviderConfig, _deep_merge(asdict(self.llm), overlay))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay into base, returning a new dict."""
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    if target_type is list:
        return [s.strip() for s in value.split(",") if s.strip()]
    return value


def _build_section(cls: type, raw: dict | None) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in (raw or {}).items() if k in valid_fields}
    return cls(**filtered)


def find_config_file() -> Path | None:
    """Return the first existing file from ``DEFAULT_CONFIG_PATHS``."""
    for candidate in DEFAULT_CONFIG_PATHS:
        p = Path(candidate).expanduser()
        if p.is_file():
            return p
    return None


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "CONTEXT_ENGINE_LLM_NAME":          ("llm.name", str),
    "CONTEXT_ENGINE_LLM_MODEL":         ("llm.model", str),
    "CONTEXT_ENGINE_LLM_API_BASE":      ("llm.api_base", str),
    "CONTEXT_ENGINE_LLM_API_KEY_ENV":   ("llm.api_key_env", str),
    "CONTEXT_ENGINE_LLM_MAX_OUTPUT":    ("llm.max_output_tokens", int),
    "CONTEXT_ENGINE_LLM_TEMPERATURE":   ("llm.temperature", float),
    "CONTEXT_ENGINE_LLM_TIMEOUT":       ("llm.timeout_seconds", int),
    "CONTEXT_ENGINE_LLM_MAX_RETRIES":   ("llm.max_retries", int),
    "CONTEXT_ENGINE_BATCH_DEBOUNCE_MS": ("orchestration.batch_debounce_ms", int),
    "CONTEXT_ENGINE_MAX_TURNS":         ("orchestration.max_turns", int),
    "CONTEXT_ENGINE_BUFFER_CONTENT":    ("orchestration.buffer_content", bool),
    "CONTEXT_ENGINE_TASKS_TICK_MS":     ("tasks.tick_ms", int),
    "CONTEXT_ENGINE_TASKS_LINGER_MS":   ("tasks.linger_ms", int),
    "CONTEXT_ENGINE_TASKS_STALE_AFTER": ("tasks.stale_after_seconds", float),
    "CONTEXT_ENGINE_TOOLS_DISABLED":    ("tools.disabled", list),
    "CONTEXT_ENGINE_BLOCKED_COMMANDS":  ("tools.blocked_commands", list),
    "CONTEXT_ENGINE_PLUGINS_ENABLED":   ("plugins.enabled", bool),
    "CONTEXT_ENGINE_AGENTS_DIR":        ("agents.directory", str),
    "CONTEXT_ENGINE_AGENTS_DISABLED":   ("agents.disabled", list),
    "CONTEXT_ENGINE_LOG_LEVEL":         ("logging.level", str),
    "CONTEXT_ENGINE_LOG_FILE":          ("logging.file", str),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
    search: bool = False,
) -> EngineConfig:
    """
    Build an EngineConfig by layering sources in precedence order:

        defaults  <  config file  <  profile  <  env vars  <  CLI flags

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    profile : name of a profile to apply from the config file
    cli_overrides : dict of dotpath -> value CLI flag overrides
    search : look through ``DEFAULT_CONFIG_PATHS`` when no path is given
    """
    raw: dict[str, Any] = {}
    source: Path | None = None

    # --- 1. Config file ---
    if config_path is not None:
        source = Path(config_path).expanduser()
    elif search:
        source = find_config_file()

    if source is not None and source.is_file():
        with source.open("r", encoding="utf-8") as f:
            file_data = yaml.safe_load(f) or {}
        if not isinstance(file_data, dict):
            raise ValueError(f"{source}: top level must be a mapping")
        raw = _deep_merge(raw, file_data)
    else:
        source = None

    # --- 2. Profile overlay ---
    if profile:
        profile_data = (raw.get("profiles") or {}).get(profile)
        if profile_data is None:
            raise KeyError(f"Unknown profile {profile!r}")
        raw = _deep_merge(raw, profile_data)

    # --- Build sections from raw ---
    cfg = EngineConfig(
        llm=_build_section(LLMProviderConfig, raw.get("llm")),
        orchestration=_build_section(OrchestrationConfig, raw.get("orchestration")),
        tasks=_build_section(TasksConfig, raw.get("tasks")),
        tools=_build_section(ToolsConfig, raw.get("tools")),
        plugins=_build_section(PluginsConfig, raw.get("plugins")),
        agents=_build_section(AgentsConfig, raw.get("agents")),
        logging=_build_section(LoggingConfig, raw.get("logging")),
        profiles=raw.get("profiles") or {},
        source=str(source) if source is not None else None,
    )

    # --- 3. Env var overrides ---
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None:
            _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    # --- 4. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            if value is not None:
                _apply_dotpath(cfg, dotpath, value)

    return cfg


def validate_config(cfg: EngineConfig) -> list[str]:
    """Return a list of human-readable problems (empty when valid)."""
    problems: list[str] = []
    if cfg.llm.name.lower() not in ("openai", "xai", "ollama"):
        problems.append(f"llm.name: unknown provider {cfg.llm.name!r}")
    if not cfg.llm.model:
        problems.append("llm.model: must not be empty")
    if cfg.llm.max_retries < 0:
        problems.append("llm.max_retries: must be >= 0")
    if cfg.orchestration.batch_debounce_ms < 0:
        problems.append("orchestration.batch_debounce_ms: must be >= 0")
    if cfg.orchestration.max_turns < 1:
        problems.append("orchestration.max_turns: must be >= 1")
    if cfg.tasks.tick_ms <= 0:
        problems.append("tasks.tick_ms: must be > 0")
    if cfg.tasks.linger_ms < 0:
        problems.append("tasks.linger_ms: must be >= 0")
    if cfg.tasks.stale_after_seconds <= 0:
        problems.append("tasks.stale_after_seconds: must be > 0")
    if cfg.logging.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        problems.append(f"logging.level: unknown level {cfg.logging.level!r}")
    if cfg.agents.directory and not Path(cfg.agents.directory).expanduser().is_dir():
        problems.append(f"agents.directory: {cfg.agents.directory} is not a directory")
    if (
        cfg.llm.name.lower() != "ollama"
        and cfg.llm.api_key_env
        and not os.environ.get(cfg.llm.api_key_env)
    ):
        problems.append(f"llm.api_key_env: ${cfg.llm.api_key_env} is not set")
    return problems

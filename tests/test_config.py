"""Tests for the configuration loader."""

from __future__ import annotations

import textwrap

import pytest

from context_engine.config import (
    DEFAULT_BLOCKED_COMMANDS,
    EngineConfig,
    load_config,
    validate_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    import os

    for key in list(os.environ):
        if key.startswith("CONTEXT_ENGINE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


def _write(tmp_path, body: str):
    path = tmp_path / "context-engine.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


class TestDefaults:
    def test_defaults(self):
        cfg = load_config()
        assert cfg.llm.name == "openai"
        assert cfg.orchestration.batch_debounce_ms == 50
        assert cfg.orchestration.max_turns == 50
        assert cfg.orchestration.buffer_content is True
        assert cfg.tasks.tick_ms == 80
        assert cfg.tools.blocked_commands == DEFAULT_BLOCKED_COMMANDS
        assert cfg.source is None

    def test_blocked_commands_not_shared_between_instances(self):
        a, b = EngineConfig(), EngineConfig()
        a.tools.blocked_commands.append("shutdown")
        assert "shutdown" not in b.tools.blocked_commands

    def test_missing_file_falls_back_to_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "nope.yaml")
        assert cfg.source is None
        assert cfg.llm.model == "gpt-4o"


class TestFile:
    def test_file_values(self, tmp_path):
        path = _write(
            tmp_path,
            """
            llm:
              name: xai
              model: grok-4-fast-reasoning
              api_key_env: XAI_API_KEY
            orchestration:
              batch_debounce_ms: 20
            unknown_section:
              whatever: 1
            """,
        )
        cfg = load_config(path)
        assert cfg.llm.name == "xai"
        assert cfg.llm.model == "grok-4-fast-reasoning"
        assert cfg.llm.max_retries == 2
        assert cfg.orchestration.batch_debounce_ms == 20
        assert cfg.source == str(path)

    def test_unknown_keys_ignored(self, tmp_path):
        path = _write(tmp_path, "llm:\n  bogus: 1\n")
        assert load_config(path).llm.name == "openai"

    def test_non_mapping_rejected(self, tmp_path):
        path = _write(tmp_path, "- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_search_finds_local_file(self, tmp_path, monkeypatch):
        _write(tmp_path, "llm:\n  model: local-model\n")
        monkeypatch.chdir(tmp_path)
        assert load_config(search=True).llm.model == "local-model"


class TestPrecedence:
    def test_profile_overrides_file(self, tmp_path):
        path = _write(
            tmp_path,
            """
            llm:
              name: openai
              model: gpt-4o
            profiles:
              local:
                llm:
                  name: ollama
                  model: llama3
            """,
        )
        cfg = load_config(path, profile="local")
        assert cfg.llm.name == "ollama"
        assert cfg.llm.model == "llama3"
        assert "local" in cfg.profiles

    def test_unknown_profile(self, tmp_path):
        path = _write(tmp_path, "llm:\n  name: openai\n")
        with pytest.raises(KeyError, match="nope"):
            load_config(path, profile="nope")

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = _write(tmp_path, "llm:\n  model: from-file\n")
        monkeypatch.setenv("CONTEXT_ENGINE_LLM_MODEL", "from-env")
        monkeypatch.setenv("CONTEXT_ENGINE_BUFFER_CONTENT", "false")
        monkeypatch.setenv("CONTEXT_ENGINE_BLOCKED_COMMANDS", "rm -rf, shutdown")
        cfg = load_config(path)
        assert cfg.llm.model == "from-env"
        assert cfg.orchestration.buffer_content is False
        assert cfg.tools.blocked_commands == ["rm -rf", "shutdown"]

    def test_cli_overrides_env(self, monkeypatch):
        monkeypatch.setenv("CONTEXT_ENGINE_LLM_MODEL", "from-env")
        cfg = load_config(cli_overrides={"llm.model": "from-cli", "llm.name": None})
        assert cfg.llm.model == "from-cli"
        assert cfg.llm.name == "openai"

    def test_profile_llm_layers_on_base(self, tmp_path):
        path = _write(
            tmp_path,
            """
            llm:
              model: gpt-4o
              max_retries: 5
            profiles:
              grok:
                llm:
                  name: xai
                  model: grok-4
              quiet:
                logging:
                  level: ERROR
            """,
        )
        cfg = load_config(path)
        grok = cfg.profile_llm("grok")
        assert grok.name == "xai"
        assert grok.max_retries == 5
        assert cfg.profile_llm("quiet") is None
        assert cfg.profile_llm("missing") is None


class TestValidation:
    def test_defaults_are_valid(self):
        assert validate_config(load_config()) == []

    def test_problems_reported(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY")
        cfg = EngineConfig()
        cfg.set("llm.name", "mystery")
        cfg.set("orchestration.max_turns", 0)
        cfg.set("logging.level", "LOUD")
        problems = validate_config(cfg)
        assert any("llm.name" in p for p in problems)
        assert any("max_turns" in p for p in problems)
        assert any("logging.level" in p for p in problems)
        assert any("OPENAI_API_KEY" in p for p in problems)

    def test_ollama_needs_no_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY")
        cfg = EngineConfig()
        cfg.set("llm.name", "ollama")
        assert validate_config(cfg) == []

    def test_to_dict_omits_source(self):
        d = EngineConfig(source="/tmp/x.yaml").to_dict()
        assert "source" not in d
        assert d["llm"]["name"] == "openai"

"""
Unit tests for deep_research_mcp.config.

Tests cover TOML loading, environment overrides and their precedence,
and invalid value handling.
"""

import logging

import pytest

from deep_research_mcp.config import (
    DEFAULT_ENGINE_TIMEOUT_MS,
    EngineConfig,
    ResearchConfig,
    ServerConfig,
    get_config,
    set_config,
)

_ENV_VARS = [
    "OPENAI_API_KEY",
    "OPENAI_TIMEOUT",
    "OPENAI_BASE_URL",
    "OPENAI_ORGANIZATION",
    "DEEP_RESEARCH_MCP_DEFAULT_MODEL",
    "DEEP_RESEARCH_MCP_RETENTION_HOURS",
    "DEEP_RESEARCH_MCP_LOG_LEVEL",
    "DEEP_RESEARCH_MCP_LOG_FORMAT",
    "DEEP_RESEARCH_MCP_CONFIG_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and working directory."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    set_config(None)


class TestDefaults:
    def test_server_defaults(self):
        config = ServerConfig.from_env()
        assert config.server_name == "openai-deep-research"
        assert config.log_level == "INFO"
        assert config.structured_logging is True
        assert config.engine.api_key is None
        assert config.engine.timeout_ms == DEFAULT_ENGINE_TIMEOUT_MS
        assert config.engine.timeout_seconds == 600.0
        assert not config.engine.has_credentials
        assert config.research.default_model == "o3-deep-research-2025-06-26"
        assert config.research.retention_hours == 0.0


class TestEnvironment:
    def test_engine_settings(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("OPENAI_TIMEOUT", "30000")
        monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:9999/v1")
        monkeypatch.setenv("OPENAI_ORGANIZATION", "org-1")

        config = ServerConfig.from_env()

        assert config.engine.api_key == "sk-env"
        assert config.engine.timeout_seconds == 30.0
        assert config.engine.base_url == "http://localhost:9999/v1"
        assert config.engine.organization == "org-1"
        assert config.engine.has_credentials

    def test_invalid_timeout_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("OPENAI_TIMEOUT", "soon")
        with caplog.at_level(logging.WARNING, logger="deep_research_mcp.config"):
            config = ServerConfig.from_env()
        assert config.engine.timeout_ms == DEFAULT_ENGINE_TIMEOUT_MS
        assert "OPENAI_TIMEOUT" in caplog.text

    def test_invalid_retention_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("DEEP_RESEARCH_MCP_RETENTION_HOURS", "forever")
        with caplog.at_level(logging.WARNING, logger="deep_research_mcp.config"):
            config = ServerConfig.from_env()
        assert config.research.retention_hours == 0.0
        assert "DEEP_RESEARCH_MCP_RETENTION_HOURS" in caplog.text

    def test_research_and_logging(self, monkeypatch):
        monkeypatch.setenv("DEEP_RESEARCH_MCP_DEFAULT_MODEL", "o4-mini-deep-research-2025-06-26")
        monkeypatch.setenv("DEEP_RESEARCH_MCP_RETENTION_HOURS", "24")
        monkeypatch.setenv("DEEP_RESEARCH_MCP_LOG_LEVEL", "debug")
        monkeypatch.setenv("DEEP_RESEARCH_MCP_LOG_FORMAT", "human")

        config = ServerConfig.from_env()

        assert config.research.default_model == "o4-mini-deep-research-2025-06-26"
        assert config.research.retention_seconds == 24 * 3600
        assert config.log_level == "DEBUG"
        assert config.structured_logging is False

    def test_invalid_default_model_falls_back(self, monkeypatch):
        monkeypatch.setenv("DEEP_RESEARCH_MCP_DEFAULT_MODEL", "gpt-nope")
        config = ServerConfig.from_env()
        assert config.research.default_model == "o3-deep-research-2025-06-26"


class TestTomlFile:
    def test_load_sections(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text(
            """
[logging]
level = "warning"
structured = false

[server]
name = "research-test"

[engine]
api_key = "sk-file"
timeout_ms = 5000

[research]
default_model = "o4-mini-deep-research-2025-06-26"
retention_hours = 6
"""
        )

        config = ServerConfig.from_env(str(path))

        assert config.log_level == "WARNING"
        assert config.structured_logging is False
        assert config.server_name == "research-test"
        assert config.engine.api_key == "sk-file"
        assert config.engine.timeout_ms == 5000
        assert config.research.default_model == "o4-mini-deep-research-2025-06-26"
        assert config.research.retention_hours == 6.0

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.toml"
        path.write_text('[engine]\napi_key = "sk-file"\n')
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("DEEP_RESEARCH_MCP_CONFIG_FILE", str(path))

        config = ServerConfig.from_env()

        assert config.engine.api_key == "sk-env"

    def test_default_file_in_working_directory(self, tmp_path):
        (tmp_path / "deep-research-mcp.toml").write_text('[server]\nname = "from-cwd"\n')
        assert ServerConfig.from_env().server_name == "from-cwd"

    def test_missing_file_keeps_defaults(self, tmp_path):
        config = ServerConfig.from_env(str(tmp_path / "absent.toml"))
        assert config.server_name == "openai-deep-research"

    def test_invalid_number_keeps_other_sections(self, tmp_path, caplog):
        path = tmp_path / "custom.toml"
        path.write_text(
            """
[engine]
api_key = "sk-file"
timeout_ms = "soon"

[research]
retention_hours = 6
"""
        )

        with caplog.at_level(logging.WARNING, logger="deep_research_mcp.config"):
            config = ServerConfig.from_env(str(path))

        assert config.engine.api_key == "sk-file"
        assert config.engine.timeout_ms == DEFAULT_ENGINE_TIMEOUT_MS
        assert config.research.retention_hours == 6.0
        assert "[engine] timeout_ms" in caplog.text

    def test_broken_file_keeps_defaults(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[engine\napi_key = ")
        config = ServerConfig.from_env(str(path))
        assert config.engine.api_key is None


class TestSectionParsing:
    def test_engine_from_toml_dict(self):
        config = EngineConfig.from_toml_dict({"api_key": "", "timeout_ms": "2500"})
        assert config.api_key is None
        assert config.timeout_ms == 2500

    def test_research_from_toml_dict_bad_retention(self):
        config = ResearchConfig.from_toml_dict({"retention_hours": [1]})
        assert config.retention_hours == 0.0

    def test_research_from_toml_dict_defaults(self):
        config = ResearchConfig.from_toml_dict({})
        assert config.default_model == "o3-deep-research-2025-06-26"
        assert config.retention_hours == 0.0


class TestGlobalConfig:
    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_set_config(self):
        custom = ServerConfig(server_name="custom")
        set_config(custom)
        assert get_config() is custom

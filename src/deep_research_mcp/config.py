"""
Server configuration for deep-research-mcp.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (deep-research-mcp.toml)
3. Default values (lowest priority)

Environment variables:
- OPENAI_API_KEY: API key for the research engine (required to create requests)
- OPENAI_TIMEOUT: Engine network timeout in milliseconds (default: 600000)
- OPENAI_BASE_URL: Alternate engine endpoint (optional)
- OPENAI_ORGANIZATION: Organization ID sent with engine requests (optional)
- DEEP_RESEARCH_MCP_DEFAULT_MODEL: Model used when the caller omits one
- DEEP_RESEARCH_MCP_RETENTION_HOURS: Evict finished requests after this many
  hours (0 keeps them for the lifetime of the process)
- DEEP_RESEARCH_MCP_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- DEEP_RESEARCH_MCP_LOG_FORMAT: "structured" (JSON lines) or "human"
- DEEP_RESEARCH_MCP_CONFIG_FILE: Path to TOML config file
"""

import logging
import os
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_package_version
from pathlib import Path
from typing import Any, Callable, Dict, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from deep_research_mcp.core.logging_config import configure_logging
from deep_research_mcp.core.research.models import DEFAULT_MODEL, ResearchModel

logger = logging.getLogger(__name__)

DEFAULT_ENGINE_TIMEOUT_MS = 600_000


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("deep-research-mcp")
    except PackageNotFoundError:
        return "1.0.0"  # Fallback for dev without install


_PACKAGE_VERSION = _get_version()


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_number(
    value: Any, convert: Callable[[Any], Any], default: Any, name: str
) -> Any:
    """Convert a numeric setting, warning and keeping ``default`` if it is invalid."""
    try:
        return convert(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s=%r (using %s)", name, value, default)
        return default


def _normalize_model(value: str) -> str:
    try:
        return ResearchModel(value.strip()).value
    except ValueError:
        logger.warning(
            "Invalid default model '%s'. Falling back to '%s'. Valid options: %s",
            value,
            DEFAULT_MODEL.value,
            ", ".join(m.value for m in ResearchModel),
        )
        return DEFAULT_MODEL.value


@dataclass
class EngineConfig:
    """Connection settings for the research engine.

    Read once per engine-client construction; the client holds no other state.

    Attributes:
        api_key: Engine API key (None means requests will fail to start)
        timeout_ms: Network timeout per engine call, in milliseconds
        base_url: Alternate API endpoint (None uses the SDK default)
        organization: Optional organization ID
    """

    api_key: Optional[str] = None
    timeout_ms: int = DEFAULT_ENGINE_TIMEOUT_MS
    base_url: Optional[str] = None
    organization: Optional[str] = None

    @property
    def timeout_seconds(self) -> float:
        """Network timeout converted to seconds for the SDK client."""
        return self.timeout_ms / 1000.0

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Create config from TOML dict (typically [engine] section).

        Args:
            data: Dict from TOML parsing

        Returns:
            EngineConfig instance
        """
        return cls(
            api_key=data.get("api_key") or None,
            timeout_ms=_parse_number(
                data.get("timeout_ms", DEFAULT_ENGINE_TIMEOUT_MS),
                int,
                DEFAULT_ENGINE_TIMEOUT_MS,
                "[engine] timeout_ms",
            ),
            base_url=data.get("base_url") or None,
            organization=data.get("organization") or None,
        )


@dataclass
class ResearchConfig:
    """Job lifecycle settings.

    Attributes:
        default_model: Model used when a create call omits one
        retention_hours: Finished requests older than this are evicted on the
            next create call. 0 disables eviction.
    """

    default_model: str = DEFAULT_MODEL.value
    retention_hours: float = 0.0

    @property
    def retention_seconds(self) -> float:
        return self.retention_hours * 3600

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "ResearchConfig":
        """Create config from TOML dict (typically [research] section).

        Args:
            data: Dict from TOML parsing

        Returns:
            ResearchConfig instance
        """
        return cls(
            default_model=_normalize_model(
                str(data.get("default_model", DEFAULT_MODEL.value))
            ),
            retention_hours=_parse_number(
                data.get("retention_hours", 0.0),
                float,
                0.0,
                "[research] retention_hours",
            ),
        )


@dataclass
class ServerConfig:
    """Server configuration with support for env vars and TOML overrides."""

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    # Server configuration
    server_name: str = "openai-deep-research"
    server_version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    # Research engine configuration
    engine: EngineConfig = field(default_factory=EngineConfig)

    # Job lifecycle configuration
    research: ResearchConfig = field(default_factory=ResearchConfig)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("DEEP_RESEARCH_MCP_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            for default_path in ["deep-research-mcp.toml", ".deep-research-mcp.toml"]:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        config._load_env()

        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if "logging" in data:
                log = data["logging"]
                if "level" in log:
                    self.log_level = str(log["level"]).upper()
                if "structured" in log:
                    self.structured_logging = _parse_bool(log["structured"])

            if "server" in data:
                srv = data["server"]
                if "name" in srv:
                    self.server_name = srv["name"]
                if "version" in srv:
                    self.server_version = srv["version"]

            if "engine" in data:
                self.engine = EngineConfig.from_toml_dict(data["engine"])

            if "research" in data:
                self.research = ResearchConfig.from_toml_dict(data["research"])

        except Exception as e:
            logger.error(f"Error loading config file {path}: {e}")

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if api_key := os.environ.get("OPENAI_API_KEY"):
            self.engine.api_key = api_key
        if timeout := os.environ.get("OPENAI_TIMEOUT"):
            self.engine.timeout_ms = _parse_number(
                timeout, int, self.engine.timeout_ms, "OPENAI_TIMEOUT"
            )
        if base_url := os.environ.get("OPENAI_BASE_URL"):
            self.engine.base_url = base_url
        if organization := os.environ.get("OPENAI_ORGANIZATION"):
            self.engine.organization = organization

        if model := os.environ.get("DEEP_RESEARCH_MCP_DEFAULT_MODEL"):
            self.research.default_model = _normalize_model(model)
        if retention := os.environ.get("DEEP_RESEARCH_MCP_RETENTION_HOURS"):
            self.research.retention_hours = _parse_number(
                retention,
                float,
                self.research.retention_hours,
                "DEEP_RESEARCH_MCP_RETENTION_HOURS",
            )

        if level := os.environ.get("DEEP_RESEARCH_MCP_LOG_LEVEL"):
            self.log_level = level.upper()
        if log_format := os.environ.get("DEEP_RESEARCH_MCP_LOG_FORMAT"):
            self.structured_logging = log_format.strip().lower() != "human"

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(
            level=self.log_level,
            format="structured" if self.structured_logging else "human",
        )


# Global configuration instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def set_config(config: Optional[ServerConfig]) -> None:
    """Set (or clear, with None) the global configuration instance."""
    global _config
    _config = config

"""Configuration management for casegraph."""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class LayoutConfig:
    """Spacing used by the layout engine."""
    node_spacing: float = 250
    level_height: float = 250
    component_spacing: float = 400


@dataclass
class AnalysisConfig:
    """Relation suggester and engine settings."""
    min_confidence: float = 0.3
    suggestion_limit: int = 10
    collect_metrics: bool = True


@dataclass
class ApiConfig:
    """HTTP server settings."""
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    search_default_limit: int = 20
    search_max_limit: int = 100


@dataclass
class LoggingConfig:
    format: str = "text"
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class CaseGraphConfig:
    """Main configuration."""
    snapshot_path: Optional[str] = None
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaseGraphConfig":
        sections = {
            "layout": LayoutConfig,
            "analysis": AnalysisConfig,
            "api": ApiConfig,
            "logging": LoggingConfig,
        }
        kwargs: Dict[str, Any] = {"snapshot_path": data.get("snapshot_path")}
        for name, section_cls in sections.items():
            known = {f.name for f in fields(section_cls)}
            values = data.get(name) or {}
            unknown = set(values) - known
            if unknown:
                raise ConfigurationError(
                    f"Unknown {name} settings: {', '.join(sorted(unknown))}", key=name
                )
            kwargs[name] = section_cls(**values)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _as_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _as_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# env var -> (section, key, converter); section None means top level
ENV_OVERRIDES: Dict[str, tuple] = {
    "CASEGRAPH_SNAPSHOT_PATH": (None, "snapshot_path", str),
    "CASEGRAPH_NODE_SPACING": ("layout", "node_spacing", float),
    "CASEGRAPH_LEVEL_HEIGHT": ("layout", "level_height", float),
    "CASEGRAPH_COMPONENT_SPACING": ("layout", "component_spacing", float),
    "CASEGRAPH_MIN_CONFIDENCE": ("analysis", "min_confidence", float),
    "CASEGRAPH_SUGGESTION_LIMIT": ("analysis", "suggestion_limit", int),
    "CASEGRAPH_COLLECT_METRICS": ("analysis", "collect_metrics", _as_bool),
    "CASEGRAPH_API_HOST": ("api", "host", str),
    "CASEGRAPH_API_PORT": ("api", "port", int),
    "CASEGRAPH_CORS_ORIGINS": ("api", "cors_origins", _as_list),
    "CASEGRAPH_LOG_FORMAT": ("logging", "format", str),
    "CASEGRAPH_LOG_LEVEL": ("logging", "level", str),
    "CASEGRAPH_LOG_FILE": ("logging", "file", str),
}


class ConfigManager:
    """Loads configuration from defaults, a JSON file and the environment."""

    DEFAULT_CONFIG = CaseGraphConfig().to_dict()

    def __init__(self, config_path: Optional[str] = None, load_env_file: bool = True):
        """Initialize config manager.

        Args:
            config_path: Path to a JSON config file. If None, uses defaults + env vars
            load_env_file: Whether to read a ``.env`` file into the environment first
        """
        self.config_path = Path(config_path) if config_path else None
        self.load_env_file = load_env_file
        self._config: Optional[CaseGraphConfig] = None

    def load(self) -> CaseGraphConfig:
        """Load configuration from file and environment.

        Raises:
            ConfigurationError: on an unreadable file or an invalid value
        """
        if self._config:
            return self._config

        if self.load_env_file:
            load_dotenv()

        config_dict = json.loads(json.dumps(self.DEFAULT_CONFIG))

        if self.config_path:
            if not self.config_path.exists():
                raise ConfigurationError(f"Config file not found: {self.config_path}", key="config_path")
            try:
                with open(self.config_path, "r") as f:
                    file_config = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in {self.config_path}: {e}", key="config_path")
            config_dict = self._deep_merge(config_dict, file_config)

        config_dict = self._apply_env_overrides(config_dict)

        self._config = CaseGraphConfig.from_dict(config_dict)
        self.validate(self._config)
        logger.debug(f"Loaded configuration from {self.config_path or 'defaults'}")
        return self._config

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply ``CASEGRAPH_*`` environment variable overrides."""
        for env_key, (section, key, convert) in ENV_OVERRIDES.items():
            raw = os.getenv(env_key)
            if raw is None or raw == "":
                continue
            value = self._convert(env_key, raw, convert)
            if section is None:
                config[key] = value
            else:
                config.setdefault(section, {})[key] = value
        return config

    @staticmethod
    def _convert(env_key: str, raw: str, convert: Callable[[str], Any]) -> Any:
        try:
            return convert(raw)
        except ValueError:
            raise ConfigurationError(f"Invalid value for {env_key}: {raw!r}", key=env_key)

    def validate(self, config: CaseGraphConfig) -> bool:
        """Check value ranges.

        Raises:
            ConfigurationError: if a value is out of range
        """
        for name in ("node_spacing", "level_height", "component_spacing"):
            if getattr(config.layout, name) <= 0:
                raise ConfigurationError(f"layout.{name} must be positive", key=f"layout.{name}")

        if not 0.0 <= config.analysis.min_confidence <= 1.0:
            raise ConfigurationError("analysis.min_confidence must be between 0 and 1", key="analysis.min_confidence")
        if config.analysis.suggestion_limit < 1:
            raise ConfigurationError("analysis.suggestion_limit must be at least 1", key="analysis.suggestion_limit")

        if not 0 < config.api.port < 65536:
            raise ConfigurationError("api.port must be between 1 and 65535", key="api.port")
        if not 1 <= config.api.search_default_limit <= config.api.search_max_limit:
            raise ConfigurationError(
                "api.search_default_limit must be between 1 and api.search_max_limit",
                key="api.search_default_limit",
            )

        if config.logging.format not in ("json", "text"):
            raise ConfigurationError("logging.format must be 'json' or 'text'", key="logging.format")

        return True

    def save_template(self, path: str) -> None:
        """Save a configuration template file."""
        with open(path, "w") as f:
            json.dump(self.DEFAULT_CONFIG, f, indent=2)
        logger.info(f"Configuration template saved to: {path}")

    @property
    def config(self) -> CaseGraphConfig:
        """Get the loaded configuration."""
        if not self._config:
            self._config = self.load()
        return self._config

"""Configuration management for taskbuffer."""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .horizons import OVERLAP_POLICIES, OVERLAP_SORTED, HorizonSpec
from .syntax import SyntaxConfig
from .utils.datetime import WEEKDAYS, parse_weekday

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/taskbuffer/config.yaml"
DEFAULT_NOTES_PATH = "~/Documents/Notes"
DEFAULT_STATE_DIR = "~/.local/state/task"
CONFIG_ENV_VAR = "TASKBUFFER_CONFIG"
NOTES_ENV_VAR = "NOTES_PATH"


def _as_list(value, key: str) -> list:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    logger.warning(f"Ignoring config key '{key}': expected a list, got {type(value).__name__}")
    return []


def _as_dict(value, key: str) -> dict:
    if not value:
        return {}
    if isinstance(value, dict):
        return value
    logger.warning(f"Ignoring config key '{key}': expected a mapping, got {type(value).__name__}")
    return {}


@dataclass
class ConfigModel:
    """Global configuration model for taskbuffer."""

    # Where to look for tasks
    sources: List[str] = field(default_factory=list)
    state_dir: str = DEFAULT_STATE_DIR

    # Report preferences
    show_undated: bool = True
    show_markers: bool = False
    week_start: str = "monday"
    overlap: str = OVERLAP_SORTED

    # Where `create` puts new tasks
    inbox: Dict[str, Any] = field(default_factory=dict)

    # Task syntax and horizons
    formats: Dict[str, Any] = field(default_factory=dict)
    horizons: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        """Post-initialization setup."""
        sources = self.sources
        if isinstance(sources, str):
            sources = [sources]
        self.sources = [os.path.expanduser(str(s)) for s in _as_list(sources, "sources")]
        self.state_dir = os.path.expanduser(self.state_dir or DEFAULT_STATE_DIR)
        self.inbox = _as_dict(self.inbox, "inbox")
        self.formats = _as_dict(self.formats, "formats")
        self.horizons = _as_list(self.horizons, "horizons")

        if str(self.week_start).strip().lower() not in WEEKDAYS:
            logger.warning(f"Unknown week_start '{self.week_start}', using monday")
            self.week_start = "monday"
        if self.overlap not in OVERLAP_POLICIES:
            logger.warning(f"Unknown overlap policy '{self.overlap}', using '{OVERLAP_SORTED}'")
            self.overlap = OVERLAP_SORTED

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML, ignoring unknown keys."""
        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ValueError("configuration must be a mapping")

        known = {f.name for f in fields(cls)}
        for key in sorted(set(data) - known):
            logger.warning(f"Ignoring unknown config key '{key}'")
        return cls(**{k: v for k, v in data.items() if k in known})

    def syntax_config(self) -> SyntaxConfig:
        return SyntaxConfig.from_dict(self.formats)

    def horizon_specs(self) -> List[HorizonSpec]:
        specs = []
        for entry in self.horizons:
            if isinstance(entry, dict):
                specs.append(HorizonSpec.from_dict(entry))
            else:
                logger.warning(f"Ignoring horizon entry {entry!r}: expected a mapping")
        return specs

    def week_start_index(self) -> int:
        return parse_weekday(self.week_start)

    @property
    def inbox_file(self) -> Optional[str]:
        path = self.inbox.get("file")
        return os.path.expanduser(path) if path else None

    @property
    def inbox_header(self) -> Optional[str]:
        return self.inbox.get("header") or None

    def resolve_sources(self, cli_sources: Sequence[str] = ()) -> List[str]:
        """Pick source paths: CLI, then config, then NOTES_PATH, then the default."""
        if cli_sources:
            return [os.path.expanduser(s) for s in cli_sources]
        if self.sources:
            return list(self.sources)
        env_path = os.environ.get(NOTES_ENV_VAR)
        if env_path:
            return [os.path.expanduser(env_path)]
        return [os.path.expanduser(DEFAULT_NOTES_PATH)]


def default_config_path() -> Path:
    """Config path from the environment, or the default location."""
    return Path(os.path.expanduser(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH))


class Config:
    """Configuration manager for taskbuffer."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Load configuration from file, or defaults when there is none."""
        if cls._instance is not None:
            return cls._instance

        config = ConfigModel()

        explicit = config_path is not None
        if config_path is None:
            config_path = default_config_path()
        config_path = Path(config_path).expanduser()

        if explicit and not config_path.exists():
            logger.warning(f"Config file {config_path} not found, using defaults")
        elif config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    yaml_content = f.read()
                config = ConfigModel.from_yaml(yaml_content)
                logger.debug(f"Loaded configuration from {config_path}")
            except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
                logger.warning(f"Failed to load config from {config_path}: {e}")
                logger.warning("Using default configuration.")
                config = ConfigModel()

        cls._instance = config
        return config

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reload(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Reload configuration from file."""
        cls._instance = None
        return cls.load(config_path)

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


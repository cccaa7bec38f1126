"""Configuration management for tasklines."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TASKLINES_CONFIG"


@dataclass
class ConfigModel:
    """Settings consumed by the line parser and by display code."""

    # A line's body must contain this token to be a task. Empty accepts all.
    global_filter: str = ""
    # Strip the global filter from rendered task text.
    remove_global_filter: bool = False

    data_dir: str = "~/.tasklines"

    def __post_init__(self):
        self.data_dir = os.path.expanduser(self.data_dir)

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        data = {
            "global_filter": self.global_filter,
            "remove_global_filter": self.remove_global_filter,
            "data_dir": self.data_dir,
        }
        return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML, ignoring unknown keys."""
        data = yaml.safe_load(yaml_str) or {}
        if not isinstance(data, dict):
            raise ConfigError(
                "Configuration must be a YAML mapping",
                suggestions=["Use 'key: value' lines, e.g. 'global_filter: \"#task\"'"],
            )

        known = {"global_filter", "remove_global_filter", "data_dir"}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")

        kwargs = {key: value for key, value in data.items() if key in known}
        if "global_filter" in kwargs and kwargs["global_filter"] is None:
            kwargs["global_filter"] = ""
        if "global_filter" in kwargs:
            kwargs["global_filter"] = str(kwargs["global_filter"])
        if "remove_global_filter" in kwargs:
            kwargs["remove_global_filter"] = bool(kwargs["remove_global_filter"])
        return cls(**kwargs)

    def get_config_path(self) -> Path:
        """Get the config file path."""
        return Path(self.data_dir) / "config.yaml"


# Public name for the settings provider contract.
Settings = ConfigModel


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(os.path.expanduser(override))
    return ConfigModel().get_config_path()


class Config:
    """Configuration manager for tasklines."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None, strict: bool = False) -> ConfigModel:
        """Load configuration from file, falling back to defaults.

        Args:
            config_path: File to read; defaults to ``$TASKLINES_CONFIG`` or
                ``~/.tasklines/config.yaml``
            strict: Raise ``ConfigError`` instead of falling back when the file
                exists but cannot be parsed
        """
        if cls._instance is not None and config_path is None:
            return cls._instance

        if config_path is None:
            config_path = default_config_path()

        config = ConfigModel()
        if config_path.exists():
            try:
                config = ConfigModel.from_yaml(config_path.read_text(encoding="utf-8"))
                logger.debug(f"Loaded configuration from {config_path}")
            except (yaml.YAMLError, ConfigError, TypeError, OSError) as e:
                if strict:
                    if isinstance(e, ConfigError):
                        raise
                    raise ConfigError(f"Failed to load config from {config_path}: {e}") from e
                logger.warning(f"Failed to load config from {config_path}: {e}; using defaults")
                config = ConfigModel()
        else:
            logger.debug(f"No config file at {config_path}, using defaults")

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: ConfigModel, config_path: Optional[Path] = None) -> Path:
        """Save configuration to file and return the path written."""
        if config_path is None:
            config_path = default_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(config.to_yaml(), encoding="utf-8")
        logger.info(f"Configuration saved to {config_path}")
        cls._instance = config
        return config_path

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reload(cls) -> ConfigModel:
        """Reload configuration from file."""
        cls._instance = None
        return cls.load()

    @classmethod
    def reset(cls) -> None:
        """Forget the cached configuration."""
        cls._instance = None


def get_config() -> ConfigModel:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None, strict: bool = False) -> ConfigModel:
    """Load configuration from file."""
    return Config.load(config_path, strict=strict)


def save_config(config: ConfigModel, config_path: Optional[Path] = None) -> Path:
    """Save configuration to file."""
    return Config.save(config, config_path)

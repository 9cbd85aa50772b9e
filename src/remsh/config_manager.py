"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores user preferences like the epmd and erl commands, lookup timeouts and
default connection options.

Security:
- Config file permissions: 0600 (owner read/write only)
- Path validation
"""

import logging
import os
import tempfile
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import tomlkit

from remsh import RemshError

logger = logging.getLogger(__name__)


class ConfigError(RemshError):
    """Raised when configuration operations fail."""

    pass


@dataclass
class RemshConfig:
    """remsh configuration data."""

    registry_tool: str = "epmd"
    machine_command: str = "erl"
    node_prefix: str = "remsh"
    buffer_base: str = "*remsh*"
    discovery_timeout: float = 5.0
    hostname_timeout: float = 5.0
    default_options: list[str] = field(default_factory=list)
    history_size: int = 20
    max_reconnect_attempts: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemshConfig":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in data.items() if k in known})


def _coerce(key: str, raw: str) -> Any:
    """Convert a command-line string to the type of config field `key`."""
    defaults = RemshConfig()
    if key not in {f.name for f in fields(RemshConfig)}:
        raise ConfigError(f"Unknown config key: {key}")

    current = getattr(defaults, key)
    try:
        if isinstance(current, bool):
            return raw.strip().lower() in ("1", "true", "yes", "on")
        if isinstance(current, int):
            return int(raw)
        if isinstance(current, float):
            return float(raw)
        if isinstance(current, list):
            return [item.strip() for item in raw.split(",") if item.strip()]
    except ValueError as e:
        raise ConfigError(f"Invalid value for {key}: {raw!r}") from e
    return raw


class ConfigManager:
    """Manage remsh configuration file.

    Configuration is stored at ~/.remsh/config.toml with secure permissions.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".remsh"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def _validate_config_path(cls, path: Path) -> Path:
        """Ensure a custom config path is inside an allowed directory.

        Raises:
            ConfigError: If path is outside ~/.remsh, the working directory
                and the temp directory
        """
        resolved_path = path.resolve()
        allowed_dirs = [
            cls.DEFAULT_CONFIG_DIR.resolve(),
            Path.cwd().resolve(),
            Path(tempfile.gettempdir()).resolve(),
        ]
        for allowed_dir in allowed_dirs:
            if resolved_path.is_relative_to(allowed_dir):
                return resolved_path

        raise ConfigError(
            f"Config path outside allowed directories: {resolved_path}\n"
            f"Allowed directories:\n"
            f"  - {cls.DEFAULT_CONFIG_DIR}\n"
            f"  - {Path.cwd()}"
        )

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Raises:
            ConfigError: If a custom path is invalid or missing
        """
        if custom_path:
            path = cls._validate_config_path(Path(custom_path).expanduser())
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            return path

        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def ensure_config_dir(cls) -> Path:
        """Ensure config directory exists with secure permissions (0700)."""
        try:
            cls.DEFAULT_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            os.chmod(cls.DEFAULT_CONFIG_DIR, 0o700)
            return cls.DEFAULT_CONFIG_DIR
        except Exception as e:
            raise ConfigError(f"Failed to create config directory: {e}") from e

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> RemshConfig:
        """Load configuration from file, falling back to defaults.

        Raises:
            ConfigError: If the file exists but cannot be read
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return RemshConfig()

        try:
            mode = config_path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                )
                os.chmod(config_path, 0o600)

            with open(config_path, "rb") as f:
                data = tomllib.load(f)

            logger.debug(f"Loaded config from: {config_path}")
            return RemshConfig.from_dict(data)

        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    @classmethod
    def save_config(cls, config: RemshConfig, custom_path: str | None = None) -> None:
        """Save configuration atomically, preserving comments in an existing file.

        Raises:
            ConfigError: If saving fails
        """
        temp_path: Path | None = None
        try:
            if custom_path:
                config_path = cls._validate_config_path(Path(custom_path).expanduser())
                config_path.parent.mkdir(parents=True, exist_ok=True)
            else:
                cls.ensure_config_dir()
                config_path = cls.DEFAULT_CONFIG_FILE

            temp_path = config_path.with_suffix(".tmp")

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()
            for key, value in config.to_dict().items():
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")

        except Exception as e:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            if isinstance(e, ConfigError):
                raise
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def set_value(cls, key: str, raw: str, custom_path: str | None = None) -> RemshConfig:
        """Set a single config value from its string form and save.

        Raises:
            ConfigError: If key is unknown or the value has the wrong type
        """
        value = _coerce(key, raw)
        config = cls.load_config(custom_path)
        setattr(config, key, value)
        cls.save_config(config, custom_path)
        return config


__all__ = ["ConfigError", "ConfigManager", "RemshConfig"]

"""
Settings loader for deployconf.

Handles loading from multiple sources with proper priority:
CLI Args > Environment Variables > Settings File > Defaults
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigError
from ..overlay import deep_merge
from .models import Settings


class ConfigLoader:
    """
    Loads and merges settings from multiple sources.

    Priority order (highest to lowest):
    1. CLI arguments (passed to merge_cli_args)
    2. Environment variables (DEPLOYCONF_*)
    3. Settings file
    4. Default values
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".config" / "deployconf"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
    ENV_PREFIX = "DEPLOYCONF_"
    PATH_ENV = "DEPLOYCONF_CONFIG_PATH"

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings loader.

        Args:
            config_path: Path to settings file. If None, uses default location.
        """
        self.config_path = config_path or self._get_config_path_from_env()

    @classmethod
    def _get_config_path_from_env(cls) -> Path:
        """Get settings path from environment variable or default."""
        env_path = os.environ.get(cls.PATH_ENV)
        if env_path:
            return Path(env_path).expanduser()
        return cls.DEFAULT_CONFIG_FILE

    def load(self) -> Settings:
        """
        Load settings from all sources and merge.

        Returns:
            Validated Settings object

        Raises:
            ConfigError: If settings are invalid
        """
        config_dict: dict[str, Any] = {}

        if self.config_path.exists():
            file_config = self._load_file(self.config_path)
            config_dict = deep_merge(config_dict, file_config)

        env_config = self._load_from_env()
        config_dict = deep_merge(config_dict, env_config)

        try:
            return Settings.model_validate(config_dict)
        except ValidationError as e:
            raise ConfigError(f"Settings validation failed: {e}", cause=e) from e

    def _load_file(self, path: Path) -> dict[str, Any]:
        """
        Load settings from a YAML file.

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}", cause=e) from e
        except OSError as e:
            raise ConfigError(f"Cannot read settings file {path}: {e}", cause=e) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping")
        return data

    def _load_from_env(self) -> dict[str, Any]:
        """
        Load settings from environment variables.

        Environment variable format:
        - DEPLOYCONF_OUTPUT_FORMAT
        - DEPLOYCONF_LOG_LEVEL
        - DEPLOYCONF_POLICY__REQUIRE_AUDIT_SINK

        Double underscore (__) separates nested keys.
        """
        config: dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(self.ENV_PREFIX) or key == self.PATH_ENV:
                continue

            config_key = key[len(self.ENV_PREFIX) :].lower()
            parts = config_key.split("__")

            current = config
            for part in parts[:-1]:
                if part not in current:
                    current[part] = {}
                current = current[part]

            current[parts[-1]] = self._convert_env_value(value)

        return config

    def _convert_env_value(self, value: str) -> Any:
        """Convert an environment variable string to bool, int or str."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            return value

    def merge_cli_args(self, settings: Settings, cli_args: dict[str, Any]) -> Settings:
        """
        Merge CLI arguments into settings.

        Args:
            settings: Base settings
            cli_args: CLI arguments to merge (None values are ignored)

        Returns:
            New Settings with CLI args applied
        """
        filtered_args = self._filter_none_values(cli_args)
        if not filtered_args:
            return settings

        config_dict = settings.model_dump()
        config_dict = deep_merge(config_dict, filtered_args)

        try:
            return Settings.model_validate(config_dict)
        except ValidationError as e:
            raise ConfigError(f"Invalid command-line settings: {e}", cause=e) from e

    def _filter_none_values(self, data: dict[str, Any]) -> dict[str, Any]:
        """Recursively filter out None values from a dictionary."""
        result = {}
        for key, value in data.items():
            if value is None:
                continue
            if isinstance(value, dict):
                filtered = self._filter_none_values(value)
                if filtered:
                    result[key] = filtered
            else:
                result[key] = value
        return result

    def create_default_config(self, force: bool = False) -> Path:
        """
        Create default settings file with comments.

        Raises:
            ConfigError: If file exists and force=False
        """
        if self.config_path.exists() and not force:
            raise ConfigError(
                f"Settings file already exists at {self.config_path}. "
                "Use force=True to overwrite."
            )

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self.config_path, "w") as f:
                f.write(DEFAULT_CONFIG_YAML)
        except OSError as e:
            raise ConfigError(
                f"Cannot write settings file {self.config_path}: {e}", cause=e
            ) from e

        return self.config_path


DEFAULT_CONFIG_YAML = """\
# deployconf settings
# ===================

# Serialization of the normalized document: yaml or json
output_format: yaml

# Logging level (DEBUG, INFO, WARNING, ERROR)
log_level: INFO

policy:
  # Fail instead of skipping audit logging wiring when a project declares
  # no audit log bucket
  require_audit_sink: false
"""


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Convenience wrapper around ConfigLoader.load()."""
    return ConfigLoader(config_path).load()

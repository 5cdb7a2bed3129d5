"""
Configuration Loader for the MCP tester

This module loads configuration from multiple sources and merges them:
- Built-in defaults
- The packaged default_config.yaml
- An optional user configuration file (YAML or JSON)
- A .env file
- Process environment variables

Features:
- Deep merge with priority handling (later sources win)
- Nested keys from environment variables (MCP_TESTER_SESSION__REQUEST_TIMEOUT)
- Type conversion of string values from .env / environment
- Legacy TARGET_MCP_SERVER variable for the default target command
"""

import json
import logging
import os
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from dotenv import dotenv_values

from ..utils.exceptions import ConfigurationException

# ==============================================================================
# LOGGER SETUP
# ==============================================================================

logger = logging.getLogger(__name__)


# ==============================================================================
# CONSTANTS
# ==============================================================================

CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG = CONFIG_DIR / "default_config.yaml"
ENV_FILE = Path.cwd() / ".env"

# Environment variable prefix
ENV_PREFIX = "MCP_TESTER_"
ENV_SEPARATOR = "__"  # Use __ for nested keys (e.g., SESSION__REQUEST_TIMEOUT)

# Variables understood without the prefix
LEGACY_ENV_KEYS = {
    "TARGET_MCP_SERVER": ("target", "command"),
}


# ==============================================================================
# ENUMERATIONS
# ==============================================================================

class ConfigSource(str, Enum):
    """Configuration source enumeration"""

    DEFAULTS = "defaults"
    PACKAGED = "packaged"
    FILE = "file"
    ENV_FILE = "env_file"
    ENVIRONMENT = "environment"


# ==============================================================================
# DATA CLASSES
# ==============================================================================

@dataclass
class ConfigMetadata:
    """Which sources contributed to the merged configuration"""

    merged_from: List[ConfigSource] = field(default_factory=list)
    file_path: Optional[Path] = None
    env_file_path: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "merged_from": [s.value for s in self.merged_from],
            "file_path": str(self.file_path) if self.file_path else None,
            "env_file_path": str(self.env_file_path) if self.env_file_path else None,
        }


# ==============================================================================
# CONFIGURATION LOADER
# ==============================================================================

class ConfigLoader:
    """
    Configuration loader supporting multiple sources.

    Example:
        >>> loader = ConfigLoader()
        >>> config = loader.load_with_priority(file_path="mcp-tester.yaml")
        >>> loader.get(config, "session.request_timeout")
        30.0
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize the loader.

        Args:
            environ: Environment mapping to read (defaults to os.environ)
        """
        self.logger = logger
        self._environ = environ if environ is not None else os.environ
        self.metadata = ConfigMetadata()

    # ========================================================================
    # SOURCES
    # ========================================================================

    def load_from_file(self, filepath: Union[str, Path]) -> Dict[str, Any]:
        """
        Load configuration from a YAML or JSON file.

        Args:
            filepath: Path to the configuration file

        Returns:
            Configuration dictionary

        Raises:
            ConfigurationException: If the file is missing or unreadable
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise ConfigurationException(f"Configuration file not found: {filepath}", config_key=str(filepath))

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                if filepath.suffix in (".yaml", ".yml"):
                    config = yaml.safe_load(f)
                elif filepath.suffix == ".json":
                    config = json.load(f)
                else:
                    raise ConfigurationException(
                        f"Unsupported configuration format: {filepath.suffix}",
                        config_key=str(filepath),
                    )
        except (yaml.YAMLError, json.JSONDecodeError, OSError) as e:
            raise ConfigurationException(f"Failed to load {filepath}: {e}", config_key=str(filepath)) from e

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigurationException(
                f"Configuration root must be a mapping: {filepath}", config_key=str(filepath)
            )

        self.logger.info(f"Configuration loaded from {filepath}")
        return config

    def load_from_env_file(self, filepath: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
        """
        Load prefixed variables from a .env file.

        Args:
            filepath: Path to .env file (uses ./.env if None)

        Returns:
            Configuration dictionary (empty when the file does not exist)
        """
        filepath = Path(filepath) if filepath is not None else ENV_FILE
        if not filepath.exists():
            self.logger.debug(f".env file not found: {filepath}")
            return {}

        values = {k: v for k, v in dotenv_values(filepath).items() if v is not None}
        config = self._variables_to_config(values)
        if config:
            self.metadata.env_file_path = filepath
            self.logger.info(f"Configuration loaded from {filepath}")
        return config

    def load_from_environment(self) -> Dict[str, Any]:
        """
        Load configuration from environment variables.

        Looks for variables prefixed with MCP_TESTER_ plus the legacy
        TARGET_MCP_SERVER.

        Returns:
            Configuration dictionary
        """
        config = self._variables_to_config(self._environ)
        self.logger.debug(f"Loaded {len(config)} configuration sections from environment")
        return config

    # ========================================================================
    # MERGING AND COMBINING
    # ========================================================================

    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Deep merge multiple configuration dictionaries.

        Later configs override earlier ones.
        """
        result: Dict[str, Any] = {}
        for config in configs:
            if config:
                result = self._deep_merge(result, config)
        return result

    def load_with_priority(
            self,
            file_path: Optional[Union[str, Path]] = None,
            env_file_path: Optional[Union[str, Path]] = None,
            include_env: bool = True,
            include_env_file: bool = True,
    ) -> Dict[str, Any]:
        """
        Load and merge every configuration source.

        Priority (high to low):
        1. Environment variables
        2. .env file
        3. User configuration file
        4. Packaged default_config.yaml
        5. Built-in defaults
        """
        self.metadata = ConfigMetadata(merged_from=[ConfigSource.DEFAULTS])
        layers = [self._get_defaults()]

        if DEFAULT_CONFIG.exists():
            layers.append(self.load_from_file(DEFAULT_CONFIG))
            self.metadata.merged_from.append(ConfigSource.PACKAGED)

        if file_path:
            layers.append(self.load_from_file(file_path))
            self.metadata.merged_from.append(ConfigSource.FILE)
            self.metadata.file_path = Path(file_path)

        if include_env_file:
            env_file_config = self.load_from_env_file(env_file_path)
            if env_file_config:
                layers.append(env_file_config)
                self.metadata.merged_from.append(ConfigSource.ENV_FILE)

        if include_env:
            env_config = self.load_from_environment()
            if env_config:
                layers.append(env_config)
                self.metadata.merged_from.append(ConfigSource.ENVIRONMENT)

        return self.merge_configs(*layers)

    # ========================================================================
    # ACCESS
    # ========================================================================

    def get(self, config: Dict[str, Any], key: str, default: Any = None) -> Any:
        """
        Get a nested value with dot notation (e.g. "session.request_timeout").
        """
        current: Any = config
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    # ========================================================================
    # PRIVATE METHODS
    # ========================================================================

    def _variables_to_config(self, variables: Mapping[str, str]) -> Dict[str, Any]:
        """Convert prefixed KEY=VALUE pairs into a nested dictionary"""
        config: Dict[str, Any] = {}

        for key, value in variables.items():
            if key in LEGACY_ENV_KEYS:
                section, name = LEGACY_ENV_KEYS[key]
                config.setdefault(section, {})[name] = value
                continue

            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split(ENV_SEPARATOR)
            current = config
            for part in parts[:-1]:
                current = current.setdefault(part, {})
                if not isinstance(current, dict):
                    raise ConfigurationException(f"Conflicting configuration key: {key}", config_key=key)
            current[parts[-1]] = self._convert_value(value)

        return config

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Deep merge override into base.

        Override values take precedence.
        """
        result = deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _convert_value(self, value: str) -> Any:
        """
        Convert string value to appropriate type.

        Handles: bool, int, float; everything else stays a string.
        """
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False

        try:
            if "." not in value:
                return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def _get_defaults(self) -> Dict[str, Any]:
        """Get default configuration"""
        return {
            "session": {
                "request_timeout": 30.0,
                "startup_delay": 0.5,
                "shutdown_timeout": 5.0,
            },
            "benchmark": {
                "iterations": 100,
                "concurrency": 1,
                "warmup_iterations": 0,
            },
            "target": {
                "command": None,
                "args": [],
            },
            "logging": {
                "level": "WARNING",
            },
        }

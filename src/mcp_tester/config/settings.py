"""
Settings Module for the MCP tester

This module provides the Settings class for typed access to the merged
configuration produced by ConfigLoader.

Example:
    >>> from mcp_tester.config import Settings
    >>> settings = Settings()
    >>> settings.session.request_timeout
    30.0
    >>> settings.benchmark.iterations
    100
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from ..utils.exceptions import ConfigurationException
from .config_loader import ConfigLoader

# ==============================================================================
# LOGGER SETUP
# ==============================================================================

logger = logging.getLogger(__name__)

C = TypeVar("C")


# ==============================================================================
# NESTED CONFIGURATION CLASSES (using dataclasses)
# ==============================================================================


@dataclass
class SessionConfig:
    """Protocol session configuration"""

    request_timeout: float = 30.0
    startup_delay: float = 0.5
    shutdown_timeout: float = 5.0
    read_chunk_size: int = 65536
    stderr_buffer_lines: int = 500
    notification_history: int = 200
    protocol_version: str = "2024-11-05"
    client_name: str = "mcp-tester"
    client_version: str = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class BenchmarkConfig:
    """Benchmark defaults"""

    iterations: int = 100
    concurrency: int = 1
    warmup_iterations: int = 0
    max_recorded_errors: int = 10

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class TargetConfig:
    """Default target server"""

    command: Optional[str] = None
    args: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class ReportConfig:
    """Report output configuration"""

    format: str = "markdown"
    output_dir: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class LoggingConfig:
    """Logging configuration"""

    level: str = "WARNING"
    format: str = "%(asctime)s - [%(levelname)s] - %(name)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_enabled: bool = False
    file_path: str = "logs/mcp-tester.log"
    file_max_bytes: int = 10485760
    file_backup_count: int = 5

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)


# ==============================================================================
# SETTINGS CLASS
# ==============================================================================


class Settings:
    """
    Main settings class for the MCP tester.

    Example:
        >>> settings = Settings(config_path="mcp-tester.yaml")
        >>> settings.target.command
        'node ./build/index.js'
    """

    REPORT_FORMATS = ("markdown", "json")

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
        use_env: bool = True,
    ):
        """
        Initialize settings.

        Args:
            config_path: Path to a user configuration file
            overrides: Highest-priority values (e.g. from command-line flags)
            environ: Environment mapping (defaults to os.environ)
            use_env: Read the .env file and environment variables
        """
        self.logger = logger
        self._loader = ConfigLoader(environ=environ)

        self._raw_config: Dict[str, Any] = self._loader.load_with_priority(
            file_path=config_path,
            include_env=use_env,
            include_env_file=use_env,
        )
        if overrides:
            self._raw_config = self._loader.merge_configs(self._raw_config, overrides)

        self._init_subsystems()
        self.validate()

        self.logger.debug(
            f"Settings initialized from {[s.value for s in self._loader.metadata.merged_from]}"
        )

    def _init_subsystems(self) -> None:
        """Initialize subsystem configurations"""
        self.session = self._create_config_object(SessionConfig, "session")
        self.benchmark = self._create_config_object(BenchmarkConfig, "benchmark")
        self.target = self._create_config_object(TargetConfig, "target")
        self.report = self._create_config_object(ReportConfig, "report")
        self.logging = self._create_config_object(LoggingConfig, "logging")

    def _create_config_object(self, config_class: Type[C], section: str) -> C:
        """
        Create a configuration object from one section of the raw config.

        Unknown keys are ignored; values are coerced to the field's default
        type so that "10" from the environment becomes 10.
        """
        config_dict = self._raw_config.get(section) or {}
        if not isinstance(config_dict, dict):
            raise ConfigurationException(f"Section '{section}' must be a mapping", config_key=section)

        defaults = config_class()
        kwargs: Dict[str, Any] = {}
        for f in fields(config_class):
            if f.name not in config_dict or config_dict[f.name] is None:
                continue
            kwargs[f.name] = self._coerce(
                f"{section}.{f.name}", config_dict[f.name], getattr(defaults, f.name)
            )

        return config_class(**kwargs)

    @staticmethod
    def _coerce(key: str, value: Any, default: Any) -> Any:
        """Coerce a raw value to the type of the field default"""
        try:
            if isinstance(default, bool):
                if isinstance(value, str):
                    return value.strip().lower() in ("true", "yes", "on", "1")
                return bool(value)
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            if isinstance(default, list):
                if isinstance(value, str):
                    return [v.strip() for v in value.split(",") if v.strip()]
                return list(value)
            if default is None or isinstance(default, str):
                return str(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationException(f"Invalid value for {key}: {value!r}", config_key=key) from e
        return value

    # ========================================================================
    # VALIDATION
    # ========================================================================

    def validate(self) -> bool:
        """
        Validate configuration.

        Returns:
            True if valid

        Raises:
            ConfigurationException: If validation fails
        """
        checks = [
            ("session.request_timeout", self.session.request_timeout > 0),
            ("session.startup_delay", self.session.startup_delay >= 0),
            ("session.shutdown_timeout", self.session.shutdown_timeout > 0),
            ("session.read_chunk_size", self.session.read_chunk_size > 0),
            ("session.stderr_buffer_lines", self.session.stderr_buffer_lines > 0),
            ("session.notification_history", self.session.notification_history > 0),
            ("benchmark.iterations", self.benchmark.iterations >= 1),
            ("benchmark.concurrency", self.benchmark.concurrency >= 1),
            ("benchmark.warmup_iterations", self.benchmark.warmup_iterations >= 0),
            ("report.format", self.report.format in self.REPORT_FORMATS),
        ]
        for key, ok in checks:
            if not ok:
                value = self.get(key)
                self.logger.error(f"Configuration validation failed: {key}={value!r}")
                raise ConfigurationException(f"Invalid configuration value {key}={value!r}", config_key=key)

        self.logger.debug("Configuration validation passed")
        return True

    # ========================================================================
    # CONFIGURATION ACCESS
    # ========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a typed configuration value with dot notation.

        Args:
            key: Key path (e.g., "session.request_timeout")
            default: Default value if not found
        """
        section, _, name = key.partition(".")
        section_obj = getattr(self, section, None)
        if section_obj is None or not name:
            return default
        return getattr(section_obj, name, default)

    @property
    def sources(self) -> List[str]:
        """Configuration sources that contributed, lowest priority first"""
        return [s.value for s in self._loader.metadata.merged_from]

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert all settings to dictionary.
        """
        return {
            "session": self.session.to_dict(),
            "benchmark": self.benchmark.to_dict(),
            "target": self.target.to_dict(),
            "report": self.report.to_dict(),
            "logging": self.logging.to_dict(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize settings to JSON"""
        return json.dumps(self.to_dict(), indent=indent)

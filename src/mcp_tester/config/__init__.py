"""
Configuration package - merged YAML / .env / environment configuration and
typed settings sections.
"""

from .config_loader import ConfigLoader, ConfigSource
from .settings import (
    BenchmarkConfig,
    LoggingConfig,
    ReportConfig,
    SessionConfig,
    Settings,
    TargetConfig,
)

__all__ = [
    "ConfigLoader",
    "ConfigSource",
    "Settings",
    "SessionConfig",
    "BenchmarkConfig",
    "TargetConfig",
    "ReportConfig",
    "LoggingConfig",
]

"""
Shared pytest configuration and fixtures.
"""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from mcp_tester.config.settings import SessionConfig, Settings  # noqa: E402


@pytest.fixture
def session_config():
    """Session configuration with short delays for fast tests"""
    return SessionConfig(startup_delay=0.1, request_timeout=5.0, shutdown_timeout=2.0)


@pytest.fixture
def settings():
    """Settings isolated from the process environment and .env files"""
    return Settings(
        use_env=False,
        overrides={"session": {"startup_delay": 0.1, "request_timeout": 5.0, "shutdown_timeout": 2.0}},
    )

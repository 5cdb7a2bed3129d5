"""
mcp-tester - Test Fixtures Module

Structure:
    - fake_mcp_server.py: stand-alone fake target server launched by the
      integration tests (standard library only)

Usage:
    >>> from tests.fixtures import FAKE_SERVER_PATH, fake_server_spec
    >>> spec = fake_server_spec("--garbage")
"""

import sys
from pathlib import Path

from mcp_tester.client.command_parser import CommandSpec

FIXTURES_DIR = Path(__file__).parent
FAKE_SERVER_PATH = FIXTURES_DIR / "fake_mcp_server.py"


def fake_server_spec(*flags: str) -> CommandSpec:
    """CommandSpec launching the fake server with the current interpreter"""
    return CommandSpec(executable=sys.executable, script_path=str(FAKE_SERVER_PATH), args=tuple(flags))


__all__ = ["FIXTURES_DIR", "FAKE_SERVER_PATH", "fake_server_spec"]

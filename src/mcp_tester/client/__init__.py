# mcp-tester/src/mcp_tester/client/__init__.py

"""
Client package - Launch command parsing, line framing and the stdio protocol
session that talks to a target server.
"""

from .command_parser import (
    KNOWN_INTERPRETERS,
    CommandSpec,
    ensure_script_exists,
    parse_server_command,
    tokenize,
)
from .framing import LineFramer
from .stdio_session import (
    PendingCall,
    ProtocolSession,
    SessionState,
    SessionStats,
    open_session,
)

__all__ = [
    "KNOWN_INTERPRETERS",
    "CommandSpec",
    "parse_server_command",
    "ensure_script_exists",
    "tokenize",
    "LineFramer",
    "ProtocolSession",
    "SessionState",
    "SessionStats",
    "PendingCall",
    "open_session",
]

# mcp-tester/src/mcp_tester/utils/__init__.py

"""
Utils package - Logging setup, the exception hierarchy and async helpers
shared by the client, harness and command-line layers.
"""

from .exceptions import (
    ConfigurationException,
    InvalidCommandException,
    LaunchException,
    MCPTesterException,
    NotReadyException,
    ProtocolException,
    RemoteException,
    RequestTimeoutException,
    SessionClosedException,
    UnknownToolException,
    ValidationException,
    error_code,
    error_message,
)
from .logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",

    # Exceptions
    "MCPTesterException",
    "InvalidCommandException",
    "LaunchException",
    "NotReadyException",
    "ProtocolException",
    "RemoteException",
    "RequestTimeoutException",
    "SessionClosedException",
    "UnknownToolException",
    "ConfigurationException",
    "ValidationException",
    "error_code",
    "error_message",
]

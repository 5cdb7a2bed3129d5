"""
mcp-tester - Main Package Initialization

Conformance and performance test harness for MCP tool servers. A target
server is launched as a child process and driven over its stdin/stdout with
line-delimited JSON-RPC 2.0.

Architecture Overview:
- client: launch command parsing, line framing, the protocol session
- harness: batch runs, benchmarks, negative cases, tool validation, probe
- reporting: Markdown / JSON rendering of results
- config: merged YAML / .env / environment settings
- utils: logging, exceptions, async helpers
"""

# Version information
__version__ = "1.0.0"
__author__ = "mcp-tester contributors"
__license__ = "MIT"
__title__ = "mcp-tester"

from .client import CommandSpec, ProtocolSession, SessionState, open_session, parse_server_command
from .config import Settings
from .harness import (
    BatchRunner,
    BenchmarkEngine,
    NegativeCaseValidator,
    ToolValidator,
    call_tool_once,
    compute_latency_stats,
    generate_example_arguments,
    match_error,
    probe_server,
)
from .models import ExecutionMode, NegativeCase, TestCase
from .utils import MCPTesterException, get_logger, setup_logging

__all__ = [
    "__version__",
    "__title__",

    # Client
    "CommandSpec",
    "parse_server_command",
    "ProtocolSession",
    "SessionState",
    "open_session",

    # Harness
    "BatchRunner",
    "BenchmarkEngine",
    "NegativeCaseValidator",
    "ToolValidator",
    "probe_server",
    "call_tool_once",
    "compute_latency_stats",
    "generate_example_arguments",
    "match_error",

    # Models
    "ExecutionMode",
    "TestCase",
    "NegativeCase",

    # Configuration / utilities
    "Settings",
    "MCPTesterException",
    "get_logger",
    "setup_logging",
]

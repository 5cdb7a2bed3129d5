# mcp-tester/src/mcp_tester/models/__init__.py

"""
Models package - Wire-level protocol models (pydantic) and the immutable
result records produced by the harness (dataclasses).
"""

from .message_models import (
    DEFAULT_PROTOCOL_VERSION,
    JSONRPC_VERSION,
    CapabilityResult,
    ClientInfo,
    InitializeResult,
    JSONRPCErrorCode,
    MessageType,
    PromptDescriptor,
    RequestMethod,
    ResourceDescriptor,
    ServerInfo,
    ToolDescriptor,
    extract_text_content,
    response_as_text,
)
from .result_models import (
    BatchResult,
    BenchmarkReport,
    BurstResult,
    ErrorSource,
    ExecutionMode,
    LatencyStats,
    NegativeCase,
    NegativeCaseResult,
    ProbeReport,
    TestCase,
    TestCaseResult,
    ToolCallCheck,
    ToolValidation,
    ValidationReport,
)

__all__ = [
    # Protocol
    "DEFAULT_PROTOCOL_VERSION",
    "JSONRPC_VERSION",
    "MessageType",
    "RequestMethod",
    "JSONRPCErrorCode",
    "ClientInfo",
    "ServerInfo",
    "InitializeResult",
    "ToolDescriptor",
    "ResourceDescriptor",
    "PromptDescriptor",
    "CapabilityResult",
    "extract_text_content",
    "response_as_text",

    # Results
    "ExecutionMode",
    "ErrorSource",
    "TestCase",
    "TestCaseResult",
    "BatchResult",
    "LatencyStats",
    "BurstResult",
    "BenchmarkReport",
    "NegativeCase",
    "NegativeCaseResult",
    "ToolCallCheck",
    "ToolValidation",
    "ValidationReport",
    "ProbeReport",
]

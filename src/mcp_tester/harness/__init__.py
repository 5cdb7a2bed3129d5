# mcp-tester/src/mcp_tester/harness/__init__.py

"""
Harness package - Batch execution, benchmarking, negative-case checks, tool
validation and the server probe, all driven through a ProtocolSession.
"""

from .batch_runner import BatchRunner, to_test_cases
from .benchmark import BenchmarkEngine, compute_latency_stats, percentile
from .example_generator import generate_example_arguments
from .negative_cases import (
    NegativeCaseValidator,
    detect_error_response,
    match_error,
    summarize_negative_results,
)
from .probe import call_tool_once, probe_server
from .tool_validator import ToolValidator, validate_tool_response, validate_tool_schema

__all__ = [
    "BatchRunner",
    "to_test_cases",
    "BenchmarkEngine",
    "compute_latency_stats",
    "percentile",
    "generate_example_arguments",
    "NegativeCaseValidator",
    "detect_error_response",
    "match_error",
    "summarize_negative_results",
    "probe_server",
    "call_tool_once",
    "ToolValidator",
    "validate_tool_schema",
    "validate_tool_response",
]

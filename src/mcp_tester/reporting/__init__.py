# mcp-tester/src/mcp_tester/reporting/__init__.py

"""
Reporting package - Markdown and JSON rendering of harness results.
"""

from .markdown import (
    render_batch_result,
    render_benchmark_report,
    render_call_result,
    render_json,
    render_markdown,
    render_negative_results,
    render_probe_report,
    render_validation_report,
)

__all__ = [
    "render_markdown",
    "render_json",
    "render_probe_report",
    "render_call_result",
    "render_batch_result",
    "render_benchmark_report",
    "render_negative_results",
    "render_validation_report",
]

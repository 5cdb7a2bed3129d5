"""
Unit tests for Markdown and JSON rendering.
"""

import json

import pytest

from mcp_tester.harness.benchmark import compute_latency_stats
from mcp_tester.models.result_models import (
    BatchResult,
    BenchmarkReport,
    BurstResult,
    ErrorSource,
    ExecutionMode,
    NegativeCaseResult,
    ProbeReport,
    TestCaseResult,
    ToolCallCheck,
    ToolValidation,
    ValidationReport,
)
from mcp_tester.reporting.markdown import (
    render_batch_result,
    render_benchmark_report,
    render_call_result,
    render_json,
    render_markdown,
    render_negative_results,
    render_probe_report,
    render_validation_report,
)


def ok_result(tool="echo", text="hello"):
    return TestCaseResult(
        tool_name=tool,
        arguments={"text": text},
        success=True,
        response={"content": [{"type": "text", "text": text}]},
        elapsed_ms=1.5,
    )


def failed_result(tool="add"):
    return TestCaseResult(
        tool_name=tool,
        arguments={},
        success=False,
        error="Missing required argument: a",
        error_code="REMOTE_ERROR",
        elapsed_ms=0.7,
    )


class TestCallAndBatchRendering:

    def test_call_success_shows_text_only(self):
        text = render_call_result(ok_result())
        assert "**Tool**: echo" in text
        assert "hello" in text
        assert "Full response" not in text

    def test_call_with_non_text_content_shows_full_json(self):
        result = TestCaseResult(
            tool_name="img",
            arguments={},
            success=True,
            response={"content": [{"type": "image", "data": "AAA", "mimeType": "image/png"}]},
        )
        text = render_call_result(result)
        assert "Full response" in text
        assert '"image/png"' in text

    def test_call_failure(self):
        text = render_call_result(failed_result())
        assert "`REMOTE_ERROR` Missing required argument: a" in text

    def test_batch_overview_and_omitted(self):
        batch = BatchResult(
            total=3,
            success_count=1,
            failure_count=1,
            results=(ok_result(), failed_result()),
            wall_clock_ms=10.0,
            mode=ExecutionMode.SERIAL,
            stop_on_error=True,
        )
        text = render_batch_result(batch)
        assert "**Total cases**: 3" in text
        assert "**Omitted (stopped on error)**: 1" in text
        assert "### 2. ❌ add" in text


class TestBenchmarkRendering:

    def test_with_data_and_burst(self):
        report = BenchmarkReport(
            tool_name="echo",
            arguments={},
            iterations=3,
            concurrency=2,
            warmup_iterations=1,
            stats=compute_latency_stats([1.0, 2.0, 3.0]),
            success_count=3,
            error_count=0,
            total_time_ms=6.0,
            burst=BurstResult(concurrency=2, wall_clock_ms=2.0, success_count=2, error_count=0),
        )
        text = render_benchmark_report(report)
        assert "| p95 | 3.00ms |" in text
        assert "## Concurrent Burst" in text
        assert "500.00 req/s" in text

    def test_without_data(self):
        report = BenchmarkReport(
            tool_name="echo",
            arguments={},
            iterations=2,
            concurrency=1,
            warmup_iterations=0,
            stats=compute_latency_stats([]),
            success_count=0,
            error_count=2,
            total_time_ms=5.0,
            errors=("boom",),
        )
        text = render_benchmark_report(report)
        assert "latency statistics are unavailable" in text
        assert "- boom" in text


class TestOtherRendering:

    def test_negative_results(self):
        results = [
            NegativeCaseResult("divide", {"b": 0}, True, "Pattern match: 'zero'", "zero",
                               "Error: division by zero", ErrorSource.RESPONSE),
            NegativeCaseResult("echo", {}, False, "Expected a failure but none occurred", "x"),
        ]
        text = render_negative_results(results)
        assert "**Passed**: 1" in text
        assert "**Observed via**: response" in text
        assert "(none)" in text

    def test_validation_report(self):
        report = ValidationReport(
            total_tools=2,
            tools=(
                ToolValidation("good", "fine", True, (), ToolCallCheck(True, {}, 1.0, True, {"content": []})),
                ToolValidation("bare", None, False, ("Missing inputSchema",)),
            ),
        )
        text = render_validation_report(report)
        assert "### ✅ good" in text
        assert "### ❌ bare" in text
        assert "**Call**: not executed" in text
        assert "**Schema pass rate**: 50%" in text

    def test_probe_report(self):
        report = ProbeReport(
            command="node server.js",
            server_startup=True,
            initialization=True,
            tools_listed=True,
            server_name="fake",
            server_version="0.1",
            protocol_version="2024-11-05",
            tools=[{"name": "echo", "description": "Echo", "inputSchema": {"type": "object"}}],
            resources={"supported": False, "count": None, "items": [], "reason": "rejected"},
            prompts={"supported": True, "count": 0, "items": [], "reason": None},
            sample_call=ok_result(),
            timings={"startup": 1.0, "total": 5.0},
        )
        text = render_probe_report(report)
        assert "**Resources**: not supported (rejected)" in text
        assert "**Prompts**: 0" in text
        assert "### echo" in text
        assert "## Sample Call" in text

    def test_probe_failure_lists_stderr(self):
        report = ProbeReport(command="node x.js", errors=["Target exited"], stderr_tail=["fatal: boom"])
        text = render_probe_report(report)
        assert "Target exited" in text
        assert "fatal: boom" in text


class TestDispatch:

    def test_render_markdown_dispatch(self):
        assert render_markdown(ok_result()).startswith("## Tool Call Result")
        assert render_markdown([]).startswith("# Negative Test Report")

    def test_render_markdown_unknown_type(self):
        with pytest.raises(TypeError):
            render_markdown(object())

    def test_render_json(self):
        data = json.loads(render_json(ok_result()))
        assert data["tool_name"] == "echo"
        listed = json.loads(render_json([failed_result()]))
        assert listed[0]["error_code"] == "REMOTE_ERROR"

    def test_negative_result_json_uses_enum_value(self):
        result = NegativeCaseResult("t", {}, True, "ok", error_source=ErrorSource.EXCEPTION)
        assert json.loads(render_json([result]))[0]["error_source"] == "exception"

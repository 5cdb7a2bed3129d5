"""
Harness integration tests: batch runs, benchmarks, negative cases,
tool validation and probing against the fake server.
"""

import pytest
import pytest_asyncio

from mcp_tester.client.stdio_session import open_session
from mcp_tester.config.settings import Settings
from mcp_tester.harness.batch_runner import BatchRunner
from mcp_tester.harness.benchmark import BenchmarkEngine
from mcp_tester.harness.negative_cases import NO_FAILURE_REASON, NegativeCaseValidator
from mcp_tester.harness.probe import call_tool_once, probe_server
from mcp_tester.harness.tool_validator import (
    ISSUE_INVALID_RESPONSE,
    ISSUE_MISSING_SCHEMA,
    ISSUE_REQUIRED_PARAMS,
    ToolValidator,
)
from mcp_tester.models.result_models import ErrorSource, ExecutionMode, NegativeCase
from mcp_tester.utils.exceptions import InvalidCommandException, UnknownToolException
from tests.fixtures import FIXTURES_DIR, fake_server_spec

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def session(settings):
    async with open_session(fake_server_spec(), settings=settings) as session:
        yield session


class TestBatch:

    @pytest.mark.asyncio
    async def test_serial_stop_on_error(self, session):
        cases = [
            {"tool_name": "echo", "arguments": {"text": "one"}},
            {"tool_name": "add", "arguments": {}},
            {"tool_name": "echo", "arguments": {"text": "three"}},
        ]
        result = await BatchRunner(session).run(cases, ExecutionMode.SERIAL, stop_on_error=True)

        assert len(result.results) == 2
        assert result.success_count == 1
        assert result.failure_count == 1
        assert result.omitted_count == 1
        assert result.results[1].error_code == "REMOTE_ERROR"
        assert "Missing required argument" in result.results[1].error

    @pytest.mark.asyncio
    async def test_serial_without_stop_runs_everything(self, session):
        cases = [{"tool_name": "fail_soft"}, {"tool_name": "add", "arguments": {}}, {"tool_name": "echo"}]
        result = await BatchRunner(session).run(cases)
        assert len(result.results) == 3
        # isError results are still successful protocol calls
        assert result.results[0].success
        assert result.failure_count == 1

    @pytest.mark.asyncio
    async def test_parallel_keeps_case_order(self, session):
        cases = [{"tool_name": "sleep", "arguments": {"delay": delay}} for delay in (0.3, 0.1, 0.2)]
        cases.append({"tool_name": "ghost"})
        result = await BatchRunner(session).run(cases, "parallel")

        assert [r.arguments.get("delay") for r in result.results] == [0.3, 0.1, 0.2, None]
        assert result.success_count == 3
        assert result.results[3].error_code == "UNKNOWN_TOOL"
        assert result.results[3].elapsed_ms is None
        # Calls overlapped instead of running back to back
        assert result.wall_clock_ms < 600

    @pytest.mark.asyncio
    async def test_unknown_tool_is_never_sent(self, session):
        before = session.stats.requests_sent
        result = await BatchRunner(session).run([{"tool_name": "ghost"}])
        # Only the tools/list discovery went out
        assert session.stats.requests_sent == before + 1
        assert result.results[0].error_code == "UNKNOWN_TOOL"


class TestBenchmark:

    @pytest.mark.asyncio
    async def test_sequential(self, session):
        report = await BenchmarkEngine(session).run("echo", {"text": "x"}, iterations=10, warmup_iterations=2)
        assert report.success_count == 10
        assert report.error_count == 0
        assert report.stats.count == 10
        assert report.stats.min <= report.stats.p50 <= report.stats.p95 <= report.stats.max
        assert report.burst is None

    @pytest.mark.asyncio
    async def test_concurrent_with_burst(self, session):
        report = await BenchmarkEngine(session).run("echo", {}, iterations=12, concurrency=4)
        assert report.success_count == 12
        assert report.burst is not None
        assert report.burst.concurrency == 4
        assert report.burst.success_count == 4

    @pytest.mark.asyncio
    async def test_all_calls_failing(self, session):
        report = await BenchmarkEngine(session).run("add", {}, iterations=3)
        assert report.error_count == 3
        assert not report.stats.has_data
        assert report.errors == ("Missing required argument: a",)


class TestNegativeCases:

    @pytest.mark.asyncio
    async def test_error_shaped_response_matches_pattern(self, session):
        validator = NegativeCaseValidator(session)
        results = await validator.run([
            {"tool_name": "divide", "arguments": {"a": 1, "b": 0}, "expected_error": "zero"},
            {"tool_name": "fail_soft", "expected_error": "went wrong"},
            {"tool_name": "add", "arguments": {"a": 1}, "expected_error": "Missing required argument: b"},
        ])
        assert [r.passed for r in results] == [True, True, True]
        assert results[0].error_source is ErrorSource.RESPONSE
        assert results[2].error_source is ErrorSource.EXCEPTION

    @pytest.mark.asyncio
    async def test_strict_requires_exact_message(self, session):
        result = await NegativeCaseValidator(session).run_case(
            NegativeCase("divide", {"a": 1, "b": 0}, expected_error="Division by zero", strict=True)
        )
        assert not result.passed
        assert result.observed_error == "Error: division by zero"

    @pytest.mark.asyncio
    async def test_successful_call_fails_the_case(self, session):
        results = await NegativeCaseValidator(session).run([{"tool_name": "echo", "expected_error": "anything"}])
        assert not results[0].passed
        assert results[0].match_reason == NO_FAILURE_REASON
        assert results[0].error_source is None


class TestToolValidator:

    @pytest.mark.asyncio
    async def test_tool_without_schema_is_not_called(self, session):
        report = await ToolValidator(session).run("legacy")
        (tool,) = report.tools
        assert not tool.schema_valid
        assert ISSUE_MISSING_SCHEMA in tool.issues
        assert tool.call is None

    @pytest.mark.asyncio
    async def test_malformed_response(self, session):
        report = await ToolValidator(session).run("bad_shape")
        (tool,) = report.tools
        assert tool.schema_valid
        assert tool.call.success
        assert tool.call.response_valid is False
        assert ISSUE_INVALID_RESPONSE in tool.issues

    @pytest.mark.asyncio
    async def test_explicit_params_and_required_failure(self, session):
        report = await ToolValidator(session).run("add", {"a": 1})
        (tool,) = report.tools
        assert not tool.call.success
        assert ISSUE_REQUIRED_PARAMS in tool.issues

    @pytest.mark.asyncio
    async def test_generated_arguments(self, session):
        report = await ToolValidator(session).run("divide")
        (tool,) = report.tools
        assert tool.passed
        assert tool.call.arguments["b"] == 2

    @pytest.mark.asyncio
    async def test_unknown_tool(self, session):
        with pytest.raises(UnknownToolException):
            await ToolValidator(session).run("ghost")


class TestProbe:

    @pytest.mark.asyncio
    async def test_probe_healthy_server(self, settings):
        report = await probe_server(fake_server_spec(), settings=settings)

        assert report.ok
        assert report.server_name == "fake-mcp-server"
        assert report.protocol_version == "2024-11-05"
        assert {"startup", "initialization", "list_tools", "total"} <= set(report.timings)
        assert report.resources["supported"] is True
        assert report.sample_call.tool_name == "echo"
        assert report.sample_call.success
        assert "fake-mcp-server ready" in report.stderr_tail

    @pytest.mark.asyncio
    async def test_probe_without_optional_capabilities(self, settings):
        report = await probe_server(fake_server_spec("--no-optional"), settings=settings, sample_call=False)
        assert report.ok
        assert report.resources["supported"] is False
        assert report.prompts["count"] is None
        assert report.sample_call is None

    @pytest.mark.asyncio
    async def test_probe_reports_startup_failure(self):
        settings = Settings(use_env=False, overrides={"session": {"startup_delay": 2.0}})
        report = await probe_server(fake_server_spec("--exit-immediately"), settings=settings)
        assert not report.ok
        assert not report.server_startup
        assert report.errors
        assert any("refusing to start" in line for line in report.stderr_tail)

    @pytest.mark.asyncio
    async def test_probe_missing_script(self, settings):
        with pytest.raises(InvalidCommandException):
            await probe_server(f"node {FIXTURES_DIR / 'does_not_exist.js'}", settings=settings)

    @pytest.mark.asyncio
    async def test_call_tool_once(self, settings):
        result = await call_tool_once(fake_server_spec(), "add", {"a": 2, "b": 3}, settings=settings)
        assert result.success
        assert result.response["content"][0]["text"] == "5"
        assert result.elapsed_ms is not None

    @pytest.mark.asyncio
    async def test_call_tool_once_unknown_tool(self, settings):
        result = await call_tool_once(fake_server_spec(), "ghost", settings=settings)
        assert not result.success
        assert result.error_code == "UNKNOWN_TOOL"
        assert "echo" in result.error
        assert result.elapsed_ms is None

"""
Markdown rendering of harness results.

Every render function takes a result record and returns a Markdown document
as a string. ``render_json`` produces the machine-readable variant from the
records' ``to_dict``.
"""

import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..models.message_models import extract_text_content, has_non_text_content
from ..models.result_models import (
    BatchResult,
    BenchmarkReport,
    NegativeCaseResult,
    ProbeReport,
    TestCaseResult,
    ValidationReport,
)

OK = "✅"
FAIL = "❌"
WARN = "⚠️"


# ============================================================================
# Helpers
# ============================================================================

def _icon(flag: Optional[bool]) -> str:
    return OK if flag else FAIL


def _json_block(value: Any) -> str:
    return "```json\n" + json.dumps(value, indent=2, ensure_ascii=False, default=str) + "\n```"


def _ms(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.2f}ms"


def _percent(value: float) -> str:
    return f"{value * 100:.0f}%"


def _response_section(response: Any) -> List[str]:
    """Text content first; the full JSON when there is no text or more than text"""
    lines = []
    text = extract_text_content(response)
    if text:
        lines.extend([text, ""])
    if not text or has_non_text_content(response):
        lines.extend(["**Full response**:", _json_block(response), ""])
    return lines


def render_json(result: Any) -> str:
    """JSON document for a record or a list of records"""
    if isinstance(result, (list, tuple)):
        data = [item.to_dict() for item in result]
    else:
        data = result.to_dict()
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


# ============================================================================
# Probe / Direct Call
# ============================================================================

def render_probe_report(report: ProbeReport) -> str:
    lines = [
        "# MCP Server Test Report",
        "",
        "## Overview",
        f"- **Command**: `{report.command}`",
        f"- **Tested at**: {report.timestamp}",
        f"- **Total time**: {_ms(report.timings.get('total'))}",
        "",
        "## Results",
        f"- **Server startup**: {_icon(report.server_startup)}",
        f"- **Initialization**: {_icon(report.initialization)}",
        f"- **Tool listing**: {_icon(report.tools_listed)}",
        f"- **Tool count**: {len(report.tools)}",
    ]
    for label, capability in (("Resources", report.resources), ("Prompts", report.prompts)):
        if capability is None:
            continue
        if capability.get("supported"):
            lines.append(f"- **{label}**: {capability.get('count')}")
        else:
            lines.append(f"- **{label}**: not supported ({capability.get('reason')})")

    if report.initialization:
        lines.extend([
            "",
            "## Server Information",
            f"- **Name**: {report.server_name}",
            f"- **Version**: {report.server_version}",
            f"- **Protocol version**: {report.protocol_version}",
            "",
            "### Capabilities",
            _json_block(report.capabilities),
        ])

    lines.extend([
        "",
        "## Timings",
        f"- **Startup**: {_ms(report.timings.get('startup'))}",
        f"- **Initialization**: {_ms(report.timings.get('initialization'))}",
        f"- **Tool listing**: {_ms(report.timings.get('list_tools'))}",
    ])

    if report.tools:
        lines.extend(["", "## Tools", ""])
        for tool in report.tools:
            lines.append(f"### {tool.get('name')}")
            lines.append(f"**Description**: {tool.get('description') or 'No description'}")
            if tool.get("inputSchema"):
                lines.extend(["", "**Input schema**:", _json_block(tool["inputSchema"])])
            lines.append("")

    if report.sample_call is not None:
        lines.extend(["## Sample Call", "", render_call_result(report.sample_call, heading_level=3)])

    if report.errors:
        lines.extend(["", f"## {WARN} Errors", *[f"- {error}" for error in report.errors]])
    if report.errors and report.stderr_tail:
        lines.extend(["", "### Target stderr", "```", *report.stderr_tail, "```"])

    return "\n".join(lines).rstrip() + "\n"


def render_call_result(result: TestCaseResult, heading_level: int = 2) -> str:
    h = "#" * heading_level
    lines = [
        f"{h} Tool Call Result",
        "",
        f"**Tool**: {result.tool_name}",
        f"**Status**: {OK + ' success' if result.success else FAIL + ' failure'}",
        f"**Time**: {_ms(result.elapsed_ms)}",
        "",
    ]
    if result.arguments:
        lines.extend([f"{h}# Request Arguments", _json_block(result.arguments), ""])
    if result.success:
        lines.extend([f"{h}# Response", *_response_section(result.response)])
    else:
        lines.extend([f"{h}# Error", f"`{result.error_code}` {result.error}"])
    return "\n".join(lines).rstrip() + "\n"


# ============================================================================
# Batch
# ============================================================================

def render_batch_result(result: BatchResult) -> str:
    lines = [
        "# Batch Test Report",
        "",
        "## Overview",
        f"- **Mode**: {result.mode.value}",
        f"- **Total cases**: {result.total}",
        f"- **Succeeded**: {result.success_count}",
        f"- **Failed**: {result.failure_count}",
    ]
    if result.omitted_count:
        lines.append(f"- **Omitted (stopped on error)**: {result.omitted_count}")
    lines.extend([
        f"- **Wall clock**: {_ms(result.wall_clock_ms)}",
        f"- **Average call time**: {_ms(result.average_elapsed_ms)}",
        "",
        "## Cases",
        "",
    ])

    for index, case in enumerate(result.results, start=1):
        title = case.label or case.tool_name
        lines.append(f"### {index}. {_icon(case.success)} {title}")
        lines.append(f"- **Tool**: {case.tool_name}")
        lines.append(f"- **Time**: {_ms(case.elapsed_ms)}")
        lines.extend(["", "**Arguments**:", _json_block(case.arguments), ""])
        if case.success:
            lines.extend(["**Response**:", *_response_section(case.response)])
        else:
            lines.extend([f"**Error**: `{case.error_code}` {case.error}", ""])

    return "\n".join(lines).rstrip() + "\n"


# ============================================================================
# Benchmark
# ============================================================================

def render_benchmark_report(report: BenchmarkReport) -> str:
    stats = report.stats
    lines = [
        f"# Benchmark Report: {report.tool_name}",
        "",
        "## Configuration",
        f"- **Iterations**: {report.iterations}",
        f"- **Concurrency**: {report.concurrency}",
        f"- **Warm-up iterations**: {report.warmup_iterations}",
        "",
        "**Arguments**:",
        _json_block(report.arguments),
        "",
        "## Results",
        f"- **Succeeded**: {report.success_count}/{report.iterations} ({_percent(report.success_rate)})",
        f"- **Errors**: {report.error_count}",
        f"- **Total time**: {_ms(report.total_time_ms)}",
        f"- **Throughput**: {report.throughput_rps:.2f} req/s",
        "",
        "## Latency",
    ]
    if stats.has_data:
        lines.extend([
            "| Metric | Value |",
            "|--------|-------|",
            *[
                f"| {name} | {_ms(getattr(stats, name))} |"
                for name in ("min", "mean", "p50", "p90", "p95", "p99", "max", "std_dev")
            ],
        ])
    else:
        lines.append(f"{WARN} No successful calls; latency statistics are unavailable.")

    if report.burst is not None:
        burst = report.burst
        lines.extend([
            "",
            "## Concurrent Burst",
            f"- **Simultaneous calls**: {burst.concurrency}",
            f"- **Wall clock**: {_ms(burst.wall_clock_ms)}",
            f"- **Succeeded**: {burst.success_count}",
            f"- **Errors**: {burst.error_count}",
        ])

    if report.errors:
        lines.extend(["", "## Errors", *[f"- {error}" for error in report.errors]])

    return "\n".join(lines).rstrip() + "\n"


# ============================================================================
# Negative Cases
# ============================================================================

def render_negative_results(results: Sequence[NegativeCaseResult]) -> str:
    passed = sum(1 for r in results if r.passed)
    lines = [
        "# Negative Test Report",
        "",
        "## Overview",
        f"- **Total cases**: {len(results)}",
        f"- **Passed**: {passed}",
        f"- **Failed**: {len(results) - passed}",
        "",
        "## Cases",
        "",
    ]
    for index, result in enumerate(results, start=1):
        title = result.description or result.tool_name
        lines.append(f"### {index}. {_icon(result.passed)} {title}")
        lines.append(f"- **Tool**: {result.tool_name}")
        lines.append(f"- **Expected error**: {result.expected_pattern or '(any)'}")
        lines.append(f"- **Observed error**: {result.observed_error or '(none)'}")
        if result.error_source is not None:
            lines.append(f"- **Observed via**: {result.error_source.value}")
        lines.append(f"- **Verdict**: {result.match_reason}")
        lines.extend(["", "**Arguments**:", _json_block(result.arguments), ""])

    return "\n".join(lines).rstrip() + "\n"


# ============================================================================
# Tool Validation
# ============================================================================

def render_validation_report(report: ValidationReport) -> str:
    lines = [
        "# Tool Validation Report",
        "",
        "## Overview",
        f"- **Scope**: {report.scope or 'all tools'}",
        f"- **Total tools**: {report.total_tools}",
        f"- **Validated tools**: {len(report.tools)}",
        f"- **Validated at**: {report.timestamp}",
        "",
        "## Tools",
        "",
    ]

    for tool in report.tools:
        if tool.passed:
            icon = OK
        elif tool.schema_valid:
            icon = WARN
        else:
            icon = FAIL
        lines.extend([
            f"### {icon} {tool.name}",
            "",
            f"**Description**: {tool.description or 'No description'}",
            f"**Schema**: {_icon(tool.schema_valid)}",
        ])
        call = tool.call
        if call is None:
            lines.append("**Call**: not executed")
        else:
            lines.append(f"**Call**: {_icon(call.success)}")
            lines.append(f"- Time: {_ms(call.elapsed_ms)}")
            if call.error:
                lines.append(f"- Error: {call.error}")
            if call.response_valid is not None:
                lines.append(f"- Response format: {'valid' if call.response_valid else 'invalid'}")
            lines.extend(["", "**Arguments**:", _json_block(call.arguments)])
            if call.response is not None:
                lines.extend(["", "**Response**:", _json_block(call.response)])
        if tool.issues:
            lines.extend(["", "**Issues**:", *[f"- {issue}" for issue in tool.issues]])
        lines.extend(["", "---", ""])

    lines.extend([
        "## Summary",
        f"- **Schema pass rate**: {_percent(report.schema_pass_rate)}",
        f"- **Call pass rate**: {_percent(report.call_pass_rate)}",
    ])
    return "\n".join(lines).rstrip() + "\n"


RENDERERS: Dict[type, Any] = {
    ProbeReport: render_probe_report,
    TestCaseResult: render_call_result,
    BatchResult: render_batch_result,
    BenchmarkReport: render_benchmark_report,
    ValidationReport: render_validation_report,
}


def render_markdown(result: Any) -> str:
    """Dispatch to the renderer for a record (or a list of negative results)"""
    if isinstance(result, (list, tuple)):
        return render_negative_results(list(result))
    renderer = RENDERERS.get(type(result))
    if renderer is None:
        raise TypeError(f"No Markdown renderer for {type(result).__name__}")
    return renderer(result)

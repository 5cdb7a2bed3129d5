"""
mcp-tester - Command-line entry point

Sub-commands:
    probe       Launch a server, handshake, discover and sample-call its first tool
    call        Call one tool once
    batch       Run a file of tool calls (serial or parallel)
    benchmark   Measure the latency of one tool
    negative    Check that invalid calls fail with the expected errors
    validate    Check tool schemas and response formats

Examples:
    mcp-tester probe -s "node ./build/index.js"
    mcp-tester call -s ./server.py echo --arguments '{"text": "hi"}'
    mcp-tester batch -s ./server.js cases.yaml --mode parallel
    mcp-tester --format json benchmark -s ./server.js echo -n 200 -c 10

Exit status: 0 all checks passed, 1 some check failed, 2 the run itself failed.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from . import __title__, __version__
from .client.stdio_session import open_session
from .config.settings import Settings
from .harness.batch_runner import BatchRunner
from .harness.benchmark import BenchmarkEngine
from .harness.negative_cases import NegativeCaseValidator
from .harness.probe import call_tool_once, probe_server
from .harness.tool_validator import ToolValidator
from .models.result_models import ExecutionMode
from .reporting.markdown import render_json, render_markdown
from .utils.exceptions import ConfigurationException, MCPTesterException
from .utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CHECKS_FAILED = 1
EXIT_RUN_FAILED = 2

COMMANDS = ("probe", "call", "batch", "benchmark", "negative", "validate")


# ============================================================================
# ARGUMENT PARSING
# ============================================================================

def _json_object(value: str) -> Dict[str, Any]:
    """argparse type: a JSON object"""
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}")
    if not isinstance(parsed, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser"""
    parser = argparse.ArgumentParser(
        prog="mcp-tester",
        description="Conformance and performance tester for MCP tool servers",
    )
    parser.add_argument('--config', type=str, help='Path to a YAML or JSON configuration file')
    parser.add_argument('--timeout', type=float, help='Per-request timeout in seconds')
    parser.add_argument(
        '--format',
        type=str,
        choices=list(Settings.REPORT_FORMATS),
        help='Report format (default: from configuration, markdown)'
    )
    parser.add_argument('--output', '-o', type=str, help='Write the report to this file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'{__title__} v{__version__}')

    # Options shared by every sub-command
    target = argparse.ArgumentParser(add_help=False)
    target.add_argument(
        '--server', '-s',
        type=str,
        help='Server launch command (default: target.command / TARGET_MCP_SERVER)'
    )
    target.add_argument(
        '--server-arg',
        action='append',
        default=[],
        dest='server_args',
        help='Extra argument for the server (repeatable)'
    )

    commands = parser.add_subparsers(dest='command', metavar='COMMAND')
    commands.required = True

    commands.add_parser('probe', parents=[target], help='Probe a server end to end')

    call = commands.add_parser('call', parents=[target], help='Call one tool once')
    call.add_argument('tool_name', help='Tool to call')
    call.add_argument('--arguments', '-a', type=_json_object, default={}, help='Tool arguments as JSON')
    call.add_argument('--raw', action='store_true', help='Print the raw tool result as JSON')

    batch = commands.add_parser('batch', parents=[target], help='Run a file of tool calls')
    batch.add_argument('cases_file', help='YAML or JSON list of {tool_name, arguments, label}')
    batch.add_argument(
        '--mode',
        choices=[m.value for m in ExecutionMode],
        default=ExecutionMode.SERIAL.value,
        help='Execution mode (default: serial)'
    )
    batch.add_argument('--stop-on-error', action='store_true', help='Serial mode: stop at the first failure')

    bench = commands.add_parser('benchmark', parents=[target], help='Benchmark one tool')
    bench.add_argument('tool_name', help='Tool to benchmark')
    bench.add_argument('--arguments', '-a', type=_json_object, default={}, help='Tool arguments as JSON')
    bench.add_argument('--iterations', '-n', type=int, help='Measured calls')
    bench.add_argument('--concurrency', '-c', type=int, help='Calls in flight per batch')
    bench.add_argument('--warmup', '-w', type=int, dest='warmup_iterations', help='Unmeasured warm-up calls')

    negative = commands.add_parser('negative', parents=[target], help='Run negative cases')
    negative.add_argument('cases_file', help='YAML or JSON list of {tool_name, arguments, expected_error}')
    negative.add_argument('--strict', action='store_true', help='Require exact error messages')

    validate = commands.add_parser('validate', parents=[target], help='Validate tool schemas and responses')
    validate.add_argument('--tool', type=str, dest='tool_name', help='Validate only this tool')
    validate.add_argument(
        '--params',
        type=_json_object,
        default={},
        help='Arguments for --tool, or a mapping of tool name to arguments'
    )

    return parser


def parse_arguments(argv: Optional[Sequence[str]] = None) -> Tuple[Optional[argparse.Namespace], Optional[str]]:
    """
    Parse command-line arguments.

    Returns:
        (args, None) on success, (None, None) after --help/--version, and
        (None, message) on a usage error
    """
    parser = build_parser()
    try:
        return parser.parse_args(argv), None
    except SystemExit as e:
        if e.code == 0:
            return None, None
        return None, f"Argument parsing failed (exit code {e.code})"


def create_settings_from_args(args: argparse.Namespace) -> Settings:
    """Build Settings with command-line flags as the highest-priority layer"""
    overrides: Dict[str, Any] = {}
    if args.timeout is not None:
        overrides.setdefault("session", {})["request_timeout"] = args.timeout
    if args.format is not None:
        overrides.setdefault("report", {})["format"] = args.format
    return Settings(config_path=args.config, overrides=overrides or None)


# ============================================================================
# CASE FILES
# ============================================================================

def load_case_file(path: str) -> List[Dict[str, Any]]:
    """
    Load a list of case dictionaries from YAML or JSON.

    The root may be a list, or a mapping with a ``cases`` list.

    Raises:
        ConfigurationException: Missing file or unexpected structure
    """
    case_path = Path(path)
    if not case_path.exists():
        raise ConfigurationException(f"Case file not found: {case_path}", config_key=str(case_path))

    try:
        # YAML is a superset of JSON, one loader serves both
        with open(case_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationException(f"Failed to parse {case_path}: {e}", config_key=str(case_path)) from e

    if isinstance(data, dict):
        data = data.get("cases")
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ConfigurationException(
            f"{case_path} must contain a list of case mappings", config_key=str(case_path)
        )
    for index, item in enumerate(data):
        if not item.get("tool_name"):
            raise ConfigurationException(f"Case {index + 1} in {case_path} has no tool_name", config_key=str(case_path))
    return data


# ============================================================================
# COMMANDS
# ============================================================================

def resolve_server_command(args: argparse.Namespace, settings: Settings) -> str:
    command = args.server or settings.target.command
    if not command:
        raise ConfigurationException(
            "No server command: pass --server or set TARGET_MCP_SERVER", config_key="target.command"
        )
    return command


async def run_command(args: argparse.Namespace, settings: Settings) -> Tuple[Any, bool]:
    """
    Execute a sub-command.

    Returns:
        (result record, whether every check passed)
    """
    command = resolve_server_command(args, settings)
    server_args = list(settings.target.args) + list(args.server_args)

    if args.command == "probe":
        report = await probe_server(command, server_args, settings)
        return report, report.ok

    if args.command == "call":
        result = await call_tool_once(command, args.tool_name, args.arguments, server_args, settings)
        return result, result.success

    async with open_session(command, server_args, settings) as session:
        if args.command == "batch":
            cases = load_case_file(args.cases_file)
            result = await BatchRunner(session).run(cases, args.mode, args.stop_on_error)
            return result, result.failure_count == 0 and result.omitted_count == 0

        if args.command == "benchmark":
            defaults = settings.benchmark
            report = await BenchmarkEngine(session, defaults.max_recorded_errors).run(
                args.tool_name,
                args.arguments,
                iterations=args.iterations if args.iterations is not None else defaults.iterations,
                concurrency=args.concurrency if args.concurrency is not None else defaults.concurrency,
                warmup_iterations=(
                    args.warmup_iterations if args.warmup_iterations is not None else defaults.warmup_iterations
                ),
            )
            return report, report.error_count == 0

        if args.command == "negative":
            cases = load_case_file(args.cases_file)
            results = await NegativeCaseValidator(session, strict=args.strict).run(cases)
            return results, all(r.passed for r in results)

        if args.command == "validate":
            report = await ToolValidator(session).run(args.tool_name, args.params)
            return report, all(tool.passed and not tool.issues for tool in report.tools)

    raise ConfigurationException(f"Unknown command: {args.command}", config_key="command")


def render_output(args: argparse.Namespace, settings: Settings, result: Any) -> str:
    if args.command == "call" and args.raw:
        payload = result.response if result.success else {"error": result.error, "code": result.error_code}
        return json.dumps(payload, indent=2, ensure_ascii=False)
    if settings.report.format == "json":
        return render_json(result)
    return render_markdown(result)


def write_output(args: argparse.Namespace, settings: Settings, text: str) -> None:
    """Write the report to --output, the configured output_dir, or stdout"""
    target: Optional[Path] = None
    if args.output:
        target = Path(args.output)
    elif settings.report.output_dir:
        suffix = "json" if settings.report.format == "json" else "md"
        target = Path(settings.report.output_dir) / f"{args.command}-report.{suffix}"

    if target is None:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
        return

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    logger.info(f"Report written to {target}")


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 success, 1 failed checks, 2 run-level error)
    """
    args, error = parse_arguments(argv)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return EXIT_RUN_FAILED
    if args is None:
        return EXIT_OK

    try:
        settings = create_settings_from_args(args)
    except MCPTesterException as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUN_FAILED

    setup_logging(settings.logging, verbose=args.verbose)
    logger.debug(f"{__title__} v{__version__}, config sources: {settings.sources}")

    try:
        result, passed = asyncio.run(run_command(args, settings))
        write_output(args, settings, render_output(args, settings, result))
    except MCPTesterException as e:
        logger.debug("Run failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUN_FAILED
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return EXIT_RUN_FAILED

    return EXIT_OK if passed else EXIT_CHECKS_FAILED


if __name__ == '__main__':
    sys.exit(main())

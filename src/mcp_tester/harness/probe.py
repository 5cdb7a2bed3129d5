"""
Server probe and direct tool call.

``probe_server`` walks a target through launch, handshake and discovery, calls
its first tool with generated arguments, and records what worked and how long
each step took. Target misbehaviour ends up in the report, not in an
exception; only an unusable command (bad syntax, missing script) raises.

``call_tool_once`` is the quick path: launch, check the tool exists, call it
once.
"""

import logging
import time
from typing import Any, Dict, Iterable, Optional, Union

from ..client.command_parser import CommandSpec, ensure_script_exists, parse_server_command
from ..client.stdio_session import ProtocolSession
from ..config.settings import Settings
from ..models.result_models import ProbeReport, TestCaseResult
from ..utils.async_utils import elapsed_ms
from ..utils.exceptions import MCPTesterException, error_message
from .example_generator import generate_example_arguments

logger = logging.getLogger(__name__)


def _resolve_command(
        command: Union[str, CommandSpec],
        extra_args: Optional[Iterable[str]],
) -> CommandSpec:
    spec = parse_server_command(command) if isinstance(command, str) else command
    return spec.with_args(extra_args)


async def probe_server(
        command: Union[str, CommandSpec],
        extra_args: Optional[Iterable[str]] = None,
        settings: Optional[Settings] = None,
        sample_call: bool = True,
) -> ProbeReport:
    """
    Probe a target server end to end.

    Args:
        command: Launch string or parsed CommandSpec
        extra_args: Arguments appended to the command
        settings: Settings providing the session configuration
        sample_call: Call the first tool with generated arguments

    Returns:
        ProbeReport with step flags, discovery results, timings and errors

    Raises:
        InvalidCommandException: Unparseable command or missing script
    """
    spec = _resolve_command(command, extra_args)
    ensure_script_exists(spec)

    report = ProbeReport(command=str(spec))
    session = ProtocolSession(config=settings.session if settings is not None else None)
    start = time.perf_counter()

    try:
        await session.connect(spec.executable, spec.launch_args)
        report.server_startup = True
        report.timings["startup"] = elapsed_ms(start)

        step = time.perf_counter()
        init = await session.handshake()
        report.initialization = True
        report.timings["initialization"] = elapsed_ms(step)
        report.server_name = init.server_info.name
        report.server_version = init.server_info.version
        report.protocol_version = init.protocol_version
        report.capabilities = dict(init.capabilities)

        step = time.perf_counter()
        tools = await session.discover_tools()
        report.tools_listed = True
        report.timings["list_tools"] = elapsed_ms(step)
        report.tools = [tool.to_dict() for tool in tools]

        report.resources = (await session.discover_resources()).to_dict()
        report.prompts = (await session.discover_prompts()).to_dict()

        if sample_call and tools:
            first = tools[0]
            arguments = generate_example_arguments(first)
            step = time.perf_counter()
            try:
                response = await session.invoke(first.name, arguments)
            except MCPTesterException as e:
                report.sample_call = TestCaseResult(
                    tool_name=first.name,
                    arguments=arguments,
                    success=False,
                    error=error_message(e),
                    error_code=e.code,
                    elapsed_ms=elapsed_ms(step),
                )
            else:
                report.sample_call = TestCaseResult(
                    tool_name=first.name,
                    arguments=arguments,
                    success=True,
                    response=response,
                    elapsed_ms=elapsed_ms(step),
                )

        report.timings["total"] = elapsed_ms(start)
    except MCPTesterException as e:
        logger.warning(f"Probe of {spec} failed: {e}")
        report.errors.append(error_message(e))
    finally:
        report.stderr_tail = session.stderr_lines[-20:]
        logger.debug(f"Probe session status: {session.get_status()}")
        await session.close()

    return report


async def call_tool_once(
        command: Union[str, CommandSpec],
        tool_name: str,
        arguments: Optional[Dict[str, Any]] = None,
        extra_args: Optional[Iterable[str]] = None,
        settings: Optional[Settings] = None,
) -> TestCaseResult:
    """
    Launch a target, verify a tool exists and call it once.

    Every failure after parsing, including launch and handshake errors, is
    reported in the result rather than raised.
    """
    spec = _resolve_command(command, extra_args)
    arguments = dict(arguments or {})
    session = ProtocolSession(config=settings.session if settings is not None else None)

    start: Optional[float] = None
    try:
        await session.connect(spec.executable, spec.launch_args)
        await session.handshake()
        await session.discover_tools()
        session.get_tool(tool_name)

        start = time.perf_counter()
        response = await session.invoke(tool_name, arguments)
        return TestCaseResult(
            tool_name=tool_name,
            arguments=arguments,
            success=True,
            response=response,
            elapsed_ms=elapsed_ms(start),
        )
    except MCPTesterException as e:
        logger.debug(f"Direct call of {tool_name} failed: {e}")
        return TestCaseResult(
            tool_name=tool_name,
            arguments=arguments,
            success=False,
            error=error_message(e),
            error_code=e.code,
            elapsed_ms=elapsed_ms(start) if start is not None else None,
        )
    finally:
        await session.close()

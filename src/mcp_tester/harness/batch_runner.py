"""
Batch Runner

Runs a list of tool invocations against one session, either one after another
(optionally stopping at the first failure) or all at once.

Per-case failures never escape: they become TestCaseResult fields. Only a
failing tool discovery aborts the run.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Iterable, List, Sequence, Union

from ..client.stdio_session import ProtocolSession
from ..models.result_models import BatchResult, ExecutionMode, TestCase, TestCaseResult
from ..utils.async_utils import elapsed_ms
from ..utils.exceptions import MCPTesterException, UnknownToolException, error_message

logger = logging.getLogger(__name__)

CaseLike = Union[TestCase, Dict[str, Any]]


def to_test_cases(cases: Iterable[CaseLike]) -> List[TestCase]:
    """Normalize dictionaries (as loaded from case files) to TestCase"""
    return [case if isinstance(case, TestCase) else TestCase.from_dict(case) for case in cases]


class BatchRunner:
    """
    Execute batches of tool calls.

    Example:
        >>> runner = BatchRunner(session)
        >>> result = await runner.run(cases, mode=ExecutionMode.SERIAL, stop_on_error=True)
        >>> result.success_count
    """

    def __init__(self, session: ProtocolSession):
        self.session = session

    async def run(
            self,
            cases: Sequence[CaseLike],
            mode: Union[ExecutionMode, str] = ExecutionMode.SERIAL,
            stop_on_error: bool = False,
    ) -> BatchResult:
        """
        Run a batch.

        Args:
            cases: Test cases in execution order
            mode: serial or parallel
            stop_on_error: Serial only; stop after the first failure. Ignored
                in parallel mode, where in-flight calls are never cancelled.

        Returns:
            BatchResult; in serial fail-fast runs ``omitted_count`` counts the
            cases that were never sent
        """
        mode = ExecutionMode(mode)
        test_cases = to_test_cases(cases)

        tools = await self.session.discover_tools()
        known = {tool.name for tool in tools}

        logger.info(
            f"Running batch of {len(test_cases)} case(s) "
            f"(mode={mode.value}, stop_on_error={stop_on_error})"
        )
        start = time.perf_counter()

        if mode is ExecutionMode.SERIAL:
            results = await self._run_serial(test_cases, known, stop_on_error)
        else:
            if stop_on_error:
                logger.debug("stop_on_error has no effect in parallel mode")
            results = await self._run_parallel(test_cases, known)

        success_count = sum(1 for r in results if r.success)
        result = BatchResult(
            total=len(test_cases),
            success_count=success_count,
            failure_count=len(results) - success_count,
            results=tuple(results),
            wall_clock_ms=elapsed_ms(start),
            mode=mode,
            stop_on_error=stop_on_error,
        )
        logger.info(
            f"Batch finished: {result.success_count} passed, {result.failure_count} failed, "
            f"{result.omitted_count} omitted in {result.wall_clock_ms:.1f}ms"
        )
        return result

    async def _run_serial(
            self,
            cases: List[TestCase],
            known: set,
            stop_on_error: bool,
    ) -> List[TestCaseResult]:
        results: List[TestCaseResult] = []
        for index, case in enumerate(cases):
            result = await self._run_case(case, known)
            results.append(result)
            if stop_on_error and not result.success:
                logger.info(f"Stopping after failed case {index + 1}/{len(cases)} ({case.tool_name})")
                break
        return results

    async def _run_parallel(self, cases: List[TestCase], known: set) -> List[TestCaseResult]:
        return list(await asyncio.gather(*(self._run_case(case, known) for case in cases)))

    async def _run_case(self, case: TestCase, known: set) -> TestCaseResult:
        if case.tool_name not in known:
            exc = UnknownToolException(
                f"Tool '{case.tool_name}' not found",
                tool_name=case.tool_name,
                available_tools=sorted(known),
            )
            return TestCaseResult(
                tool_name=case.tool_name,
                arguments=case.arguments,
                success=False,
                error=exc.message,
                error_code=exc.code,
                label=case.label,
            )

        start = time.perf_counter()
        try:
            response = await self.session.invoke(case.tool_name, case.arguments)
        except MCPTesterException as e:
            logger.debug(f"Case {case.tool_name} failed: {e}")
            return TestCaseResult(
                tool_name=case.tool_name,
                arguments=case.arguments,
                success=False,
                error=error_message(e),
                error_code=e.code,
                elapsed_ms=elapsed_ms(start),
                label=case.label,
            )

        return TestCaseResult(
            tool_name=case.tool_name,
            arguments=case.arguments,
            success=True,
            response=response,
            elapsed_ms=elapsed_ms(start),
            label=case.label,
        )

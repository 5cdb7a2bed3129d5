"""
Benchmark Engine

Measures the latency of repeated calls to a single tool.

Features:
- Warm-up calls excluded from every statistic
- Sequential or batched-concurrent measured loop
- Nearest-rank percentiles and population standard deviation
- Optional fully concurrent burst when concurrency > 1

Example:
    >>> engine = BenchmarkEngine(session)
    >>> report = await engine.run("echo", {"text": "hi"}, iterations=50, concurrency=5)
    >>> report.stats.p95
"""

import logging
import math
import statistics
import time
from typing import Any, Dict, List, Optional, Sequence

from ..client.stdio_session import ProtocolSession
from ..models.result_models import BenchmarkReport, BurstResult, LatencyStats
from ..utils.async_utils import elapsed_ms, run_in_batches, timed
from ..utils.exceptions import MCPTesterException, ValidationException, error_message

logger = logging.getLogger(__name__)

PERCENTILE_RANKS = {"p50": 0.50, "p90": 0.90, "p95": 0.95, "p99": 0.99}


# ============================================================================
# Statistics
# ============================================================================

def percentile(sorted_samples: Sequence[float], rank: float) -> float:
    """
    Nearest-rank percentile of an ascending sequence.

    Uses ``index = floor(rank * count)`` clamped to the last element.
    """
    if not sorted_samples:
        return 0.0
    index = min(int(math.floor(rank * len(sorted_samples))), len(sorted_samples) - 1)
    return sorted_samples[index]


def compute_latency_stats(samples: Sequence[float]) -> LatencyStats:
    """
    Summarize latency samples (milliseconds).

    An empty sample set yields all-zero stats with ``has_data == False``.
    """
    if not samples:
        return LatencyStats()

    ordered = sorted(samples)
    return LatencyStats(
        count=len(ordered),
        min=ordered[0],
        max=ordered[-1],
        mean=statistics.fmean(ordered),
        std_dev=statistics.pstdev(ordered),
        **{name: percentile(ordered, rank) for name, rank in PERCENTILE_RANKS.items()},
    )


# ============================================================================
# Engine
# ============================================================================

class BenchmarkEngine:
    """Latency benchmark for one tool on one session"""

    def __init__(self, session: ProtocolSession, max_recorded_errors: int = 10):
        """
        Args:
            session: Ready protocol session
            max_recorded_errors: Distinct error messages kept in the report
        """
        self.session = session
        self.max_recorded_errors = max_recorded_errors

    async def run(
            self,
            tool_name: str,
            arguments: Optional[Dict[str, Any]] = None,
            iterations: int = 100,
            concurrency: int = 1,
            warmup_iterations: int = 0,
    ) -> BenchmarkReport:
        """
        Benchmark a tool.

        Args:
            tool_name: Tool to call
            arguments: Arguments for every call
            iterations: Measured calls
            concurrency: Calls in flight per batch (1 = sequential)
            warmup_iterations: Unmeasured calls made first

        Raises:
            ValidationException: Invalid parameters
        """
        self._validate(iterations, concurrency, warmup_iterations)
        arguments = dict(arguments or {})

        logger.info(
            f"Benchmarking {tool_name}: {iterations} iterations, concurrency={concurrency}, "
            f"warmup={warmup_iterations}"
        )

        for _ in range(warmup_iterations):
            try:
                await self.session.invoke(tool_name, arguments)
            except MCPTesterException as e:
                logger.debug(f"Warm-up call failed: {e}")

        samples: List[float] = []
        errors: List[str] = []
        error_count = 0

        start = time.perf_counter()
        if concurrency == 1:
            outcomes = [await self._measured_call(tool_name, arguments) for _ in range(iterations)]
        else:
            outcomes = await run_in_batches(
                lambda _: self._measured_call(tool_name, arguments), iterations, concurrency
            )
        total_time_ms = elapsed_ms(start)

        for outcome in outcomes:
            if isinstance(outcome, float):
                samples.append(outcome)
            else:
                error_count += 1
                message = error_message(outcome)
                if message not in errors and len(errors) < self.max_recorded_errors:
                    errors.append(message)

        burst = await self._run_burst(tool_name, arguments, concurrency) if concurrency > 1 else None

        report = BenchmarkReport(
            tool_name=tool_name,
            arguments=arguments,
            iterations=iterations,
            concurrency=concurrency,
            warmup_iterations=warmup_iterations,
            stats=compute_latency_stats(samples),
            success_count=len(samples),
            error_count=error_count,
            total_time_ms=total_time_ms,
            errors=tuple(errors),
            burst=burst,
        )
        logger.info(
            f"Benchmark {tool_name} done: {report.success_count}/{iterations} ok, "
            f"p50={report.stats.p50:.2f}ms p95={report.stats.p95:.2f}ms"
        )
        return report

    async def _measured_call(self, tool_name: str, arguments: Dict[str, Any]) -> Any:
        """Elapsed ms of a successful call, or the exception of a failed one"""
        try:
            _, elapsed = await timed(self.session.invoke(tool_name, arguments))
        except MCPTesterException as e:
            return e
        return elapsed

    async def _run_burst(self, tool_name: str, arguments: Dict[str, Any], concurrency: int) -> BurstResult:
        start = time.perf_counter()
        outcomes = await run_in_batches(
            lambda _: self._measured_call(tool_name, arguments), concurrency, concurrency
        )
        wall_clock = elapsed_ms(start)
        successes = sum(1 for o in outcomes if isinstance(o, float))
        return BurstResult(
            concurrency=concurrency,
            wall_clock_ms=wall_clock,
            success_count=successes,
            error_count=len(outcomes) - successes,
        )

    @staticmethod
    def _validate(iterations: int, concurrency: int, warmup_iterations: int) -> None:
        if iterations < 1:
            raise ValidationException(f"iterations must be >= 1, got {iterations}", field_name="iterations")
        if concurrency < 1:
            raise ValidationException(f"concurrency must be >= 1, got {concurrency}", field_name="concurrency")
        if warmup_iterations < 0:
            raise ValidationException(
                f"warmup_iterations must be >= 0, got {warmup_iterations}", field_name="warmup_iterations"
            )

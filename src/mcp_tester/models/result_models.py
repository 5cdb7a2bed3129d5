# mcp-tester/src/mcp_tester/models/result_models.py

"""
Result records produced by the test harness.

Every record is created once per case or run and never mutated afterwards;
they are plain frozen dataclasses with a ``to_dict`` for JSON reports.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# ENUMS
# ============================================================================

class ExecutionMode(str, Enum):
    """Batch execution modes"""
    SERIAL = "serial"
    PARALLEL = "parallel"


class ErrorSource(str, Enum):
    """Where a negative case observed its error"""
    EXCEPTION = "exception"
    RESPONSE = "response"


# ============================================================================
# Batch Results
# ============================================================================

@dataclass(frozen=True)
class TestCase:
    """One tool invocation to run in a batch"""
    __test__ = False

    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    label: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestCase":
        return cls(
            tool_name=data["tool_name"],
            arguments=dict(data.get("arguments") or {}),
            label=data.get("label") or data.get("description"),
        )


@dataclass(frozen=True)
class TestCaseResult:
    """Outcome of a single tool invocation"""
    __test__ = False

    tool_name: str
    arguments: Dict[str, Any]
    success: bool
    response: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    elapsed_ms: Optional[float] = None
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BatchResult:
    """Aggregate outcome of a batch run"""
    total: int
    success_count: int
    failure_count: int
    results: Tuple[TestCaseResult, ...]
    wall_clock_ms: float
    mode: ExecutionMode = ExecutionMode.SERIAL
    stop_on_error: bool = False
    timestamp: str = field(default_factory=_now_iso)

    @property
    def omitted_count(self) -> int:
        """Cases never executed because serial fail-fast stopped the run"""
        return self.total - len(self.results)

    @property
    def average_elapsed_ms(self) -> Optional[float]:
        timings = [r.elapsed_ms for r in self.results if r.elapsed_ms is not None]
        if not timings:
            return None
        return sum(timings) / len(timings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "omitted_count": self.omitted_count,
            "wall_clock_ms": self.wall_clock_ms,
            "average_elapsed_ms": self.average_elapsed_ms,
            "mode": self.mode.value,
            "stop_on_error": self.stop_on_error,
            "timestamp": self.timestamp,
            "results": [r.to_dict() for r in self.results],
        }


# ============================================================================
# Benchmark Results
# ============================================================================

@dataclass(frozen=True)
class LatencyStats:
    """Summary statistics over latency samples, in milliseconds"""
    count: int = 0
    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    p50: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    std_dev: float = 0.0

    @property
    def has_data(self) -> bool:
        """False when every call failed; zeros then mean "no data", not "fast" """
        return self.count > 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["has_data"] = self.has_data
        return data


@dataclass(frozen=True)
class BurstResult:
    """One fully concurrent burst of simultaneous calls"""
    concurrency: int
    wall_clock_ms: float
    success_count: int
    error_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BenchmarkReport:
    """Outcome of a single-tool benchmark"""
    tool_name: str
    arguments: Dict[str, Any]
    iterations: int
    concurrency: int
    warmup_iterations: int
    stats: LatencyStats
    success_count: int
    error_count: int
    total_time_ms: float
    errors: Tuple[str, ...] = ()
    burst: Optional[BurstResult] = None
    timestamp: str = field(default_factory=_now_iso)

    @property
    def success_rate(self) -> float:
        if self.iterations == 0:
            return 0.0
        return self.success_count / self.iterations

    @property
    def throughput_rps(self) -> float:
        """Successful calls per second over the measured loop"""
        if self.total_time_ms <= 0:
            return 0.0
        return self.success_count / (self.total_time_ms / 1000.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool_name": self.tool_name,
            "arguments": self.arguments,
            "iterations": self.iterations,
            "concurrency": self.concurrency,
            "warmup_iterations": self.warmup_iterations,
            "stats": self.stats.to_dict(),
            "success_count": self.success_count,
            "error_count": self.error_count,
            "success_rate": self.success_rate,
            "total_time_ms": self.total_time_ms,
            "throughput_rps": self.throughput_rps,
            "errors": list(self.errors),
            "burst": self.burst.to_dict() if self.burst else None,
            "timestamp": self.timestamp,
        }


# ============================================================================
# Negative Case Results
# ============================================================================

@dataclass(frozen=True)
class NegativeCase:
    """A deliberately invalid invocation and the error it should produce"""
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    expected_error: Optional[str] = None
    strict: bool = False
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], strict: bool = False) -> "NegativeCase":
        return cls(
            tool_name=data["tool_name"],
            arguments=dict(data.get("arguments") or {}),
            expected_error=data.get("expected_error"),
            strict=bool(data.get("strict", strict)),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class NegativeCaseResult:
    """Verification outcome of one negative case"""
    tool_name: str
    arguments: Dict[str, Any]
    passed: bool
    match_reason: str
    expected_pattern: Optional[str] = None
    observed_error: Optional[str] = None
    error_source: Optional[ErrorSource] = None
    response: Optional[Any] = None
    elapsed_ms: Optional[float] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["error_source"] = self.error_source.value if self.error_source else None
        return data


# ============================================================================
# Tool Validation Results
# ============================================================================

@dataclass(frozen=True)
class ToolCallCheck:
    """Functional check of one tool during validation"""
    success: bool
    arguments: Dict[str, Any]
    elapsed_ms: Optional[float] = None
    response_valid: Optional[bool] = None
    response: Optional[Any] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ToolValidation:
    """Schema and functional validation of one tool"""
    name: str
    description: Optional[str]
    schema_valid: bool
    issues: Tuple[str, ...] = ()
    call: Optional[ToolCallCheck] = None

    @property
    def passed(self) -> bool:
        return self.schema_valid and self.call is not None and self.call.success

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "schema_valid": self.schema_valid,
            "issues": list(self.issues),
            "call": self.call.to_dict() if self.call else None,
            "passed": self.passed,
        }


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of validating the tools of one server"""
    total_tools: int
    tools: Tuple[ToolValidation, ...]
    scope: Optional[str] = None
    timestamp: str = field(default_factory=_now_iso)

    @property
    def schema_pass_rate(self) -> float:
        if not self.tools:
            return 0.0
        return sum(1 for t in self.tools if t.schema_valid) / len(self.tools)

    @property
    def call_pass_rate(self) -> float:
        if not self.tools:
            return 0.0
        return sum(1 for t in self.tools if t.call is not None and t.call.success) / len(self.tools)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scope": self.scope,
            "total_tools": self.total_tools,
            "validated_tools": len(self.tools),
            "schema_pass_rate": self.schema_pass_rate,
            "call_pass_rate": self.call_pass_rate,
            "timestamp": self.timestamp,
            "tools": [t.to_dict() for t in self.tools],
        }


# ============================================================================
# Probe Results
# ============================================================================

@dataclass
class ProbeReport:
    """
    Outcome of a full server probe.

    Filled in step by step while the probe runs, then handed to reporting.
    """
    command: str
    server_startup: bool = False
    initialization: bool = False
    tools_listed: bool = False
    server_name: Optional[str] = None
    server_version: Optional[str] = None
    protocol_version: Optional[str] = None
    capabilities: Dict[str, Any] = field(default_factory=dict)
    tools: List[Dict[str, Any]] = field(default_factory=list)
    resources: Optional[Dict[str, Any]] = None
    prompts: Optional[Dict[str, Any]] = None
    sample_call: Optional[TestCaseResult] = None
    timings: Dict[str, float] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    stderr_tail: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=_now_iso)

    @property
    def ok(self) -> bool:
        return self.server_startup and self.initialization and self.tools_listed and not self.errors

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["sample_call"] = self.sample_call.to_dict() if self.sample_call else None
        data["ok"] = self.ok
        return data

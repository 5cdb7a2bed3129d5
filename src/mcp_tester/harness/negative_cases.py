"""
Negative-Case Validator

Sends deliberately invalid calls and checks that the target fails the way it
should. A failure is observed either as a raised error or as a successful
response that is shaped like an error (``isError: true`` or a text payload
containing an error marker).
"""

import logging
import re
import time
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..client.stdio_session import ProtocolSession
from ..models.message_models import extract_text_content, response_as_text
from ..models.result_models import ErrorSource, NegativeCase, NegativeCaseResult
from ..utils.async_utils import elapsed_ms
from ..utils.exceptions import MCPTesterException, error_message

logger = logging.getLogger(__name__)

ERROR_MARKERS = ("error", "exception", "错误")

NO_FAILURE_REASON = "Expected a failure but none occurred"

NegativeCaseLike = Union[NegativeCase, Dict[str, Any]]


# ============================================================================
# Matching
# ============================================================================

def detect_error_response(response: Any) -> Optional[str]:
    """
    Error text of an error-shaped response, or None if it looks successful.
    """
    if not isinstance(response, dict):
        return None
    text = extract_text_content(response)
    if response.get("isError") is True:
        return text or response_as_text(response)
    # Markers are searched in text items only, never in the encoded envelope
    lowered = text.lower()
    if any(marker in lowered for marker in ERROR_MARKERS):
        return text
    return None


def match_error(observed: str, pattern: Optional[str], strict: bool = False) -> Tuple[bool, str]:
    """
    Match an observed error against an expected pattern.

    - no pattern: any error passes
    - strict: exact string equality
    - otherwise: case-insensitive regex search, or case-insensitive substring
      when the pattern is not a valid regex

    Returns:
        (passed, reason)
    """
    if not pattern:
        return True, "Error occurred (no pattern specified)"

    if strict:
        if observed == pattern:
            return True, "Exact match"
        return False, f"Expected exactly '{pattern}', got '{observed}'"

    try:
        regex = re.compile(pattern, re.IGNORECASE)
    except re.error:
        if pattern.lower() in observed.lower():
            return True, f"Substring match: '{pattern}'"
        return False, f"'{pattern}' not found in '{observed}'"

    if regex.search(observed):
        return True, f"Pattern match: '{pattern}'"
    return False, f"Pattern '{pattern}' not found in '{observed}'"


def summarize_negative_results(results: Iterable[NegativeCaseResult]) -> Dict[str, Any]:
    """Count passed and failed cases"""
    results = list(results)
    passed = sum(1 for r in results if r.passed)
    return {
        "total": len(results),
        "passed": passed,
        "failed": len(results) - passed,
        "pass_rate": passed / len(results) if results else 0.0,
    }


# ============================================================================
# Validator
# ============================================================================

class NegativeCaseValidator:
    """Runs negative cases serially and never raises per case"""

    def __init__(self, session: ProtocolSession, strict: bool = False):
        """
        Args:
            session: Ready protocol session
            strict: Default strictness for cases given as dictionaries
        """
        self.session = session
        self.strict = strict

    async def run(self, cases: Iterable[NegativeCaseLike]) -> List[NegativeCaseResult]:
        results = []
        for case in cases:
            if not isinstance(case, NegativeCase):
                case = NegativeCase.from_dict(case, strict=self.strict)
            results.append(await self.run_case(case))

        summary = summarize_negative_results(results)
        logger.info(f"Negative cases: {summary['passed']}/{summary['total']} passed")
        return results

    async def run_case(self, case: NegativeCase) -> NegativeCaseResult:
        start = time.perf_counter()
        response: Any = None
        source: Optional[ErrorSource] = None
        observed: Optional[str] = None

        try:
            response = await self.session.invoke(case.tool_name, case.arguments)
        except MCPTesterException as e:
            source, observed = ErrorSource.EXCEPTION, error_message(e)
        else:
            observed = detect_error_response(response)
            if observed is not None:
                source = ErrorSource.RESPONSE
        elapsed = elapsed_ms(start)

        if source is None:
            passed, reason = False, NO_FAILURE_REASON
        else:
            passed, reason = match_error(observed, case.expected_error, case.strict)

        logger.debug(f"Negative case {case.tool_name}: passed={passed} ({reason})")
        return NegativeCaseResult(
            tool_name=case.tool_name,
            arguments=case.arguments,
            passed=passed,
            match_reason=reason,
            expected_pattern=case.expected_error,
            observed_error=observed,
            error_source=source,
            response=response,
            elapsed_ms=elapsed,
            description=case.description,
        )

"""
Tool Validator

Checks every discovered tool (or one named tool) in two steps:

1. Schema: ``inputSchema`` present, has a ``type``, object schemas declare
   ``properties``.
2. Function: tools with a valid schema are called once and the result is
   checked for the tool-result shape (``content`` list, every item typed,
   text items carrying a string ``text``).
"""

import logging
import time
from typing import Any, Dict, List, Optional

from ..client.stdio_session import ProtocolSession
from ..models.message_models import ContentBlockType, ToolDescriptor
from ..models.result_models import ToolCallCheck, ToolValidation, ValidationReport
from ..utils.async_utils import elapsed_ms
from ..utils.exceptions import MCPTesterException, UnknownToolException, error_message
from .example_generator import generate_example_arguments

logger = logging.getLogger(__name__)

ISSUE_MISSING_SCHEMA = "Missing inputSchema"
ISSUE_MISSING_TYPE = "inputSchema has no 'type' field"
ISSUE_MISSING_PROPERTIES = "Object schema has no 'properties'"
ISSUE_INVALID_RESPONSE = "Response does not match the tool result format"
ISSUE_REQUIRED_PARAMS = "Required parameter validation failed"
ISSUE_PARAM_TYPES = "Parameter type validation failed"


def validate_tool_schema(tool: ToolDescriptor) -> List[str]:
    """Schema issues of a tool; empty when the schema is acceptable"""
    schema = tool.input_schema
    if not schema:
        return [ISSUE_MISSING_SCHEMA]

    issues = []
    if not schema.get("type"):
        issues.append(ISSUE_MISSING_TYPE)
    elif schema.get("type") == "object" and "properties" not in schema:
        issues.append(ISSUE_MISSING_PROPERTIES)
    return issues


def validate_tool_response(response: Any) -> bool:
    """Whether a tool result has the expected content structure"""
    if not isinstance(response, dict):
        return False
    content = response.get("content")
    if not isinstance(content, list):
        return False
    for item in content:
        if not isinstance(item, dict) or not item.get("type"):
            return False
        if item["type"] == ContentBlockType.TEXT.value and not isinstance(item.get("text"), str):
            return False
    return True


class ToolValidator:
    """Schema and smoke-call validation of a server's tools"""

    def __init__(self, session: ProtocolSession):
        self.session = session

    async def run(
            self,
            tool_name: Optional[str] = None,
            test_params: Optional[Dict[str, Any]] = None,
    ) -> ValidationReport:
        """
        Validate tools.

        Args:
            tool_name: Validate only this tool
            test_params: Either the arguments for ``tool_name`` directly, or a
                mapping of tool name to arguments

        Raises:
            UnknownToolException: ``tool_name`` is not offered by the target
        """
        test_params = test_params or {}
        tools = await self.session.discover_tools()

        if tool_name:
            selected = [tool for tool in tools if tool.name == tool_name]
            if not selected:
                raise UnknownToolException(
                    f"Tool '{tool_name}' not found",
                    tool_name=tool_name,
                    available_tools=[tool.name for tool in tools],
                )
        else:
            selected = tools

        validations = [
            await self._validate_tool(tool, self._resolve_arguments(tool, tool_name, test_params))
            for tool in selected
        ]
        report = ValidationReport(total_tools=len(tools), tools=tuple(validations), scope=tool_name)
        logger.info(
            f"Validated {len(validations)} tool(s): schema {report.schema_pass_rate:.0%}, "
            f"calls {report.call_pass_rate:.0%}"
        )
        return report

    @staticmethod
    def _resolve_arguments(
            tool: ToolDescriptor,
            tool_name: Optional[str],
            test_params: Dict[str, Any],
    ) -> Dict[str, Any]:
        per_tool = test_params.get(tool.name)
        if isinstance(per_tool, dict):
            return per_tool
        if tool_name and test_params:
            return test_params
        return generate_example_arguments(tool)

    async def _validate_tool(self, tool: ToolDescriptor, arguments: Dict[str, Any]) -> ToolValidation:
        issues = validate_tool_schema(tool)
        schema_valid = not issues
        if not schema_valid:
            logger.debug(f"Tool {tool.name} schema issues: {issues}")
            return ToolValidation(tool.name, tool.description, schema_valid, tuple(issues))

        start = time.perf_counter()
        try:
            response = await self.session.invoke(tool.name, arguments)
        except MCPTesterException as e:
            message = error_message(e)
            if "required" in message:
                issues.append(ISSUE_REQUIRED_PARAMS)
            elif "type" in message:
                issues.append(ISSUE_PARAM_TYPES)
            call = ToolCallCheck(success=False, arguments=arguments, elapsed_ms=elapsed_ms(start), error=message)
            return ToolValidation(tool.name, tool.description, schema_valid, tuple(issues), call)

        response_valid = validate_tool_response(response)
        if not response_valid:
            issues.append(ISSUE_INVALID_RESPONSE)
        call = ToolCallCheck(
            success=True,
            arguments=arguments,
            elapsed_ms=elapsed_ms(start),
            response_valid=response_valid,
            response=response,
        )
        return ToolValidation(tool.name, tool.description, schema_valid, tuple(issues), call)

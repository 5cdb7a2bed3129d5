# mcp-tester/src/mcp_tester/utils/exceptions.py

"""
Exceptions - Custom exception classes for the MCP tester.
Provides a structured exception hierarchy mirroring the failure modes of a
protocol test run: launch, handshake, per-call and configuration errors.
"""

from typing import Any, Dict, Optional


# ============================================================================
# Base Exception Class
# ============================================================================

class MCPTesterException(Exception):
    """
    Base exception for all MCP tester exceptions.

    Attributes:
        message: Error message
        code: Error code for categorization
        details: Additional error details
    """

    def __init__(
            self,
            message: str,
            code: str = "UNKNOWN_ERROR",
            details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize MCP tester exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of exception"""
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation"""
        details_str = ""
        if self.details:
            details_str = f", details={self.details!r}"
        return f"{self.__class__.__name__}(message={self.message!r}, code={self.code!r}{details_str})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary"""
        return {
            "exception_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


# ============================================================================
# Launch-Related Exceptions
# ============================================================================

class InvalidCommandException(MCPTesterException):
    """Raised when a server launch command cannot be parsed"""

    def __init__(self, message: str, raw_command: str = "", details: Optional[Dict[str, Any]] = None):
        """Initialize invalid command exception"""
        if details is None:
            details = {}
        details["raw_command"] = raw_command
        super().__init__(message, code="INVALID_COMMAND", details=details)


class LaunchException(MCPTesterException):
    """Raised when the target server process fails to start"""

    def __init__(
            self,
            message: str,
            executable: str = "",
            stderr_tail: Optional[str] = None,
            details: Optional[Dict[str, Any]] = None
    ):
        """Initialize launch exception"""
        if details is None:
            details = {}
        details["executable"] = executable
        if stderr_tail:
            details["stderr_tail"] = stderr_tail
        super().__init__(message, code="LAUNCH_ERROR", details=details)


# ============================================================================
# Session-Related Exceptions
# ============================================================================

class NotReadyException(MCPTesterException):
    """Raised when an operation is attempted before the handshake completed"""

    def __init__(self, message: str, state: str = "", details: Optional[Dict[str, Any]] = None):
        """Initialize not-ready exception"""
        if details is None:
            details = {}
        details["state"] = state
        super().__init__(message, code="NOT_READY", details=details)


class ProtocolException(MCPTesterException):
    """Raised when the target sends a malformed or unexpected message"""

    def __init__(self, message: str, method: str = "", details: Optional[Dict[str, Any]] = None):
        """Initialize protocol exception"""
        if details is None:
            details = {}
        details["method"] = method
        super().__init__(message, code="PROTOCOL_ERROR", details=details)


class SessionClosedException(MCPTesterException):
    """Raised when a call is issued after, or interrupted by, session teardown"""

    def __init__(self, message: str = "Session is closed", details: Optional[Dict[str, Any]] = None):
        """Initialize session closed exception"""
        super().__init__(message, code="SESSION_CLOSED", details=details)


# ============================================================================
# Call-Related Exceptions
# ============================================================================

class RemoteException(MCPTesterException):
    """
    Raised when the target answers a request with a JSON-RPC error object.

    The remote error code and data are kept so callers can classify the
    failure without re-parsing the message text.
    """

    def __init__(
            self,
            message: str,
            remote_code: Optional[int] = None,
            data: Any = None,
            details: Optional[Dict[str, Any]] = None
    ):
        """Initialize remote exception"""
        if details is None:
            details = {}
        details["remote_code"] = remote_code
        if data is not None:
            details["data"] = data
        self.remote_code = remote_code
        self.data = data
        super().__init__(message, code="REMOTE_ERROR", details=details)


class RequestTimeoutException(MCPTesterException):
    """Raised when no reply arrives within the request timeout"""

    def __init__(
            self,
            message: str,
            method: str = "",
            timeout_seconds: float = 0,
            details: Optional[Dict[str, Any]] = None
    ):
        """Initialize timeout exception"""
        if details is None:
            details = {}
        details.update({"method": method, "timeout_seconds": timeout_seconds})
        super().__init__(message, code="TIMEOUT", details=details)


class UnknownToolException(MCPTesterException):
    """Raised when a referenced tool is absent from discovery"""

    def __init__(
            self,
            message: str,
            tool_name: str = "",
            available_tools: Optional[list] = None,
            details: Optional[Dict[str, Any]] = None
    ):
        """Initialize unknown tool exception"""
        if details is None:
            details = {}
        details["tool_name"] = tool_name
        details["available_tools"] = list(available_tools or [])
        super().__init__(message, code="UNKNOWN_TOOL", details=details)


# ============================================================================
# Configuration / Validation Exceptions
# ============================================================================

class ConfigurationException(MCPTesterException):
    """Raised when configuration is invalid or cannot be loaded"""

    def __init__(self, message: str, config_key: str = "", details: Optional[Dict[str, Any]] = None):
        """Initialize configuration exception"""
        if details is None:
            details = {}
        details["config_key"] = config_key
        super().__init__(message, code="CONFIG_ERROR", details=details)


class ValidationException(MCPTesterException):
    """Raised when caller-supplied input fails validation"""

    def __init__(self, message: str, field_name: str = "", details: Optional[Dict[str, Any]] = None):
        """Initialize validation exception"""
        if details is None:
            details = {}
        details["field_name"] = field_name
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================================================
# Helper Functions
# ============================================================================

def error_message(exc: BaseException) -> str:
    """
    Extract the human-readable message from an exception.

    Tester exceptions carry their message without the code prefix; any other
    exception falls back to ``str(exc)`` or its class name.
    """
    if isinstance(exc, MCPTesterException):
        return exc.message
    return str(exc) or exc.__class__.__name__


def error_code(exc: BaseException) -> str:
    """Return the categorization code of an exception"""
    if isinstance(exc, MCPTesterException):
        return exc.code
    return "UNKNOWN_ERROR"

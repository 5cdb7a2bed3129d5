# mcp-tester/src/mcp_tester/models/message_models.py

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# ENUMS - Protocol and Message Types
# ============================================================================

JSONRPC_VERSION = "2.0"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"


class MessageType(str, Enum):
    """Kinds of inbound JSON-RPC messages"""
    REQUEST = "request"
    RESPONSE = "response"
    NOTIFICATION = "notification"
    INVALID = "invalid"


class RequestMethod(str, Enum):
    """Protocol methods used by the tester"""
    # Protocol initialization
    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    PING = "ping"

    # Discovery
    LIST_TOOLS = "tools/list"
    LIST_RESOURCES = "resources/list"
    LIST_PROMPTS = "prompts/list"

    # Invocation
    CALL_TOOL = "tools/call"


class JSONRPCErrorCode(int, Enum):
    """Standard JSON-RPC error codes"""
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


# ============================================================================
# Wire Message Helpers
# ============================================================================

def build_request(request_id: int, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build a JSON-RPC request object"""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "method": method,
        "params": params if params is not None else {},
    }


def build_notification(method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build a JSON-RPC notification (no id)"""
    message: Dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if params is not None:
        message["params"] = params
    return message


def build_response(request_id: Any, result: Any) -> Dict[str, Any]:
    """Build a JSON-RPC success response"""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def build_error_response(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    """Build a JSON-RPC error response"""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": {"code": int(code), "message": message},
    }


def classify_message(message: Any) -> MessageType:
    """
    Classify an inbound message.

    A message with a method and an id is a request from the target, a method
    without an id is a notification, and an id with ``result`` or ``error`` is
    a response. Anything else is invalid.
    """
    if not isinstance(message, dict):
        return MessageType.INVALID

    has_id = message.get("id") is not None
    if "method" in message:
        return MessageType.REQUEST if has_id else MessageType.NOTIFICATION
    if has_id and ("result" in message or message.get("error") is not None):
        return MessageType.RESPONSE
    return MessageType.INVALID


def encode_message(message: Dict[str, Any]) -> bytes:
    """Serialize a message to one UTF-8 line"""
    return (json.dumps(message, separators=(",", ":"), ensure_ascii=False) + "\n").encode("utf-8")


# ============================================================================
# Protocol Initialization Models
# ============================================================================

class ClientInfo(BaseModel):
    """Client identity sent during the handshake"""
    name: str = Field(..., description="Client name")
    version: str = Field(..., description="Client version")


class ServerInfo(BaseModel):
    """Server identity reported during the handshake"""
    model_config = ConfigDict(extra="allow")

    name: str = Field(default="unknown", description="Server name")
    version: str = Field(default="unknown", description="Server version")


class InitializeResult(BaseModel):
    """Result of the ``initialize`` request"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    protocol_version: Optional[str] = Field(
        default=None, alias="protocolVersion", description="Negotiated protocol version"
    )
    capabilities: Dict[str, Any] = Field(default_factory=dict, description="Server capabilities")
    server_info: ServerInfo = Field(
        default_factory=ServerInfo, alias="serverInfo", description="Server identity"
    )
    instructions: Optional[str] = Field(default=None, description="Usage instructions")

    def supports(self, capability: str) -> bool:
        """Whether the server advertised a capability (e.g. ``resources``)"""
        return capability in self.capabilities


# ============================================================================
# Discovery Models
# ============================================================================

class ToolDescriptor(BaseModel):
    """Tool definition returned by ``tools/list``"""
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    name: str = Field(..., description="Tool name")
    description: Optional[str] = Field(default=None, description="Tool description")
    input_schema: Optional[Dict[str, Any]] = Field(
        default=None, alias="inputSchema", description="JSON Schema of the tool arguments"
    )

    def to_dict(self) -> Dict[str, Any]:
        """Wire-shaped dictionary"""
        return self.model_dump(by_alias=True, exclude_none=True)


class ResourceDescriptor(BaseModel):
    """Resource definition returned by ``resources/list``"""
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    uri: str = Field(..., description="Resource URI")
    name: Optional[str] = Field(default=None, description="Resource name")
    description: Optional[str] = Field(default=None, description="Resource description")
    mime_type: Optional[str] = Field(default=None, alias="mimeType", description="MIME type")

    def to_dict(self) -> Dict[str, Any]:
        """Wire-shaped dictionary"""
        return self.model_dump(by_alias=True, exclude_none=True)


class PromptDescriptor(BaseModel):
    """Prompt definition returned by ``prompts/list``"""
    model_config = ConfigDict(extra="allow", frozen=True)

    name: str = Field(..., description="Prompt name")
    description: Optional[str] = Field(default=None, description="Prompt description")
    arguments: List[Dict[str, Any]] = Field(default_factory=list, description="Prompt arguments")

    def to_dict(self) -> Dict[str, Any]:
        """Wire-shaped dictionary"""
        return self.model_dump(exclude_none=True)


@dataclass(frozen=True)
class CapabilityResult:
    """
    Outcome of an optional discovery call.

    ``supported`` is False when the target rejected the method or answered
    with a payload of the wrong shape; ``reason`` then says why.
    """
    supported: bool
    items: Tuple[Any, ...] = field(default_factory=tuple)
    reason: Optional[str] = None

    @classmethod
    def available(cls, items: List[Any]) -> "CapabilityResult":
        return cls(supported=True, items=tuple(items))

    @classmethod
    def unsupported(cls, reason: str) -> "CapabilityResult":
        return cls(supported=False, items=(), reason=reason)

    @property
    def count(self) -> Optional[int]:
        """Number of items, or None when unsupported"""
        return len(self.items) if self.supported else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "supported": self.supported,
            "count": self.count,
            "items": [item.to_dict() if hasattr(item, "to_dict") else item for item in self.items],
            "reason": self.reason,
        }


# ============================================================================
# Tool Result Helpers
# ============================================================================

class ContentBlockType(str, Enum):
    """Content item types in a tool result"""
    TEXT = "text"
    IMAGE = "image"
    RESOURCE = "resource"


def extract_text_content(response: Any) -> str:
    """
    Join the text items of a tool result's ``content`` list.

    Returns an empty string when the response has no text items.
    """
    if not isinstance(response, dict):
        return ""
    content = response.get("content")
    if not isinstance(content, list):
        return ""
    texts = [
        item.get("text")
        for item in content
        if isinstance(item, dict)
        and item.get("type") == ContentBlockType.TEXT.value
        and isinstance(item.get("text"), str)
    ]
    return "\n".join(texts)


def has_non_text_content(response: Any) -> bool:
    """Whether a tool result carries any non-text content item"""
    if not isinstance(response, dict) or not isinstance(response.get("content"), list):
        return False
    return any(
        not isinstance(item, dict) or item.get("type") != ContentBlockType.TEXT.value
        for item in response["content"]
    )


def response_as_text(response: Any) -> str:
    """Text content of a tool result, falling back to its JSON encoding"""
    text = extract_text_content(response)
    if text:
        return text
    if response is None:
        return ""
    return json.dumps(response, ensure_ascii=False)

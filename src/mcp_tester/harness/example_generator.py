# mcp-tester/src/mcp_tester/harness/example_generator.py

"""
Example argument generation from a tool's input schema.

For every property the value is taken from, in order: ``example``,
``default``, the first ``enum`` value, then a type-based placeholder.
"""

from typing import Any, Dict, Optional, Union

from ..models.message_models import ToolDescriptor

# Checked in order against the lowercased property name
NUMBER_HINTS = (
    ("id", 1),
    ("count", 5),
    ("size", 100),
    ("limit", 10),
)
DEFAULT_NUMBER = 42


def generate_example_arguments(tool: Union[ToolDescriptor, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Build example arguments for a tool.

    Args:
        tool: Tool descriptor (or a raw schema dictionary)

    Returns:
        Arguments keyed by property name; empty when the schema has no
        properties
    """
    schema = tool.input_schema if isinstance(tool, ToolDescriptor) else tool
    if not isinstance(schema, dict):
        return {}
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return {}

    return {
        key: example_value(key, prop if isinstance(prop, dict) else {})
        for key, prop in properties.items()
    }


def example_value(key: str, prop: Dict[str, Any]) -> Any:
    """Example value for one schema property"""
    if "example" in prop:
        return prop["example"]
    if "default" in prop:
        return prop["default"]
    enum = prop.get("enum")
    if isinstance(enum, list) and enum:
        return enum[0]

    prop_type = _primary_type(prop.get("type"))
    if prop_type in ("number", "integer"):
        return _example_number(key)
    if prop_type == "string":
        return _example_string(key, prop.get("format"))
    if prop_type == "boolean":
        return True
    if prop_type == "array":
        return _example_array(prop.get("items"))
    if prop_type == "object":
        return {"example": "value"}
    return f"example_{key}_value"


def _primary_type(value: Any) -> Optional[str]:
    # ["string", "null"] style unions use their first non-null member
    if isinstance(value, list):
        for item in value:
            if item != "null":
                return item
        return None
    return value


def _example_number(key: str) -> int:
    lowered = key.lower()
    for hint, value in NUMBER_HINTS:
        if hint in lowered:
            return value
    return DEFAULT_NUMBER


def _example_string(key: str, fmt: Optional[str]) -> str:
    if fmt == "email":
        return "example@email.com"
    if fmt in ("uri", "url"):
        return "https://example.com"
    lowered = key.lower()
    if "name" in lowered:
        return "ExampleName"
    if "path" in lowered:
        return "/example/path"
    return f"example_{key}"


def _example_array(items: Any) -> list:
    item_type = _primary_type(items.get("type")) if isinstance(items, dict) else None
    if item_type == "string":
        return ["item1", "item2"]
    if item_type in ("number", "integer"):
        return [1, 2, 3]
    return ["example"]

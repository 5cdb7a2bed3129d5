"""
Unit tests for example argument generation.
"""

from mcp_tester.harness.example_generator import example_value, generate_example_arguments
from mcp_tester.models.message_models import ToolDescriptor


def tool_with(properties):
    return ToolDescriptor.model_validate({
        "name": "t",
        "inputSchema": {"type": "object", "properties": properties},
    })


class TestGenerateExampleArguments:
    """Value precedence and type-based placeholders"""

    def test_example_beats_default_and_enum(self):
        args = generate_example_arguments(tool_with({
            "mode": {"type": "string", "example": "fast", "default": "slow", "enum": ["x"]},
        }))
        assert args == {"mode": "fast"}

    def test_default_beats_enum(self):
        args = generate_example_arguments(tool_with({"mode": {"default": "slow", "enum": ["x"]}}))
        assert args == {"mode": "slow"}

    def test_falsy_default_is_used(self):
        args = generate_example_arguments(tool_with({"flag": {"type": "boolean", "default": False}}))
        assert args == {"flag": False}

    def test_enum_first_value(self):
        args = generate_example_arguments(tool_with({"level": {"type": "string", "enum": ["low", "high"]}}))
        assert args == {"level": "low"}

    def test_number_hints(self):
        args = generate_example_arguments(tool_with({
            "id": {"type": "integer"},
            "count": {"type": "integer"},
            "size": {"type": "number"},
            "limit": {"type": "integer"},
            "other": {"type": "number"},
        }))
        assert args == {"id": 1, "count": 5, "size": 100, "limit": 10, "other": 42}

    def test_number_hints_match_inside_names(self):
        args = generate_example_arguments(tool_with({
            "userId": {"type": "integer"},
            "maxCount": {"type": "integer"},
            "PageSize": {"type": "integer"},
            "rateLimit": {"type": "number"},
            "idCount": {"type": "integer"},
        }))
        # First hint in order wins
        assert args == {"userId": 1, "maxCount": 5, "PageSize": 100, "rateLimit": 10, "idCount": 1}

    def test_string_formats_and_names(self):
        args = generate_example_arguments(tool_with({
            "contact": {"type": "string", "format": "email"},
            "home": {"type": "string", "format": "uri"},
            "userName": {"type": "string"},
            "filePath": {"type": "string"},
            "query": {"type": "string"},
        }))
        assert args == {
            "contact": "example@email.com",
            "home": "https://example.com",
            "userName": "ExampleName",
            "filePath": "/example/path",
            "query": "example_query",
        }

    def test_arrays_by_item_type(self):
        args = generate_example_arguments(tool_with({
            "tags": {"type": "array", "items": {"type": "string"}},
            "values": {"type": "array", "items": {"type": "integer"}},
            "things": {"type": "array"},
        }))
        assert args == {"tags": ["item1", "item2"], "values": [1, 2, 3], "things": ["example"]}

    def test_boolean_object_and_unknown(self):
        args = generate_example_arguments(tool_with({
            "verbose": {"type": "boolean"},
            "options": {"type": "object"},
            "mystery": {},
        }))
        assert args == {"verbose": True, "options": {"example": "value"}, "mystery": "example_mystery_value"}

    def test_nullable_type_union(self):
        assert example_value("count", {"type": ["null", "integer"]}) == 5

    def test_tool_without_schema(self):
        assert generate_example_arguments(ToolDescriptor(name="bare")) == {}

    def test_raw_schema_dictionary(self):
        schema = {"type": "object", "properties": {"a": {"type": "number"}}}
        assert generate_example_arguments(schema) == {"a": 42}

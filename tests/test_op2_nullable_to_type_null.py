"""Tests for converting nullable to type null."""

from procore_openapi.transformers.op2_nullable_to_type_null import convert_nullable_to_type_null


def schema_doc(schema):
    return {"components": {"schemas": {"S": schema}}}


def converted(schema, warn=None):
    return convert_nullable_to_type_null(schema_doc(schema), warn)["components"]["schemas"]["S"]


class TestConvertNullableToTypeNull:
    """Test the convert_nullable_to_type_null function."""

    def test_string_type(self):
        """Test that null is added to a single type."""
        assert converted({"type": "string", "nullable": True}) == {"type": ["string", "null"]}

    def test_type_list(self):
        """Test that null is appended to a list of types."""
        result = converted({"type": ["string", "integer"], "nullable": True})

        assert result == {"type": ["string", "integer", "null"]}

    def test_already_null(self):
        """Test that null is not added twice."""
        assert converted({"type": ["string", "null"], "nullable": True}) == {
            "type": ["string", "null"]
        }

    def test_enum_gets_null(self):
        """Test that None is added to enum values."""
        result = converted({"type": "string", "enum": ["a"], "nullable": True})

        assert result == {"type": ["string", "null"], "enum": ["a", None]}

    def test_nullable_false_removed(self):
        """Test that nullable: false is removed."""
        assert converted({"type": "string", "nullable": False}) == {"type": "string"}

    def test_non_boolean_warns(self, warn):
        """Test that a non-boolean nullable is left unchanged with a warning."""
        schema = {"type": "string", "nullable": "yes"}

        assert converted(schema, warn) == schema
        assert warn.warnings == [("/components/schemas/S", "Ignoring non-boolean nullable: 'yes'")]

    def test_nested_schema(self):
        """Test that nested property schemas are converted."""
        schema = {"type": "object", "properties": {"a": {"type": "integer", "nullable": True}}}

        result = converted(schema)

        assert result["properties"]["a"] == {"type": ["integer", "null"]}

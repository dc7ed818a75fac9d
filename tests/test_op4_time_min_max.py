"""Tests for adding bounds to hour and minute schemas."""

from procore_openapi.transformers.op4_time_min_max import add_time_min_max


def object_doc(properties):
    return {"components": {"schemas": {"S": {"type": "object", "properties": properties}}}}


def transformed_properties(properties, warn=None):
    result = add_time_min_max(object_doc(properties), warn)
    return result["components"]["schemas"]["S"]["properties"]


class TestAddTimeMinMax:
    """Test the add_time_min_max function."""

    def test_adds_hour_bounds(self):
        """Test that hour properties get 0-23 bounds."""
        properties = {"hour": {"type": "integer"}, "time_hour": {"type": "integer"}}

        result = transformed_properties(properties)

        assert result["hour"] == {"type": "integer", "minimum": 0, "maximum": 23}
        assert result["time_hour"] == {"type": "integer", "minimum": 0, "maximum": 23}

    def test_adds_minute_bounds(self):
        """Test that minute properties get 0-59 bounds."""
        result = transformed_properties({"minute": {"type": "integer"}})

        assert result["minute"] == {"type": "integer", "minimum": 0, "maximum": 59}

    def test_nullable_integer(self):
        """Test that type lists containing integer get bounds."""
        result = transformed_properties({"minute": {"type": ["integer", "null"]}})

        assert result["minute"]["maximum"] == 59

    def test_other_names_unchanged(self, warn):
        """Test that other properties are not changed."""
        properties = {"hours": {"type": "integer"}, "start_minute": {"type": "integer"}}

        assert transformed_properties(properties, warn) == properties
        assert warn.warnings == []

    def test_wrong_type_warns(self, warn):
        """Test that a non-integer hour warns."""
        properties = {"hour": {"type": "string"}}

        assert transformed_properties(properties, warn) == properties
        assert warn.warnings == [
            (
                "/components/schemas/S/properties/hour",
                'Property hour has type \'string\'.  Expected "integer"',
            )
        ]

    def test_matching_bounds_unchanged(self, warn):
        """Test that correct existing bounds are kept silently."""
        properties = {"hour": {"type": "integer", "minimum": 0, "maximum": 23}}

        assert transformed_properties(properties, warn) == properties
        assert warn.warnings == []

    def test_different_bounds_warn(self, warn):
        """Test that different existing bounds are kept with a warning."""
        properties = {"hour": {"type": "integer", "minimum": 1, "maximum": 12}}

        assert transformed_properties(properties, warn) == properties
        assert warn.messages == ["Property hour has min/max 1/12, expected 0/23"]

    def test_parameter(self):
        """Test that query parameters are matched by name."""
        doc = {
            "paths": {
                "/a": {
                    "get": {
                        "parameters": [
                            {"name": "minute", "in": "query", "schema": {"type": "integer"}}
                        ]
                    }
                }
            }
        }

        result = add_time_min_max(doc)

        schema = result["paths"]["/a"]["get"]["parameters"][0]["schema"]
        assert schema == {"type": "integer", "minimum": 0, "maximum": 59}

    def test_parameter_without_schema_warns(self, warn):
        """Test that a parameter without schema warns."""
        doc = {"paths": {"/a": {"get": {"parameters": [{"name": "hour", "in": "query"}]}}}}

        add_time_min_max(doc, warn)

        assert warn.warnings == [("/paths/~1a/get/parameters/0", "Parameter without schema")]

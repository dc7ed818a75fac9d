"""
Operation 4: Add minimum and maximum to hour and minute schemas.

The Procore docs set these bounds inconsistently. Schemas are identified by
the name of the property or parameter they describe.
"""

import re
from typing import Any

from procore_openapi.transformers.base import OpenApiTransformerBase, WarningHandler

# (name pattern, minimum, maximum)
TIME_RANGES = [
    (re.compile(r"^(time_)?hour$"), 0, 23),
    (re.compile(r"^(time_)?minute$"), 0, 59),
]


def _is_integer_type(schema_type: Any) -> bool:
    if isinstance(schema_type, list):
        return "integer" in schema_type
    return schema_type == "integer"


class TimeMinMaxTransformer(OpenApiTransformerBase):
    def transform_schema_with_name(self, schema: Any, name: str | None) -> Any:
        """Transform a schema which describes the property or parameter `name`."""
        schema = self.transform_schema(schema)
        if not isinstance(schema, dict) or not isinstance(name, str):
            return schema

        for name_re, minimum, maximum in TIME_RANGES:
            if not name_re.match(name):
                continue

            if not _is_integer_type(schema.get("type")):
                self.warn('Property %s has type %r.  Expected "integer"', name, schema.get("type"))
            elif "minimum" not in schema and "maximum" not in schema:
                return {**schema, "minimum": minimum, "maximum": maximum}
            elif schema.get("minimum") != minimum or schema.get("maximum") != maximum:
                self.warn(
                    "Property %s has min/max %r/%r, expected %d/%d",
                    name,
                    schema.get("minimum"),
                    schema.get("maximum"),
                    minimum,
                    maximum,
                )
            break

        return schema

    def transform_schema_properties(self, properties: Any) -> Any:
        return self._transform_map(
            properties, self.transform_schema_with_name, "Schema properties", with_key=True
        )

    def transform_parameter(self, parameter: Any) -> Any:
        if not isinstance(parameter, dict) or "$ref" in parameter:
            return super().transform_parameter(parameter)

        if "content" in parameter:
            self.warn("Unhandled parameter.content")
            return parameter

        schema = parameter.get("schema")
        if schema is None:
            self.warn("Parameter without schema")
            return parameter

        new_schema = self.visit(
            self.transform_schema_with_name, "schema", schema, parameter.get("name")
        )
        if new_schema is schema:
            return parameter
        return {**parameter, "schema": new_schema}


def add_time_min_max(doc: dict, warn: WarningHandler | None = None) -> dict:
    """Add bounds to the hour and minute schemas in `doc`."""
    return TimeMinMaxTransformer(warn).transform_open_api(doc)

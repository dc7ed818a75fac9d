"""
Operation 2: Replace the OpenAPI 3.0 `nullable` keyword with `type: null`.

OpenAPI 3.1 schemas are JSON Schema 2020-12, which has no `nullable`.
A schema with `nullable: true` gets "null" added to its `type` (and to its
`enum`, if it has one, since enum values are checked independently).
"""

from typing import Any

from procore_openapi.transformers.base import OpenApiTransformerBase, WarningHandler


class NullableToTypeNullTransformer(OpenApiTransformerBase):
    def transform_schema(self, schema: Any) -> Any:
        schema = super().transform_schema(schema)
        if not isinstance(schema, dict) or "nullable" not in schema:
            return schema

        new_schema = {key: value for key, value in schema.items() if key != "nullable"}
        nullable = schema["nullable"]
        if nullable is False:
            return new_schema
        if nullable is not True:
            self.warn("Ignoring non-boolean nullable: %r", nullable)
            return schema

        schema_type = schema.get("type")
        if isinstance(schema_type, str):
            if schema_type != "null":
                new_schema["type"] = [schema_type, "null"]
        elif isinstance(schema_type, list):
            if "null" not in schema_type:
                new_schema["type"] = [*schema_type, "null"]
        elif schema_type is not None:
            self.warn("Unexpected type %r on nullable schema", schema_type)

        enum_values = schema.get("enum")
        if isinstance(enum_values, list) and None not in enum_values:
            new_schema["enum"] = [*enum_values, None]

        return new_schema


def convert_nullable_to_type_null(doc: dict, warn: WarningHandler | None = None) -> dict:
    """Convert every `nullable` schema in `doc` to use a "null" type."""
    return NullableToTypeNullTransformer(warn).transform_open_api(doc)

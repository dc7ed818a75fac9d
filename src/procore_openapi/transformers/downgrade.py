"""
Conversion of OpenAPI 3.1 documents to OpenAPI 3.0.3.

Many generators do not yet support OpenAPI 3.1. Schema keywords from JSON
Schema 2020-12 are converted to their closest OpenAPI 3.0 equivalent, and
document properties with no equivalent are removed with a warning.
"""

from typing import Any

from procore_openapi.transformers.base import OpenApiTransformerBase, WarningHandler

OPENAPI_30_VERSION = "3.0.3"

# A type list containing all of these is removed rather than converted to
# anyOf. Few generators support union types and the only such schemas
# (custom_field_*) also allow arrays.
_ALL_PRIMITIVE_TYPES = ("boolean", "number", "string")


def is_all_primitive_types(schema_type: Any) -> bool:
    """Determine if a type constraint lists every non-null primitive type."""
    return (
        isinstance(schema_type, list)
        and len(schema_type) >= 3
        and all(t in schema_type for t in _ALL_PRIMITIVE_TYPES)
    )


class OpenApi31To30Transformer(OpenApiTransformerBase):
    def _convert_type(self, schema: dict) -> None:
        schema_type = schema.get("type")
        if not isinstance(schema_type, list):
            return

        del schema["type"]
        if "null" in schema_type:
            schema["nullable"] = True
        if is_all_primitive_types(schema_type):
            return

        non_null = [t for t in schema_type if t != "null"]
        if len(non_null) == 1:
            schema["type"] = non_null[0]
        elif non_null:
            any_of = [{"type": t} for t in non_null]
            if "anyOf" in schema:
                schema["allOf"] = [*schema.get("allOf", []), {"anyOf": any_of}]
            else:
                schema["anyOf"] = any_of

    def _convert_exclusive_bound(self, schema: dict, exclusive: str, inclusive: str) -> None:
        value = schema.get(exclusive)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return

        if inclusive in schema and schema[inclusive] != value:
            self.warn("Replacing %s %r with %s %r", inclusive, schema[inclusive], exclusive, value)
        schema[inclusive] = value
        schema[exclusive] = True

    def transform_schema(self, schema: Any) -> Any:
        schema = super().transform_schema(schema)
        if isinstance(schema, bool):
            return {} if schema else {"not": {}}
        if not isinstance(schema, dict):
            return schema

        new_schema = dict(schema)
        self._convert_type(new_schema)

        if "const" in new_schema:
            const = new_schema.pop("const")
            if "enum" in new_schema:
                self.warn("Dropping const %r from schema with enum", const)
            else:
                new_schema["enum"] = [const]

        if "examples" in new_schema:
            examples = new_schema.pop("examples")
            if isinstance(examples, list) and examples and "example" not in new_schema:
                new_schema["example"] = examples[0]

        self._convert_exclusive_bound(new_schema, "exclusiveMinimum", "minimum")
        self._convert_exclusive_bound(new_schema, "exclusiveMaximum", "maximum")

        if new_schema.get("contentEncoding") == "base64":
            del new_schema["contentEncoding"]
            new_schema.setdefault("format", "byte")
        if new_schema.get("contentMediaType") == "application/octet-stream":
            del new_schema["contentMediaType"]
            new_schema.setdefault("format", "binary")

        pattern_properties = new_schema.pop("patternProperties", None)
        if isinstance(pattern_properties, dict):
            if len(pattern_properties) == 1 and "additionalProperties" not in new_schema:
                (new_schema["additionalProperties"],) = pattern_properties.values()
            else:
                new_schema["x-patternProperties"] = pattern_properties

        if "$ref" in new_schema and len(new_schema) > 1:
            # Siblings of $ref are ignored in OpenAPI 3.0
            new_schema = {
                "allOf": [{"$ref": new_schema.pop("$ref")}],
                **new_schema,
            }

        return schema if new_schema == schema else new_schema

    def transform_response(self, response: Any) -> Any:
        if isinstance(response, dict) and "$ref" in response and len(response) > 1:
            # Reference Objects in OpenAPI 3.0 can't override description
            return {"$ref": response["$ref"]}
        return super().transform_response(response)

    def transform_open_api(self, open_api: Any) -> Any:
        open_api = super().transform_open_api(open_api)
        if not isinstance(open_api, dict):
            return open_api

        new_open_api = dict(open_api)
        for key in ("webhooks", "jsonSchemaDialect"):
            if key in new_open_api:
                self.warn("Removing %s, which is not supported in OpenAPI 3.0", key)
                del new_open_api[key]

        info = new_open_api.get("info")
        license_info = info.get("license") if isinstance(info, dict) else None
        if isinstance(license_info, dict) and "identifier" in license_info:
            self.warn("Removing info.license.identifier, which is not supported in OpenAPI 3.0")
            new_open_api["info"] = {
                **info,
                "license": {k: v for k, v in license_info.items() if k != "identifier"},
            }

        new_open_api["openapi"] = OPENAPI_30_VERSION
        return new_open_api


def downgrade_to_openapi30(doc: dict, warn: WarningHandler | None = None) -> dict:
    """
    Convert an OpenAPI 3.1 document to OpenAPI 3.0.3.

    Args:
        doc: OpenAPI 3.1 document (other versions are converted with a warning)
        warn: Handler for warnings about properties which were removed

    Returns:
        The converted document, sharing unchanged subtrees with `doc`
    """
    transformer = OpenApi31To30Transformer(warn)
    version = doc.get("openapi") if isinstance(doc, dict) else None
    if not isinstance(version, str) or not version.startswith("3.1."):
        transformer.warn("Expected OpenAPI 3.1, got %r", version)
    return transformer.transform_open_api(doc)

"""
Operation 5: Infer the format of string schemas from their context.

The format is inferred from, in order of priority, the name of the property
or parameter, the description of the schema or parameter, and the example
of the schema or parameter. The formats chosen are those useful for
generating strongly typed clients which can be inferred with little
ambiguity. Schemas which already have a format are never changed.
"""

import re
from typing import Any

from procore_openapi.transformers.base import OpenApiTransformerBase, WarningHandler

# Lower-cased property or parameter name -> format
NAME_FORMATS = {
    "date": "date",
    "datetime": "date-time",
    "email": "email",
    "email_address": "email",
    "inbound_email": "email",
    "email_signature": "html",
    "uri": "uri",
    "url": "uri",
    "xml": "xml",
}

# Description pattern -> format, first match wins. A format of None means no
# format can be inferred from the description (the next one is tried).
DESCRIPTION_FORMATS: list[tuple[re.Pattern, str | None]] = [
    (re.compile(r"\bYYYY-MM-DD\b", re.IGNORECASE), "date"),
    # ISO 8601 time intervals have no format
    (re.compile(r"\bdatetime range", re.IGNORECASE), None),
    (re.compile(r"\bdatetime\b", re.IGNORECASE), "date-time"),
    (re.compile(r"\bUUID\b", re.IGNORECASE), "uuid"),
    (re.compile(r"\bUR[IL]\b", re.IGNORECASE), "uri"),
    (re.compile(r"\bemail\b", re.IGNORECASE), "email"),
    (re.compile(r"\b(?:cost|money|price)\b", re.IGNORECASE), "decimal"),
    (re.compile(r"\brich text\b", re.IGNORECASE), "html"),
]

# Example pattern -> format, first match wins.
EXAMPLE_FORMATS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$"), "date"),
    (re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}[T ][0-9]{2}:[0-9]{2}:[0-9]{2}Z$"), "date-time"),
    # Not ISO 8601 full-time, which JSON Schema "time" requires
    (re.compile(r"^[0-9]{1,2}:[0-9]{2}(?: [AaPp][Mm])?$"), "time"),
    (re.compile(r"^[A-Fa-f0-9]{8}(?:-[A-Fa-f0-9]{4}){3}-[A-Fa-f0-9]{12}$"), "uuid"),
    (re.compile(r"^https?:"), "uri"),
    (re.compile(r"^[A-Za-z0-9.-]+@[A-Za-z0-9.-]+$"), "email"),
    # Start tag with a simple ASCII name and no attributes
    (re.compile(r"<[A-Za-z0-9]+>"), "html"),
]


def _is_string_type(schema_type: Any) -> bool:
    if isinstance(schema_type, list):
        return "string" in schema_type
    return schema_type == "string"


def infer_format(name: str | None, descriptions: list[Any], examples: list[Any]) -> str | None:
    """
    Infer the format of a string from its name, descriptions and examples.

    Returns:
        The format, or None if none could be inferred
    """
    if isinstance(name, str):
        name_format = NAME_FORMATS.get(name.lower())
        if name_format is not None:
            return name_format

    for description in descriptions:
        if not description or not isinstance(description, str):
            continue
        for description_re, description_format in DESCRIPTION_FORMATS:
            if description_re.search(description):
                if description_format is not None:
                    return description_format
                break

    for example in examples:
        if not example or not isinstance(example, str):
            continue
        for example_re, example_format in EXAMPLE_FORMATS:
            if example_re.search(example):
                return example_format

    return None


class FormatFromContextTransformer(OpenApiTransformerBase):
    def transform_schema_with_context(
        self, schema: Any, name: str | None, parameter: dict | None = None
    ) -> Any:
        """
        Transform a schema with its name and, for a parameter schema, the
        Parameter Object.
        """
        schema = self.transform_schema(schema)
        if (
            not isinstance(schema, dict)
            or not _is_string_type(schema.get("type"))
            or "format" in schema
        ):
            return schema

        parameter = parameter or {}
        schema_format = infer_format(
            name,
            [schema.get("description"), parameter.get("description")],
            [schema.get("example"), parameter.get("example")],
        )
        if schema_format is None:
            return schema
        return {**schema, "format": schema_format}

    def transform_schema_properties(self, properties: Any) -> Any:
        return self._transform_map(
            properties, self.transform_schema_with_context, "Schema properties", with_key=True
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
            self.transform_schema_with_context, "schema", schema, parameter.get("name"), parameter
        )
        if new_schema is schema:
            return parameter
        return {**parameter, "schema": new_schema}


def add_formats_from_context(doc: dict, warn: WarningHandler | None = None) -> dict:
    """Add the formats which can be inferred to the string schemas in `doc`."""
    return FormatFromContextTransformer(warn).transform_open_api(doc)

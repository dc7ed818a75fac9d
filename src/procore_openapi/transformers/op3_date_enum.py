"""
Operation 3: Convert enums of date format strings to `format: date`.

Some Procore docs document the format of a date string parameter as an
enum of its layout, e.g. `"enum": ["YYYY-MM-DD"]`.
"""

import re
from typing import Any

from procore_openapi.transformers.base import OpenApiTransformerBase, WarningHandler

DATE_LAYOUT_RE = re.compile(r"^((YYYY|MM|DD)[-/]?)+$")


class DateEnumTransformer(OpenApiTransformerBase):
    def _enum_is_date_layouts(self, enum_values: Any) -> bool:
        if not isinstance(enum_values, list) or not enum_values:
            return False

        layouts = [v for v in enum_values if isinstance(v, str) and DATE_LAYOUT_RE.match(v)]
        if len(layouts) == len(enum_values):
            return True

        if layouts:
            self.warn("Some, but not all, enum values look like date formats: %r", layouts)
        return False

    def transform_schema(self, schema: Any) -> Any:
        schema = super().transform_schema(schema)
        if not isinstance(schema, dict) or not self._enum_is_date_layouts(schema.get("enum")):
            return schema

        if schema.get("type") != "string":
            self.warn("schema with date format enum has type %r", schema.get("type"))
            return schema

        new_schema = {key: value for key, value in schema.items() if key != "enum"}
        schema_format = schema.get("format")
        if schema_format is None:
            new_schema["format"] = "date"
        elif schema_format != "date":
            self.warn("schema with date format enum values has string format %r", schema_format)
        return new_schema


def convert_date_enums(doc: dict, warn: WarningHandler | None = None) -> dict:
    """Replace date layout enums in `doc` with `format: date`."""
    return DateEnumTransformer(warn).transform_open_api(doc)

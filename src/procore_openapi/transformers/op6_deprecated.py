"""
Operation 6: Convert deprecation notices in schema descriptions to keywords.

Notices like ":status to be deprecated, use :state" are removed from the
description of the property they describe, which is marked `deprecated`
with the replacement recorded in `x-deprecated` (as used by AutoRest).
"""

import re
from collections.abc import Callable
from typing import Any

from procore_openapi.transformers.base import OpenApiTransformerBase, WarningHandler

# Action for a matched notice. Returns the keywords to add to the schema
# when the notice should be removed from its description, or None to leave
# the description unchanged.
NoticeAction = Callable[["DeprecatedTransformer", re.Match, dict, "str | None"], "dict | None"]


def _has_property(schema: Any, name: str) -> bool:
    return isinstance(schema, dict) and isinstance(schema.get("properties"), dict) and (
        name in schema["properties"]
    )


def deprecated_with_replacement(
    transformer: "DeprecatedTransformer", match: re.Match, schema: dict, property_name: str | None
) -> dict | None:
    """Handle a notice that the captured property is replaced by another."""
    deprecated_name, replacement = match.group(1), match.group(2)
    if deprecated_name == property_name:
        return {"deprecated": True, "x-deprecated": {"replaced-by": replacement}}

    items = schema.get("items")
    if _has_property(schema, deprecated_name) or _has_property(items, deprecated_name):
        # Notice on the parent object or grandparent array
        return {}

    transformer.warn("Deprecation notice for %s on %s!?", deprecated_name, property_name)
    return None


def replacement_for_deprecated(
    transformer: "DeprecatedTransformer", match: re.Match, schema: dict, property_name: str | None
) -> dict | None:
    """Handle a notice, on the replacement property, that another is deprecated."""
    use_name = match.group(1)
    if use_name == property_name:
        return {}

    transformer.warn("Deprecation notice to use %s on %s!?", use_name, property_name)
    return None


# Checked in order, the first match wins.
DEPRECATION_NOTICES: list[tuple[re.Pattern, NoticeAction]] = [
    (re.compile(r":(\S+) to be deprecated, use :(\S+)"), deprecated_with_replacement),
    (re.compile(r"Use :(\S+), :(\S+) to be deprecated"), replacement_for_deprecated),
]


class DeprecatedTransformer(OpenApiTransformerBase):
    def transform_schema(self, schema: Any) -> Any:
        schema = super().transform_schema(schema)
        if not isinstance(schema, dict):
            return schema

        description = schema.get("description")
        if not isinstance(description, str):
            return schema

        path = self.transform_path
        property_name = path[-1] if len(path) >= 2 and path[-2] == "properties" else None

        for notice_re, action in DEPRECATION_NOTICES:
            match = notice_re.search(description)
            if match is None:
                continue

            keywords = action(self, match, schema, property_name)
            if keywords is None:
                return schema

            new_description = (description[: match.start()] + description[match.end() :]).rstrip()
            new_schema = {key: value for key, value in schema.items() if key != "description"}
            if new_description:
                new_schema["description"] = new_description
            new_schema.update(keywords)
            return new_schema

        return schema


def extract_deprecation_notices(doc: dict, warn: WarningHandler | None = None) -> dict:
    """Mark the schemas in `doc` with deprecation notices as deprecated."""
    return DeprecatedTransformer(warn).transform_open_api(doc)

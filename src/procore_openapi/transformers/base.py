"""Base classes for document-to-document transformers.

`Transformer` tracks the path of the node being transformed and emits
warnings through an injected handler. `OpenApiTransformerBase` adds a
default structural recursion over OpenAPI documents, so a subclass which
overrides a single `transform_*` method still gets full traversal of the
rest of the document.

Recursion is copy-on-write: a node is shallow-copied only when one of its
children was replaced, and untouched subtrees are returned as-is.
"""

import logging
from collections.abc import Callable, Mapping
from functools import partial
from typing import Any

from procore_openapi.core.errors import TransformError, to_json_pointer

logger = logging.getLogger(__name__)

WarningHandler = Callable[[list[str], str], None]
"""Receives a copy of the transform path and the formatted warning message."""

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

# Schema keywords whose value is a single schema.
_SUBSCHEMA_KEYWORDS = (
    "additionalItems",
    "additionalProperties",
    "contains",
    "else",
    "if",
    "not",
    "propertyNames",
    "then",
    "unevaluatedItems",
    "unevaluatedProperties",
)

# Schema keywords whose value is a list of schemas.
_SCHEMA_LIST_KEYWORDS = ("allOf", "anyOf", "oneOf", "prefixItems")

# Schema keywords whose value maps names to schemas (besides "properties").
_SCHEMA_MAP_KEYWORDS = ("$defs", "dependentSchemas", "patternProperties")


def log_warning(transform_path: list[str], message: str) -> None:
    """Default warning handler: log at DEBUG level with the JSON Pointer."""
    logger.debug("%s: %s", to_json_pointer(transform_path), message)


def format_message(message: str, *args: Any) -> str:
    """%-format `message` with `args`, appending args it has no room for."""
    if not args:
        return message
    try:
        return message % args
    except TypeError:
        return " ".join([message, *(repr(a) for a in args)])


class Transformer:
    """
    Path tracking and warning services shared by every transformer.

    Attributes:
        transform_path: Property names from the root to the node currently
            being transformed. Maintained by `visit`.
    """

    def __init__(self, warn: WarningHandler | None = None):
        self.transform_path: list[str] = []
        self._warning_handler: WarningHandler = warn or log_warning

    def warn(self, message: str, *args: Any) -> None:
        """Emit a non-fatal warning for the node currently being transformed."""
        self._warning_handler(list(self.transform_path), format_message(message, *args))

    def visit(
        self, method: Callable[..., Any], prop_name: str | int, value: Any, *args: Any
    ) -> Any:
        """
        Call `method(value, *args)` with `prop_name` pushed on `transform_path`.

        Any exception escaping `method` is reported as a `TransformError`
        carrying the path at which it was first caught.
        """
        self.transform_path.append(str(prop_name))
        try:
            return method(value, *args)
        except TransformError as err:
            if err.transform_path is None:
                err.transform_path = list(self.transform_path)
            raise
        except Exception as err:
            raise TransformError(str(err) or repr(err), list(self.transform_path)) from err
        finally:
            self.transform_path.pop()

    def _transform_map(
        self, obj: Any, method: Callable[..., Any], what: str = "Map", with_key: bool = False
    ) -> Any:
        """
        Visit every value of a mapping with `method`, copying on change.

        If `with_key` is set, the key is passed to `method` after the value.
        """
        if not isinstance(obj, dict):
            self.warn("Ignoring non-object %s: %r", what, obj)
            return obj

        new_obj = None
        for key, value in obj.items():
            args = (value, key) if with_key else (value,)
            new_value = self.visit(method, key, *args)
            if new_value is not value:
                if new_obj is None:
                    new_obj = dict(obj)
                new_obj[key] = new_value
        return obj if new_obj is None else new_obj

    def _transform_list(
        self, items: Any, method: Callable[[Any], Any], what: str = "Array"
    ) -> Any:
        """Visit every item of a list with `method`, copying on change."""
        if not isinstance(items, list):
            self.warn("Ignoring non-array %s: %r", what, items)
            return items

        new_items = None
        for i, item in enumerate(items):
            new_item = self.visit(method, i, item)
            if new_item is not item:
                if new_items is None:
                    new_items = list(items)
                new_items[i] = new_item
        return items if new_items is None else new_items

    def _transform_fields(self, obj: dict, fields: Mapping[str, Callable[[Any], Any]]) -> dict:
        """Visit the named fields of `obj` that are present, copying on change."""
        new_obj = None
        for key, method in fields.items():
            if key not in obj:
                continue
            value = obj[key]
            new_value = self.visit(method, key, value)
            if new_value is not value:
                if new_obj is None:
                    new_obj = dict(obj)
                new_obj[key] = new_value
        return obj if new_obj is None else new_obj


class OpenApiTransformerBase(Transformer):
    """
    Transformer with default recursion over an OpenAPI 3.x document.

    Each `transform_*` method receives a node of one kind and returns either
    the same node or a modified copy. Subclasses override the methods for the
    node kinds they care about and call `super()` to keep recursing.
    """

    def transform_schema(self, schema: Any) -> Any:
        """Transform a Schema Object and all of its subschemas."""
        if not isinstance(schema, dict):
            # Boolean schemas are valid in OpenAPI 3.1
            if not isinstance(schema, bool):
                self.warn("Ignoring non-object Schema: %r", schema)
            return schema

        fields: dict[str, Callable[[Any], Any]] = {
            "properties": self.transform_schema_properties,
            "items": self.transform_items,
        }
        for keyword in _SCHEMA_MAP_KEYWORDS:
            fields[keyword] = partial(
                self._transform_map, method=self.transform_schema, what=keyword
            )
        for keyword in _SCHEMA_LIST_KEYWORDS:
            fields[keyword] = partial(
                self._transform_list, method=self.transform_schema, what=keyword
            )
        for keyword in _SUBSCHEMA_KEYWORDS:
            fields[keyword] = self.transform_schema
        return self._transform_fields(schema, fields)

    def transform_schema_properties(self, properties: Any) -> Any:
        """Transform the `properties` of a Schema Object."""
        return self._transform_map(properties, self.transform_schema, "Schema properties")

    def transform_items(self, items: Any) -> Any:
        """Transform `items`, which is a schema or (pre-2020-12) a list of schemas."""
        if isinstance(items, list):
            return self._transform_list(items, self.transform_schema, "items")
        return self.transform_schema(items)

    def transform_media_type(self, media_type: Any) -> Any:
        if not isinstance(media_type, dict):
            self.warn("Ignoring non-object Media Type: %r", media_type)
            return media_type
        return self._transform_fields(media_type, {"schema": self.transform_schema})

    def transform_content(self, content: Any) -> Any:
        return self._transform_map(content, self.transform_media_type, "Content")

    def transform_parameter(self, parameter: Any) -> Any:
        if not isinstance(parameter, dict):
            self.warn("Ignoring non-object Parameter: %r", parameter)
            return parameter
        if "$ref" in parameter:
            return parameter
        return self._transform_fields(
            parameter, {"schema": self.transform_schema, "content": self.transform_content}
        )

    def transform_parameters(self, parameters: Any) -> Any:
        return self._transform_list(parameters, self.transform_parameter, "Parameters")

    def transform_header(self, header: Any) -> Any:
        if not isinstance(header, dict):
            self.warn("Ignoring non-object Header: %r", header)
            return header
        if "$ref" in header:
            return header
        return self._transform_fields(
            header, {"schema": self.transform_schema, "content": self.transform_content}
        )

    def transform_request_body(self, request_body: Any) -> Any:
        if not isinstance(request_body, dict):
            self.warn("Ignoring non-object Request Body: %r", request_body)
            return request_body
        if "$ref" in request_body:
            return request_body
        return self._transform_fields(request_body, {"content": self.transform_content})

    def transform_response(self, response: Any) -> Any:
        if not isinstance(response, dict):
            self.warn("Ignoring non-object Response: %r", response)
            return response
        if "$ref" in response:
            return response
        return self._transform_fields(
            response,
            {
                "headers": partial(
                    self._transform_map, method=self.transform_header, what="Headers"
                ),
                "content": self.transform_content,
            },
        )

    def transform_responses(self, responses: Any) -> Any:
        return self._transform_map(responses, self.transform_response, "Responses")

    def transform_operation(self, operation: Any) -> Any:
        if not isinstance(operation, dict):
            self.warn("Ignoring non-object Operation: %r", operation)
            return operation
        return self._transform_fields(
            operation,
            {
                "parameters": self.transform_parameters,
                "requestBody": self.transform_request_body,
                "responses": self.transform_responses,
            },
        )

    def transform_path_item(self, path_item: Any) -> Any:
        if not isinstance(path_item, dict):
            self.warn("Ignoring non-object Path Item: %r", path_item)
            return path_item
        if "$ref" in path_item:
            return path_item
        fields: dict[str, Callable[[Any], Any]] = {"parameters": self.transform_parameters}
        for method in HTTP_METHODS:
            fields[method] = self.transform_operation
        return self._transform_fields(path_item, fields)

    def transform_paths(self, paths: Any) -> Any:
        return self._transform_map(paths, self.transform_path_item, "Paths")

    def transform_components(self, components: Any) -> Any:
        if not isinstance(components, dict):
            self.warn("Ignoring non-object Components: %r", components)
            return components

        def map_of(method: Callable[[Any], Any], what: str) -> Callable[[Any], Any]:
            return partial(self._transform_map, method=method, what=what)

        return self._transform_fields(
            components,
            {
                "schemas": map_of(self.transform_schema, "schemas"),
                "responses": map_of(self.transform_response, "responses"),
                "parameters": map_of(self.transform_parameter, "parameters"),
                "requestBodies": map_of(self.transform_request_body, "requestBodies"),
                "headers": map_of(self.transform_header, "headers"),
                "pathItems": map_of(self.transform_path_item, "pathItems"),
            },
        )

    def transform_open_api(self, open_api: Any) -> Any:
        """Transform an OpenAPI Object (the document root)."""
        if not isinstance(open_api, dict):
            self.warn("Ignoring non-object OpenAPI: %r", open_api)
            return open_api
        return self._transform_fields(
            open_api,
            {
                "components": self.transform_components,
                "paths": self.transform_paths,
                "webhooks": partial(
                    self._transform_map, method=self.transform_path_item, what="webhooks"
                ),
            },
        )

"""Conversion of Procore REST API documentation JSON to OpenAPI 3.1.

The Procore docs describe one resource group per file::

    {"versions": [{"name": ..., "tools": [...], "endpoints": [...]}]}

Each endpoint carries flat lists of path, query and body parameters plus a
list of responses. `ProcoreApiDocToOpenApiTransformer` reshapes this into an
OpenAPI document with one Operation Object per endpoint. Inference of
formats, deprecation and multipart bodies is left to the fixup passes.
"""

import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from procore_openapi.core.errors import TransformError
from procore_openapi.transformers.base import Transformer, WarningHandler
from procore_openapi.transformers.endpoint_filter import EndpointFilter, support_level_rank

OPENAPI_VERSION = "3.1.0"

DOCS_BASE_URL = "https://developers.procore.com/reference/rest/v1/"

# Body parameter nesting is encoded as indentation in multiples of this.
INDENT_INCREMENT = 2

_DOC_KEYS = {"versions", "api_version", "resource_version_list"}
_VERSION_KEYS = {
    "api_version",
    "endpoints",
    "name",
    "product_category",
    "resource_version",
    "tools",
    # Checked on individual endpoints, ignored on the version object
    "beta_programs",
    "highest_support_level",
    "internal_only",
}
_ENDPOINT_KEYS = {
    "base_path",
    "beta_programs",
    "body_example",
    "body_params",
    "changelog",
    "deprecated_at",
    "description",
    "group",
    "internal_only",
    "path",
    "path_params",
    "query_params",
    "responses",
    "summary",
    "support_level",
    "tools",
    "verb",
}
_PARAM_KEYS = {"description", "enum", "name", "required", "type"}
_BODY_PARAM_KEYS = _PARAM_KEYS | {"direct_child_of_object", "indentation"}
_RESPONSE_KEYS = {"description", "schema", "status"}

_STATUS_RE = re.compile(r"^[2-5][0-9][0-9]$")
_VARIABLE_RE = re.compile(r"(%\{[^}]+\})")
_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+")


def group_name_to_url_path(group_name: str) -> str:
    """
    Convert a Procore group or endpoint name to the path used in docs URLs.

    RFC 3986 unreserved characters are kept, runs of other characters
    become "-", and the result is lower-cased.

    Example:
        >>> group_name_to_url_path("Daily Log (Weather)")
        'daily-log-weather'
    """
    if not isinstance(group_name, str):
        raise TypeError("group_name must be a string")

    return re.sub(r"[^A-Za-z0-9._~-]+", "-", group_name).strip("-").lower()


def camel_case(text: str) -> str:
    """
    Convert a title like "List Project RFIs" to an identifier like "listProjectRfIs".

    Apostrophes are dropped, other non-alphanumeric characters and case
    changes separate words.
    """
    words = _WORD_RE.findall(re.sub(r"['’]", "", text))
    if not words:
        return ""
    return words[0].lower() + "".join(word.capitalize() for word in words[1:])


def _upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def _escape_pattern(literal: str) -> str:
    """Escape `literal` for use in an ECMA-262 regular expression."""
    escaped = re.sub(r"([\\^$.*+?()\[\]{}|/])", r"\\\1", literal)
    return escaped.replace("-", "\\x2d")


def name_to_pattern(name: str) -> str | None:
    """
    Convert a parameter name with %{var} placeholders to an anchored pattern.

    Placeholders ending in "_id" match digits, others match anything.

    Returns:
        The pattern, or None if `name` has no placeholders

    Example:
        >>> name_to_pattern("custom_field_%{custom_field_definition_id}")
        '^custom_field_([0-9]+)$'
    """
    parts = [part for part in _VARIABLE_RE.split(name) if part]
    if len(parts) == 1 and not parts[0].startswith("%{"):
        return None

    pattern = "^"
    for part in parts:
        if part.startswith("%{"):
            pattern += "([0-9]+)" if part.endswith("_id}") else "(.*)"
        else:
            pattern += _escape_pattern(part)
    return pattern + "$"


def _without_none(obj: dict) -> dict:
    return {key: value for key, value in obj.items() if value is not None}


@dataclass
class _VersionContext:
    """Information from the version object needed while converting its endpoints."""

    name: str | None
    tools: list[str] | None
    docs_url: str | None
    tag_names: list[str] = field(default_factory=list)


class ProcoreApiDocToOpenApiTransformer(Transformer):
    """
    Transforms a Procore REST API documentation object to an OpenAPI document.

    An instance may be reused for several documents, one at a time.

    Args:
        endpoint_filter: Predicate selecting the endpoints to convert
            (see make_endpoint_filter). All endpoints are converted if None.
        warn: Handler for warnings (see Transformer)
    """

    def __init__(
        self,
        endpoint_filter: EndpointFilter | None = None,
        warn: WarningHandler | None = None,
    ):
        super().__init__(warn)
        self.endpoint_filter = endpoint_filter
        self._context: _VersionContext | None = None

    def _warn_unrecognized(self, obj: dict, recognized: set[str], what: str) -> None:
        unrecognized = [key for key in obj if key not in recognized]
        if unrecognized:
            self.warn("Unrecognized properties on %s: %s", what, ", ".join(unrecognized))

    @contextmanager
    def _version_context(self, context: _VersionContext) -> Iterator[_VersionContext]:
        self._context = context
        try:
            yield context
        finally:
            self._context = None

    def transform_param(self, param: dict, recognized: set[str] = _PARAM_KEYS) -> dict:
        """
        Transforms an item of path_params, query_params or body_params to a
        JSON Schema.

        Args:
            param: Procore parameter object
            recognized: Property names expected on `param`

        Returns:
            Schema with the type, description and enum of the parameter.
        """
        if not isinstance(param, dict):
            raise TransformError(f"Expected parameter object, got {type(param).__name__}")

        self._warn_unrecognized(param, recognized, "parameter")

        # Procore docs add enum: [] to non-enumerated parameters
        enum_values = param.get("enum")
        checked_enum = None
        if enum_values is not None:
            if not isinstance(enum_values, list):
                self.warn("Unexpected non-array enum: %r", enum_values)
            elif enum_values:
                checked_enum = enum_values

        return _without_none(
            {
                "description": param.get("description") or None,
                "type": param.get("type"),
                "enum": checked_enum,
            }
        )

    def transform_params(self, params: list | None, params_in: str) -> list[dict]:
        """
        Transforms path_params or query_params to OpenAPI Parameter Objects.

        An array parameter is documented as two consecutive entries: the
        array, followed by the schema of its items.

        Args:
            params: path_params or query_params array
            params_in: Value of "in" for the returned Parameter Objects

        Returns:
            List of OpenAPI Parameter Objects
        """
        if params is None:
            return []
        if not isinstance(params, list):
            raise TransformError(f"Expected {params_in}_params array")

        def transform_flat_param(param: Any) -> dict:
            if isinstance(param, dict) and param.get("type") == "object":
                # Without indentation there is no way to tell which of the
                # following params are its properties.
                raise TransformError("Unsupported parameter with type object")
            return self.transform_param(param, _PARAM_KEYS)

        oas_params: list[dict] = []
        prev_schema: dict | None = None
        for i, param in enumerate(params):
            schema = self.visit(transform_flat_param, i, param)
            if (
                prev_schema is not None
                and prev_schema.get("type") == "array"
                and "items" not in prev_schema
            ):
                prev_schema["items"] = schema
            else:
                required = param.get("required")
                if params_in == "path" and required is not True:
                    self.visit(
                        lambda p: self.warn("Path parameter %s not marked required", p.get("name")),
                        i,
                        param,
                    )
                    required = True

                oas_params.append(
                    _without_none(
                        {
                            "name": param.get("name"),
                            "in": params_in,
                            "description": schema.pop("description", None),
                            "required": required,
                            "schema": schema,
                        }
                    )
                )

            prev_schema = schema

        return oas_params

    def transform_path_params(self, path_params: list | None) -> list[dict]:
        return self.transform_params(path_params, "path")

    def transform_query_params(self, query_params: list | None) -> list[dict]:
        return self.transform_params(query_params, "query")

    def transform_body_params(self, params: list) -> dict:
        """
        Transforms body_params to a JSON Schema.

        The Procore docs flatten the body schema into a pre-order list of
        parameters, giving each an indentation of INDENT_INCREMENT times its
        depth. The most recent schema at each depth is kept so that each
        parameter can be attached to its parent.

        Args:
            params: body_params array

        Returns:
            JSON Schema for the request body
        """
        if not isinstance(params, list):
            raise TransformError("Expected body_params array")

        schema_for_depth: list[dict] = [{"type": "object"}]
        for i, param in enumerate(params):
            if not isinstance(param, dict):
                raise TransformError(f"Expected body_params[{i}] to be an object")

            name = param.get("name")
            direct_child = param.get("direct_child_of_object")
            if direct_child is not None and direct_child is not True:
                self.warn("Unrecognized direct_child_of_object: %r", direct_child)

            indentation = param.get("indentation")
            if (
                not isinstance(indentation, int)
                or indentation < INDENT_INCREMENT
                or indentation % INDENT_INCREMENT != 0
            ):
                raise TransformError(
                    f"indentation {indentation} of param {name} is not a "
                    f"multiple of {INDENT_INCREMENT}"
                )

            depth = indentation // INDENT_INCREMENT

            # Procore docs omit the parameter for an array of arrays.  Check
            # for a missing parent whose grandparent is an array without items.
            if depth > 2 and depth - 1 == len(schema_for_depth):
                maybe_grandparent = schema_for_depth[depth - 2]
                if maybe_grandparent.get("type") == "array" and "items" not in maybe_grandparent:
                    parent_array: dict = {"type": "array"}
                    maybe_grandparent["items"] = parent_array
                    schema_for_depth.append(parent_array)

            if depth - 1 >= len(schema_for_depth):
                raise TransformError(
                    f"param {name} has no parent at indent {(depth - 1) * INDENT_INCREMENT}"
                )
            parent_schema = schema_for_depth[depth - 1]

            schema = self.visit(self.transform_param, i, param, _BODY_PARAM_KEYS)
            parent_type = parent_schema.get("type")
            if parent_type == "array" and not name:
                # Parameter is the item schema of the parent array
                if "items" in parent_schema:
                    raise TransformError(
                        "item schema for array with existing item schema: "
                        f"{parent_schema['items']!r}"
                    )
                parent_schema["items"] = schema
            else:
                if parent_type == "object":
                    parent_object = parent_schema
                elif parent_type == "array":
                    # Parameter is a property of the parent array item
                    parent_object = parent_schema.get("items")
                    if parent_object is None:
                        parent_object = {"type": "object"}
                        parent_schema["items"] = parent_object
                    elif parent_object.get("type") != "object":
                        raise TransformError(f"property {name} for array of non-object items")
                else:
                    raise TransformError(
                        f"param {name} is child of non-object/array type {parent_type}"
                    )

                if not name:
                    raise TransformError("missing name for child param of object")

                self._add_property(parent_object, name, schema, bool(param.get("required")))

            del schema_for_depth[depth:]
            schema_for_depth.append(schema)

        return schema_for_depth[0]

    def _add_property(self, parent: dict, name: str, schema: dict, required: bool) -> None:
        # Procore docs represent variables in param names as %{var}
        # e.g. "custom_field_%{custom_field_definition_id}"
        pattern = name_to_pattern(name)
        if pattern is None:
            properties = parent.setdefault("properties", {})
            if name in properties:
                raise TransformError(f"duplicate property {name} for parameter")
            properties[name] = schema
            if required:
                parent.setdefault("required", []).append(name)
        else:
            pattern_properties = parent.setdefault("patternProperties", {})
            if pattern in pattern_properties:
                raise TransformError(f"duplicate patternProperty {pattern} for parameter {name}")
            pattern_properties[pattern] = schema
            if required:
                self.warn("Ignoring required on parameter %s with variable name", name)

    def transform_schema_properties(self, properties: list) -> dict | None:
        """
        Transforms a list of response schema fields to JSON Schema properties.

        Returns:
            Properties keyed by field name, or None if `properties` is empty.
        """
        if not isinstance(properties, list):
            raise TransformError("Expected properties array")
        if not properties:
            return None

        properties_by_name: dict[str, Any] = {}
        for i, prop in enumerate(properties):
            field_name = prop.get("field") if isinstance(prop, dict) else None
            if not field_name or not isinstance(field_name, str):
                raise TransformError(f"Invalid field '{field_name}' in schema properties")
            if field_name in properties_by_name:
                raise TransformError(f"Duplicate field '{field_name}' in schema properties")

            properties_by_name[field_name] = self.visit(self.transform_schema, i, prop)

        return properties_by_name

    def transform_schema(self, schema: dict) -> dict:
        """Transforms a Procore response schema to a JSON Schema."""
        if not isinstance(schema, dict):
            raise TransformError(f"Expected schema object, got {type(schema).__name__}")

        new_schema = {key: value for key, value in schema.items() if key != "field"}
        schema_type = schema.get("type")
        if schema_type == "array" and schema.get("items") is not None:
            new_schema["items"] = self.visit(self.transform_schema, "items", schema["items"])
        elif schema_type == "object" and schema.get("properties") is not None:
            properties = self.visit(
                self.transform_schema_properties, "properties", schema["properties"]
            )
            if properties is None:
                del new_schema["properties"]
            else:
                new_schema["properties"] = properties

        return new_schema

    def transform_response(self, response: dict) -> dict:
        """Transforms an item of the responses array to an OpenAPI Response Object."""
        self._warn_unrecognized(response, _RESPONSE_KEYS, "response")

        description = response.get("description") or None
        schema = response.get("schema")
        if schema is None:
            self.warn("Response without schema")
            return _without_none({"description": description})

        if isinstance(schema, dict) and schema.get("field"):
            raise TransformError("field on top-level schema")

        return _without_none(
            {
                "description": description,
                "content": {
                    "application/json": {
                        "schema": self.visit(self.transform_schema, "schema", schema),
                    },
                },
            }
        )

    def transform_responses(self, responses: list) -> dict:
        """Transforms the responses array to an OpenAPI Responses Object."""
        if not isinstance(responses, list):
            raise TransformError("Expected responses array")

        response_by_status: dict[str, dict] = {}
        for i, response in enumerate(responses):
            if not isinstance(response, dict):
                raise TransformError(f"Expected responses[{i}] to be an object")

            status = response.get("status")
            if not isinstance(status, str) or not _STATUS_RE.match(status):
                self.visit(lambda s: self.warn("Invalid status: %r", s), i, status)
            status = str(status)

            if status in response_by_status:
                raise TransformError(f"Multiple responses for status {status}")

            response_by_status[status] = self.visit(self.transform_response, i, response)

        return response_by_status

    def _changelog_description(self, changelog: list, method: str, path: str) -> str:
        expect_endpoint = f"{method.upper()} {path}"
        description = "\n#### Changelog\n\n| Date       | Change |\n| ---------- | ------ |\n"
        for entry in changelog:
            if entry.get("endpoint") != expect_endpoint:
                self.warn(
                    "Expected changelog entry to have endpoint %s, got %s",
                    expect_endpoint,
                    entry.get("endpoint"),
                )

            summary = entry.get("summary") or ""
            if not summary.endswith("."):
                summary += "."
            description += (
                f"| {entry.get('datestamp')} | ({_upper_first(entry.get('type') or '')})"
                + ("(BREAKING)" if entry.get("breaking") else "")
                + f" **{summary}** {entry.get('description') or ''} |\n"
            )
        return description

    def _endpoint_tags(self, tools: Any) -> list[str] | None:
        context = self._context
        version_tools = context.tools if context else None
        if tools and version_tools and tools != version_tools:
            self.warn(
                "endpoint.tools (%r) differs from ancestor version.tools (%r).  "
                "Using endpoint.tools for tags.",
                tools,
                version_tools,
            )

        tags = tools or version_tools
        if not tags:
            return None
        if not isinstance(tags, list):
            self.warn("Ignoring non-array tools: %r", tags)
            return None

        tag_names = []
        for tag in tags:
            if isinstance(tag, str):
                tag_names.append(tag)
            else:
                self.warn("Ignoring non-string tool: %r", tag)
        if context is not None:
            context.tag_names.extend(t for t in tag_names if t not in context.tag_names)
        return tag_names or None

    def transform_endpoint(self, endpoint: dict) -> tuple[str, str, dict]:
        """
        Transforms an endpoint object to a path, method name, and OpenAPI
        Operation Object.
        """
        if not isinstance(endpoint, dict):
            raise TransformError(f"Expected endpoint object, got {type(endpoint).__name__}")

        self._warn_unrecognized(endpoint, _ENDPOINT_KEYS, "endpoint")

        verb = endpoint.get("verb")
        if not isinstance(verb, str) or not verb:
            raise TransformError(f"Invalid verb {verb!r} on endpoint")
        method = verb.lower()

        base_path = endpoint.get("base_path") or ""
        path = endpoint.get("path")
        if not isinstance(path, str):
            raise TransformError(f"Invalid path {path!r} on endpoint")

        parameters = [
            *self.visit(self.transform_path_params, "path_params", endpoint.get("path_params")),
            *self.visit(self.transform_query_params, "query_params", endpoint.get("query_params")),
        ]

        context = self._context
        group = endpoint.get("group")
        if context and context.name and group != context.name:
            # Currently occurs for several endpoints in the "Drawings" group
            self.warn(
                "endpoint.group (%s) differs from ancestor version.name (%s).  "
                "Using version.name for externalDocs.url.",
                group,
                context.name,
            )

        summary = endpoint.get("summary") or ""
        docs_url = context.docs_url if context else None
        if docs_url and summary:
            docs_url += f"#{group_name_to_url_path(summary)}"

        support_level = endpoint.get("support_level")
        if support_level_rank(support_level) < 0:
            self.warn("Unrecognized support_level: %r", support_level)

        combined_summary = ""
        if endpoint.get("internal_only"):
            combined_summary += "(Internal Only) "
        if support_level != "production" and isinstance(support_level, str) and support_level:
            combined_summary += f"({_upper_first(support_level)}) "
        combined_summary += summary

        combined_description = endpoint.get("description") or ""
        beta_programs = endpoint.get("beta_programs")
        if beta_programs:
            combined_description += f"\nPart of Beta Program: {','.join(map(str, beta_programs))}"

        changelog = endpoint.get("changelog")
        if changelog:
            combined_description += self._changelog_description(changelog, method, path)

        body_params = endpoint.get("body_params")
        request_body = None
        if body_params:
            body_schema = self.visit(self.transform_body_params, "body_params", body_params)
            request_body = {
                "required": True,
                "content": {
                    "application/json": _without_none(
                        {
                            "schema": body_schema,
                            "example": endpoint.get("body_example") or None,
                        }
                    ),
                },
            }

        operation = _without_none(
            {
                "operationId": camel_case(summary) or None,
                "summary": combined_summary or None,
                "description": combined_description or None,
                "externalDocs": {"url": docs_url} if docs_url else None,
                "tags": self._endpoint_tags(endpoint.get("tools")),
                "deprecated": True if endpoint.get("deprecated_at") else None,
                "parameters": parameters or None,
                "requestBody": request_body,
                "responses": self.visit(
                    self.transform_responses, "responses", endpoint.get("responses") or []
                ),
            }
        )
        return base_path + path, method, operation

    def transform_endpoints(self, endpoints: list) -> dict:
        """Transforms the endpoints array to an OpenAPI Paths Object."""
        if not isinstance(endpoints, list):
            raise TransformError("Expected endpoints array")

        paths: dict[str, dict] = {}
        for i, endpoint in enumerate(endpoints):
            if self.endpoint_filter is not None and not self.endpoint_filter(endpoint):
                continue

            path, method, operation = self.visit(self.transform_endpoint, i, endpoint)
            path_item = paths.setdefault(path, {})
            if method in path_item:
                raise TransformError(f"Method {method} appears multiple times for {path}")
            path_item[method] = operation

        return paths

    def transform_version(self, version: dict) -> dict:
        """Transforms a version object to an OpenAPI document."""
        if not isinstance(version, dict):
            raise TransformError(f"Expected version object, got {type(version).__name__}")

        self._warn_unrecognized(version, _VERSION_KEYS, "version")

        name = version.get("name")
        docs_url = None
        if isinstance(name, str) and name:
            docs_url = DOCS_BASE_URL + group_name_to_url_path(name)
        else:
            self.warn("Version without name: %r", name)
            name = None

        context = _VersionContext(name=name, tools=version.get("tools"), docs_url=docs_url)
        with self._version_context(context):
            paths = self.visit(self.transform_endpoints, "endpoints", version.get("endpoints"))
            return {
                "openapi": OPENAPI_VERSION,
                "tags": [{"name": tag_name} for tag_name in context.tag_names],
                "paths": paths,
            }

    def transform_versions(self, versions: list) -> dict:
        """Transforms the versions array to an OpenAPI document."""
        if not isinstance(versions, list):
            raise TransformError("versions must be an array")
        if not versions:
            raise TransformError("versions must not be empty")

        if len(versions) > 1:
            self.warn("Found %d versions.  Ignoring all but the last.", len(versions))

        last = len(versions) - 1
        return self.visit(self.transform_version, last, versions[last])

    def transform_api_doc(self, doc: dict) -> dict:
        """
        Transforms a Procore REST API document root object to an OpenAPI document.

        Raises:
            TransformError: If the document can not be converted
        """
        if not isinstance(doc, dict):
            raise TransformError("doc must be an object", [])

        self._warn_unrecognized(doc, _DOC_KEYS, "doc")

        return self.visit(self.transform_versions, "versions", doc.get("versions"))

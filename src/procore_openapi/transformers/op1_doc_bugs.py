"""
Operation 1: Repair known bugs in the Procore REST API documentation.

Each repair is addressed by the exact path of the node it fixes and checks
that the node still has the expected defect. If the docs have been fixed
(or changed in another way) the repair warns and leaves the node unchanged.
"""

from collections.abc import Callable
from typing import Any

from procore_openapi.transformers.base import Transformer, WarningHandler
from procore_openapi.transformers.ops_base import apply_to_path

_MISSING = object()

# Name of the JSON Schema type for enum values of each Python type.
_ENUM_VALUE_TYPES = {str: "string", bool: "boolean", int: "number", float: "number"}


def _is_superset(value1: Any, value2: Any) -> bool:
    """
    Determine if `value1` is a superset of `value2`.

    Any value is a superset of a missing value and of itself. A dict (or list)
    is a superset of another if each of its values is a superset of the
    corresponding value of the other.
    """
    if value2 is _MISSING:
        return True

    if isinstance(value1, dict) and isinstance(value2, dict):
        return all(_is_superset(value1.get(k, _MISSING), v) for k, v in value2.items())

    if isinstance(value1, list) and isinstance(value2, list):
        return all(
            _is_superset(value1[i] if i < len(value1) else _MISSING, v)
            for i, v in enumerate(value2)
        )

    return type(value1) is type(value2) and value1 == value2


def _value_has_type(value: Any, schema_type: Any) -> bool:
    if schema_type == "integer":
        return type(value) is int
    return _ENUM_VALUE_TYPES.get(type(value)) == schema_type


def remove_duplicate_parameters(transformer: Transformer, parameters: Any) -> Any:
    """Remove parameters with the same name and location as a superset parameter."""
    if not isinstance(parameters, list):
        transformer.warn("Expected Parameters array: %r", parameters)
        return parameters

    by_in_name: dict[tuple[str, str], dict] = {}
    for parameter in parameters:
        if not isinstance(parameter, dict):
            transformer.warn("Expected Parameter object: %r", parameter)
            return parameters

        param_in = parameter.get("in")
        if param_in is None:
            transformer.warn("Expected in on Parameter %r", parameter)
            return parameters

        name = parameter.get("name")
        if not isinstance(name, str) or not name:
            transformer.warn("Expected Parameter name to be a string: %r", parameter)
            return parameters

        key = (param_in, name)
        prev_param = by_in_name.get(key, _MISSING)
        prev_is_superset = _is_superset(prev_param, parameter)
        cur_is_superset = _is_superset(parameter, prev_param)
        if cur_is_superset and not prev_is_superset:
            by_in_name[key] = parameter
        elif not cur_is_superset and not prev_is_superset:
            transformer.warn("Neither %s parameter %s is a superset of the other", param_in, name)
            return parameters

    if len(by_in_name) == len(parameters):
        transformer.warn("Expected duplicate parameters")
        return parameters

    return list(by_in_name.values())


def remove_object_items(transformer: Transformer, schema: Any) -> Any:
    """Remove `items` which was copied onto a schema with type object."""
    if (
        not isinstance(schema, dict)
        or schema.get("type") != "object"
        or not isinstance(schema.get("items"), dict)
        or not isinstance(schema.get("properties"), dict)
    ):
        transformer.warn("Expected object schema with items and properties")
        return schema

    return {key: value for key, value in schema.items() if key != "items"}


def remove_request_body(transformer: Transformer, operation: Any) -> Any:
    """Remove `requestBody` from an Operation Object."""
    if not isinstance(operation, dict) or not isinstance(operation.get("requestBody"), dict):
        transformer.warn("Expected requestBody in Operation")
        return operation

    return {key: value for key, value in operation.items() if key != "requestBody"}


def set_enum_type(transformer: Transformer, schema: Any) -> Any:
    """Set `type` on a schema to match the type of its `enum` values."""
    if not isinstance(schema, dict):
        transformer.warn("Expected Schema Object: %r", schema)
        return schema

    enum_values = schema.get("enum")
    if not isinstance(enum_values, list) or not enum_values:
        transformer.warn("Expected non-empty enum")
        return schema

    value_types = {_ENUM_VALUE_TYPES.get(type(value)) for value in enum_values}
    if len(value_types) != 1 or None in value_types:
        transformer.warn("Expected all enum values to have the same type")
        return schema

    return {**schema, "type": value_types.pop()}


def move_enum_to_items(transformer: Transformer, schema: Any) -> Any:
    """Move an `enum` constraint from a schema with type array to its items."""
    if not isinstance(schema, dict):
        transformer.warn("Expected Schema Object: %r", schema)
        return schema

    items = schema.get("items")
    if schema.get("type") != "array" or not isinstance(items, dict):
        transformer.warn("Expected array Schema with items")
        return schema

    if "enum" in items:
        transformer.warn("Expected item schema without enum")
        return schema

    enum_values = schema.get("enum")
    item_type = items.get("type")
    if (
        not isinstance(enum_values, list)
        or not enum_values
        or not all(_value_has_type(v, item_type) for v in enum_values)
    ):
        transformer.warn("Expected enum values %r to match item type %s", enum_values, item_type)
        return schema

    new_schema = {key: value for key, value in schema.items() if key != "enum"}
    new_schema["items"] = {**items, "enum": enum_values}
    return new_schema


def set_assignment_ids_schema(transformer: Transformer, schema: Any) -> Any:
    """Replace the items-less array schema of assignment_ids with IDs or "none"."""
    if not isinstance(schema, dict) or schema.get("type") != "array":
        transformer.warn("Expected Schema Object with type array")
        return schema

    new_schema = {key: value for key, value in schema.items() if key != "type"}
    new_schema["oneOf"] = [
        {"type": "array", "items": {"type": "integer"}},
        {"const": "none"},
    ]
    return new_schema


def retitle_operation(
    expect_summary: str, operation_id: str, summary: str
) -> Callable[[Transformer, Any], Any]:
    """Create a repair giving an Operation with `expect_summary` a new title."""

    def retitle(transformer: Transformer, operation: Any) -> Any:
        if not isinstance(operation, dict) or operation.get("summary") != expect_summary:
            transformer.warn('Expected Operation with summary "%s"', expect_summary)
            return operation

        return {**operation, "operationId": operation_id, "summary": summary}

    return retitle


def set_only_current_revision_boolean(transformer: Transformer, parameters: Any) -> Any:
    """Change the schema of the filters[only_current_revision] parameter to boolean."""
    if not isinstance(parameters, list):
        transformer.warn("Expected Parameters array: %r", parameters)
        return parameters

    count = 0
    new_parameters = []
    for param in parameters:
        if isinstance(param, dict) and param.get("name") == "filters[only_current_revision]":
            count += 1
            param = {**param, "schema": {"type": "boolean"}}
        new_parameters.append(param)

    if count != 1:
        transformer.warn("Expected filters[only_current_revision] parameter once, got %d", count)

    return new_parameters


def _json_body_property(path: str, method: str, *names: str) -> list[str]:
    prop_path = [
        "paths", path, method, "requestBody", "content", "application/json", "schema",
    ]
    for name in names:
        prop_path += ["properties", name]
    return prop_path


DOC_BUGS: list[tuple[list[str], Callable[[Transformer, Any], Any]]] = [
    (
        [
            "paths", "/rest/v1.0/potential_change_orders/sync", "patch", "responses", "200",
            "content", "application/json", "schema", "properties", "errors", "items",
        ],
        remove_object_items,
    ),
    # GET "Show Actual Production Quantity" has the body of the update endpoint
    (
        ["paths", "/rest/v1.0/projects/{project_id}/actual_production_quantities/{id}", "get"],
        remove_request_body,
    ),
    # Duplicate "id" path parameter of "Show a Bid within a Project"
    (
        ["paths", "/rest/v1.0/projects/{project_id}/bids/{id}", "get", "parameters"],
        remove_duplicate_parameters,
    ),
    # Type of "Procore Item Type" enum
    (
        [
            "paths", "/rest/v1.0/bim_viewpoints/{bim_viewpoint_id}/associations", "delete",
            "parameters", "3", "schema",
        ],
        set_enum_type,
    ),
    # Duplicate "view" query parameter of "List generic tool items"
    (
        [
            "paths",
            "/rest/v1.0/projects/{project_id}/generic_tools/{generic_tool_id}/generic_tool_items",
            "get",
            "parameters",
        ],
        remove_duplicate_parameters,
    ),
    (
        ["paths", "/rest/v1.0/attachments/{id}", "delete"],
        retitle_operation(
            "(Alpha) Delete Item's Attachments",
            "deleteItemAttachment",
            "(Alpha) Delete Item Attachment",
        ),
    ),
    # Duplicate path and query parameters of "Retrieve Environmental"
    (
        [
            "paths",
            "/rest/v1.0/projects/{project_id}/recycle_bin/incidents/environmentals/{id}/restore",
            "patch",
            "parameters",
        ],
        remove_duplicate_parameters,
    ),
    # Duplicate path and query parameters of "Retrieve Property Damage"
    (
        [
            "paths",
            "/rest/v1.0/projects/{project_id}/recycle_bin/incidents/property_damages/{id}/restore",
            "patch",
            "parameters",
        ],
        remove_duplicate_parameters,
    ),
    # filters[corresponding_status] of "List Responses in the Specified Item Response Set"
    (
        [
            "paths",
            "/rest/v1.0/companies/{company_id}/checklist/item/response_sets/{response_set_id}/responses",
            "get",
            "parameters",
            "2",
            "schema",
        ],
        move_enum_to_items,
    ),
    # filters[corresponding_status] of "List Responses"
    (
        [
            "paths", "/rest/v1.0/companies/{company_id}/checklist/responses", "get",
            "parameters", "1", "schema",
        ],
        move_enum_to_items,
    ),
    # meeting_topic.assignment_ids is an array of IDs, or "none" to erase
    # assignments. Runs before the body becomes multipart/form-data.
    (
        _json_body_property("/rest/v1.0/meeting_topics", "post", "meeting_topic", "assignment_ids"),
        set_assignment_ids_schema,
    ),
    (
        _json_body_property(
            "/rest/v1.0/meeting_topics/{id}", "patch", "meeting_topic", "assignment_ids"
        ),
        set_assignment_ids_schema,
    ),
    (
        ["paths", "/rest/v1.0/projects/{project_id}/observations/items", "get"],
        retitle_operation(
            "(Internal) List Observation Items",
            "listProjectObservationItems",
            "(Internal) List Project Observation Items",
        ),
    ),
    (
        ["paths", "/rest/v1.0/projects/{project_id}/rfis/{id}", "get"],
        retitle_operation("Show RFI", "showProjectRfi", "Show Project RFI"),
    ),
    (
        ["paths", "/rest/v1.0/submittal_logs", "get", "parameters"],
        set_only_current_revision_boolean,
    ),
]


def fix_doc_bugs(doc: dict, warn: WarningHandler | None = None) -> dict:
    """
    Apply every repair in DOC_BUGS to an OpenAPI document.

    Args:
        doc: OpenAPI document generated from the Procore docs
        warn: Handler for warnings about repairs which no longer apply

    Returns:
        Repaired document. Subtrees outside the repaired paths are shared
        with `doc`.
    """
    transformer = Transformer(warn)
    for prop_path, repair in DOC_BUGS:
        doc = apply_to_path(transformer, repair, doc, prop_path)
    return doc

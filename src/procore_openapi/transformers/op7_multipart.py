"""
Operation 7: Convert request bodies with file uploads to multipart/form-data.

Procore accepts attachments only in multipart/form-data request bodies
(https://developers.procore.com/documentation/attachments), but the docs
describe every body as application/json and explain the upload convention
in the descriptions of the file properties. This operation:

- Moves the request body content from application/json to
  multipart/form-data.
- Changes file properties to binary strings (or arrays of them).
- Adds encoding for array and object properties so that nested property
  names are flattened to field names using square brackets.
- Removes the explanation of multipart/form-data from descriptions, since
  it is now conveyed structurally.
"""

from typing import Any

from procore_openapi.core.errors import TransformError
from procore_openapi.transformers.base import OpenApiTransformerBase, WarningHandler
from procore_openapi.transformers.ops_base import get_at_path, set_at_path

MULTIPART = "multipart/form-data"

# Property names of the item object in attachment arrays
ATTACHMENT_ITEM_PROPERTIES = frozenset(
    {"attachment_item", "attachments_to_upload_item", "file_item", "image_item"}
)

# Description suffixes explaining multipart uploads, checked in order.
MULTIPART_DESCRIPTION_SUFFIXES = [
    " Note that it's only possible to post a\n  file using a multipart/form-data body (see RFC 2388). Most HTTP\n  libraries will do the right thing when you pass in an open file or\n  IO stream.",
    " Note that it's only possible to post a\nfile using a multipart/form-data body (see RFC 2388). Most HTTP\nlibraries will do the right thing when you pass in an open file or\nIO stream. Alternatively you can use an upload_uuid (see Company\nUploads or Project Uploads). You should not use both file and\nupload_uuid fields in the same request.",
    " Note that it's only possible to post a\nfile using a multipart/form-data body (see RFC 2388). Most HTTP\nlibraries will do the right thing when you pass in an open file or\nIO stream. Alternatively you can use attachment_upload_uuids. You should not\nuse both file and upload_uuid fields in the same request.",
    " Note that it's only possible to post a\nfile using a multipart/form-data body (see RFC 2388). Most HTTP\nlibraries will do the right thing when you pass in an open file or\nIO stream. Alternatively you can use snapshot_upload_uuid. You should not\nuse both file and upload_uuid fields in the same request.",
    " To upload attachments you must upload the entire payload as `multipart/form-data` content-type and specify each parameter as form-data together with `attachments[]` as files.",
    " you must upload the entire payload as `multipart/form-data` content-type",
    "To upload drawings you must upload the entire payload as `multipart/form-data` content-type and specify each parameter as form-data together with `files[]` as files.\n*Required only if upload_uuids is empty",
    "\nTo upload a fillable PDF you must upload the entire payload as `multipart/form-data` content-type and\nspecify each parameter as form-data together with `fillable_pdf` as files.",
    "\nTo upload an attachment you must upload the entire payload as `multipart/form-data` content-type \nwith the `attachment` file.\n",
    "\nTo upload an attachment you must upload the entire payload as `multipart/form-data` content-type and\nspecify each parameter as form-data together with the `attachment` file.",
    "\nTo upload an attachment you must upload the entire payload as `multipart/form-data` content-type and\nspecify each parameter as form-data together with the `signature` file.",
    "\nTo upload an attachment you must upload the entire payload as `multipart/form-data` content-type\nwith the `attachment` file.",
    "\nTo upload an attachment, you must upload the entire payload as `multipart/form-data` content-type\nand specify each parameter as form-data together with `data` file.",
    "\nTo upload an office logo you must upload whole payload as `multipart/form-data` content-type and\nspecify each parameter as form-data together with `office[logo]` as file.",
    "\nTo upload attachments you must upload the entire payload as `multipart/form-data` content-type and\nspecify each parameter as form-data together with `attachments[]` as files.",
    "\nTo upload attachments you must upload the entire payload as `multipart/form-data` content-type and\nspecify each parameter as form-data together with `attachments_to_upload[]` as files.",
    "\nTo upload attachments you must upload the entire payload as a `multipart/form-data` content-type and\nspecify each parameter as form-data together with `attachments[]` as files.",
    "\nTo upload avatar you must upload whole payload as `multipart/form-data` content-type and\nspecify each parameter as form-data together with `user[avatar]` as file.",
    "\nTo upload images you must upload the entire payload as `multipart/form-data` content-type and\nspecify each parameter as form-data together with `punch_item[images][0]` as files. `punch_item[images][0]` and `punch_item[images][1]`\nand so forth if you want to attach multiple images.",
    "\n\nTo upload attachments you must upload the entire payload as `multipart/form-data` content-type and\nspecify each parameter as form-data together with `attachments[]` as files.",
]

PRIMITIVE_TYPES = frozenset({"boolean", "integer", "null", "number", "string"})


def remove_multipart_suffix(description: str) -> str:
    """Remove the first matching MULTIPART_DESCRIPTION_SUFFIXES entry from `description`."""
    for suffix in MULTIPART_DESCRIPTION_SUFFIXES:
        if description.endswith(suffix):
            return description[: -len(suffix)]
    return description


def _with_description_stripped(schema: dict) -> dict:
    description = schema.get("description")
    if not isinstance(description, str):
        return dict(schema)
    return {**schema, "description": remove_multipart_suffix(description)}


def _is_primitive_type(schema_type: Any) -> bool:
    if isinstance(schema_type, list):
        return bool(schema_type) and all(t in PRIMITIVE_TYPES for t in schema_type)
    return schema_type in PRIMITIVE_TYPES


def is_attachment_array_schema(schema: dict) -> bool:
    """
    Determine if `schema` is an array of objects with a single string
    property named in ATTACHMENT_ITEM_PROPERTIES.
    """
    items = schema.get("items")
    if schema.get("type") != "array" or not isinstance(items, dict):
        return False

    item_properties = items.get("properties")
    if items.get("type") != "object" or not isinstance(item_properties, dict):
        return False

    if len(item_properties) != 1:
        return False

    (name, item_property), = item_properties.items()
    return (
        name in ATTACHMENT_ITEM_PROPERTIES
        and isinstance(item_property, dict)
        and item_property.get("type") == "string"
    )


def collect_multipart_properties(
    schema: Any, prop_path: list[str] | None = None
) -> list[list[str]]:
    """
    Find the properties of `schema` described as multipart/form-data uploads.

    Returns:
        Paths of the properties from `schema`, outermost first. Properties of
        an upload property are not searched.
    """
    prop_path = prop_path or []
    if not isinstance(schema, dict) or not isinstance(schema.get("properties"), dict):
        return []

    found = []
    for name, prop_schema in schema["properties"].items():
        if not isinstance(prop_schema, dict):
            continue
        child_path = [*prop_path, "properties", name]
        description = prop_schema.get("description")
        if isinstance(description, str) and MULTIPART in description:
            found.append(child_path)
        else:
            found.extend(collect_multipart_properties(prop_schema, child_path))
    return found


class MultipartTransformer(OpenApiTransformerBase):
    def transform_schema(self, schema: Any) -> Any:
        schema = super().transform_schema(schema)
        if not isinstance(schema, dict) or not isinstance(schema.get("description"), str):
            return schema

        description = schema["description"]
        new_description = remove_multipart_suffix(description)
        if new_description == description:
            return schema
        return {**schema, "description": new_description}

    def _convert_upload_property(self, prop_schema: dict, prop_path: list[str]) -> dict | None:
        if prop_schema.get("type") == "string":
            return {**_with_description_stripped(prop_schema), "format": "binary"}

        # Schema of generic_tool_item attachments is copied from the response
        # of createGenericToolItem.  Convert anyway.
        if is_attachment_array_schema(prop_schema) or (
            prop_schema.get("type") == "array" and prop_path[1:2] == ["generic_tool_item"]
        ):
            return {
                **_with_description_stripped(prop_schema),
                "items": {"type": "string", "format": "binary"},
            }

        return None

    def transform_request_body(self, request_body: Any) -> Any:
        if not isinstance(request_body, dict) or "$ref" in request_body:
            return request_body

        content = request_body.get("content")
        content_types = list(content) if isinstance(content, dict) else None
        if content_types != ["application/json"]:
            self.warn("Skipping requestBody with unexpected content types: %r", content_types)
            return request_body

        media_type = content["application/json"]
        schema = media_type.get("schema")
        upload_paths = collect_multipart_properties(schema)
        if not upload_paths:
            return request_body

        multipart_schema = schema
        for prop_path in upload_paths:
            prop_schema = get_at_path(schema, prop_path)
            new_prop_schema = self._convert_upload_property(prop_schema, prop_path)
            if new_prop_schema is None:
                self.warn(
                    "Skipping multipart schema with unexpected structure at %s",
                    "/".join(prop_path),
                )
            else:
                multipart_schema = set_at_path(multipart_schema, prop_path, new_prop_schema)

        # Array items and nested object properties are sent as separate
        # (i.e. exploded) values in "deep object" form (e.g. "prop[a][b]").
        encoding = {
            name: {"style": "deepObject", "explode": True}
            for name, prop_schema in (schema.get("properties") or {}).items()
            if not isinstance(prop_schema, dict) or not _is_primitive_type(prop_schema.get("type"))
        }

        new_media_type = {**media_type, "schema": multipart_schema}
        if encoding:
            new_media_type["encoding"] = encoding
        return {**request_body, "content": {MULTIPART: new_media_type}}

    def transform_open_api(self, open_api: Any) -> Any:
        version = open_api.get("openapi") if isinstance(open_api, dict) else None
        if not isinstance(version, str) or not version.startswith("3."):
            raise TransformError(f"Only OpenAPI 3 is currently supported, got {version}", [])
        return super().transform_open_api(open_api)


def convert_multipart_bodies(doc: dict, warn: WarningHandler | None = None) -> dict:
    """Convert the request bodies in `doc` which upload files to multipart/form-data."""
    return MultipartTransformer(warn).transform_open_api(doc)

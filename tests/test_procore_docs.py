"""Tests for conversion of Procore API documentation to OpenAPI."""

import pytest

from procore_openapi.core.errors import TransformError
from procore_openapi.transformers.endpoint_filter import make_endpoint_filter
from procore_openapi.transformers.procore_docs import (
    ProcoreApiDocToOpenApiTransformer,
    camel_case,
    group_name_to_url_path,
    name_to_pattern,
)

PATH = "/rest/v1.0/projects/{project_id}/things"


def make_endpoint(**overrides):
    endpoint = {
        "base_path": "/rest/v1.0",
        "path": "/projects/{project_id}/things",
        "verb": "GET",
        "summary": "List Things",
        "description": "Return things.",
        "group": "Things",
        "support_level": "production",
        "tools": ["Things Tool"],
        "path_params": [
            {"name": "project_id", "type": "integer", "description": "Project ID", "required": True},
        ],
        "query_params": [
            {"name": "ids", "type": "array", "description": "Thing IDs", "required": False},
            {"name": "", "type": "integer", "description": ""},
        ],
        "responses": [
            {
                "status": "200",
                "description": "OK",
                "schema": {"type": "object", "properties": [{"field": "id", "type": "integer"}]},
            },
        ],
    }
    endpoint.update(overrides)
    return endpoint


def make_doc(*endpoints, **version_overrides):
    version = {
        "name": "Things",
        "tools": ["Things Tool"],
        "endpoints": list(endpoints) or [make_endpoint()],
    }
    version.update(version_overrides)
    return {"versions": [version]}


def convert(doc, warn=None, endpoint_filter=None):
    transformer = ProcoreApiDocToOpenApiTransformer(endpoint_filter=endpoint_filter, warn=warn)
    return transformer.transform_api_doc(doc)


def body_param(name, indentation, type_, **extra):
    return {"name": name, "indentation": indentation, "type": type_, **extra}


class TestGroupNameToUrlPath:
    """Test the group_name_to_url_path function."""

    def test_simple_name(self):
        """Test that spaces become hyphens and case is lowered."""
        assert group_name_to_url_path("List Things") == "list-things"

    def test_punctuation_collapsed(self):
        """Test that runs of reserved characters become a single hyphen."""
        assert group_name_to_url_path("Daily Log (Weather)") == "daily-log-weather"

    def test_unreserved_characters_kept(self):
        """Test that RFC 3986 unreserved characters are kept."""
        assert group_name_to_url_path("v1.0_beta~x") == "v1.0_beta~x"

    def test_non_string_raises(self):
        """Test that a non-string name raises TypeError."""
        with pytest.raises(TypeError):
            group_name_to_url_path(None)


class TestCamelCase:
    """Test the camel_case function."""

    def test_title(self):
        """Test converting a title to camelCase."""
        assert camel_case("List Project Things") == "listProjectThings"

    def test_acronym(self):
        """Test that acronyms are capitalized as words."""
        assert camel_case("Show RFI") == "showRfi"

    def test_apostrophe_dropped(self):
        """Test that apostrophes do not split words."""
        assert camel_case("Delete Item's Attachments") == "deleteItemsAttachments"

    def test_empty(self):
        """Test that an empty title gives an empty identifier."""
        assert camel_case("") == ""


class TestNameToPattern:
    """Test the name_to_pattern function."""

    def test_literal_name(self):
        """Test that a name without variables has no pattern."""
        assert name_to_pattern("custom_field") is None

    def test_id_variable(self):
        """Test that a variable ending in _id matches digits."""
        assert (
            name_to_pattern("custom_field_%{custom_field_definition_id}")
            == "^custom_field_([0-9]+)$"
        )

    def test_other_variable(self):
        """Test that other variables match anything."""
        assert name_to_pattern("%{key}") == "^(.*)$"

    def test_literal_parts_escaped(self):
        """Test that regex characters in literal parts are escaped."""
        assert name_to_pattern("a.b[%{x_id}]") == "^a\\.b\\[([0-9]+)\\]$"


class TestTransformApiDoc:
    """Test ProcoreApiDocToOpenApiTransformer.transform_api_doc."""

    def test_minimal_endpoint(self, warn):
        """Test converting an endpoint with path, query and response schemas."""
        result = convert(make_doc(), warn)

        assert result == {
            "openapi": "3.1.0",
            "tags": [{"name": "Things Tool"}],
            "paths": {
                PATH: {
                    "get": {
                        "operationId": "listThings",
                        "summary": "List Things",
                        "description": "Return things.",
                        "externalDocs": {
                            "url": "https://developers.procore.com/reference/rest/v1/things#list-things",
                        },
                        "tags": ["Things Tool"],
                        "parameters": [
                            {
                                "name": "project_id",
                                "in": "path",
                                "description": "Project ID",
                                "required": True,
                                "schema": {"type": "integer"},
                            },
                            {
                                "name": "ids",
                                "in": "query",
                                "description": "Thing IDs",
                                "required": False,
                                "schema": {"type": "array", "items": {"type": "integer"}},
                            },
                        ],
                        "responses": {
                            "200": {
                                "description": "OK",
                                "content": {
                                    "application/json": {
                                        "schema": {
                                            "type": "object",
                                            "properties": {"id": {"type": "integer"}},
                                        },
                                    },
                                },
                            },
                        },
                    },
                },
            },
        }
        assert warn.warnings == []

    def test_summary_prefixes(self):
        """Test that internal-only and non-production levels prefix the summary."""
        doc = make_doc(make_endpoint(support_level="alpha", internal_only=True))

        operation = convert(doc)["paths"][PATH]["get"]

        assert operation["summary"] == "(Internal Only) (Alpha) List Things"
        assert operation["operationId"] == "listThings"

    def test_deprecated_at(self):
        """Test that endpoints with deprecated_at are deprecated."""
        doc = make_doc(make_endpoint(deprecated_at="2021-01-01T00:00:00Z"))

        assert convert(doc)["paths"][PATH]["get"]["deprecated"] is True

    def test_beta_programs_in_description(self):
        """Test that beta programs are appended to the description."""
        doc = make_doc(make_endpoint(beta_programs=["Alpha Program", "Other"]))

        description = convert(doc)["paths"][PATH]["get"]["description"]

        assert description == "Return things.\nPart of Beta Program: Alpha Program,Other"

    def test_changelog_table(self, warn):
        """Test that changelog entries are appended as a table."""
        changelog = [
            {
                "endpoint": "GET /projects/{project_id}/things",
                "datestamp": "2021-03-01",
                "type": "update",
                "breaking": True,
                "summary": "Renamed field",
                "description": "Use name.",
            },
        ]
        doc = make_doc(make_endpoint(changelog=changelog))

        description = convert(doc, warn)["paths"][PATH]["get"]["description"]

        assert description == (
            "Return things.\n#### Changelog\n\n"
            "| Date       | Change |\n"
            "| ---------- | ------ |\n"
            "| 2021-03-01 | (Update)(BREAKING) **Renamed field.** Use name. |\n"
        )
        assert warn.warnings == []

    def test_changelog_endpoint_mismatch_warns(self, warn):
        """Test that a changelog entry for another endpoint warns."""
        changelog = [{"endpoint": "POST /other", "datestamp": "2021-03-01", "type": "add"}]

        convert(make_doc(make_endpoint(changelog=changelog)), warn)

        assert warn.messages == [
            "Expected changelog entry to have endpoint GET /projects/{project_id}/things, "
            "got POST /other"
        ]

    def test_path_param_marked_required(self, warn):
        """Test that path parameters are always required."""
        doc = make_doc(make_endpoint(path_params=[{"name": "project_id", "type": "integer"}]))

        parameters = convert(doc, warn)["paths"][PATH]["get"]["parameters"]

        assert parameters[0]["required"] is True
        assert warn.warnings == [
            ("/versions/0/endpoints/0/path_params/0", "Path parameter project_id not marked required")
        ]

    def test_empty_enum_dropped(self):
        """Test that an empty enum on a parameter is omitted."""
        query_params = [{"name": "view", "type": "string", "enum": []}]
        doc = make_doc(make_endpoint(query_params=query_params))

        parameters = convert(doc)["paths"][PATH]["get"]["parameters"]

        assert parameters[1]["schema"] == {"type": "string"}

    def test_object_query_param_raises(self):
        """Test that a query parameter with type object is an error."""
        doc = make_doc(make_endpoint(query_params=[{"name": "filters", "type": "object"}]))

        with pytest.raises(TransformError) as exc_info:
            convert(doc)

        assert exc_info.value.pointer == "/versions/0/endpoints/0/query_params/0"

    def test_unrecognized_properties_warn(self, warn):
        """Test that unknown endpoint properties are warned about."""
        convert(make_doc(make_endpoint(surprise=1)), warn)

        assert warn.warnings == [
            ("/versions/0/endpoints/0", "Unrecognized properties on endpoint: surprise")
        ]

    def test_unrecognized_support_level_warns(self, warn):
        """Test that an unknown support level warns."""
        convert(make_doc(make_endpoint(support_level="gamma")), warn)

        assert "Unrecognized support_level: 'gamma'" in warn.messages

    def test_group_mismatch_warns(self, warn):
        """Test that an endpoint group differing from the version name warns."""
        convert(make_doc(make_endpoint(group="Other")), warn)

        assert warn.messages == [
            "endpoint.group (Other) differs from ancestor version.name (Things).  "
            "Using version.name for externalDocs.url."
        ]

    def test_endpoint_tools_override_version_tools(self, warn):
        """Test that endpoint tools are used for tags and mismatches warn."""
        result = convert(make_doc(make_endpoint(tools=["Other Tool"])), warn)

        assert result["paths"][PATH]["get"]["tags"] == ["Other Tool"]
        assert result["tags"] == [{"name": "Other Tool"}]
        assert len(warn.warnings) == 1

    def test_tags_in_first_seen_order(self):
        """Test that document tags are collected in the order first used."""
        doc = make_doc(
            make_endpoint(tools=["B"]),
            make_endpoint(verb="POST", tools=["A", "B"]),
            tools=None,
        )

        assert convert(doc)["tags"] == [{"name": "B"}, {"name": "A"}]

    def test_duplicate_method_raises(self):
        """Test that two endpoints with the same path and verb are an error."""
        doc = make_doc(make_endpoint(), make_endpoint())

        with pytest.raises(TransformError, match="Method get appears multiple times"):
            convert(doc)

    def test_endpoint_filter(self):
        """Test that filtered endpoints are omitted."""
        doc = make_doc(
            make_endpoint(),
            make_endpoint(verb="POST", support_level="alpha"),
        )

        result = convert(doc, endpoint_filter=make_endpoint_filter("beta"))

        assert list(result["paths"][PATH]) == ["get"]

    def test_last_version_used(self, warn):
        """Test that only the last of several versions is converted."""
        first = {"name": "Old", "endpoints": []}
        doc = make_doc()
        doc["versions"].insert(0, first)

        result = convert(doc, warn)

        assert list(result["paths"]) == [PATH]
        assert warn.warnings[0] == ("/versions", "Found 2 versions.  Ignoring all but the last.")

    def test_empty_versions_raises(self):
        """Test that a document without versions is an error."""
        with pytest.raises(TransformError):
            convert({"versions": []})

    def test_non_object_doc_raises(self):
        """Test that a non-object document is an error."""
        with pytest.raises(TransformError):
            convert([])

    def test_context_cleared_after_version(self):
        """Test that per-version context does not leak between documents."""
        transformer = ProcoreApiDocToOpenApiTransformer()
        transformer.transform_api_doc(make_doc())

        second = transformer.transform_api_doc(make_doc(make_endpoint(tools=None), tools=None))

        assert transformer._context is None
        assert second["tags"] == []
        assert "tags" not in second["paths"][PATH]["get"]

    def test_context_cleared_after_error(self):
        """Test that per-version context is cleared when conversion fails."""
        transformer = ProcoreApiDocToOpenApiTransformer()

        with pytest.raises(TransformError):
            transformer.transform_api_doc(make_doc(make_endpoint(), make_endpoint()))

        assert transformer._context is None
        assert transformer.transform_path == []


class TestResponses:
    """Test conversion of endpoint responses."""

    def test_nested_schema(self):
        """Test that nested fields become nested properties."""
        schema = {
            "type": "object",
            "properties": [
                {
                    "field": "vendor",
                    "type": "object",
                    "properties": [{"field": "name", "type": "string"}],
                },
                {"field": "tags", "type": "array", "items": {"type": "string"}},
                {"field": "empty", "type": "object", "properties": []},
            ],
        }
        doc = make_doc(make_endpoint(responses=[{"status": "200", "schema": schema}]))

        response = convert(doc)["paths"][PATH]["get"]["responses"]["200"]

        assert response["content"]["application/json"]["schema"] == {
            "type": "object",
            "properties": {
                "vendor": {"type": "object", "properties": {"name": {"type": "string"}}},
                "tags": {"type": "array", "items": {"type": "string"}},
                "empty": {"type": "object"},
            },
        }

    def test_duplicate_field_raises(self):
        """Test that duplicate fields in a schema are an error."""
        schema = {
            "type": "object",
            "properties": [{"field": "id", "type": "integer"}, {"field": "id", "type": "string"}],
        }
        doc = make_doc(make_endpoint(responses=[{"status": "200", "schema": schema}]))

        with pytest.raises(TransformError) as exc_info:
            convert(doc)

        assert "Duplicate field 'id'" in str(exc_info.value)
        assert exc_info.value.pointer == (
            "/versions/0/endpoints/0/responses/0/schema/properties"
        )

    def test_response_without_schema_warns(self, warn):
        """Test that a response without a schema only has a description."""
        doc = make_doc(make_endpoint(responses=[{"status": "204", "description": "No Content"}]))

        responses = convert(doc, warn)["paths"][PATH]["get"]["responses"]

        assert responses == {"204": {"description": "No Content"}}
        assert warn.messages == ["Response without schema"]

    def test_duplicate_status_raises(self):
        """Test that two responses with the same status are an error."""
        responses = [{"status": "200", "schema": {}}, {"status": "200", "schema": {}}]
        doc = make_doc(make_endpoint(responses=responses))

        with pytest.raises(TransformError, match="Multiple responses for status 200"):
            convert(doc)


class TestBodyParams:
    """Test reconstruction of request body schemas from body_params."""

    def convert_body(self, body_params, warn=None):
        doc = make_doc(make_endpoint(verb="POST", body_params=body_params))
        operation = convert(doc, warn)["paths"][PATH]["post"]
        return operation["requestBody"]

    def test_nested_objects(self):
        """Test that indentation nests properties and required is collected."""
        request_body = self.convert_body(
            [
                body_param("thing", 2, "object", required=True),
                body_param("name", 4, "string", required=True, description="Name"),
                body_param("notes", 4, "string"),
                body_param("count", 2, "integer"),
            ]
        )

        assert request_body == {
            "required": True,
            "content": {
                "application/json": {
                    "schema": {
                        "type": "object",
                        "properties": {
                            "thing": {
                                "type": "object",
                                "properties": {
                                    "name": {"description": "Name", "type": "string"},
                                    "notes": {"type": "string"},
                                },
                                "required": ["name"],
                            },
                            "count": {"type": "integer"},
                        },
                        "required": ["thing"],
                    },
                },
            },
        }

    def test_array_item_schema(self):
        """Test that an unnamed child of an array is its item schema."""
        request_body = self.convert_body(
            [body_param("ids", 2, "array"), body_param("", 4, "integer")]
        )

        schema = request_body["content"]["application/json"]["schema"]
        assert schema["properties"]["ids"] == {"type": "array", "items": {"type": "integer"}}

    def test_array_of_objects(self):
        """Test that named children of an array are properties of its items."""
        request_body = self.convert_body(
            [body_param("rows", 2, "array"), body_param("id", 4, "integer")]
        )

        schema = request_body["content"]["application/json"]["schema"]
        assert schema["properties"]["rows"] == {
            "type": "array",
            "items": {"type": "object", "properties": {"id": {"type": "integer"}}},
        }

    def test_missing_array_of_arrays_parent(self):
        """Test that the omitted inner array of an array of arrays is added."""
        request_body = self.convert_body(
            [
                body_param("matrix", 2, "array"),
                body_param("", 6, "integer"),
            ]
        )

        schema = request_body["content"]["application/json"]["schema"]
        assert schema["properties"]["matrix"] == {
            "type": "array",
            "items": {"type": "array", "items": {"type": "integer"}},
        }

    def test_variable_name_becomes_pattern_property(self, warn):
        """Test that %{var} names become patternProperties."""
        request_body = self.convert_body(
            [
                body_param("custom_field_%{custom_field_definition_id}", 2, "string", required=True),
            ],
            warn,
        )

        schema = request_body["content"]["application/json"]["schema"]
        assert schema == {
            "type": "object",
            "patternProperties": {"^custom_field_([0-9]+)$": {"type": "string"}},
        }
        assert warn.messages == [
            "Ignoring required on parameter custom_field_%{custom_field_definition_id} "
            "with variable name"
        ]

    def test_body_example(self):
        """Test that body_example becomes the media type example."""
        doc = make_doc(
            make_endpoint(
                verb="POST",
                body_params=[body_param("name", 2, "string")],
                body_example={"name": "x"},
            )
        )

        media_type = convert(doc)["paths"][PATH]["post"]["requestBody"]["content"][
            "application/json"
        ]

        assert media_type["example"] == {"name": "x"}

    def test_bad_indentation_raises(self):
        """Test that an indentation which is not a multiple of 2 is an error."""
        with pytest.raises(TransformError, match="not a multiple of 2"):
            self.convert_body([body_param("name", 3, "string")])

    def test_missing_parent_raises(self):
        """Test that skipping an indentation level is an error."""
        with pytest.raises(TransformError, match="has no parent at indent 4") as exc_info:
            self.convert_body([body_param("name", 2, "string"), body_param("x", 6, "string")])

        assert exc_info.value.pointer == "/versions/0/endpoints/0/body_params"

    def test_child_of_primitive_raises(self):
        """Test that a child of a primitive parameter is an error."""
        with pytest.raises(TransformError, match="non-object/array type string"):
            self.convert_body([body_param("name", 2, "string"), body_param("x", 4, "string")])

    def test_duplicate_property_raises(self):
        """Test that duplicate property names are an error."""
        with pytest.raises(TransformError, match="duplicate property name"):
            self.convert_body([body_param("name", 2, "string"), body_param("name", 2, "string")])

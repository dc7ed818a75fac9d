"""
Operation 8: Move common error responses to components.

Error responses documented by an operation which match a response in the
catalogue below are replaced by a reference to the catalogued response in
`components.responses`, and responses which any operation may return (rate
limiting and server errors) are added to every operation.
"""

import copy
from typing import Any

from procore_openapi.core.errors import TransformError
from procore_openapi.transformers.base import OpenApiTransformerBase, WarningHandler

ERROR_SCHEMA = {
    "type": "object",
    "properties": {
        "code": {"type": "integer", "format": "int32"},
        "message": {"type": "string"},
        "fields": {"type": "string"},
        "reason": {
            "description": "A human-readable code providing additional detail on the cause of the error.",
            "type": "string",
        },
    },
}
ERROR_CONTENT = {"application/json": {"schema": ERROR_SCHEMA}}

# Response documented by some operations in place of the error schema
GENERIC_OBJECT_RESPONSE = {"content": {"application/json": {"schema": {"type": "object"}}}}

# Descriptions from https://developers.procore.com/documentation/restful-api-concepts
COMPONENTS_RESPONSES = {
    "BadRequest": {
        "description": "**400 Bad Request** - The request was invalid or could not be understood by the server. Resubmitting the request will likely result in the same error.",
        "content": ERROR_CONTENT,
    },
    "Unauthorized": {
        "description": "**401 Unauthorized** - Your API key is missing.",
        "content": ERROR_CONTENT,
    },
    "Forbidden": {
        "description": "**403 Forbidden** - The application is attempting to perform an action it does not have privileges to access. Verify your API key belongs to an enabled user with the required permissions.",
        "content": ERROR_CONTENT,
    },
    "NotFound": {
        "description": "**404 Not Found** - The resource was not found with the given identifier. Either the URL given is not a valid API, or the ID of the object specified in the request is invalid.",
        "content": ERROR_CONTENT,
    },
    "Conflict": {
        "description": "**409 Conflict** - The request attempts to create a duplicate. For employees, duplicate emails are not allowed. For lists, duplicate values are not allowed.",
        "content": ERROR_CONTENT,
    },
    "UnprocessableEntity": {
        "description": "**422 Unprocessable Entity** - The structure, syntax, etc of the API call was correct, but due to business logic the server is unable to process the request.",
        "content": ERROR_CONTENT,
    },
    "LimitExceeded": {
        "description": "**429 Limit Exceeded** - API rate limit exceeded.  See https://developers.procore.com/documentation/rate-limiting",
        "headers": {
            "X-Rate-Limit-Limit": {
                "description": "The total number of requests per 60 minute window.",
                "required": True,
                "schema": {"type": "integer", "exclusiveMinimum": 0},
                "example": 3600,
            },
            "X-Rate-Limit-Remaining": {
                "description": "The number of requests you are allowed to make in the current 60 minute window.",
                "required": True,
                "schema": {"type": "integer", "minimum": 0},
                "example": 3599,
            },
            "X-Rate-Limit-Reset": {
                "description": "The Unix timestamp for when the next window begins.",
                "required": True,
                # 0 rather than now() is less confusing and allows unsigned types
                "schema": {"type": "integer", "exclusiveMinimum": 0},
                "example": 1466182244,
            },
        },
        "content": ERROR_CONTENT,
    },
    "InternalServerError": {
        "description": "**500 Internal Server Error** - The server encountered an error while processing your request and failed.",
        "content": ERROR_CONTENT,
    },
    "GatewayError": {
        "description": "**502 Gateway Error** - The load balancer or web server had trouble connecting to the ACME app. Please try the request again.",
        "content": ERROR_CONTENT,
    },
    "ServiceUnavailable": {
        "description": "**503 Service Unavailable** - The service is temporarily unavailable. Please try the request again.",
        "content": ERROR_CONTENT,
    },
}

# Status code -> names of COMPONENTS_RESPONSES which may match, in order
CODE_TO_RESPONSE_NAMES = {
    "400": ["BadRequest"],
    "401": ["Unauthorized"],
    "403": ["Forbidden"],
    "404": ["NotFound"],
    "409": ["Conflict"],
    "422": ["UnprocessableEntity"],
    "429": ["LimitExceeded"],
    "500": ["InternalServerError"],
    "502": ["GatewayError"],
    "503": ["ServiceUnavailable"],
}

# Responses which every operation may return
UBIQUITOUS_RESPONSES = {
    "429": "LimitExceeded",
    "500": "InternalServerError",
    "502": "GatewayError",
    "503": "ServiceUnavailable",
}


def response_ref(response_name: str) -> dict:
    return {"$ref": f"#/components/responses/{response_name}"}


def _without_description(response: Any) -> Any:
    if isinstance(response, dict):
        return {key: value for key, value in response.items() if key != "description"}
    return response


def is_response_equal(response1: Any, response2: Any) -> bool:
    """Compare two Response Objects, ignoring their descriptions."""
    return _without_description(response1) == _without_description(response2)


def _status_sort_key(code: str) -> tuple[int, int | str]:
    if code.isdigit():
        return (0, int(code))
    return (1, code)


class ErrorResponseTransformer(OpenApiTransformerBase):
    def _named_response_ref(self, code: str, response: Any) -> dict | None:
        for i, response_name in enumerate(CODE_TO_RESPONSE_NAMES.get(code, ())):
            named_response = COMPONENTS_RESPONSES[response_name]
            if is_response_equal(response, named_response) or (
                i == 0 and is_response_equal(response, GENERIC_OBJECT_RESPONSE)
            ):
                ref = response_ref(response_name)
                description = response.get("description")
                if description and description not in named_response["description"]:
                    ref["description"] = description
                return ref
        return None

    def transform_responses(self, responses: Any) -> Any:
        if not isinstance(responses, dict):
            self.warn("Ignoring non-object Responses: %r", responses)
            return responses

        new_responses = {code: response_ref(name) for code, name in UBIQUITOUS_RESPONSES.items()}
        for code, response in responses.items():
            code = str(code)
            ref = self._named_response_ref(code, response) if isinstance(response, dict) else None
            new_responses[code] = response if ref is None else ref

        return {code: new_responses[code] for code in sorted(new_responses, key=_status_sort_key)}

    def add_components_responses(self, responses: Any) -> dict:
        """Merge copies of COMPONENTS_RESPONSES into `components.responses`."""
        if responses is None:
            return copy.deepcopy(COMPONENTS_RESPONSES)
        if not isinstance(responses, dict):
            raise TransformError(f"Expected responses object, got {type(responses).__name__}")

        new_responses = dict(responses)
        for response_name, response in COMPONENTS_RESPONSES.items():
            if response_name not in responses:
                new_responses[response_name] = copy.deepcopy(response)
            elif responses[response_name] != response:
                raise TransformError(f"components.responses.{response_name} already exists")
        return new_responses

    def transform_components(self, components: Any) -> Any:
        components = components or {}
        if not isinstance(components, dict):
            raise TransformError(f"Expected components object, got {type(components).__name__}")

        return {
            **components,
            "responses": self.visit(
                self.add_components_responses, "responses", components.get("responses")
            ),
        }

    def transform_open_api(self, open_api: Any) -> Any:
        if not isinstance(open_api, dict):
            self.warn("Ignoring non-object OpenAPI: %r", open_api)
            return open_api

        new_open_api = {
            **open_api,
            "components": self.visit(
                self.transform_components, "components", open_api.get("components")
            ),
        }
        if "paths" in open_api:
            new_open_api["paths"] = self.visit(self.transform_paths, "paths", open_api["paths"])
        return new_open_api


def normalize_error_responses(doc: dict, warn: WarningHandler | None = None) -> dict:
    """Reference the catalogued error responses from every operation in `doc`."""
    return ErrorResponseTransformer(warn).transform_open_api(doc)

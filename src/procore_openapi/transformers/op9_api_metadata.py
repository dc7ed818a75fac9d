"""
Operation 9: Add document-level metadata for the Procore REST API.

Adds info, externalDocs, servers and security, which the Procore docs do
not describe per resource group, along with an OAuth 2 security scheme for
each server.
"""

import copy

from procore_openapi.transformers.base import WarningHandler

API_INFO = {
    "title": "Procore REST API",
    "version": "1.0.0",
    # From https://developers.procore.com/documentation/introduction
    "description": "Procore's open Application Programming Interface (API) provides the underlying framework for developing applications and custom integrations between Procore and other software tools and technologies.",
    "contact": {
        "name": "Procore Developer Support",
        "email": "apisupport@procore.com",
        "url": "https://developers.procore.com/developer_support",
    },
    "termsOfService": "https://developers.procore.com/terms_and_conditions",
    "license": {
        "name": "Procore API License and Application Developer Agreement",
        "url": "https://developers.procore.com/terms_and_conditions",
    },
    "x-apiClientRegistration": "https://developers.procore.com/signup",
    "x-apisguru-categories": ["project_management"],
    "x-description-language": "en",
    "x-logo": {
        "backgroundColor": "#FFFFFF",
        # From https://www.procore.design/logos/
        "url": "https://www.procore.design/images/procore_logo_fc_k.png",
    },
    "x-unofficialSpec": True,
}

EXTERNAL_DOCS = {
    "description": "Procore Developer Documentation",
    "url": "https://developers.procore.com/documentation",
}

# https://developers.procore.com/documentation/development-environments
SERVERS = [
    {"url": "https://api.procore.com", "description": "Production"},
    {
        "url": "https://api-monthly.procore.com",
        "description": "**Monthly Sandbox** - refreshed with current production data on a regularly scheduled basis once each month.",
    },
    {
        "url": "https://sandbox.procore.com",
        "description": "**Development Sandbox** - automatically generated for third-party developers in their Developer Portal account and includes seed project data that can be used for testing purposes.",
    },
]

LOGIN_URL = "https://login.procore.com"

# Security scheme name -> login URL of the corresponding server
SECURITY_SCHEME_LOGIN_URLS = {
    "apiSecurity": LOGIN_URL,
    "monthlySecurity": "https://login-sandbox-monthly.procore.com",
    "sandboxSecurity": "https://login-sandbox.procore.com",
}

SECURITY_SCHEME = {
    "type": "oauth2",
    "description": """OAuth 2.0 Authentication.
See: https://developers.procore.com/documentation/oauth-introduction

Documentation for Flows (i.e. Grant Types):\\
Authorization Code: https://developers.procore.com/documentation/oauth-auth-grant-flow\\
Client Credentials: https://developers.procore.com/documentation/oauth-client-credentials\\
Implicit: https://developers.procore.com/documentation/oauth-implicit-flow""",
    "flows": {
        "authorizationCode": {
            "authorizationUrl": "https://login.procore.com/oauth/authorize?response_type=code",
            "tokenUrl": "https://api.procore.com/oauth/authorize?response_type=code",
            "refreshUrl": "https://api.procore.com/oauth/token",
            "scopes": {},
        },
        "clientCredentials": {
            "tokenUrl": "https://login.procore.com/oauth/token",
            "refreshUrl": "https://api.procore.com/oauth/token",
            "scopes": {},
        },
        "implicit": {
            "authorizationUrl": "https://api.procore.com/oauth/authorize?response_type=token",
            "refreshUrl": "https://api.procore.com/oauth/token",
            "scopes": {},
        },
    },
}


def _with_login_url(value, login_url: str):
    """Copy of `value` with LOGIN_URL replaced by `login_url` in every string."""
    if isinstance(value, dict):
        return {key: _with_login_url(child, login_url) for key, child in value.items()}
    if isinstance(value, str):
        return value.replace(LOGIN_URL, login_url)
    return value


def security_schemes() -> dict:
    """Security Scheme Objects keyed by name, one per server."""
    return {
        name: _with_login_url(SECURITY_SCHEME, login_url)
        for name, login_url in SECURITY_SCHEME_LOGIN_URLS.items()
    }


def add_api_metadata(doc: dict, warn: WarningHandler | None = None) -> dict:
    """
    Add Procore API metadata to an OpenAPI document.

    Properties of `doc` take precedence over the defaults for info,
    externalDocs, servers and security, and are ordered after them.
    `components.securitySchemes` is always replaced.
    """
    new_doc = {
        "openapi": doc.get("openapi"),
        "info": copy.deepcopy(API_INFO),
        "externalDocs": dict(EXTERNAL_DOCS),
        "servers": copy.deepcopy(SERVERS),
        # Each scheme should only apply to its server, which OpenAPI can't express
        "security": [{name: []} for name in SECURITY_SCHEME_LOGIN_URLS],
        **doc,
    }
    new_doc["components"] = {**(doc.get("components") or {}), "securitySchemes": security_schemes()}
    return new_doc

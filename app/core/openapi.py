"""OpenAPI customization utilities.

Enriches the generated schema with the ``X-API-Key`` security scheme, tag
descriptions, and documents the quota headers on the restore operation.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "Restore",
        "description": "Image restoration jobs, limited per caller and window.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]

_RATE_LIMIT_HEADERS = {
    "X-RateLimit-Limit": {
        "description": "Generations allowed per window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Remaining": {
        "description": "Generations left in the current window.",
        "schema": {"type": "integer"},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add security, tags and headers.

    - Injects components.securitySchemes for API Key auth (header ``X-API-Key``)
    - Marks all operations as requiring the key, then exempts health endpoints
    - Documents X-RateLimit-* headers and the 429 response on restore
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "API key bound to the caller's identity.",
            },
        )
        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(t for t in _TAGS if t["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                if path.endswith("/health"):
                    method_obj["security"] = []
                elif path.endswith("/restore"):
                    responses = method_obj.setdefault("responses", {})
                    ok = responses.setdefault("200", {})
                    ok.setdefault("headers", {}).update(_RATE_LIMIT_HEADERS)
                    responses.setdefault(
                        "429",
                        {"description": "Generation quota exhausted for the current window."},
                    )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]

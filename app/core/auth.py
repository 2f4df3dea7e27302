"""Caller identity resolution.

Identities are the quota keys. Each configured API key is bound to an
identity (e.g. a verified email): ``APP_API_KEYS="key1=alice@example.com,key2"``.
A key listed without an identity is identified by a digest of the key, so the
raw secret never ends up in the counter store.

When authentication is disabled (local development) the client address is
used as the identity.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header, Request

from app.core.config import settings
from app.core.errors import AuthenticationAppError
from app.core.logging import hash_identity

logger = logging.getLogger(__name__)


def _key_digest(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()[:16]


def parse_api_keys(keys_string: str | None) -> dict[str, str]:
    """Parse comma-separated API key entries into a key → identity map.

    Args:
        keys_string: Entries of the form ``key`` or ``key=identity``, or None.

    Returns:
        Mapping of trimmed, non-empty keys to their identity.

    Examples:
        >>> parse_api_keys("k1=alice@example.com, k2")["k1"]
        'alice@example.com'
        >>> parse_api_keys(None)
        {}
    """
    if not keys_string:
        return {}

    keys: dict[str, str] = {}
    for entry in keys_string.split(","):
        key, _, identity = entry.partition("=")
        key = key.strip()
        if not key:
            continue
        keys[key] = identity.strip() or f"api_key:{_key_digest(key)}"
    return keys


def resolve_identity(provided_key: str | None) -> str:
    """Resolve the identity bound to an API key.

    Pure lookup logic without FastAPI dependencies for easy testing.

    Raises:
        AuthenticationAppError: If the key is missing, unknown, or no keys are configured.
    """
    if not provided_key:
        logger.warning("auth.missing_key", extra={"api_key_present": False})
        raise AuthenticationAppError(
            code="unauthenticated",
            message="Login to upload. Provide X-API-Key header.",
        )

    identities = parse_api_keys(settings.app.api_keys)

    if not identities:
        logger.error(
            "auth.failed",
            extra={"reason": "api_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    identity = identities.get(provided_key)
    if identity is None:
        logger.warning(
            "auth.failed",
            extra={"reason": "invalid_api_key", "api_key_hash": _key_digest(provided_key)},
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )

    return identity


async def get_current_identity(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str:
    """FastAPI dependency returning the authenticated identity.

    Usage:
        @router.post("/restore")
        async def restore(identity: Annotated[str, Depends(get_current_identity)]):
            ...

    Raises:
        AuthenticationAppError: 403 when the caller cannot be identified.
    """
    if not settings.app.api_key_required:
        client_host = request.client.host if request.client else "unknown"
        logger.debug("auth.skipped", extra={"reason": "auth_required_false"})
        return f"ip:{client_host}"

    identity = resolve_identity(x_api_key)
    logger.info("auth.success", extra={"identity_hash": hash_identity(identity)})
    return identity

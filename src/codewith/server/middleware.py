"""Middleware for the admin service.

Includes:
- TokenAuthMiddleware: per-route-family credentials (sync token for device
  routes, admin token or HTTP Basic for admin routes).
- RequestSizeLimitMiddleware: Content-Length enforcement (413).
"""

import base64
import binascii
import hmac
import json
import logging
from enum import Enum
from http import HTTPStatus

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from codewith.config.settings import ServerSettings
from codewith.constants import (
    ADMIN_API_PREFIX,
    AUTH_ERROR_INVALID_SCHEME,
    AUTH_ERROR_INVALID_TOKEN,
    AUTH_ERROR_MISSING,
    AUTH_ERROR_NOT_CONFIGURED,
    AUTH_ERROR_PAYLOAD_TOO_LARGE,
    AUTH_HEADER_NAME,
    AUTH_SCHEME_BASIC,
    AUTH_SCHEME_BEARER,
    DEFAULT_MAX_REQUEST_BYTES,
    SYNC_LEGACY_PATH,
)

logger = logging.getLogger(__name__)

_SYNC_PREFIX = "/sync/"


class RouteFamily(str, Enum):
    SYNC = "sync"
    ADMIN = "admin"
    PUBLIC = "public"


def route_family(path: str) -> RouteFamily:
    """Classify a request path by the credential it needs."""
    if path.startswith(_SYNC_PREFIX) or path == SYNC_LEGACY_PATH:
        return RouteFamily.SYNC
    if path == ADMIN_API_PREFIX or path.startswith(ADMIN_API_PREFIX + "/"):
        return RouteFamily.ADMIN
    return RouteFamily.PUBLIC


def _secret_equals(given: str, expected: str) -> bool:
    return hmac.compare_digest(given.encode(), expected.encode())


async def _send_json_error(send: Send, status: int, detail: str) -> None:
    """Send a JSON error response via raw ASGI."""
    body = json.dumps({"detail": detail}).encode()
    headers = [
        (b"content-type", b"application/json"),
        (b"content-length", str(len(body)).encode()),
    ]
    if status == HTTPStatus.UNAUTHORIZED:
        headers.append((b"www-authenticate", AUTH_SCHEME_BEARER.encode()))
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body})


class TokenAuthMiddleware:
    """ASGI middleware that checks credentials per route family.

    Device routes (``/sync/*`` and the combined sync endpoint) need the sync
    token. If no sync token is configured they pass through (dev mode).

    Admin routes (``/api/v1/admin/*``) accept the admin bearer token or, when
    configured, HTTP Basic credentials. With neither configured every admin
    request is refused.
    """

    def __init__(self, app: ASGIApp, settings: ServerSettings) -> None:
        self.app = app
        self.settings = settings

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        family = route_family(scope.get("path", ""))
        if family is RouteFamily.PUBLIC:
            await self.app(scope, receive, send)
            return

        auth_value = Headers(scope=scope).get(AUTH_HEADER_NAME)
        if family is RouteFamily.SYNC:
            error = self._check_sync(auth_value)
        else:
            error = self._check_admin(auth_value)

        if error is not None:
            await _send_json_error(send, HTTPStatus.UNAUTHORIZED, error)
            return

        await self.app(scope, receive, send)

    def _check_sync(self, auth_value: str | None) -> str | None:
        expected = self.settings.sync_token
        if expected is None:
            return None
        if not auth_value:
            return AUTH_ERROR_MISSING
        parts = auth_value.split(None, 1)
        if len(parts) != 2 or parts[0] != AUTH_SCHEME_BEARER:
            return AUTH_ERROR_INVALID_SCHEME
        if not _secret_equals(parts[1], expected):
            return AUTH_ERROR_INVALID_TOKEN
        return None

    def _check_admin(self, auth_value: str | None) -> str | None:
        if self.settings.admin_token is None and not self.settings.basic_auth_enabled:
            return AUTH_ERROR_NOT_CONFIGURED
        if not auth_value:
            return AUTH_ERROR_MISSING

        parts = auth_value.split(None, 1)
        if len(parts) != 2:
            return AUTH_ERROR_INVALID_SCHEME
        scheme, credential = parts

        if scheme == AUTH_SCHEME_BEARER and self.settings.admin_token is not None:
            if _secret_equals(credential, self.settings.admin_token):
                return None
            return AUTH_ERROR_INVALID_TOKEN

        if scheme == AUTH_SCHEME_BASIC and self.settings.basic_auth_enabled:
            try:
                decoded = base64.b64decode(credential, validate=True).decode()
            except (binascii.Error, UnicodeDecodeError):
                return AUTH_ERROR_INVALID_TOKEN
            user, _, password = decoded.partition(":")
            user_ok = _secret_equals(user, self.settings.admin_basic_user or "")
            password_ok = _secret_equals(password, self.settings.admin_basic_password or "")
            if user_ok and password_ok:
                return None
            return AUTH_ERROR_INVALID_TOKEN

        return AUTH_ERROR_INVALID_SCHEME


class RequestSizeLimitMiddleware:
    """ASGI middleware that enforces a maximum request body size.

    Checks the ``Content-Length`` header and returns 413 if the declared
    size exceeds ``max_bytes``. Requests without a ``Content-Length`` header
    pass through (chunked transfers are bounded by uvicorn's own limits).
    """

    def __init__(self, app: ASGIApp, max_bytes: int = DEFAULT_MAX_REQUEST_BYTES) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                too_large = int(content_length) > self.max_bytes
            except ValueError:
                too_large = False  # Non-numeric Content-Length: let downstream handle it
            if too_large:
                logger.warning(f"Rejected request to {scope.get('path')}: {content_length} bytes")
                await _send_json_error(
                    send, HTTPStatus.REQUEST_ENTITY_TOO_LARGE, AUTH_ERROR_PAYLOAD_TOO_LARGE
                )
                return

        await self.app(scope, receive, send)

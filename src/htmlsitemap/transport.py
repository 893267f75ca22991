"""HTTP transport and authentication middleware for the sitemap server."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.datastructures import Headers
from starlette.responses import JSONResponse

from htmlsitemap.errors import ErrorCode, SitemapError

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Receive, Scope, Send

    from htmlsitemap.config import Settings

log = structlog.get_logger()

# Routes that change state or expose the settings record
PROTECTED_PATH_PREFIXES: tuple[str, ...] = ("/settings", "/events")


class BearerAuthMiddleware:
    """Pure ASGI middleware enforcing bearer key authentication.

    Only requests under ``protected_prefixes`` are checked; rendering and
    health routes stay public. Implemented as pure ASGI (not
    BaseHTTPMiddleware) so that responses are never buffered by the
    middleware layer.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        auth_enabled: bool,
        auth_key: str | None = None,
        protected_prefixes: tuple[str, ...] = PROTECTED_PATH_PREFIXES,
    ) -> None:
        self.app = app
        self.auth_enabled = auth_enabled
        self.auth_key = auth_key
        self.protected_prefixes = protected_prefixes

    def _is_protected(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(prefix + "/") for prefix in self.protected_prefixes
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self.auth_enabled and self._is_protected(scope["path"]):
            headers = Headers(scope=scope)
            auth_header = headers.get("authorization", "")
            supplied = auth_header[7:] if auth_header.startswith("Bearer ") else ""
            if not self.auth_key or not secrets.compare_digest(supplied, self.auth_key):
                log.warning("http_auth_rejected", path=scope["path"])
                error = SitemapError(
                    code=ErrorCode.PERMISSION_DENIED,
                    message="Missing or invalid bearer key.",
                    suggestion="Send 'Authorization: Bearer <auth_key>'.",
                    recoverable=False,
                )
                await JSONResponse(error.to_dict(), status_code=401)(scope, receive, send)
                return

        await self.app(scope, receive, send)


def resolve_auth_key(settings: Settings) -> str | None:
    """The configured bearer key, or a generated one when auth is on without a key."""
    http_log = log.bind(transport="http")
    auth_key: str | None = settings.server.auth_key or None

    if settings.server.auth_enabled and not auth_key:
        auth_key = secrets.token_urlsafe(32)
        http_log.warning("http_auth_key_auto_generated", auth_key=auth_key)

    if not settings.server.auth_enabled:
        http_log.warning("http_auth_disabled")

    return auth_key


def run_http_server(app: ASGIApp, settings: Settings) -> None:
    """Serve *app* with uvicorn on the configured host and port."""
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )

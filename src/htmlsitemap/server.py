"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState in the Starlette lifespan
- Map routes to handlers and SitemapError to JSON error responses
- Start uvicorn
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import HTMLResponse, JSONResponse
from starlette.routing import Route

import htmlsitemap.handlers.events as h_events
import htmlsitemap.handlers.settings as h_settings
import htmlsitemap.handlers.sitemap as h_sitemap
from htmlsitemap import __version__
from htmlsitemap.cache import Cache
from htmlsitemap.config import Settings
from htmlsitemap.errors import ErrorCode, SitemapError
from htmlsitemap.schedulers import run_cache_cleanup_scheduler
from htmlsitemap.sources.sqlite import SqliteContentSource
from htmlsitemap.state import AppState, build_state
from htmlsitemap.transport import BearerAuthMiddleware, resolve_auth_key, run_http_server

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from typing import Any

    from starlette.requests import Request
    from starlette.responses import Response

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


async def _connect(db_path: str) -> aiosqlite.Connection:
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return await aiosqlite.connect(str(path))


def _lifespan(settings: Settings) -> Callable[[Starlette], Any]:
    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        """Create and tear down all shared resources for the server's lifetime."""
        if getattr(app.state, "sitemap", None) is not None:
            # State supplied by the embedding application
            yield
            return

        log.info("server_starting", version=__version__)

        cache_db = await _connect(settings.cache.db_path)
        cache = Cache(cache_db)
        await cache.init_db()

        content_db = await _connect(settings.source.db_path)
        source = SqliteContentSource(content_db)
        await source.init_schema()

        state = build_state(settings, cache, source)
        app.state.sitemap = state
        cache_cleanup_task = asyncio.create_task(run_cache_cleanup_scheduler(state))

        log.info(
            "server_started",
            version=__version__,
            host=settings.server.host,
            port=settings.server.port,
        )

        try:
            yield
        finally:
            cache_cleanup_task.cancel()
            with suppress(asyncio.CancelledError):
                await cache_cleanup_task
            await content_db.close()
            await cache_db.close()
            app.state.sitemap = None
            log.info("server_stopping")

    return lifespan


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

_ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.CONTENT_SOURCE_UNAVAILABLE: 503,
    ErrorCode.CONTENT_QUERY_FAILED: 503,
    ErrorCode.INVALID_SETTINGS: 422,
    ErrorCode.INVALID_EVENT: 422,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.STORE_UNAVAILABLE: 503,
}


def _state(request: Request) -> AppState:
    return request.app.state.sitemap


async def _json_body(request: Request, code: ErrorCode) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SitemapError(
            code=code,
            message=f"Request body is not valid JSON: {exc}",
            suggestion="Send a JSON object with Content-Type: application/json.",
            recoverable=False,
        ) from exc


async def sitemap_endpoint(request: Request) -> Response:
    html = await h_sitemap.handle_render(request.query_params, _state(request))
    return HTMLResponse(html)


async def expand_endpoint(request: Request) -> Response:
    page = (await request.body()).decode("utf-8", errors="replace")
    html = await h_sitemap.handle_expand(page, _state(request))
    return HTMLResponse(html)


async def events_endpoint(request: Request) -> Response:
    payload = await _json_body(request, ErrorCode.INVALID_EVENT)
    return JSONResponse(await h_events.handle(payload, _state(request)))


async def settings_endpoint(request: Request) -> Response:
    state = _state(request)
    if request.method == "PUT":
        payload = await _json_body(request, ErrorCode.INVALID_SETTINGS)
        return JSONResponse(await h_settings.handle_put(payload, state))
    if request.method == "DELETE":
        return JSONResponse(await h_settings.handle_delete(state))
    return JSONResponse(await h_settings.handle_get(state))


async def health_endpoint(request: Request) -> Response:
    return JSONResponse({"status": "ok", "version": __version__})


async def _sitemap_error_handler(request: Request, exc: Exception) -> Response:
    assert isinstance(exc, SitemapError)
    log.warning(
        "handler_error",
        path=request.url.path,
        code=exc.code,
        message=exc.message,
        recoverable=exc.recoverable,
    )
    return JSONResponse(exc.to_dict(), status_code=_ERROR_STATUS.get(exc.code, 400))


def create_app(settings: Settings | None = None, *, state: AppState | None = None) -> Starlette:
    """Build the Starlette application.

    When *state* is given it is used as-is and the lifespan opens no
    databases; otherwise the lifespan builds it from *settings*.
    """
    settings = settings or (state.settings if state is not None else Settings())

    app = Starlette(
        routes=[
            Route("/sitemap", sitemap_endpoint, methods=["GET"]),
            Route("/expand", expand_endpoint, methods=["POST"]),
            Route("/events", events_endpoint, methods=["POST"]),
            Route("/settings", settings_endpoint, methods=["GET", "PUT", "DELETE"]),
            Route("/health", health_endpoint, methods=["GET"]),
        ],
        middleware=[
            Middleware(
                BearerAuthMiddleware,
                auth_enabled=settings.server.auth_enabled,
                auth_key=resolve_auth_key(settings),
            )
        ],
        exception_handlers={SitemapError: _sitemap_error_handler},
        lifespan=_lifespan(settings),
    )
    app.state.sitemap = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)
    run_http_server(create_app(settings), settings)


if __name__ == "__main__":
    main()

"""Tests for BearerAuthMiddleware.

Each test exercises the middleware directly via httpx's ASGI transport so no
real server is started. The inner app is a trivial 200-OK echo that never
runs if the middleware short-circuits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from htmlsitemap.config import Settings
from htmlsitemap.transport import BearerAuthMiddleware, resolve_auth_key

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Receive, Scope, Send


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _ok_app(scope: Scope, receive: Receive, send: Send) -> None:
    """Minimal ASGI app that always returns 200 OK."""
    await send({"type": "http.response.start", "status": 200, "headers": []})
    await send({"type": "http.response.body", "body": b"ok"})


def _client(app: ASGIApp) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://localhost",
    )


def _secured() -> BearerAuthMiddleware:
    return BearerAuthMiddleware(_ok_app, auth_enabled=True, auth_key="secret")


# ---------------------------------------------------------------------------
# Auth disabled
# ---------------------------------------------------------------------------


async def test_auth_disabled_allows_protected_routes() -> None:
    app = BearerAuthMiddleware(_ok_app, auth_enabled=False)
    async with _client(app) as client:
        response = await client.put("/settings")
    assert response.status_code == 200


# ---------------------------------------------------------------------------
# Auth enabled
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("path", ["/settings", "/events", "/settings/extra"])
async def test_missing_header_rejected_on_protected_routes(path: str) -> None:
    async with _client(_secured()) as client:
        response = await client.post(path)
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "PERMISSION_DENIED"


@pytest.mark.parametrize("path", ["/sitemap", "/health", "/expand", "/settingsfoo"])
async def test_public_routes_need_no_key(path: str) -> None:
    async with _client(_secured()) as client:
        response = await client.get(path)
    assert response.status_code == 200


async def test_correct_key_passes() -> None:
    async with _client(_secured()) as client:
        response = await client.get("/settings", headers={"Authorization": "Bearer secret"})
    assert response.status_code == 200


@pytest.mark.parametrize("header", ["Bearer wrong", "secret", "Basic secret", "Bearer "])
async def test_wrong_or_malformed_key_rejected(header: str) -> None:
    async with _client(_secured()) as client:
        response = await client.get("/settings", headers={"Authorization": header})
    assert response.status_code == 401


# ---------------------------------------------------------------------------
# Key resolution
# ---------------------------------------------------------------------------


def test_configured_key_is_used() -> None:
    settings = Settings(server={"auth_enabled": True, "auth_key": "configured"})
    assert resolve_auth_key(settings) == "configured"


def test_key_generated_when_enabled_without_one() -> None:
    settings = Settings(server={"auth_enabled": True})
    key = resolve_auth_key(settings)
    assert key
    assert len(key) >= 32


def test_no_key_when_disabled() -> None:
    assert resolve_auth_key(Settings()) is None

"""Integration test fixtures.

Provides a fully wired AppState over an in-memory SQLite fragment store and
the in-memory content source from tests/conftest.py (sample_kinds,
sample_documents, source).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from htmlsitemap.config import Settings
from htmlsitemap.server import create_app
from htmlsitemap.state import build_state

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from htmlsitemap.cache import Cache
    from htmlsitemap.state import AppState
    from tests.conftest import CountingSource


@pytest.fixture()
def settings() -> Settings:
    # Memory ceiling disabled so renders never depend on the test process size
    return Settings(render={"memory_limit_mb": 0})


@pytest.fixture()
def app_state(settings: Settings, cache: Cache, source: CountingSource) -> AppState:
    """Full AppState wired for integration tests."""
    return build_state(settings, cache, source)


@pytest.fixture()
async def client(app_state: AppState) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_app(state=app_state)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://localhost"
    ) as http_client:
        yield http_client

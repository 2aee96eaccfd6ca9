"""Pytest fixtures for runstats tests."""

from collections.abc import AsyncIterator, Iterator
import os

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("RUNSTATS_SOCKET_ENABLED", "false")
os.environ.setdefault("RUNSTATS_REPORT_INTERVAL_SECONDS", "0")
os.environ.setdefault("RUNSTATS_W3C_STRICT_FIELDS", "true")

from runstats.main import app as fastapi_app
from runstats.stats.registry import StatsRegistry


@pytest.fixture(scope="session")
def app() -> FastAPI:
    """Return the FastAPI application instance."""
    return fastapi_app


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Provide an `httpx.AsyncClient` bound to the ASGI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


@pytest.fixture(autouse=True)
def reset_runtime(app: FastAPI) -> Iterator[None]:
    """Clear the application registry before and after each test."""

    stats: StatsRegistry | None = getattr(app.state, "stats", None)
    if stats is not None:
        stats.clear_all()
    yield
    if stats is not None:
        stats.clear_all()


@pytest.fixture()
def registry() -> StatsRegistry:
    """Return a fresh, unshared registry."""

    return StatsRegistry()

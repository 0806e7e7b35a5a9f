"""API test fixtures — app state wired to in-memory sources, token-bearing clients."""
from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from propdesk.config import GlobalConfig
from propdesk.models import DbSource
from propdesk.services.account_service import AccountService

ADMIN_TOKEN = "admin-test-token"
DASHBOARD_TOKEN = "dashboard-test-token"


@pytest.fixture
def sources(make_source):
    """PRIMARY and BOLT configured (empty), OLD not configured."""
    return {
        DbSource.PRIMARY: make_source(DbSource.PRIMARY),
        DbSource.BOLT: make_source(DbSource.BOLT),
    }


@pytest_asyncio.fixture
async def app_client(sources, make_registry, mock_auth, mock_backend):
    """
    httpx AsyncClient against the app with its state replaced.

    ASGITransport does not run the lifespan, so the state the lifespan
    would build is set here directly.
    """
    from propdesk.main import app

    settings = GlobalConfig(
        _env_file=None,
        admin_api_token=ADMIN_TOKEN,
        dashboard_api_token=DASHBOARD_TOKEN,
        source_fetch_timeout_sec=1.0,
    )
    registry = make_registry(primary=sources[DbSource.PRIMARY], bolt=sources[DbSource.BOLT])
    app.state.settings = settings
    app.state.sources = registry
    app.state.account_service = AccountService(registry, mock_auth, mock_backend, settings)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def admin_client(app_client):
    """Client carrying the admin token header."""
    app_client.headers["X-Admin-Token"] = ADMIN_TOKEN
    yield app_client
    app_client.headers.pop("X-Admin-Token", None)


@pytest_asyncio.fixture
async def dashboard_client(app_client):
    """Client carrying the dashboard backend's token header."""
    app_client.headers["X-Api-Token"] = DASHBOARD_TOKEN
    yield app_client
    app_client.headers.pop("X-Api-Token", None)

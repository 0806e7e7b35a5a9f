"""Service-layer test fixtures."""
from __future__ import annotations

import pytest

from propdesk.config import GlobalConfig
from propdesk.models import DbSource
from propdesk.services.account_service import AccountService


@pytest.fixture
def sources(make_source):
    """PRIMARY and BOLT configured (empty), OLD not configured."""
    return {
        DbSource.PRIMARY: make_source(DbSource.PRIMARY),
        DbSource.BOLT: make_source(DbSource.BOLT),
    }


@pytest.fixture
def account_service(sources, make_registry, mock_auth, mock_backend):
    registry = make_registry(primary=sources[DbSource.PRIMARY], bolt=sources[DbSource.BOLT])
    settings = GlobalConfig(_env_file=None, source_fetch_timeout_sec=1.0)
    return AccountService(registry, mock_auth, mock_backend, settings)

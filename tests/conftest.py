"""Root conftest: in-memory challenge sources, row builders, sqlite-backed source."""
from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from propdesk.db.session import SourceRegistry, SqlChallengeSource
from propdesk.models import Base, DbSource
from propdesk.schemas.challenge import Challenge
from propdesk.schemas.profile import Profile
from propdesk.services.auth_directory import AuthDirectory
from propdesk.services.backend_client import BackendClient


def build_row(**overrides: Any) -> dict[str, Any]:
    """A user_challenges row as a plain dict; provisioned and active unless overridden."""
    row: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "user_id": "user-1",
        "challenge_type": "competition",
        "challenge_type_id": "ct-10k",
        "account_size": Decimal("10000"),
        "amount_paid": Decimal("99"),
        "status": "active",
        "trading_account_id": "LOGIN-1",
        "trading_account_password": "s3cret",
        "trading_account_server": "Demo-1",
        "credentials_sent": False,
        "contract_signed": False,
        "credentials_visible": False,
        "phase": 1,
        "admin_note": None,
        "purchase_date": None,
        "created_at": None,
        "contract_signed_at": None,
        "credentials_released_at": None,
    }
    row.update(overrides)
    return row


class _FakeTransaction:
    """Stages writes against a copy of the rows; ``fail_on`` raises mid-transaction."""

    def __init__(self, rows: dict[str, dict], fail_on: str | None):
        self._rows = rows
        self._fail_on = fail_on

    async def update_fields(self, challenge_id: str, values: dict[str, Any]) -> dict | None:
        if self._fail_on == "update":
            raise OSError("connection reset during update")
        row = self._rows.get(challenge_id)
        if row is None:
            return None
        row.update(values)
        return dict(row)

    async def insert(self, values: dict[str, Any]) -> dict:
        if self._fail_on == "insert":
            raise OSError("connection reset during insert")
        row = build_row(
            id=str(uuid.uuid4()),
            trading_account_id=None,
            trading_account_password=None,
            trading_account_server=None,
            admin_note=None,
        )
        row.update(values)
        self._rows[row["id"]] = row
        return dict(row)


class FakeSource:
    """In-memory challenge source with optional latency and failure injection."""

    def __init__(
        self,
        name: DbSource,
        rows: list[dict] | tuple = (),
        profiles: list[dict] | tuple = (),
        *,
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.name = name
        self.rows: dict[str, dict] = {r["id"]: dict(r) for r in rows}
        self.profiles = list(profiles)
        self.error = error
        self.delay = delay
        self.fail_on: str | None = None

    async def _io(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def fetch_profiles(self) -> list[Profile]:
        await self._io()
        return [Profile.model_validate(p) for p in self.profiles]

    async def fetch_challenges(self, user_id: str | None = None) -> list[Challenge]:
        await self._io()
        return [
            Challenge.model_validate(r)
            for r in self.rows.values()
            if user_id is None or r.get("user_id") == user_id
        ]

    async def get_challenge(self, challenge_id: str) -> Challenge | None:
        row = self.rows.get(challenge_id)
        return Challenge.model_validate(row) if row is not None else None

    @asynccontextmanager
    async def transaction(self):
        staged = {k: dict(v) for k, v in self.rows.items()}
        yield _FakeTransaction(staged, self.fail_on)
        self.rows = staged

    async def update_challenge(self, challenge_id: str, values: dict[str, Any]) -> Challenge | None:
        async with self.transaction() as txn:
            row = await txn.update_fields(challenge_id, values)
        return Challenge.model_validate(row) if row is not None else None

    async def insert_challenge(self, values: dict[str, Any]) -> Challenge:
        async with self.transaction() as txn:
            row = await txn.insert(values)
        return Challenge.model_validate(row)

    async def ping(self) -> None:
        await self._io()

    async def dispose(self) -> None:
        pass


@pytest.fixture
def make_source():
    """Factory for FakeSource instances."""
    return FakeSource


@pytest.fixture
def make_registry():
    """Factory: ``make_registry(primary=src, bolt=None)``; omitted sources are unconfigured."""

    def _make(**sources: FakeSource | None) -> SourceRegistry:
        return SourceRegistry({DbSource[name.upper()]: src for name, src in sources.items()})

    return _make


@pytest.fixture
def row():
    """Factory for challenge row dicts."""
    return build_row


@pytest_asyncio.fixture
async def sqlite_source():
    """SqlChallengeSource over a fresh in-memory sqlite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    source = SqlChallengeSource(DbSource.PRIMARY, engine)
    yield source
    await source.dispose()


@pytest.fixture
def mock_auth():
    """AuthDirectory stub returning no users."""
    auth = MagicMock(spec=AuthDirectory)
    auth.list_users = AsyncMock(return_value=[])
    return auth


@pytest.fixture
def mock_backend():
    """BackendClient stub whose calls all succeed."""
    backend = MagicMock(spec=BackendClient)
    for method in (
        "reject_challenge",
        "send_user_note",
        "save_internal_note",
        "breach_account",
        "assign_affiliate_code",
    ):
        setattr(backend, method, AsyncMock(return_value={"success": True}))
    return backend

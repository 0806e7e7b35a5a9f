from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable, Iterator, Mapping
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from propdesk.config import GlobalConfig
from propdesk.db.challenge_repo import ChallengeRepository
from propdesk.db.profile_repo import ProfileRepository
from propdesk.errors import SourceUnavailable
from propdesk.models.challenge import SOURCE_ORDER, DbSource
from propdesk.schemas.challenge import Challenge
from propdesk.schemas.profile import Profile
from propdesk.utils.metrics import SOURCE_FETCH_FAILURES

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=BaseModel)


class SqlChallengeSource:
    """One challenge database reached through its own async engine."""

    def __init__(self, name: DbSource, engine: AsyncEngine):
        self.name = name
        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )

    async def fetch_profiles(self) -> list[Profile]:
        async with self._session_factory() as session:
            rows = await ProfileRepository(session).list_all()
            return self._validate_rows(Profile, rows, "profiles")

    async def fetch_challenges(self, user_id: str | None = None) -> list[Challenge]:
        async with self._session_factory() as session:
            repo = ChallengeRepository(session)
            rows = await (repo.get_by_user(user_id) if user_id else repo.list_all())
            return self._validate_rows(Challenge, rows, "challenges")

    def _validate_rows(self, schema: type[RowT], rows: Iterable[Any], kind: str) -> list[RowT]:
        """Validate row by row; a malformed row is skipped, never the whole read."""
        valid: list[RowT] = []
        for row in rows:
            try:
                valid.append(schema.model_validate(row))
            except ValidationError as e:
                row_id = getattr(row, "id", None) or getattr(row, "user_id", None)
                fields = sorted({".".join(map(str, err["loc"])) for err in e.errors()})
                logger.warning(
                    "Skipping malformed %s row %s from %s (invalid: %s)",
                    kind, row_id, self.name.value, ", ".join(fields),
                    extra={"db_source": self.name.value, "kind": kind},
                )
                SOURCE_FETCH_FAILURES.labels(source=self.name.value, kind=kind).inc()
        return valid

    async def get_challenge(self, challenge_id: str) -> Challenge | None:
        async with self._session_factory() as session:
            row = await ChallengeRepository(session).get_by_id(challenge_id)
            return Challenge.model_validate(row) if row is not None else None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ChallengeRepository]:
        """Repository bound to one transaction; commits on clean exit."""
        async with self._session_factory() as session:
            async with session.begin():
                yield ChallengeRepository(session)

    async def update_challenge(self, challenge_id: str, values: dict[str, Any]) -> Challenge | None:
        async with self.transaction() as repo:
            row = await repo.update_fields(challenge_id, values)
            return Challenge.model_validate(row) if row is not None else None

    async def insert_challenge(self, values: dict[str, Any]) -> Challenge:
        async with self.transaction() as repo:
            row = await repo.insert(values)
            return Challenge.model_validate(row)

    async def ping(self) -> None:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self._engine.dispose()


class SourceRegistry:
    """Configured challenge sources keyed by DbSource; unconfigured ones map to None."""

    def __init__(self, sources: Mapping[DbSource, Any | None]):
        self._sources = {name: sources.get(name) for name in SOURCE_ORDER}

    @classmethod
    def from_settings(cls, settings: GlobalConfig) -> SourceRegistry:
        urls = {
            DbSource.PRIMARY: settings.primary_database_url,
            DbSource.BOLT: settings.bolt_database_url,
            DbSource.OLD: settings.old_database_url,
        }
        sources: dict[DbSource, SqlChallengeSource | None] = {}
        for name, url in urls.items():
            if not url:
                logger.info("Source %s not configured, skipping", name.value)
                sources[name] = None
                continue
            engine = create_async_engine(
                url,
                pool_size=settings.source_pool_size,
                pool_pre_ping=True,
                echo=settings.debug,
            )
            sources[name] = SqlChallengeSource(name, engine)
        return cls(sources)

    def get(self, name: DbSource):
        return self._sources.get(name)

    def require(self, name: DbSource):
        source = self._sources.get(name)
        if source is None:
            raise SourceUnavailable(name.value)
        return source

    def items(self) -> Iterator[tuple[DbSource, Any | None]]:
        """(name, source) pairs in merge precedence order."""
        for name in SOURCE_ORDER:
            yield name, self._sources[name]

    async def dispose(self) -> None:
        for _, source in self.items():
            if source is not None:
                await source.dispose()

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.db.repository import BaseRepository
from propdesk.models.challenge import UserChallenge


class ChallengeRepository(BaseRepository[UserChallenge]):
    def __init__(self, session: AsyncSession):
        super().__init__(UserChallenge, session)

    async def list_all(self) -> list[UserChallenge]:
        """All challenges, newest purchase first."""
        stmt = select(UserChallenge).order_by(UserChallenge.purchase_date.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_user(self, user_id: str) -> list[UserChallenge]:
        stmt = (
            select(UserChallenge)
            .where(UserChallenge.user_id == user_id)
            .order_by(UserChallenge.purchase_date.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def update_fields(self, challenge_id: str, values: dict[str, Any]) -> UserChallenge | None:
        """Apply column values to one row. Returns None when the row does not exist."""
        row = await self.get_by_id(challenge_id)
        if row is None:
            return None
        for column, value in values.items():
            setattr(row, column, value)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def insert(self, values: dict[str, Any]) -> UserChallenge:
        return await self.create(UserChallenge(**values))

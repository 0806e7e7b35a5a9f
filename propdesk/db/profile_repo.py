from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.db.repository import BaseRepository
from propdesk.models.user import UserProfile


class ProfileRepository(BaseRepository[UserProfile]):
    def __init__(self, session: AsyncSession):
        super().__init__(UserProfile, session)

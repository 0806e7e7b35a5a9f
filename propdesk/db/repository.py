from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared read/insert helpers. Rows are never deleted."""

    def __init__(self, model: type[ModelT], session: AsyncSession):
        self._model = model
        self._session = session

    async def get_by_id(self, id_val: Any) -> ModelT | None:
        return await self._session.get(self._model, id_val)

    async def list_all(self) -> list[ModelT]:
        result = await self._session.execute(select(self._model))
        return list(result.scalars().all())

    async def create(self, obj: ModelT) -> ModelT:
        self._session.add(obj)
        await self._session.flush()
        await self._session.refresh(obj)
        return obj

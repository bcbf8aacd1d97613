from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from congregate.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):  # noqa: UP046
    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        self.session = session
        self.model = model

    async def add(self, obj: ModelT, *, flush: bool = True) -> ModelT:
        self.session.add(obj)
        if flush:
            await self.session.flush()  # assigns PKs, etc.
        return obj

    async def add_all(self, objs: Sequence[ModelT], *, flush: bool = True) -> list[ModelT]:
        self.session.add_all(objs)
        if flush:
            await self.session.flush()
        return list(objs)

    async def get(self, id_: Any) -> ModelT | None:
        return await self.session.get(self.model, id_)

    async def first_where(self, *predicates: ColumnElement[bool]) -> ModelT | None:
        stmt = select(self.model).where(*predicates).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_where(self, *predicates: ColumnElement[bool]) -> list[ModelT]:
        result = await self.session.execute(select(self.model).where(*predicates))
        return list(result.scalars().all())

    async def count_where(self, *predicates: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(self.model).where(*predicates)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def delete(self, obj: ModelT, *, flush: bool = True) -> None:
        await self.session.delete(obj)
        if flush:
            await self.session.flush()

    async def delete_where(self, *predicates: ColumnElement[bool]) -> int:
        result = await self.session.execute(delete(self.model).where(*predicates))
        return int(result.rowcount or 0)

    async def update_fields(
        self, obj: ModelT, changes: Mapping[str, Any], *, flush: bool = True
    ) -> ModelT:
        # Unlike a form patch, None is a real value here (e.g. clearing recurrence).
        for k, v in changes.items():
            setattr(obj, k, v)
        if flush:
            await self.session.flush()
        return obj

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

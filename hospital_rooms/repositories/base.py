from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, Row, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hospital_rooms.errors import StorageError
from hospital_rooms.models.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Repository over one mapped model.

    Each call runs in its own session and transaction, so independent calls
    may be awaited concurrently. Database failures surface as StorageError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], model: type[T]):
        self.session_factory = session_factory
        self.model = model

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session, session.begin():
                yield session
        except SQLAlchemyError as exc:
            raise StorageError(f"{self.model.__name__} storage failure: {exc}") from exc

    async def get(self, id: int, *where: ColumnElement[bool]) -> T | None:
        stmt = select(self.model).where(self.model.id == id, *where)
        async with self.session() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> T:
        obj = self.model(**kwargs)
        async with self.session() as session:
            session.add(obj)
            await session.flush()
            await session.refresh(obj)
        return obj

    async def update(self, id: int, *where: ColumnElement[bool], **kwargs: Any) -> T | None:
        stmt = (
            update(self.model)
            .where(self.model.id == id, *where)
            .values(**kwargs)
            .returning(self.model)
            .execution_options(synchronize_session=False)
        )
        async with self.session() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def find(
        self,
        *where: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        offset: int = 0,
        limit: int = 100,
    ) -> list[T]:
        stmt = select(self.model).where(*where).order_by(*order_by).offset(offset).limit(limit)
        async with self.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count(self, *where: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(self.model).where(*where)
        async with self.session() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    async def aggregate(
        self,
        columns: Sequence[Any],
        *where: ColumnElement[bool],
        group_by: Sequence[Any] = (),
    ) -> list[Row]:
        stmt = select(*columns).select_from(self.model).where(*where)
        if group_by:
            stmt = stmt.group_by(*group_by).order_by(*group_by)
        async with self.session() as session:
            result = await session.execute(stmt)
            return list(result.all())

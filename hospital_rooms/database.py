from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from hospital_rooms.config import settings


def make_engine(url: str | None = None) -> AsyncEngine:
    return create_async_engine(url or settings.database_url, echo=settings.debug)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, expire_on_commit=False)


engine = make_engine()
async_session = make_session_factory(engine)

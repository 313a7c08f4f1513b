from sqlalchemy import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hospital_rooms.models.base import utcnow
from hospital_rooms.models.room import Room
from hospital_rooms.repositories.base import BaseRepository


def active() -> ColumnElement[bool]:
    return Room.is_active.is_(True)


class RoomRepository(BaseRepository[Room]):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        super().__init__(session_factory, Room)

    async def get_active(self, room_id: int) -> Room | None:
        return await self.get(room_id, active())

    async def insert(self, values: dict) -> Room:
        return await self.create(**values)

    async def update_active(self, room_id: int, values: dict) -> Room | None:
        return await self.update(room_id, active(), **values)

    async def set_images(self, room_id: int, images: list[str]) -> Room | None:
        return await self.update_active(room_id, {"images": images})

    async def soft_delete(self, room_id: int) -> bool:
        room = await self.update(room_id, active(), is_active=False, deleted_at=utcnow())
        return room is not None

    async def find_page(self, where: list[ColumnElement[bool]], offset: int, limit: int) -> list[Room]:
        return await self.find(
            *where,
            order_by=(Room.created_at.desc(), Room.id.desc()),
            offset=offset,
            limit=limit,
        )

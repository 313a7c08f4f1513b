from fastapi import Request

from hospital_rooms.config import settings
from hospital_rooms.repositories.room_repo import RoomRepository
from hospital_rooms.services.query_engine import QueryEngine
from hospital_rooms.services.room_service import RoomService


def get_room_repository(request: Request) -> RoomRepository:
    return RoomRepository(request.app.state.session_factory)


def get_room_service(request: Request) -> RoomService:
    return RoomService(
        get_room_repository(request),
        request.app.state.image_store,
        max_images=settings.max_images,
    )


def get_query_engine(request: Request) -> QueryEngine:
    return QueryEngine(get_room_repository(request))

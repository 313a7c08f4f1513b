from hospital_rooms.models.base import Base
from hospital_rooms.models.room import Room

__all__ = ["Base", "Room"]

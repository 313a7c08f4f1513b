import asyncio
import logging
from collections.abc import Sequence

from hospital_rooms.errors import FieldError, NotFoundError, StorageError, ValidationError
from hospital_rooms.models.base import utcnow
from hospital_rooms.models.room import Room
from hospital_rooms.repositories.room_repo import RoomRepository
from hospital_rooms.schemas.room import RoomCreate, RoomUpdate
from hospital_rooms.services.image_service import ImageStore, ImageUpload, purge, upload_all
from hospital_rooms.services.settle import settle

logger = logging.getLogger(__name__)


class RoomService:
    """Room lifecycle: create, update, soft delete and image removal.

    Image uploads happen before the record is written; when the write fails,
    the freshly uploaded images are deleted again. Cleanup of images that are
    no longer referenced is best-effort and never changes the outcome.
    """

    def __init__(self, rooms: RoomRepository, images: ImageStore, max_images: int = 5):
        self.rooms = rooms
        self.images = images
        self.max_images = max_images

    async def get(self, room_id: int) -> Room:
        room = await self.rooms.get_active(room_id)
        if room is None:
            raise NotFoundError()
        return room

    async def create(self, data: RoomCreate, images: Sequence[ImageUpload] = ()) -> Room:
        self._check_image_count(images)
        urls = await upload_all(self.images, list(images))
        try:
            room = await self.rooms.insert({**data.to_columns(), "images": urls})
        except StorageError:
            logger.error("Persisting new room failed, removing %d uploaded images", len(urls))
            await purge(self.images, urls, label="create rollback")
            raise
        logger.info("Created room %s (id=%s) with %d images", room.room_id, room.id, len(urls))
        return room

    async def update(
        self, room_id: int, data: RoomUpdate, images: Sequence[ImageUpload] = ()
    ) -> Room:
        existing = await self.get(room_id)
        self._check_image_count(images)
        values = {**data.to_columns(), "updated_at": utcnow()}

        new_urls: list[str] = []
        if images:
            # old images are gone once this runs, even if the upload below fails
            await purge(self.images, existing.images, label=f"room {existing.room_id} image replace")
            new_urls = await upload_all(self.images, list(images))
            values["images"] = new_urls

        try:
            room = await self.rooms.update_active(room_id, values)
        except StorageError:
            logger.error("Updating room %s failed, removing %d uploaded images", room_id, len(new_urls))
            await purge(self.images, new_urls, label="update rollback")
            raise
        if room is None:
            await purge(self.images, new_urls, label="update rollback")
            raise NotFoundError()
        logger.info("Updated room %s (id=%s)", room.room_id, room.id)
        return room

    async def delete(self, room_id: int) -> None:
        room = await self.get(room_id)
        flagged, _ = await asyncio.gather(
            self.rooms.soft_delete(room_id),
            purge(self.images, room.images, label=f"room {room.room_id} image purge"),
            return_exceptions=True,
        )
        if isinstance(flagged, BaseException):
            raise flagged
        if not flagged:
            raise NotFoundError()
        logger.info("Soft-deleted room %s (id=%s)", room.room_id, room.id)

    async def delete_image(self, room_id: int | None, image_url: str | None) -> int:
        """Detach one image and delete it from the store. Returns images left."""
        missing = [
            FieldError(path, "Field is required")
            for path, value in (("roomId", room_id), ("imageUrl", image_url))
            if value in (None, "")
        ]
        if missing:
            raise ValidationError(missing)

        room = await self.get(room_id)
        if image_url not in room.images:
            raise ValidationError.single("imageUrl", "Image not found in room")

        remaining = [url for url in room.images if url != image_url]
        updated, _ = await settle(
            f"room {room.room_id} image delete",
            self.rooms.set_images(room_id, remaining),
            self.images.delete(image_url),
        )
        if isinstance(updated, BaseException):
            raise updated
        logger.info("Removed image from room %s, %d left", room.room_id, len(remaining))
        return len(remaining)

    def _check_image_count(self, images: Sequence[ImageUpload]) -> None:
        if len(images) > self.max_images:
            raise ValidationError.single(
                "images", f"At most {self.max_images} images are allowed, got {len(images)}"
            )

import asyncio
import io
import logging
import re

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from hospital_rooms.errors import StorageError
from hospital_rooms.services.image_service import ImageUpload

logger = logging.getLogger(__name__)

_VERSION_SEGMENT = re.compile(r"^v\d+$")


class CloudinaryImageStore:
    """Room images hosted on Cloudinary through the official SDK."""

    transformation = [{"width": 800, "height": 600, "crop": "limit", "quality": "auto"}]

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "room-management/rooms",
        timeout: float = 30.0,
    ):
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )
        self.folder = folder
        self.timeout = timeout

    async def upload(self, image: ImageUpload) -> str:
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                io.BytesIO(image.data),
                filename=image.filename,
                folder=self.folder,
                transformation=self.transformation,
                resource_type="image",
                timeout=self.timeout,
            )
        except cloudinary.exceptions.Error as exc:
            raise StorageError(f"Cloudinary upload of {image.filename} failed: {exc}") from exc

        url = result.get("secure_url")
        if not url:
            raise StorageError(f"Cloudinary returned no url for {image.filename}")
        logger.info("Uploaded %s to Cloudinary: %s", image.filename, url)
        return url

    async def delete(self, url: str) -> None:
        public_id = self.public_id_from_url(url)
        try:
            result = await asyncio.to_thread(cloudinary.uploader.destroy, public_id, timeout=self.timeout)
        except cloudinary.exceptions.Error as exc:
            raise StorageError(f"Cloudinary delete of {public_id} failed: {exc}") from exc

        if result.get("result") != "ok":
            raise StorageError(f"Cloudinary could not delete {public_id}: {result.get('result')}")
        logger.info("Deleted %s from Cloudinary", public_id)

    @staticmethod
    def public_id_from_url(url: str) -> str:
        """Public id is the path after /upload/, minus version and extension."""
        _, sep, path = url.partition("/upload/")
        if not sep or not path:
            raise StorageError(f"Not a Cloudinary delivery url: {url}")
        segments = path.split("/")
        if _VERSION_SEGMENT.match(segments[0]):
            segments = segments[1:]
        public_id = "/".join(segments).rsplit(".", 1)[0]
        if not public_id:
            raise StorageError(f"Not a Cloudinary delivery url: {url}")
        return public_id

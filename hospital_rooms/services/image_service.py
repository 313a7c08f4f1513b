import asyncio
import io
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from PIL import Image, UnidentifiedImageError

from hospital_rooms.config import Settings
from hospital_rooms.errors import RoomServiceError, StorageError, ValidationError
from hospital_rooms.services.settle import settle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    data: bytes
    content_type: str = "application/octet-stream"


class ImageStore(Protocol):
    async def upload(self, image: ImageUpload) -> str: ...

    async def delete(self, url: str) -> None: ...


class LocalImageStore:
    """Stores room images on disk, downsized to fit within max_size."""

    subdir = "rooms"

    def __init__(self, media_dir: Path, base_url: str, max_size: tuple[int, int] = (800, 600)):
        self.root = media_dir / self.subdir
        self.base_url = f"{base_url.rstrip('/')}/{self.subdir}/"
        self.max_size = max_size
        self.root.mkdir(parents=True, exist_ok=True)

    async def upload(self, image: ImageUpload) -> str:
        filename = await asyncio.to_thread(self._write, image)
        logger.info("Stored image %s as %s", image.filename, filename)
        return self.base_url + filename

    async def delete(self, url: str) -> None:
        path = self._path_for(url)
        try:
            await asyncio.to_thread(path.unlink)
        except OSError as exc:
            raise StorageError(f"Failed to delete image {url}: {exc}") from exc

    def _write(self, image: ImageUpload) -> str:
        try:
            with Image.open(io.BytesIO(image.data)) as img:
                fmt = img.format or "JPEG"
                img.thumbnail(self.max_size)
                ext = ".jpg" if fmt == "JPEG" else f".{fmt.lower()}"
                filename = f"{uuid.uuid4().hex}{ext}"
                img.save(self.root / filename, format=fmt, quality=85)
        except UnidentifiedImageError:
            raise ValidationError.single("images", f"{image.filename} is not a readable image") from None
        except Image.DecompressionBombError:
            raise ValidationError.single("images", f"{image.filename} has too many pixels") from None
        except OSError as exc:
            raise StorageError(f"Failed to store image {image.filename}: {exc}") from exc
        return filename

    def _path_for(self, url: str) -> Path:
        if not url.startswith(self.base_url):
            raise StorageError(f"Image {url} is not managed by this store")
        filename = url[len(self.base_url):]
        if not filename or "/" in filename or filename in (".", ".."):
            raise StorageError(f"Invalid image url {url}")
        return self.root / filename


async def upload_all(store: ImageStore, images: list[ImageUpload]) -> list[str]:
    """Upload a batch concurrently; on any failure remove the ones that made it."""
    if not images:
        return []
    results = await asyncio.gather(*(store.upload(img) for img in images), return_exceptions=True)
    urls = [r for r in results if isinstance(r, str)]
    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        logger.error("%d of %d image uploads failed", len(failures), len(images))
        await purge(store, urls, label="upload rollback")
        first = failures[0]
        if isinstance(first, RoomServiceError):
            raise first
        raise StorageError(f"Image upload failed: {first}") from first
    return urls


async def purge(store: ImageStore, urls: list[str], label: str = "image purge") -> None:
    """Best-effort deletion of every url; failures are only logged."""
    if urls:
        await settle(label, *(store.delete(url) for url in urls))


def build_image_store(settings: Settings) -> ImageStore:
    if settings.image_backend == "cloudinary":
        from hospital_rooms.services.cloudinary_store import CloudinaryImageStore

        return CloudinaryImageStore(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder,
            timeout=settings.upload_timeout,
        )
    return LocalImageStore(settings.media_dir, settings.media_base_url, settings.image_max_size)

import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from hospital_rooms.database import make_engine, make_session_factory
from hospital_rooms.errors import StorageError
from hospital_rooms.main import app
from hospital_rooms.models import Base
from hospital_rooms.repositories.room_repo import RoomRepository
from hospital_rooms.schemas.room import RoomCreate
from hospital_rooms.services.image_service import ImageUpload
from hospital_rooms.services.query_engine import QueryEngine
from hospital_rooms.services.room_service import RoomService


class FakeImageStore:
    """In-memory image host. Uploads of filenames in fail_on raise."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.fail_on: set[str] = set()
        self.fail_deletes = False
        self.deleted: list[str] = []

    async def upload(self, image: ImageUpload) -> str:
        if image.filename in self.fail_on:
            raise StorageError(f"upload of {image.filename} rejected")
        url = f"https://images.test/rooms/{uuid.uuid4().hex}-{image.filename}"
        self.objects[url] = image.data
        return url

    async def delete(self, url: str) -> None:
        self.deleted.append(url)
        if self.fail_deletes:
            raise StorageError("image host unavailable")
        if self.objects.pop(url, None) is None:
            raise StorageError(f"{url} not found")


def make_room(**overrides) -> RoomCreate:
    data = {
        "room_name": "Recovery Suite",
        "hospital_branch": "Central",
        "floor_name": "Ground Floor",
        "room_number": "G-01",
        "wing_building": "Block 1 - South Wing",
        "room_category": "Private Room",
        "rent_amount": 2500,
        "additional_charges": {"nursing_charges": 300, "cleaning_charges": 100},
        "package_rates": [{"package_name": "Weekly", "rate": 15000, "duration": "7 days"}],
        "facilities": ["AC", "WiFi"],
        "capacity": {"total_beds": 2, "available_beds": 1, "patient_capacity": 2},
    }
    data.update(overrides)
    return RoomCreate(**data)


def make_image(name: str = "room.jpg") -> ImageUpload:
    return ImageUpload(filename=name, data=f"bytes of {name}".encode(), content_type="image/jpeg")


@pytest.fixture
async def session_factory(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'rooms.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
def room_repo(session_factory):
    return RoomRepository(session_factory)


@pytest.fixture
def service(room_repo, image_store):
    return RoomService(room_repo, image_store)


@pytest.fixture
def query_engine(room_repo):
    return QueryEngine(room_repo)


@pytest.fixture
async def client(session_factory, image_store):
    app.state.session_factory = session_factory
    app.state.image_store = image_store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

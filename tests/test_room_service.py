import pytest

from conftest import make_image, make_room
from hospital_rooms.errors import NotFoundError, StorageError, ValidationError
from hospital_rooms.schemas.room import RoomUpdate


@pytest.mark.parametrize("count", [0, 1, 5])
async def test_create_attaches_uploaded_images(service, image_store, count):
    images = [make_image(f"img{i}.jpg") for i in range(count)]
    room = await service.create(make_room(), images)

    assert room.id is not None
    assert room.room_id.startswith("RM")
    assert room.is_active is True
    assert len(room.images) == count
    assert all(url in image_store.objects for url in room.images)


async def test_create_flattens_nested_fields(service):
    room = await service.create(make_room())

    assert room.nursing_charges == 300
    assert room.cleaning_charges == 100
    assert room.equipment_charges == 0
    assert room.capacity == {"total_beds": 2, "available_beds": 1, "patient_capacity": 2}
    assert room.package_rates == [{"package_name": "Weekly", "rate": 15000.0, "duration": "7 days"}]
    assert room.status == "Available"


async def test_create_rejects_more_than_five_images(service, image_store):
    images = [make_image(f"img{i}.jpg") for i in range(6)]
    with pytest.raises(ValidationError):
        await service.create(make_room(), images)
    assert image_store.objects == {}


async def test_create_removes_uploaded_images_when_persisting_fails(
    service, room_repo, image_store, monkeypatch
):
    async def broken_insert(values):
        raise StorageError("database is locked")

    monkeypatch.setattr(room_repo, "insert", broken_insert)

    with pytest.raises(StorageError):
        await service.create(make_room(), [make_image("a.jpg"), make_image("b.jpg")])

    assert image_store.objects == {}
    assert len(image_store.deleted) == 2


async def test_create_rollback_failure_is_not_surfaced(service, room_repo, image_store, monkeypatch):
    async def broken_insert(values):
        raise StorageError("database is locked")

    monkeypatch.setattr(room_repo, "insert", broken_insert)
    image_store.fail_deletes = True

    with pytest.raises(StorageError, match="database is locked"):
        await service.create(make_room(), [make_image("a.jpg")])


async def test_create_failed_upload_removes_sibling_uploads(service, image_store, room_repo):
    image_store.fail_on = {"bad.jpg"}
    images = [make_image("a.jpg"), make_image("bad.jpg"), make_image("c.jpg")]

    with pytest.raises(StorageError):
        await service.create(make_room(), images)

    assert image_store.objects == {}
    assert await room_repo.count() == 0


async def test_room_codes_are_unique(service):
    rooms = [await service.create(make_room(room_number=f"R{i}")) for i in range(20)]
    assert len({room.room_id for room in rooms}) == 20


async def test_get_unknown_room(service):
    with pytest.raises(NotFoundError):
        await service.get(999)


async def test_update_merges_fields(service):
    room = await service.create(make_room())

    updated = await service.update(room.id, RoomUpdate(rent_amount=3000, status="Occupied"))

    assert updated.rent_amount == 3000
    assert updated.status == "Occupied"
    assert updated.room_name == "Recovery Suite"
    assert updated.nursing_charges == 300
    assert updated.updated_at >= room.updated_at


async def test_update_replaces_nested_objects_whole(service):
    room = await service.create(make_room())

    updated = await service.update(
        room.id, RoomUpdate(additional_charges={"equipment_charges": 50})
    )

    assert updated.additional_charges == {
        "nursing_charges": 0,
        "cleaning_charges": 0,
        "equipment_charges": 50,
    }


async def test_update_replaces_images(service, image_store):
    room = await service.create(make_room(), [make_image("old1.jpg"), make_image("old2.jpg")])
    old_urls = list(room.images)

    updated = await service.update(room.id, RoomUpdate(), [make_image("new.jpg")])

    assert len(updated.images) == 1
    assert updated.images[0].endswith("new.jpg")
    assert all(url not in image_store.objects for url in old_urls)
    assert updated.images[0] in image_store.objects


async def test_update_without_images_keeps_existing(service, image_store):
    room = await service.create(make_room(), [make_image("keep.jpg")])

    updated = await service.update(room.id, RoomUpdate(room_name="Renamed"))

    assert updated.images == room.images
    assert image_store.deleted == []


async def test_update_failed_upload_loses_old_images(service, image_store):
    room = await service.create(make_room(), [make_image("old.jpg")])
    image_store.fail_on = {"bad.jpg"}

    with pytest.raises(StorageError):
        await service.update(room.id, RoomUpdate(), [make_image("ok.jpg"), make_image("bad.jpg")])

    # old images were purged before the upload, the partial upload was rolled back
    assert image_store.objects == {}
    current = await service.get(room.id)
    assert current.images == room.images


async def test_update_removes_new_images_when_persisting_fails(
    service, room_repo, image_store, monkeypatch
):
    room = await service.create(make_room())

    async def broken_update(room_id, values):
        raise StorageError("disk full")

    monkeypatch.setattr(room_repo, "update_active", broken_update)

    with pytest.raises(StorageError):
        await service.update(room.id, RoomUpdate(), [make_image("new.jpg")])
    assert image_store.objects == {}


async def test_update_deleted_room(service):
    room = await service.create(make_room())
    await service.delete(room.id)

    with pytest.raises(NotFoundError):
        await service.update(room.id, RoomUpdate(room_name="Ghost"))


async def test_delete_is_soft(service, room_repo, image_store):
    room = await service.create(make_room(), [make_image("a.jpg")])

    await service.delete(room.id)

    with pytest.raises(NotFoundError):
        await service.get(room.id)
    stored = await room_repo.get(room.id)
    assert stored is not None
    assert stored.is_active is False
    assert stored.deleted_at is not None
    assert image_store.objects == {}


async def test_delete_succeeds_when_image_purge_fails(service, room_repo, image_store):
    room = await service.create(make_room(), [make_image("a.jpg")])
    image_store.fail_deletes = True

    await service.delete(room.id)

    with pytest.raises(NotFoundError):
        await service.get(room.id)
    assert (await room_repo.get(room.id)).is_active is False


async def test_delete_twice(service):
    room = await service.create(make_room())
    await service.delete(room.id)

    with pytest.raises(NotFoundError):
        await service.delete(room.id)


async def test_delete_image(service, image_store):
    room = await service.create(make_room(), [make_image("a.jpg"), make_image("b.jpg")])
    target = room.images[0]

    remaining = await service.delete_image(room.id, target)

    assert remaining == 1
    assert target not in image_store.objects
    assert (await service.get(room.id)).images == room.images[1:]


async def test_delete_image_updates_record_when_provider_fails(service, image_store):
    room = await service.create(make_room(), [make_image("a.jpg")])
    image_store.fail_deletes = True

    remaining = await service.delete_image(room.id, room.images[0])

    assert remaining == 0
    assert (await service.get(room.id)).images == []


async def test_delete_image_not_attached(service):
    room = await service.create(make_room(), [make_image("a.jpg")])

    with pytest.raises(ValidationError) as excinfo:
        await service.delete_image(room.id, "https://images.test/rooms/other.jpg")
    assert excinfo.value.errors[0].path == "imageUrl"


async def test_delete_image_requires_both_fields(service):
    with pytest.raises(ValidationError) as excinfo:
        await service.delete_image(None, "")
    assert [e.path for e in excinfo.value.errors] == ["roomId", "imageUrl"]


async def test_delete_image_unknown_room(service):
    with pytest.raises(NotFoundError):
        await service.delete_image(42, "https://images.test/rooms/a.jpg")

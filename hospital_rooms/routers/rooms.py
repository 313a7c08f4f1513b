from dataclasses import asdict

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import FormData, UploadFile

from hospital_rooms.dependencies import get_query_engine, get_room_service
from hospital_rooms.schemas.room import DeleteImageRequest, RoomOut, parse_room_form
from hospital_rooms.services.image_service import ImageUpload
from hospital_rooms.services.query_engine import QueryEngine
from hospital_rooms.services.room_service import RoomService

router = APIRouter(prefix="/rooms", tags=["rooms"])


async def _read_images(form: FormData) -> list[ImageUpload]:
    uploads = []
    for part in form.getlist("images"):
        if isinstance(part, UploadFile) and part.filename:
            uploads.append(
                ImageUpload(
                    filename=part.filename,
                    data=await part.read(),
                    content_type=part.content_type or "application/octet-stream",
                )
            )
    return uploads


@router.get("")
async def list_rooms(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    status: str | None = None,
    branch: str | None = None,
    engine: QueryEngine = Depends(get_query_engine),
):
    result = await engine.list(page=page, limit=limit, search=search, status=status, branch=branch)
    return {
        "success": True,
        "data": [RoomOut.model_validate(room).to_json() for room in result.rooms],
        "pagination": asdict(result.pagination),
    }


@router.post("", status_code=201)
async def create_room(request: Request, service: RoomService = Depends(get_room_service)):
    form = await request.form()
    data = parse_room_form(form)
    images = await _read_images(form)
    room = await service.create(data, images)
    return {
        "success": True,
        "message": "Room created successfully",
        "data": RoomOut.model_validate(room).to_json(),
    }


@router.get("/stats")
async def room_stats(engine: QueryEngine = Depends(get_query_engine)):
    stats = await engine.stats()
    return {"success": True, "data": stats.to_json()}


@router.delete("/image")
async def delete_room_image(payload: DeleteImageRequest, service: RoomService = Depends(get_room_service)):
    remaining = await service.delete_image(payload.room_id, payload.image_url)
    return {
        "success": True,
        "message": "Image deleted successfully",
        "data": {"remainingImages": remaining},
    }


@router.get("/{room_id}")
async def get_room(room_id: int, service: RoomService = Depends(get_room_service)):
    room = await service.get(room_id)
    return {"success": True, "data": RoomOut.model_validate(room).to_json()}


@router.put("/{room_id}")
async def update_room(room_id: int, request: Request, service: RoomService = Depends(get_room_service)):
    form = await request.form()
    data = parse_room_form(form, partial=True)
    images = await _read_images(form)
    room = await service.update(room_id, data, images)
    return {
        "success": True,
        "message": "Room updated successfully",
        "data": RoomOut.model_validate(room).to_json(),
    }


@router.delete("/{room_id}")
async def delete_room(room_id: int, service: RoomService = Depends(get_room_service)):
    await service.delete(room_id)
    return {"success": True, "message": "Room deleted successfully"}

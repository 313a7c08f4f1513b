import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from hospital_rooms.config import settings
from hospital_rooms.database import async_session, engine
from hospital_rooms.errors import RoomServiceError, ValidationError
from hospital_rooms.models import Base
from hospital_rooms.routers import rooms
from hospital_rooms.services.image_service import build_image_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    Path("data").mkdir(parents=True, exist_ok=True)

    # create tables on startup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.session_factory = async_session
    app.state.image_store = build_image_store(settings)
    logger.info("Started %s (%s, images: %s)", settings.app_name, settings.environment, settings.image_backend)

    yield

    await engine.dispose()


app = FastAPI(title=settings.app_name, lifespan=lifespan)


@app.exception_handler(RoomServiceError)
async def room_error_handler(request: Request, exc: RoomServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.payload(verbose=settings.is_development))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationError.from_issues(exc.errors())
    return JSONResponse(status_code=error.status_code, content=error.payload())


@app.get("/")
async def index():
    return {
        "message": f"{settings.app_name} API Server",
        "status": "Running",
        "timestamp": datetime.now(UTC).isoformat(),
        "endpoints": ["/api/v1/rooms"],
    }


# serve locally stored room images
if settings.image_backend == "local" and settings.media_base_url.startswith("/"):
    settings.media_dir.mkdir(parents=True, exist_ok=True)
    app.mount(settings.media_base_url, StaticFiles(directory=str(settings.media_dir)), name="media")

# routers
app.include_router(rooms.router, prefix="/api/v1")

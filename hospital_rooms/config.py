from pathlib import Path

from dotenv import dotenv_values
from pydantic_settings import BaseSettings

_ENV_FILE = Path.home() / "env" / ".env.dev"
_env_vars = dotenv_values(str(_ENV_FILE)) if _ENV_FILE.exists() else {}


class Settings(BaseSettings):
    app_name: str = "Hospital Room Management"
    environment: str = "production"  # development / production
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///data/rooms.db"
    image_backend: str = "local"  # local / cloudinary
    media_dir: Path = Path("data/media")
    media_base_url: str = "/media"
    image_max_size: tuple[int, int] = (800, 600)
    max_images: int = 5
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "room-management/rooms"
    upload_timeout: float = 30.0

    model_config = {
        "env_prefix": "ROOMS_",
        "env_file": ".env",
        "extra": "ignore",
    }

    def model_post_init(self, __context):
        if not self.cloudinary_cloud_name:
            self.cloudinary_cloud_name = _env_vars.get("CLOUDINARY_CLOUD_NAME", "")
        if not self.cloudinary_api_key:
            self.cloudinary_api_key = _env_vars.get("CLOUDINARY_API_KEY", "")
        if not self.cloudinary_api_secret:
            self.cloudinary_api_secret = _env_vars.get("CLOUDINARY_API_SECRET", "")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


settings = Settings()

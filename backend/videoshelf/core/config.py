from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(default="development", validation_alias="APP_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=3000, validation_alias="PORT")

    # Serverless deployments only have a writable /tmp.
    vercel: bool = Field(default=False, validation_alias="VERCEL")

    storage_root: str | None = Field(default=None, validation_alias="STORAGE_ROOT")
    videos_dir: str | None = Field(default=None, validation_alias="VIDEOS_DIR")
    thumbnails_dir: str | None = Field(default=None, validation_alias="THUMBNAILS_DIR")

    cors_allow_origins: str = Field(default="*", validation_alias="CORS_ALLOW_ORIGINS")

    max_upload_bytes: int = Field(default=100 * 1024 * 1024, validation_alias="MAX_UPLOAD_BYTES")
    max_thumbnail_bytes: int = Field(default=10 * 1024 * 1024, validation_alias="MAX_THUMBNAIL_BYTES")
    upload_chunk_size: int = Field(default=1024 * 1024, validation_alias="UPLOAD_CHUNK_SIZE")
    stream_chunk_size: int = Field(default=64 * 1024, validation_alias="STREAM_CHUNK_SIZE")

    thumbnails_enabled: bool = Field(default=True, validation_alias="THUMBNAILS_ENABLED")
    ffmpeg_path: str = Field(default="ffmpeg", validation_alias="FFMPEG_PATH")
    thumbnail_seek: str = Field(default="00:00:01", validation_alias="THUMBNAIL_SEEK")
    thumbnail_width: int = Field(default=320, validation_alias="THUMBNAIL_WIDTH")
    thumbnail_timeout_seconds: float = Field(default=30.0, validation_alias="THUMBNAIL_TIMEOUT_SECONDS")

    @model_validator(mode="after")
    def _fill_storage_dirs(self) -> "Settings":
        root = (self.storage_root or "").strip() or ("/tmp" if self.vercel else ".")
        self.storage_root = root
        if not (self.videos_dir or "").strip():
            self.videos_dir = str(Path(root) / "videos")
        if not (self.thumbnails_dir or "").strip():
            self.thumbnails_dir = str(Path(root) / "thumbnails")
        return self


settings = Settings()


def _is_prod() -> bool:
    return (settings.app_env or "").strip().lower() in {"prod", "production"}


if _is_prod():
    if not Path(str(settings.videos_dir)).is_absolute() or not Path(str(settings.thumbnails_dir)).is_absolute():
        raise RuntimeError("VIDEOS_DIR and THUMBNAILS_DIR must be absolute paths in production")
    if settings.max_upload_bytes <= 0:
        raise RuntimeError("MAX_UPLOAD_BYTES must be positive in production")

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VideoOut(CamelModel):
    id: str
    filename: str
    display_name: str
    size: int
    created: datetime
    modified: datetime
    has_thumbnail: bool
    url: str
    thumbnail_url: str | None = None


class CheckNameResponse(CamelModel):
    exists: bool


class RenameRequest(CamelModel):
    new_name: str | None = None


class RenameResponse(CamelModel):
    success: bool = True
    new_id: str
    new_filename: str


class UploadResponse(CamelModel):
    success: bool = True
    video_id: str
    filename: str
    url: str
    thumbnail_url: str | None = None


class ThumbnailUploadResponse(CamelModel):
    success: bool = True
    thumbnail_url: str


class DeleteResponse(CamelModel):
    success: bool = True

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile

from videoshelf.schemas.video import (
    CheckNameResponse,
    DeleteResponse,
    RenameRequest,
    RenameResponse,
    ThumbnailUploadResponse,
    UploadResponse,
    VideoOut,
)
from videoshelf.services.library import VideoLibrary, get_library

router = APIRouter(prefix="/api", tags=["videos"])


@router.get("/videos", response_model=list[VideoOut])
def list_videos(library: VideoLibrary = Depends(get_library)):
    return library.list_videos()


@router.get("/check-name/{name}", response_model=CheckNameResponse)
def check_name(name: str, library: VideoLibrary = Depends(get_library)):
    return CheckNameResponse(exists=library.resolver.name_exists(name))


@router.put("/rename/{video_id}", response_model=RenameResponse)
def rename_video(
    video_id: str,
    body: RenameRequest | None = None,
    library: VideoLibrary = Depends(get_library),
):
    new_id, new_filename = library.resolver.rename(video_id, body.new_name if body else None)
    return RenameResponse(new_id=new_id, new_filename=new_filename)


@router.post("/upload", response_model=UploadResponse)
async def upload_video(
    video: UploadFile | None = File(default=None),
    custom_name: str | None = Form(default=None, alias="customName"),
    library: VideoLibrary = Depends(get_library),
):
    return await library.upload(video, custom_name)


@router.post("/upload-thumbnail", response_model=ThumbnailUploadResponse)
async def upload_thumbnail(
    thumbnail: UploadFile | None = File(default=None),
    video_id: str | None = Form(default=None, alias="videoId"),
    library: VideoLibrary = Depends(get_library),
):
    url = await library.attach_thumbnail(thumbnail, video_id)
    return ThumbnailUploadResponse(thumbnail_url=url)


@router.delete("/video/{video_id}", response_model=DeleteResponse)
def delete_video(video_id: str, library: VideoLibrary = Depends(get_library)):
    library.delete(video_id)
    return DeleteResponse()

from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse

from videoshelf.core.errors import NotFound
from videoshelf.services.library import get_resolver
from videoshelf.services.naming import NamingResolver
from videoshelf.services.streaming import build_video_response

router = APIRouter(tags=["media"])


@router.get("/video/{video_id}")
async def stream_video(
    video_id: str,
    range_header: str | None = Header(default=None, alias="Range"),
    resolver: NamingResolver = Depends(get_resolver),
):
    """Stream a stored video, honouring a single `bytes=start-end` range."""
    path = await run_in_threadpool(resolver.resolve, video_id)
    return await run_in_threadpool(build_video_response, path, range_header)


@router.get("/thumbnail/{video_id}")
def get_thumbnail(video_id: str, resolver: NamingResolver = Depends(get_resolver)):
    path = resolver.thumbnail_path(video_id)
    if not path.is_file():
        raise NotFound("thumbnail not found")
    return FileResponse(path, media_type="image/jpeg")

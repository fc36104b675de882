import os
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from videoshelf.core.config import settings
from videoshelf.services.thumbnails import ThumbnailGenerator, get_thumbnail_generator

router = APIRouter(tags=["health"])


def _writable_dir(path: str | None) -> bool:
    p = Path(str(path or ""))
    return p.is_dir() and os.access(p, os.W_OK | os.X_OK)


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/health/live")
def live():
    return {"status": "live"}


@router.get("/health/ready")
def ready(thumbnailer: ThumbnailGenerator = Depends(get_thumbnail_generator)):
    if not _writable_dir(settings.videos_dir):
        raise HTTPException(status_code=503, detail="videos storage not ready")
    if not _writable_dir(settings.thumbnails_dir):
        raise HTTPException(status_code=503, detail="thumbnails storage not ready")

    return {
        "status": "ready",
        "thumbnails": {"generator": thumbnailer.name, "available": thumbnailer.available()},
    }

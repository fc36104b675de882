from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote

import aiofiles
from fastapi import Depends, UploadFile
from fastapi.concurrency import run_in_threadpool

from videoshelf.core.config import settings
from videoshelf.core.errors import Conflict, InternalError, PayloadTooLarge, ValidationError
from videoshelf.schemas.video import UploadResponse, VideoOut
from videoshelf.services.naming import NamingResolver, is_video_filename, split_name, validate_basename
from videoshelf.services.thumbnails import ThumbnailGenerator, get_thumbnail_generator


log = logging.getLogger(__name__)

THUMBNAIL_UPLOAD_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})

# How often an upload recomputes its filename when another writer grabs it first.
_MAX_CLAIM_ATTEMPTS = 5


def video_url(video_id: str) -> str:
    return f"/video/{quote(video_id, safe='')}"


def thumbnail_url(video_id: str) -> str:
    return f"/thumbnail/{quote(video_id, safe='')}"


def _created_at(st: os.stat_result) -> datetime:
    ts = getattr(st, "st_birthtime", None) or st.st_ctime
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        log.warning("failed to remove partial file %s: %s", path.name, e)


class VideoLibrary:
    def __init__(self, resolver: NamingResolver, thumbnailer: ThumbnailGenerator):
        self.resolver = resolver
        self.thumbnailer = thumbnailer

    def ensure_dirs(self) -> None:
        for d in (self.resolver.videos_dir, self.resolver.thumbnails_dir):
            try:
                d.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                log.error("failed to create storage directory %s: %s", d, e)
                raise InternalError("storage unavailable") from e

    def list_videos(self) -> list[VideoOut]:
        out: list[VideoOut] = []
        for path in self.resolver.list_video_files():
            try:
                st = path.stat()
            except FileNotFoundError:
                # Removed between listing and stat.
                continue
            except OSError as e:
                log.error("failed to stat %s: %s", path.name, e)
                raise InternalError("failed to read videos directory") from e

            video_id = split_name(path.name)[0]
            has_thumb = self.resolver.thumbnail_path(video_id).is_file()
            out.append(
                VideoOut(
                    id=video_id,
                    filename=path.name,
                    display_name=video_id,
                    size=st.st_size,
                    created=_created_at(st),
                    modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                    has_thumbnail=has_thumb,
                    url=video_url(video_id),
                    thumbnail_url=thumbnail_url(video_id) if has_thumb else None,
                )
            )
        return out

    async def _write_exclusive(self, file: UploadFile, dest: Path) -> int:
        limit = int(settings.max_upload_bytes)
        chunk_size = max(1, int(settings.upload_chunk_size))
        total = 0
        # "xb" fails with FileExistsError instead of clobbering a file that
        # appeared after the name was computed.
        f = await aiofiles.open(dest, "xb")
        try:
            while chunk := await file.read(chunk_size):
                total += len(chunk)
                if limit > 0 and total > limit:
                    raise PayloadTooLarge(f"file too large, max {limit} bytes")
                await f.write(chunk)
        except BaseException:
            await f.close()
            _discard(dest)
            raise
        await f.close()
        return total

    async def upload(self, file: UploadFile | None, custom_name: str | None) -> UploadResponse:
        if file is None or not (file.filename or "").strip():
            raise ValidationError("no video file uploaded")

        original = os.path.basename((file.filename or "").strip())
        original_ext = split_name(original)[1]
        if not is_video_filename(original):
            raise ValidationError("unsupported video format")

        await run_in_threadpool(self.ensure_dirs)

        filename = None
        size = 0
        for _ in range(_MAX_CLAIM_ATTEMPTS):
            candidate = await run_in_threadpool(
                self.resolver.compute_upload_filename, custom_name, original_ext, original
            )
            try:
                size = await self._write_exclusive(file, self.resolver.videos_dir / candidate)
            except FileExistsError:
                log.info("upload name %s claimed concurrently, recomputing", candidate)
                continue
            except OSError as e:
                log.error("failed to store upload %s: %s", candidate, e)
                raise InternalError("failed to upload video") from e
            filename = candidate
            break

        if filename is None:
            raise Conflict("could not allocate a unique filename, retry the upload")

        video_id = split_name(filename)[0]
        log.info("stored upload %s (%s bytes)", filename, size)

        has_thumb = await self.generate_thumbnail(video_id, self.resolver.videos_dir / filename)
        return UploadResponse(
            video_id=video_id,
            filename=filename,
            url=video_url(video_id),
            thumbnail_url=thumbnail_url(video_id) if has_thumb else None,
        )

    async def generate_thumbnail(self, video_id: str, video_path: Path) -> bool:
        """Best-effort: any failure is logged and reported as False."""
        try:
            data = await self.thumbnailer.generate(video_path)
        except Exception:
            log.exception("thumbnail generation failed for %s", video_id)
            return False
        if not data:
            return False

        try:
            await self._write_replace(self.resolver.thumbnail_path(video_id), data)
        except OSError as e:
            log.error("failed to store thumbnail for %s: %s", video_id, e)
            return False
        log.info("thumbnail extracted for %s", video_id)
        return True

    async def _write_replace(self, dest: Path, data: bytes) -> None:
        tmp = dest.with_name(dest.name + ".part")
        try:
            async with aiofiles.open(tmp, "wb") as f:
                await f.write(data)
            os.replace(tmp, dest)
        except BaseException:
            _discard(tmp)
            raise

    async def attach_thumbnail(self, file: UploadFile | None, video_id: str | None) -> str:
        if file is None or not (file.filename or "").strip():
            raise ValidationError("no thumbnail file uploaded")
        if not (video_id or "").strip():
            raise ValidationError("video id is required")
        vid = validate_basename(video_id, field="videoId")

        ext = split_name(os.path.basename(file.filename or ""))[1].lower()
        if ext not in THUMBNAIL_UPLOAD_EXTENSIONS:
            raise ValidationError("thumbnail must be a JPG or PNG image")

        await run_in_threadpool(self.ensure_dirs)
        await run_in_threadpool(self.resolver.resolve, vid)

        limit = int(settings.max_thumbnail_bytes)
        data = await file.read(limit + 1 if limit > 0 else -1)
        if limit > 0 and len(data) > limit:
            raise PayloadTooLarge(f"thumbnail too large, max {limit} bytes")
        if not data:
            raise ValidationError("thumbnail file is empty")

        try:
            await self._write_replace(self.resolver.thumbnail_path(vid), data)
        except OSError as e:
            log.error("failed to store thumbnail for %s: %s", vid, e)
            raise InternalError("failed to upload thumbnail") from e
        log.info("thumbnail replaced for %s", vid)
        return thumbnail_url(vid)

    def delete(self, video_id: str) -> None:
        video_path = self.resolver.resolve(video_id)
        try:
            video_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            log.error("failed to delete video %s: %s", video_path.name, e)
            raise InternalError("failed to delete video") from e

        thumb = self.resolver.thumbnail_path(video_id)
        try:
            thumb.unlink(missing_ok=True)
        except OSError as e:
            log.warning("video %s deleted but thumbnail removal failed: %s", video_id, e)
        log.info("deleted video %s", video_id)


def get_resolver() -> NamingResolver:
    return NamingResolver(str(settings.videos_dir), str(settings.thumbnails_dir))


def get_library(
    resolver: NamingResolver = Depends(get_resolver),
    thumbnailer: ThumbnailGenerator = Depends(get_thumbnail_generator),
) -> VideoLibrary:
    return VideoLibrary(resolver, thumbnailer)

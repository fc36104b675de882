from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from videoshelf.core.config import settings


log = logging.getLogger(__name__)


class ThumbnailGenerator:
    """Turns a stored video into JPEG bytes.

    `generate` returns None instead of raising when no thumbnail can be
    produced; callers treat thumbnails as best-effort.
    """

    name = "none"

    def available(self) -> bool:
        return False

    async def generate(self, video_path: Path) -> bytes | None:
        return None


class NullThumbnailGenerator(ThumbnailGenerator):
    pass


class FfmpegThumbnailGenerator(ThumbnailGenerator):
    name = "ffmpeg"

    def __init__(
        self,
        *,
        ffmpeg_path: str = "ffmpeg",
        seek: str = "00:00:01",
        width: int = 320,
        timeout_seconds: float = 30.0,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.seek = seek
        self.width = int(width)
        self.timeout_seconds = float(timeout_seconds)

    def executable(self) -> str | None:
        return shutil.which(self.ffmpeg_path)

    def available(self) -> bool:
        return self.executable() is not None

    def command(self, exe: str, video_path: Path) -> list[str]:
        return [
            exe,
            "-hide_banner",
            "-loglevel",
            "error",
            "-i",
            str(video_path),
            "-ss",
            self.seek,
            "-vframes",
            "1",
            "-vf",
            f"scale={self.width}:-1",
            "-f",
            "image2",
            "-c:v",
            "mjpeg",
            "pipe:1",
        ]

    async def generate(self, video_path: Path) -> bytes | None:
        exe = self.executable()
        if exe is None:
            log.info("ffmpeg not available, skipping thumbnail for %s", video_path.name)
            return None

        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command(exe, video_path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log.warning("failed to start ffmpeg for %s: %s", video_path.name, e)
            return None

        try:
            out, err = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            log.warning("ffmpeg timed out after %ss for %s", self.timeout_seconds, video_path.name)
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            return None

        if proc.returncode != 0:
            msg = (err or b"").decode("utf-8", errors="replace").strip()[:500]
            log.warning("ffmpeg exited with %s for %s: %s", proc.returncode, video_path.name, msg)
            return None
        if not out:
            log.warning("ffmpeg produced no frame for %s", video_path.name)
            return None
        return out


def get_thumbnail_generator() -> ThumbnailGenerator:
    if not bool(settings.thumbnails_enabled):
        return NullThumbnailGenerator()
    return FfmpegThumbnailGenerator(
        ffmpeg_path=str(settings.ffmpeg_path or "ffmpeg"),
        seek=str(settings.thumbnail_seek or "00:00:01"),
        width=int(settings.thumbnail_width),
        timeout_seconds=float(settings.thumbnail_timeout_seconds),
    )

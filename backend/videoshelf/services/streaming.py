from __future__ import annotations

import logging
import os
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

import aiofiles
from fastapi.responses import StreamingResponse

from videoshelf.core.config import settings
from videoshelf.core.errors import InternalError, RangeNotSatisfiable


log = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "video/mp4"

CONTENT_TYPES: dict[str, str] = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".ogg": "video/ogg",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".mkv": "video/x-matroska",
    ".flv": "video/x-flv",
    ".wmv": "video/x-ms-wmv",
    ".m4v": "video/x-m4v",
    ".3gp": "video/3gpp",
}

_RANGE_RE = re.compile(r"^bytes=(\d+)-(\d*)$")


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, file_size: int) -> str:
        return f"bytes {self.start}-{self.end}/{file_size}"


def content_type_for(path: Path | str) -> str:
    ext = os.path.splitext(str(path))[1].lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def parse_range(header: str | None, file_size: int) -> ByteRange | None:
    """Parse a single `bytes=start-end` range against `file_size`.

    Returns None when no header was sent. `end` defaults to the last byte
    and is clamped to it when the client asks past the end of the file.
    Anything else (suffix ranges, several ranges, other units, garbage)
    raises RangeNotSatisfiable.
    """
    if header is None:
        return None
    m = _RANGE_RE.match(header.strip())
    if not m:
        raise RangeNotSatisfiable(file_size, "malformed range header")

    start = int(m.group(1))
    end = int(m.group(2)) if m.group(2) else file_size - 1
    end = min(end, file_size - 1)
    if start >= file_size or start > end:
        raise RangeNotSatisfiable(file_size)
    return ByteRange(start=start, end=end)


async def iter_file_range(path: Path, start: int, length: int, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield `length` bytes of `path` starting at `start`.

    The file is closed when the generator finishes or is closed early
    because the client went away.
    """
    async with aiofiles.open(path, "rb") as f:
        await f.seek(start)
        remaining = length
        while remaining > 0:
            chunk = await f.read(min(chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk


def build_video_response(path: Path, range_header: str | None) -> StreamingResponse:
    try:
        file_size = path.stat().st_size
    except OSError as e:
        log.error("failed to stat video %s: %s", path.name, e)
        raise InternalError("error streaming video") from e

    content_type = content_type_for(path)
    chunk_size = max(1, int(settings.stream_chunk_size))
    byte_range = parse_range(range_header, file_size)

    if byte_range is None:
        return StreamingResponse(
            iter_file_range(path, 0, file_size, chunk_size),
            status_code=200,
            media_type=content_type,
            headers={
                "Accept-Ranges": "bytes",
                "Content-Length": str(file_size),
            },
        )

    return StreamingResponse(
        iter_file_range(path, byte_range.start, byte_range.length, chunk_size),
        status_code=206,
        media_type=content_type,
        headers={
            "Content-Range": byte_range.content_range(file_size),
            "Accept-Ranges": "bytes",
            "Content-Length": str(byte_range.length),
        },
    )

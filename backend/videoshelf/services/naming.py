from __future__ import annotations

import logging
import os
from pathlib import Path

from videoshelf.core.errors import Conflict, InternalError, NotFound, ValidationError


log = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".ogg", ".mov", ".avi", ".mkv", ".flv", ".wmv", ".m4v", ".3gp"})
THUMBNAIL_EXTENSION = ".jpg"


def split_name(filename: str) -> tuple[str, str]:
    """Split `clip.final.mp4` into (`clip.final`, `.mp4`).

    Dotfiles keep their whole name as the basename, like `os.path.splitext`.
    """
    base, ext = os.path.splitext(filename)
    return base, ext


def is_video_filename(filename: str) -> bool:
    return split_name(filename)[1].lower() in VIDEO_EXTENSIONS


def validate_basename(name: str | None, *, field: str = "name") -> str:
    """Trim `name` and make sure it is usable as a single path component."""
    value = (name or "").strip()
    if not value:
        raise ValidationError(f"{field} is required")
    if value in {".", ".."} or "/" in value or "\\" in value or "\x00" in value:
        raise ValidationError(f"{field} must not contain path separators")
    return value


class NamingResolver:
    """Maps video ids (basenames) onto files in a flat video directory.

    Nothing is cached: every call lists the directory again, so files added
    or removed behind the service's back are picked up immediately.
    """

    def __init__(self, videos_dir: Path | str, thumbnails_dir: Path | str):
        self.videos_dir = Path(videos_dir)
        self.thumbnails_dir = Path(thumbnails_dir)

    def list_video_files(self) -> list[Path]:
        try:
            with os.scandir(self.videos_dir) as it:
                names = [e.name for e in it if e.is_file() and is_video_filename(e.name)]
        except OSError as e:
            log.error("failed to list videos directory %s: %s", self.videos_dir, e)
            raise InternalError("failed to read videos directory") from e
        return [self.videos_dir / n for n in sorted(names)]

    def existing_basenames(self) -> set[str]:
        return {split_name(p.name)[0] for p in self.list_video_files()}

    def resolve(self, video_id: str) -> Path:
        for path in self.list_video_files():
            if split_name(path.name)[0] == video_id:
                return path
        raise NotFound("video not found")

    def name_exists(self, basename: str) -> bool:
        return basename in self.existing_basenames()

    def thumbnail_path(self, video_id: str) -> Path:
        return self.thumbnails_dir / f"{video_id}{THUMBNAIL_EXTENSION}"

    def _is_taken(self, filename: str, basenames: set[str]) -> bool:
        return split_name(filename)[0] in basenames or (self.videos_dir / filename).exists()

    def compute_upload_filename(
        self,
        desired_basename: str | None,
        original_extension: str,
        original_filename: str,
    ) -> str:
        desired = (desired_basename or "").strip()
        if desired:
            base = validate_basename(desired, field="customName")
            candidate = f"{base}{original_extension}"
        else:
            candidate = validate_basename(original_filename, field="filename")
            base = split_name(candidate)[0]

        basenames = self.existing_basenames()
        counter = 1
        # Re-check after every bump: `clip_1` may itself already be stored.
        while self._is_taken(candidate, basenames):
            candidate = f"{base}_{counter}{original_extension}"
            counter += 1
        return candidate

    def rename(self, video_id: str, new_basename: str | None) -> tuple[str, str]:
        new_id = validate_basename(new_basename, field="newName")
        video_path = self.resolve(video_id)

        if self.name_exists(new_id):
            raise Conflict("a video with this name already exists")

        ext = split_name(video_path.name)[1]
        new_filename = f"{new_id}{ext}"
        new_path = self.videos_dir / new_filename
        try:
            os.rename(video_path, new_path)
        except OSError as e:
            log.error("failed to rename video %s -> %s: %s", video_path.name, new_filename, e)
            raise InternalError("failed to rename video") from e

        # The video is already renamed at this point; a failure here is
        # reported but not rolled back.
        old_thumb = self.thumbnail_path(video_id)
        if old_thumb.exists():
            try:
                os.rename(old_thumb, self.thumbnail_path(new_id))
            except OSError as e:
                log.error("video %s renamed to %s but thumbnail rename failed: %s", video_id, new_id, e)
                raise InternalError("failed to rename video") from e

        log.info("renamed video %s -> %s", video_id, new_id)
        return new_id, new_filename

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from videoshelf.core.config import settings
from videoshelf.main import create_app
from videoshelf.services.thumbnails import NullThumbnailGenerator, ThumbnailGenerator, get_thumbnail_generator


class FakeThumbnailer(ThumbnailGenerator):
    """Returns canned bytes, or raises, without touching ffmpeg."""

    name = "fake"

    def __init__(self, data: bytes | None = b"\xff\xd8fake-jpeg\xff\xd9", error: Exception | None = None):
        self.data = data
        self.error = error
        self.calls: list[Path] = []

    def available(self) -> bool:
        return True

    async def generate(self, video_path: Path) -> bytes | None:
        self.calls.append(video_path)
        if self.error is not None:
            raise self.error
        return self.data


@pytest.fixture()
def storage(tmp_path, monkeypatch):
    videos = tmp_path / "videos"
    thumbs = tmp_path / "thumbnails"
    videos.mkdir()
    thumbs.mkdir()
    monkeypatch.setattr(settings, "videos_dir", str(videos))
    monkeypatch.setattr(settings, "thumbnails_dir", str(thumbs))

    def add_video(filename: str, data: bytes = b"video") -> Path:
        p = videos / filename
        p.write_bytes(data)
        return p

    def add_thumbnail(video_id: str, data: bytes = b"\xff\xd8thumb") -> Path:
        p = thumbs / f"{video_id}.jpg"
        p.write_bytes(data)
        return p

    def snapshot() -> dict[str, list[str]]:
        return {
            "videos": sorted(p.name for p in videos.iterdir()),
            "thumbnails": sorted(p.name for p in thumbs.iterdir()),
        }

    return SimpleNamespace(
        videos=videos,
        thumbnails=thumbs,
        add_video=add_video,
        add_thumbnail=add_thumbnail,
        snapshot=snapshot,
    )


@pytest.fixture()
def thumbnailer():
    return FakeThumbnailer()


@pytest.fixture()
def app(storage):
    app = create_app()
    app.dependency_overrides[get_thumbnail_generator] = lambda: NullThumbnailGenerator()
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)

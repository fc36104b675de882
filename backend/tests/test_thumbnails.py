import asyncio
from pathlib import Path

from videoshelf.core.config import settings
from videoshelf.services.thumbnails import (
    FfmpegThumbnailGenerator,
    NullThumbnailGenerator,
    get_thumbnail_generator,
)


class _ProcOk:
    returncode = 0

    async def communicate(self):
        return b"\xff\xd8jpeg\xff\xd9", b""

    async def wait(self):
        return 0


class _ProcFail:
    returncode = 1

    async def communicate(self):
        return b"", b"Invalid data found when processing input"

    async def wait(self):
        return 1


class _ProcHang:
    returncode = None

    def __init__(self):
        self.killed = False

    async def communicate(self):
        await asyncio.sleep(10)
        return b"", b""

    def kill(self):
        self.killed = True

    async def wait(self):
        return -9


def _patch_exec(monkeypatch, proc, calls=None):
    import videoshelf.services.thumbnails as thumbs_mod

    async def _exec(*args, **kwargs):
        if calls is not None:
            calls.append(list(args))
        return proc

    monkeypatch.setattr(thumbs_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(thumbs_mod.asyncio, "create_subprocess_exec", _exec)


def test_ffmpeg_generator_returns_jpeg(monkeypatch):
    calls = []
    _patch_exec(monkeypatch, _ProcOk(), calls)
    gen = FfmpegThumbnailGenerator(seek="00:00:01", width=320)

    out = asyncio.run(gen.generate(Path("/videos/clip.mp4")))

    assert out == b"\xff\xd8jpeg\xff\xd9"
    cmd = calls[0]
    assert cmd[0] == "/usr/bin/ffmpeg"
    assert cmd[cmd.index("-i") + 1] == "/videos/clip.mp4"
    assert cmd[cmd.index("-ss") + 1] == "00:00:01"
    assert cmd[cmd.index("-vframes") + 1] == "1"
    assert cmd[cmd.index("-vf") + 1] == "scale=320:-1"


def test_ffmpeg_generator_unavailable(monkeypatch):
    import videoshelf.services.thumbnails as thumbs_mod

    monkeypatch.setattr(thumbs_mod.shutil, "which", lambda name: None)
    gen = FfmpegThumbnailGenerator()

    assert gen.available() is False
    assert asyncio.run(gen.generate(Path("/videos/clip.mp4"))) is None


def test_ffmpeg_generator_nonzero_exit(monkeypatch):
    _patch_exec(monkeypatch, _ProcFail())

    assert asyncio.run(FfmpegThumbnailGenerator().generate(Path("/videos/clip.mp4"))) is None


def test_ffmpeg_generator_timeout_kills_process(monkeypatch):
    proc = _ProcHang()
    _patch_exec(monkeypatch, proc)
    gen = FfmpegThumbnailGenerator(timeout_seconds=0.05)

    assert asyncio.run(gen.generate(Path("/videos/clip.mp4"))) is None
    assert proc.killed is True


def test_ffmpeg_generator_spawn_error(monkeypatch):
    import videoshelf.services.thumbnails as thumbs_mod

    async def _exec(*args, **kwargs):
        raise PermissionError("not executable")

    monkeypatch.setattr(thumbs_mod.shutil, "which", lambda name: "/usr/bin/ffmpeg")
    monkeypatch.setattr(thumbs_mod.asyncio, "create_subprocess_exec", _exec)

    assert asyncio.run(FfmpegThumbnailGenerator().generate(Path("/videos/clip.mp4"))) is None


def test_get_thumbnail_generator_respects_settings(monkeypatch):
    monkeypatch.setattr(settings, "thumbnails_enabled", False)
    assert isinstance(get_thumbnail_generator(), NullThumbnailGenerator)

    monkeypatch.setattr(settings, "thumbnails_enabled", True)
    monkeypatch.setattr(settings, "ffmpeg_path", "/opt/ffmpeg/bin/ffmpeg")
    monkeypatch.setattr(settings, "thumbnail_width", 160)
    gen = get_thumbnail_generator()
    assert isinstance(gen, FfmpegThumbnailGenerator)
    assert gen.ffmpeg_path == "/opt/ffmpeg/bin/ffmpeg"
    assert gen.width == 160

from pathlib import Path

from videoshelf.core.config import Settings


def _clear_storage_env(monkeypatch):
    for name in ("STORAGE_ROOT", "VIDEOS_DIR", "THUMBNAILS_DIR", "VERCEL"):
        monkeypatch.delenv(name, raising=False)


def test_storage_dirs_default_under_root(monkeypatch):
    _clear_storage_env(monkeypatch)
    monkeypatch.setenv("STORAGE_ROOT", "/srv/media")

    s = Settings(_env_file=None)
    assert Path(s.videos_dir) == Path("/srv/media/videos")
    assert Path(s.thumbnails_dir) == Path("/srv/media/thumbnails")


def test_vercel_uses_tmp(monkeypatch):
    _clear_storage_env(monkeypatch)
    monkeypatch.setenv("VERCEL", "1")

    s = Settings(_env_file=None)
    assert s.vercel is True
    assert Path(s.videos_dir) == Path("/tmp/videos")
    assert Path(s.thumbnails_dir) == Path("/tmp/thumbnails")


def test_explicit_dirs_win(monkeypatch):
    _clear_storage_env(monkeypatch)
    monkeypatch.setenv("VIDEOS_DIR", "/data/v")
    monkeypatch.setenv("THUMBNAILS_DIR", "/data/t")
    monkeypatch.setenv("PORT", "8080")

    s = Settings(_env_file=None)
    assert s.videos_dir == "/data/v"
    assert s.thumbnails_dir == "/data/t"
    assert s.port == 8080

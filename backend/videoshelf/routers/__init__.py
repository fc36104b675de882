from videoshelf.routers import health, media, videos

__all__ = [
    "health",
    "media",
    "videos",
]

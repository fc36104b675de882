import uuid
import time
import json
import logging
from datetime import datetime, timezone
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from videoshelf.core.config import settings
from videoshelf.core.errors import VideoServiceError
from videoshelf.routers import health, media, videos
from videoshelf.services.library import VideoLibrary, get_resolver
from videoshelf.services.thumbnails import get_thumbnail_generator

def create_app() -> FastAPI:
    logging.basicConfig(
        level=str(settings.log_level or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    app = FastAPI(title="videoshelf", version="1.0.0")

    logger = logging.getLogger("videoshelf")

    def _parse_csv(value: str) -> list[str]:
        return [x.strip() for x in str(value or "").split(",") if x.strip()]

    allow_origins = _parse_csv(settings.cors_allow_origins) or ["*"]

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        t0 = time.perf_counter()
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        status_code: int | None = None
        try:
            response = await call_next(request)
            status_code = int(getattr(response, "status_code", 0) or 0)
        except Exception:
            status_code = 500
            raise
        finally:
            try:
                dur_ms = int((time.perf_counter() - t0) * 1000)
                path = getattr(getattr(request, "url", None), "path", "")
                if not path.startswith("/health"):
                    logger.info(
                        json.dumps(
                            {
                                "ts": datetime.now(timezone.utc).isoformat(),
                                "rid": rid,
                                "method": request.method,
                                "path": path,
                                "range": request.headers.get("range"),
                                "status": status_code,
                                "duration_ms": dur_ms,
                            },
                            ensure_ascii=False,
                        )
                    )
            except Exception:
                pass
        response.headers["X-Request-ID"] = rid

        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        # Videos and thumbnails are embedded by pages on other origins.
        response.headers.setdefault("Cross-Origin-Resource-Policy", "cross-origin")
        return response

    def _request_id(request: Request) -> str | None:
        rid = getattr(getattr(request, "state", None), "request_id", None)
        rid = str(rid or "").strip()
        return rid or None

    def _error(request: Request, status_code: int, error_code: str, error_message: str, headers=None):
        payload = {
            "ok": False,
            "error_code": error_code,
            "error_message": error_message,
            "request_id": _request_id(request),
        }
        return JSONResponse(status_code=int(status_code), content=payload, headers=headers)

    @app.exception_handler(VideoServiceError)
    async def video_service_error_handler(request: Request, exc: VideoServiceError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, extra={"rid": _request_id(request)})
        return _error(request, exc.status_code, exc.error_code, exc.message, headers=exc.headers)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        if isinstance(detail, dict):
            error_code = str(detail.get("error_code") or "http_error")
            error_message = str(detail.get("error_message") or detail.get("detail") or "request failed")
        else:
            error_code = "not_found" if int(exc.status_code) == 404 else "http_error"
            error_message = str(detail or "request failed")
        return _error(request, exc.status_code, error_code, error_message, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.errors()[:3], extra={"rid": _request_id(request)})
        return _error(request, 400, "validation_error", "invalid request")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.exception("unhandled exception", extra={"rid": rid})
        return _error(request, 500, "internal_error", "internal server error")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Range", "Content-Type"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
    )

    app.include_router(health.router)
    app.include_router(videos.router)
    app.include_router(media.router)

    @app.on_event("startup")
    async def _startup_tasks() -> None:
        library = VideoLibrary(get_resolver(), get_thumbnail_generator())
        library.ensure_dirs()
        logger.info(
            "storage ready: videos=%s thumbnails=%s thumbnail_generator=%s available=%s",
            settings.videos_dir,
            settings.thumbnails_dir,
            library.thumbnailer.name,
            library.thumbnailer.available(),
        )

    return app

app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("videoshelf.main:app", host=settings.host, port=int(settings.port))

from __future__ import annotations


class VideoServiceError(Exception):
    """Base class for failures that map onto an HTTP status.

    The message is sent to the client as-is, so it must never contain
    filesystem paths or exception text from the OS.
    """

    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str = "request failed", *, headers: dict[str, str] | None = None):
        super().__init__(message)
        self.message = message
        self.headers = headers


class ValidationError(VideoServiceError):
    status_code = 400
    error_code = "validation_error"


class RangeNotSatisfiable(ValidationError):
    status_code = 416
    error_code = "range_not_satisfiable"

    def __init__(self, file_size: int, message: str = "requested range not satisfiable"):
        super().__init__(message, headers={"Content-Range": f"bytes */{int(file_size)}"})
        self.file_size = int(file_size)


class PayloadTooLarge(VideoServiceError):
    status_code = 413
    error_code = "payload_too_large"


class NotFound(VideoServiceError):
    status_code = 404
    error_code = "not_found"


class Conflict(VideoServiceError):
    status_code = 409
    error_code = "conflict"


class InternalError(VideoServiceError):
    status_code = 500
    error_code = "internal_error"

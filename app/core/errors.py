"""Error taxonomy shared by the services and rendered by the API layer."""

from __future__ import annotations

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.code
        super().__init__(self.message)


class InvalidRequest(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_request"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class ProcessingError(AppError):
    """Server-side media processing failure. Carries the tool's stderr for logs."""

    def __init__(self, message: str | None = None, *, stderr: str | None = None):
        super().__init__(message)
        self.stderr = stderr


class ProbeFailed(ProcessingError):
    code = "probe_failed"


class RemuxFailed(ProcessingError):
    code = "remux_failed"


class StorageError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "storage_error"


__all__ = [
    "AppError",
    "InvalidRequest",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "Conflict",
    "ProcessingError",
    "ProbeFailed",
    "RemuxFailed",
    "StorageError",
]

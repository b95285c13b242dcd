from __future__ import annotations

import os
from typing import Any, Collection

from starlette.datastructures import UploadFile

from app.core.errors import InvalidRequest


def require_file(form: Any, field: str) -> UploadFile:
    """Return the uploaded file stored under ``field`` of a parsed multipart form."""
    value = form.get(field) if form is not None else None
    if not isinstance(value, UploadFile):
        raise InvalidRequest(f"multipart field '{field}' must be a file")
    return value


def upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    handle = upload.file
    position = handle.tell()
    handle.seek(0, os.SEEK_END)
    size = handle.tell()
    handle.seek(position)
    return size


def validate_media_type(upload: UploadFile, allowed: Collection[str], message: str) -> str:
    media_type = upload.content_type or ""
    if media_type not in allowed:
        raise InvalidRequest(message)
    return media_type


def validate_size(upload: UploadFile, limit: int, message: str) -> int:
    size = upload_size(upload)
    if size > limit:
        raise InvalidRequest(message)
    return size


__all__ = ["require_file", "upload_size", "validate_media_type", "validate_size"]

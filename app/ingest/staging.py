from __future__ import annotations

import secrets
from pathlib import Path
from typing import Iterable

from fastapi import UploadFile

from app.core.logging import get_logger

CHUNK_SIZE = 1024 * 1024

logger = get_logger(component="staging")


def extension_for(media_type: str) -> str:
    """``video/mp4`` -> ``mp4``; ``image/jpeg`` -> ``jpeg``."""
    _, _, subtype = media_type.partition("/")
    subtype = subtype.split(";", 1)[0].strip()
    if not subtype:
        raise ValueError(f"media type has no subtype: {media_type!r}")
    return subtype


def random_filename(media_type: str) -> str:
    return f"{secrets.token_hex(32)}.{extension_for(media_type)}"


async def stage_upload(upload: UploadFile, directory: Path, filename: str) -> Path:
    """Stream an upload into ``directory/filename`` and return the path."""
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / filename
    await upload.seek(0)
    with target.open("wb") as handle:
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            handle.write(chunk)
    logger.info("upload_staged", path=str(target), size_bytes=target.stat().st_size)
    return target


def remove_staged(paths: Iterable[Path | None]) -> None:
    for path in dict.fromkeys(paths):
        if path is None or not path.exists():
            continue
        try:
            path.unlink(missing_ok=True)
            logger.info("staged_file_removed", path=str(path))
        except OSError as cleanup_error:
            logger.warning("staged_file_cleanup_failed", path=str(path), error=str(cleanup_error))


__all__ = ["CHUNK_SIZE", "extension_for", "random_filename", "stage_upload", "remove_staged"]

from __future__ import annotations

import mimetypes
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path

from app.core.config import Settings

from .staging import random_filename


@dataclass(slots=True, frozen=True)
class Thumbnail:
    data: bytes
    media_type: str


class ThumbnailStore(ABC):
    """Keeps thumbnail bytes addressable by a store-specific key."""

    @abstractmethod
    def save(self, video_id: str, thumbnail: Thumbnail) -> str:
        """Persist ``thumbnail`` and return the key to load it with."""

    @abstractmethod
    def load(self, key: str) -> Thumbnail | None: ...

    @abstractmethod
    def public_path(self, video_id: str, key: str) -> str:
        """URL path (without host) a client fetches the thumbnail from."""


class MemoryThumbnailStore(ThumbnailStore):
    """Process-local LRU map keyed by video id. Entries are lost on restart."""

    def __init__(self, max_entries: int = 1024):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, Thumbnail] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def save(self, video_id: str, thumbnail: Thumbnail) -> str:
        with self._lock:
            self._entries[video_id] = thumbnail
            self._entries.move_to_end(video_id)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        return video_id

    def load(self, key: str) -> Thumbnail | None:
        with self._lock:
            thumbnail = self._entries.get(key)
            if thumbnail is not None:
                self._entries.move_to_end(key)
            return thumbnail

    def public_path(self, video_id: str, key: str) -> str:
        return f"/api/v1/thumbnails/{video_id}"


class DiskThumbnailStore(ThumbnailStore):
    """Writes each upload to ``<root>/<random>.<ext>``; files are served under ``/assets``."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, video_id: str, thumbnail: Thumbnail) -> str:
        filename = random_filename(thumbnail.media_type)
        (self.root / filename).write_bytes(thumbnail.data)
        return filename

    def load(self, key: str) -> Thumbnail | None:
        path = self.root / Path(key).name
        if not path.is_file():
            return None
        media_type, _ = mimetypes.guess_type(path.name)
        return Thumbnail(data=path.read_bytes(), media_type=media_type or "application/octet-stream")

    def public_path(self, video_id: str, key: str) -> str:
        return f"/assets/{key}"


def get_thumbnail_store(settings: Settings) -> ThumbnailStore:
    if settings.thumbnail_store == "memory":
        return MemoryThumbnailStore(max_entries=settings.thumbnail_cache_max_entries)
    if settings.thumbnail_store == "disk":
        return DiskThumbnailStore(root=settings.thumbnail_dir)
    raise ValueError(f"Unsupported thumbnail store: {settings.thumbnail_store}")


__all__ = [
    "Thumbnail",
    "ThumbnailStore",
    "MemoryThumbnailStore",
    "DiskThumbnailStore",
    "get_thumbnail_store",
]

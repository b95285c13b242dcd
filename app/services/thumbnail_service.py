from __future__ import annotations

from starlette.datastructures import UploadFile

from app.core.errors import InvalidRequest, NotFound
from app.core.logging import get_logger
from app.db.models import Video
from app.ingest.thumbnail_store import Thumbnail, ThumbnailStore

from .uploads import validate_media_type, validate_size
from .video_service import VideoService

THUMBNAIL_MEDIA_TYPES = frozenset({"image/png", "image/jpeg"})


class ThumbnailService:
    def __init__(self, videos: VideoService, store: ThumbnailStore):
        self.videos = videos
        self.store = store
        self.settings = videos.settings
        self.logger = get_logger(component="thumbnail_service")

    async def get_thumbnail(self, video_id: str) -> Thumbnail:
        if not video_id:
            raise InvalidRequest("invalid_video_id")
        video = await self.videos.get_video(video_id)
        if video is None:
            raise NotFound("video_not_found")
        thumbnail = self.store.load(video.thumbnail_key) if video.thumbnail_key else None
        if thumbnail is None:
            raise NotFound("thumbnail_not_found")
        return thumbnail

    async def upload_thumbnail(self, *, video_id: str, user_id: str, upload: UploadFile) -> Video:
        if not video_id:
            raise InvalidRequest("invalid_video_id")
        logger = self.logger.bind(video_id=video_id, user_id=user_id)

        media_type = validate_media_type(upload, THUMBNAIL_MEDIA_TYPES, "thumbnail must be a png or jpeg image")
        size = validate_size(upload, self.settings.max_thumbnail_upload_bytes, "file too large")
        video = await self.videos.get_owned_video(video_id, user_id, missing=InvalidRequest)

        await upload.seek(0)
        data = await upload.read()
        key = self.store.save(video_id, Thumbnail(data=data, media_type=media_type))
        logger.info("thumbnail_stored", key=key, size_bytes=size, media_type=media_type)

        video.thumbnail_url = f"{self.settings.public_base_url.rstrip('/')}{self.store.public_path(video_id, key)}"
        video.thumbnail_key = key
        return await self.videos.save_video(video)


__all__ = ["ThumbnailService", "THUMBNAIL_MEDIA_TYPES"]

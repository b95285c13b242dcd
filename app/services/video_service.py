from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Sequence, Type

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from starlette.datastructures import UploadFile

from app.core.config import Settings
from app.core.errors import AppError, Conflict, Forbidden, InvalidRequest, NotFound, ProcessingError, StorageError
from app.core.logging import get_logger
from app.core.storage import ObjectStore
from app.db.models import Video
from app.ingest.faststart import Remuxer, faststart_output_path
from app.ingest.probe import MediaProber
from app.ingest.staging import random_filename, remove_staged, stage_upload

from .uploads import validate_media_type, validate_size

VIDEO_MEDIA_TYPES = frozenset({"video/mp4"})


class VideoService:
    """Video records plus the upload pipeline that fills in ``video_url``."""

    def __init__(
        self,
        settings: Settings,
        session: AsyncSession,
        object_store: ObjectStore,
        prober: MediaProber,
        remuxer: Remuxer,
    ):
        self.settings = settings
        self.session = session
        self.object_store = object_store
        self.prober = prober
        self.remuxer = remuxer
        self.logger = get_logger(component="video_service")

    async def get_video(self, video_id: str) -> Video | None:
        return await self.session.get(Video, video_id)

    async def get_owned_video(
        self,
        video_id: str,
        user_id: str,
        *,
        missing: Type[AppError] = NotFound,
    ) -> Video:
        video = await self.get_video(video_id)
        if video is None:
            raise missing("video_not_found")
        if video.user_id != user_id:
            raise Forbidden("not_video_owner")
        return video

    async def list_videos(self, user_id: str) -> Sequence[Video]:
        stmt = select(Video).where(Video.user_id == user_id).order_by(Video.created_at.desc(), Video.id)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def create_video(self, *, user_id: str, title: str, description: str | None) -> Video:
        video = Video(user_id=user_id, title=title, description=description)
        self.session.add(video)
        await self.session.commit()
        await self.session.refresh(video)
        self.logger.info("video_created", video_id=video.id, user_id=user_id)
        return video

    async def save_video(self, video: Video) -> Video:
        try:
            await self.session.commit()
        except StaleDataError as exc:
            await self.session.rollback()
            raise Conflict("video_modified_concurrently") from exc
        await self.session.refresh(video)
        return video

    async def delete_video(self, video_id: str, user_id: str) -> None:
        video = await self.get_owned_video(video_id, user_id)
        video_key = video.video_key
        await self.session.delete(video)
        try:
            await self.session.commit()
        except StaleDataError as exc:
            await self.session.rollback()
            raise Conflict("video_modified_concurrently") from exc
        self.logger.info("video_deleted", video_id=video_id, user_id=user_id)
        if not video_key:
            return
        # The record is already gone; an orphaned object is only logged.
        try:
            await asyncio.to_thread(self.object_store.delete, video_key)
        except StorageError as exc:
            self.logger.warning("video_object_delete_failed", video_id=video_id, key=video_key, detail=exc.message)

    async def upload_video(self, *, video_id: str, user_id: str, upload: UploadFile) -> Video:
        if not video_id:
            raise InvalidRequest("invalid_video_id")
        logger = self.logger.bind(video_id=video_id, user_id=user_id)
        logger.info("video_upload_started", filename=upload.filename)

        media_type = validate_media_type(upload, VIDEO_MEDIA_TYPES, "only mp4 accepted")
        validate_size(upload, self.settings.max_video_upload_bytes, "file too large")
        video = await self.get_owned_video(video_id, user_id, missing=InvalidRequest)

        filename = random_filename(media_type)
        staged = self.settings.staging_dir / filename
        remuxed: Path | None = None
        try:
            await stage_upload(upload, staged.parent, staged.name)

            orientation = await asyncio.to_thread(self.prober.probe, staged)
            logger.info("video_probed", orientation=orientation)

            remuxed = await asyncio.to_thread(self.remuxer.remux, staged)
            logger.info("video_remuxed", path=str(remuxed))

            key = f"{orientation}/{filename}"
            await asyncio.to_thread(self.object_store.put_file, key, remuxed, content_type=media_type)
            logger.info("video_uploaded", key=key)

            video.video_url = self.object_store.public_url(key)
            video.video_key = key
            video = await self.save_video(video)
        except ProcessingError as exc:
            logger.error("video_processing_failed", error=exc.code, detail=exc.message, stderr=exc.stderr)
            raise
        except StorageError as exc:
            logger.error("video_storage_failed", detail=exc.message)
            raise
        finally:
            # The default remux target is included so a partial ffmpeg output is removed as well.
            await asyncio.to_thread(remove_staged, [staged, faststart_output_path(staged), remuxed])

        logger.info("video_upload_complete", video_url=video.video_url)
        return video


__all__ = ["VideoService", "VIDEO_MEDIA_TYPES"]

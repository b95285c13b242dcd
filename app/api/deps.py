from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.auth import AuthContext, get_auth_context
from app.core.config import Settings, get_settings
from app.core.storage import ObjectStore
from app.ingest.faststart import Remuxer
from app.ingest.probe import MediaProber
from app.ingest.thumbnail_store import ThumbnailStore
from app.services.thumbnail_service import ThumbnailService
from app.services.video_service import VideoService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def get_thumbnail_store(request: Request) -> ThumbnailStore:
    return request.app.state.thumbnail_store


def get_prober(request: Request) -> MediaProber:
    return request.app.state.prober


def get_remuxer(request: Request) -> Remuxer:
    return request.app.state.remuxer


def get_app_settings() -> Settings:
    return get_settings()


async def get_video_service(
    session: AsyncSession = Depends(get_session),
    object_store: ObjectStore = Depends(get_object_store),
    prober: MediaProber = Depends(get_prober),
    remuxer: Remuxer = Depends(get_remuxer),
    settings: Settings = Depends(get_app_settings),
) -> VideoService:
    return VideoService(settings, session, object_store, prober, remuxer)


async def get_thumbnail_service(
    videos: VideoService = Depends(get_video_service),
    store: ThumbnailStore = Depends(get_thumbnail_store),
) -> ThumbnailService:
    return ThumbnailService(videos, store)


VideoServiceDependency = Annotated[VideoService, Depends(get_video_service)]
ThumbnailServiceDependency = Annotated[ThumbnailService, Depends(get_thumbnail_service)]
AuthDependency = Annotated[AuthContext, Depends(get_auth_context)]


__all__ = [
    "get_session",
    "get_object_store",
    "get_thumbnail_store",
    "get_prober",
    "get_remuxer",
    "get_app_settings",
    "get_video_service",
    "get_thumbnail_service",
    "VideoServiceDependency",
    "ThumbnailServiceDependency",
    "AuthDependency",
]

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.v1 import get_api_router
from app.api.v1.schemas import ErrorResponse
from app.core.config import get_settings
from app.core.db import create_engine, create_session_factory
from app.core.errors import AppError, Unauthenticated
from app.core.logging import configure_logging, get_logger, resolve_log_level
from app.core.storage import get_object_store
from app.ingest.faststart import FFmpegRemuxer
from app.ingest.probe import FFprobeProber
from app.ingest.thumbnail_store import get_thumbnail_store

logger = get_logger(component="api")


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.code, detail=exc.message)
    else:
        logger.info("request_rejected", path=request.url.path, error=exc.code, detail=exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    payload = ErrorResponse(error=exc.code, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=payload.model_dump(), headers=headers)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(level=resolve_log_level(settings.log_level))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine(settings)
        settings.staging_dir.mkdir(parents=True, exist_ok=True)
        app.state.settings = settings
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        app.state.object_store = get_object_store(settings)
        app.state.thumbnail_store = get_thumbnail_store(settings)
        app.state.prober = FFprobeProber(binary=settings.ffprobe_binary)
        app.state.remuxer = FFmpegRemuxer(binary=settings.ffmpeg_binary)
        logger.info(
            "app_started",
            environment=settings.environment,
            storage_backend=settings.storage_backend,
            thumbnail_store=settings.thumbnail_store,
        )
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )
    app.add_exception_handler(AppError, handle_app_error)

    app.include_router(get_api_router())
    if settings.thumbnail_store == "disk":
        app.mount("/assets", StaticFiles(directory=settings.thumbnail_dir, check_dir=False), name="assets")
    return app


app = create_app()


__all__ = ["app", "create_app"]

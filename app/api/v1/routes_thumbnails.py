from __future__ import annotations

from fastapi import APIRouter, Request, Response

from app.api import deps
from app.services.uploads import require_file

from . import schemas


router = APIRouter(prefix="/thumbnails", tags=["thumbnails"])


@router.get(
    "/{video_id}",
    response_class=Response,
    responses={404: {"model": schemas.ErrorResponse}},
    summary="Fetch the thumbnail image of a video",
)
async def get_thumbnail(
    video_id: str,
    service: deps.ThumbnailServiceDependency,
    context: deps.AuthDependency,
) -> Response:
    thumbnail = await service.get_thumbnail(video_id)
    return Response(
        content=thumbnail.data,
        media_type=thumbnail.media_type,
        headers={"Cache-Control": "no-store"},
    )


@router.post(
    "/{video_id}",
    response_model=schemas.VideoResponse,
    responses={400: {"model": schemas.ErrorResponse}, 403: {"model": schemas.ErrorResponse}},
    summary="Upload a png or jpeg thumbnail",
)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    service: deps.ThumbnailServiceDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    form = await request.form(max_files=1)
    try:
        upload = require_file(form, "thumbnail")
        video = await service.upload_thumbnail(video_id=video_id, user_id=context.user_id, upload=upload)
    finally:
        await form.close()
    return schemas.VideoResponse.model_validate(video)


__all__ = ["router"]

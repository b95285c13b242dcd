from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from app.api import deps
from app.services.uploads import require_file

from . import schemas


router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("", response_model=schemas.VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: schemas.VideoCreateRequest,
    service: deps.VideoServiceDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    video = await service.create_video(user_id=context.user_id, title=payload.title, description=payload.description)
    return schemas.VideoResponse.model_validate(video)


@router.get("", response_model=list[schemas.VideoResponse])
async def list_videos(service: deps.VideoServiceDependency, context: deps.AuthDependency) -> list[schemas.VideoResponse]:
    videos = await service.list_videos(context.user_id)
    return [schemas.VideoResponse.model_validate(video) for video in videos]


@router.get("/{video_id}", response_model=schemas.VideoResponse)
async def get_video(
    video_id: str,
    service: deps.VideoServiceDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    video = await service.get_owned_video(video_id, context.user_id)
    return schemas.VideoResponse.model_validate(video)


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: str,
    service: deps.VideoServiceDependency,
    context: deps.AuthDependency,
) -> Response:
    await service.delete_video(video_id, context.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{video_id}",
    response_model=schemas.VideoResponse,
    responses={400: {"model": schemas.ErrorResponse}, 403: {"model": schemas.ErrorResponse}},
    summary="Upload the video file for a draft",
)
async def upload_video(
    video_id: str,
    request: Request,
    service: deps.VideoServiceDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    form = await request.form(max_files=1)
    try:
        upload = require_file(form, "video")
        video = await service.upload_video(video_id=video_id, user_id=context.user_id, upload=upload)
    finally:
        await form.close()
    return schemas.VideoResponse.model_validate(video)


__all__ = ["router"]

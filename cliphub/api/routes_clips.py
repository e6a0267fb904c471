from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile, status

from cliphub.api import deps
from cliphub.core.auth import ANONYMOUS
from cliphub.domain import ClipSubmission

from . import schemas


router = APIRouter(prefix="/clips", tags=["clips"], responses={404: {"model": schemas.ErrorResponse}})


@router.get("", response_model=list[schemas.ClipResponse], summary="List all clips")
async def list_clips(service: deps.ClipServiceDependency) -> list[schemas.ClipResponse]:
    clips = await service.list_clips()
    return [schemas.ClipResponse.model_validate(clip) for clip in clips]


@router.post(
    "/upload",
    response_model=schemas.ClipResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a clip",
)
async def upload_clip(
    service: deps.ClipServiceDependency,
    user: deps.SessionUserDependency,
    title: str = Form(default=""),
    description: str = Form(default=""),
    game: str = Form(default=""),
    tags: str = Form(default=""),
    players: str = Form(default=""),
    username: str = Form(default=""),
    videofile: Optional[UploadFile] = File(default=None),
) -> schemas.ClipResponse:
    submission = ClipSubmission(
        title=title,
        description=description,
        game=game,
        tags=tags,
        players=players,
        username=username,
    )
    uploaded_by = None if user.username == ANONYMOUS else user.username
    try:
        clip = await service.submit_clip(submission, videofile, uploaded_by=uploaded_by)
    finally:
        if videofile is not None:
            await videofile.close()
    return schemas.ClipResponse.model_validate(clip)


@router.get("/{playback_id}", response_model=schemas.ClipResponse, summary="Fetch one clip")
async def get_clip(playback_id: str, service: deps.ClipServiceDependency) -> schemas.ClipResponse:
    clip = await service.get_clip(playback_id)
    return schemas.ClipResponse.model_validate(clip)


@router.delete("/{playback_id}", response_model=schemas.DeletedResponse, summary="Delete a clip and its asset")
async def delete_clip(
    playback_id: str,
    service: deps.ClipServiceDependency,
    user: deps.SessionUserDependency,
) -> schemas.DeletedResponse:
    deleted = await service.delete_clip(playback_id)
    return schemas.DeletedResponse(deleted=deleted)


__all__ = ["router"]

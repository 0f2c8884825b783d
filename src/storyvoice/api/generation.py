"""Story generation endpoints: submit, confirm, status and single-line previews."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from storyvoice.models import (
    ConfirmResponse,
    GenerateAcceptedResponse,
    GenerateStoryRequest,
    Job,
    NotFoundStatus,
    PreviewLineRequest,
)
from storyvoice.services.generation import GenerationService

from .dependencies import get_generation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Generation"])


@router.post("/generate", response_model=GenerateAcceptedResponse)
async def generate_story(
    request: GenerateStoryRequest,
    service: GenerationService = Depends(get_generation_service),
) -> GenerateAcceptedResponse:
    """Start writing a script; poll the status endpoint for the preview."""
    return await service.generate_story(request)


@router.post("/generate/preview-line", response_class=FileResponse)
async def preview_line(
    request: PreviewLineRequest,
    service: GenerationService = Depends(get_generation_service),
) -> FileResponse:
    """Voice a single line and stream it back; the file is deleted once sent."""
    path = await service.preview_line(request)
    return FileResponse(
        path,
        media_type="audio/mpeg",
        background=BackgroundTask(_remove, path),
    )


@router.post("/generate/{story_id}/confirm", response_model=ConfirmResponse)
async def confirm_script(
    story_id: str,
    service: GenerationService = Depends(get_generation_service),
) -> ConfirmResponse:
    """Accept the previewed script and start audio production."""
    return await service.confirm_script(story_id)


@router.get(
    "/generate/status/{story_id}",
    response_model=Job | NotFoundStatus,
    response_model_exclude_none=True,
)
@router.get(
    "/status/{story_id}",
    response_model=Job | NotFoundStatus,
    response_model_exclude_none=True,
)
async def get_status(
    story_id: str,
    service: GenerationService = Depends(get_generation_service),
) -> Job | NotFoundStatus:
    return await service.get_job_status(story_id)


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove preview file {path}: {e}")

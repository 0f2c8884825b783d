import logging
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from storyvoice.errors import NotFoundError
from storyvoice.models import VoiceSwapRequest, VoiceSwapResponse
from storyvoice.services.generation import GenerationService

from .dependencies import get_generation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Stories"])


@router.patch(
    "/stories/{story_id}/voice",
    response_model=VoiceSwapResponse,
    response_model_exclude_none=True,
)
async def swap_voice(
    story_id: str,
    request: VoiceSwapRequest,
    service: GenerationService = Depends(get_generation_service),
) -> VoiceSwapResponse:
    """Give one character a new voice, re-voice their lines and remix the story."""
    logger.info(f"Voice swap for {story_id}: {request.character} -> {request.voice_id}")
    return await service.swap_voice(story_id, request.character, request.voice_id)


@router.get("/audio/{story_id}", response_class=FileResponse)
async def get_audio(
    story_id: str,
    service: GenerationService = Depends(get_generation_service),
) -> FileResponse:
    """Serve the final mix of a produced story."""
    path: Path = service.final_audio_path(story_id)
    if not path.is_file():
        raise NotFoundError(f"No audio for story {story_id}")
    return FileResponse(path, media_type="audio/mpeg")

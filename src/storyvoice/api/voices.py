from fastapi import APIRouter, Depends

from storyvoice.infrastructure.voice_directory import VoiceDirectory
from storyvoice.models import VoiceResponse

from .dependencies import get_directory

router = APIRouter(prefix="/api", tags=["Voices"])


@router.get("/voices", response_model=list[VoiceResponse])
async def list_voices(directory: VoiceDirectory = Depends(get_directory)) -> list[VoiceResponse]:
    """Return every voice in the casting directory."""
    return [
        VoiceResponse(
            id=voice.id,
            name=voice.display_name,
            description=voice.description,
            category=voice.category,
        )
        for voice in directory.list_voices()
    ]

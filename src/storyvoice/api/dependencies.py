from fastapi import Request

from storyvoice.infrastructure.voice_directory import VoiceDirectory, get_voice_directory
from storyvoice.services.generation import GenerationService


def get_generation_service(request: Request) -> GenerationService:
    """Return the service wired up in the application lifespan."""
    return request.app.state.generation_service


def get_directory() -> VoiceDirectory:
    return get_voice_directory()

"""TTS provider implementations (ElevenLabs)."""

# Re-export for easier access, e.g. `from storyvoice.infrastructure.tts import ElevenLabsProvider`
from .base import TTSProvider
from .elevenlabs_provider import ElevenLabsProvider

__all__ = [
    "ElevenLabsProvider",
    "TTSProvider",
]

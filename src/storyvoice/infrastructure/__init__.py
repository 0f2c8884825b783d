"""I/O boundary adapters (e.g. TTS APIs, the voice catalog)."""

from .tts import ElevenLabsProvider, TTSProvider
from .voice_directory import VoiceDirectory, VoiceIdentity, get_voice_directory

__all__ = [
    "ElevenLabsProvider",
    "TTSProvider",
    "VoiceDirectory",
    "VoiceIdentity",
    "get_voice_directory",
]

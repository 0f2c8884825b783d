from __future__ import annotations

import logging
import os
from pathlib import Path

import httpx
from dotenv import load_dotenv
from elevenlabs import VoiceSettings as ElevenVoiceSettings
from elevenlabs.client import AsyncElevenLabs
from elevenlabs.core.api_error import ApiError

from storyvoice.errors import ConfigurationError, UpstreamError
from storyvoice.infrastructure.tts.base import TTSProvider
from storyvoice.infrastructure.voice_directory import (
    VoiceDirectory,
    VoiceIdentity,
    get_voice_directory,
)
from storyvoice.models import DEFAULT_VOICE_SETTINGS, VoiceSettings

load_dotenv()
logger = logging.getLogger(__name__)


class ElevenLabsProvider(TTSProvider):
    """TTS provider for the ElevenLabs API (async client)."""

    name: str = "eleven"

    def __init__(
        self,
        api_key: str | None = None,
        model_id: str = "eleven_multilingual_v2",
        timeout: float | None = 120.0,
        directory: VoiceDirectory | None = None,
    ) -> None:
        self.api_key = api_key or os.getenv("ELEVEN_API_KEY") or os.getenv("ELEVEN_LABS_API_KEY")
        self.model_id = model_id
        self.timeout = timeout
        self.directory = directory or get_voice_directory()
        self._client: AsyncElevenLabs | None = None

    @property
    def client(self) -> AsyncElevenLabs:
        # Created lazily so a missing key only fails the request that needs it.
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError(
                    "ElevenLabs API key not found. Set ELEVEN_LABS_API_KEY or pass api_key."
                )
            self._client = AsyncElevenLabs(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def list_voices(self) -> list[VoiceIdentity]:
        """The cast is drawn from the curated directory, not the account's full library."""
        return self.directory.list_voices()

    async def synth(
        self,
        *,
        text: str,
        voice: str,
        out_path: Path,
        settings: VoiceSettings = DEFAULT_VOICE_SETTINGS,
        previous_text: str | None = None,
        next_text: str | None = None,
    ) -> None:
        """Synthesise *text* as MP3 into *out_path*."""
        client = self.client
        try:
            audio_stream = client.text_to_speech.convert(
                voice_id=voice,
                text=text,
                model_id=self.model_id,
                output_format="mp3_44100_128",
                voice_settings=ElevenVoiceSettings(
                    stability=settings.stability,
                    similarity_boost=settings.similarity_boost,
                    style=settings.style,
                    use_speaker_boost=settings.use_speaker_boost,
                ),
                previous_text=previous_text or None,
                next_text=next_text or None,
            )
            with open(out_path, "wb") as f:
                async for chunk in audio_stream:
                    if isinstance(chunk, bytes):
                        f.write(chunk)
        except ApiError as e:
            out_path.unlink(missing_ok=True)
            raise UpstreamError(f"ElevenLabs {e.status_code}: {e.body}") from e
        except httpx.HTTPError as e:
            out_path.unlink(missing_ok=True)
            raise UpstreamError(f"ElevenLabs request failed: {e}") from e
        logger.debug(f"ElevenLabs wrote {out_path} ({len(text)} chars, voice={voice})")

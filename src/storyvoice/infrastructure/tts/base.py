from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from storyvoice.infrastructure.voice_directory import VoiceIdentity
from storyvoice.models import DEFAULT_VOICE_SETTINGS, VoiceSettings


class TTSProvider(ABC):
    """Abstract base class for TTS providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the (unique) short-name for this provider (e.g. 'eleven')."""

    @abstractmethod
    def list_voices(self) -> list[VoiceIdentity]:
        """Return all voices this provider can speak with."""

    @abstractmethod
    async def synth(
        self,
        *,  # force keyword-only args
        text: str,
        voice: str,  # voice ID
        out_path: Path,
        settings: VoiceSettings = DEFAULT_VOICE_SETTINGS,
        previous_text: str | None = None,  # prosody context before the line
        next_text: str | None = None,  # prosody context after the line
    ) -> None:
        """Synthesise *text* to *out_path* using *voice*."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError, CouldntEncodeError

from storyvoice.infrastructure.tts import TTSProvider
from storyvoice.models import DEFAULT_VOICE_SETTINGS, VoiceSettings

logger = logging.getLogger(__name__)

# EBU R128-style target applied to every line so clips sit at the same level.
LOUDNORM_FILTER = "loudnorm=I=-16:TP=-1.5:LRA=11"
PREVIOUS_CONTEXT_LINES = 2


class HasText(Protocol):
    text: str


class HasSpeakerText(HasText, Protocol):
    speaker: str


@dataclass(frozen=True)
class LineContext:
    """Neighbouring text passed to the TTS engine so intonation blends across cuts."""

    previous_text: str | None = None
    next_text: str | None = None


def line_context(lines: Sequence[HasText], index: int) -> LineContext:
    """Context for ``lines[index]`` computed from the complete ordered line list."""
    previous = [line.text for line in lines[max(0, index - PREVIOUS_CONTEXT_LINES) : index]]
    next_text = lines[index + 1].text if index + 1 < len(lines) else None
    return LineContext(previous_text=" ".join(previous) or None, next_text=next_text)


class LineSynthesizer:
    """Voice single lines of dialogue into loudness-normalised clips."""

    def __init__(self, provider: TTSProvider, normalize: bool = True) -> None:
        self.provider = provider
        self.normalize = normalize

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        out_path: Path,
        settings: VoiceSettings = DEFAULT_VOICE_SETTINGS,
        context: LineContext | None = None,
    ) -> Path:
        """Synthesise *text* with *voice_id* into *out_path* and return it."""
        context = context or LineContext()
        out_path = Path(out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)

        if not self.normalize:
            await self.provider.synth(
                text=text,
                voice=voice_id,
                out_path=out_path,
                settings=settings,
                previous_text=context.previous_text,
                next_text=context.next_text,
            )
            return out_path

        raw_path = out_path.with_name(f"{out_path.stem}_raw{out_path.suffix}")
        try:
            await self.provider.synth(
                text=text,
                voice=voice_id,
                out_path=raw_path,
                settings=settings,
                previous_text=context.previous_text,
                next_text=context.next_text,
            )
        except Exception:
            raw_path.unlink(missing_ok=True)
            raise
        await asyncio.to_thread(self._normalize_or_keep_raw, raw_path, out_path)
        return out_path

    def _normalize_or_keep_raw(self, raw_path: Path, out_path: Path) -> None:
        try:
            segment = AudioSegment.from_file(raw_path)
            segment.export(
                out_path,
                format=out_path.suffix.lstrip(".") or "mp3",
                parameters=["-af", LOUDNORM_FILTER],
            )
        except (CouldntDecodeError, CouldntEncodeError, OSError) as e:
            # A voiced line matters more than a levelled one.
            logger.warning(f"Loudness normalisation failed for {out_path.name}, keeping raw audio: {e}")
            os.replace(raw_path, out_path)
            return
        raw_path.unlink(missing_ok=True)

    async def resynthesize_character(
        self,
        lines: Sequence[HasSpeakerText],
        character: str,
        voice_id: str,
        path_for: Callable[[int], Path],
        settings: VoiceSettings = DEFAULT_VOICE_SETTINGS,
    ) -> list[int]:
        """Re-voice only *character*'s lines and return their indices.

        Context for each line still comes from the complete list, so the new clips
        match what a full regeneration would have produced. Files of other
        speakers are never touched.
        """
        regenerated: list[int] = []
        for index, line in enumerate(lines):
            if line.speaker != character:
                continue
            await self.synthesize(
                line.text,
                voice_id,
                path_for(index),
                settings=settings,
                context=line_context(lines, index),
            )
            regenerated.append(index)
        logger.info(f"Re-voiced {len(regenerated)} line(s) of {character} with {voice_id}")
        return regenerated


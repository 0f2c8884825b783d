from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError, CouldntEncodeError

from storyvoice.errors import AudioProcessingError, ValidationError

logger = logging.getLogger(__name__)

SILENCE_MS = 500
FADE_IN_MS = 500


class AudioAssembler:
    """Concatenate per-line clips into one track with gaps and a fade-in."""

    def __init__(self, silence_ms: int = SILENCE_MS, fade_in_ms: int = FADE_IN_MS) -> None:
        self.silence_ms = silence_ms
        self.fade_in_ms = fade_in_ms

    async def combine(self, clip_paths: Sequence[Path], output_path: Path) -> Path:
        """Write the assembled track for *clip_paths* (in order) to *output_path*."""
        if not clip_paths:
            raise ValidationError("No audio clips to combine")
        return await asyncio.to_thread(self._combine, list(clip_paths), Path(output_path))

    def _combine(self, clip_paths: list[Path], output_path: Path) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fmt = output_path.suffix.lstrip(".") or "mp3"

        # Export next to the target and swap in, so a failed mix never leaves a
        # truncated file at output_path.
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_path.stem}_", suffix=output_path.suffix, dir=output_path.parent
        )
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            combined = self._concatenate(clip_paths)
            combined = combined.fade_in(min(self.fade_in_ms, len(combined)))
            combined.export(tmp_path, format=fmt)
            os.replace(tmp_path, output_path)
        except (CouldntDecodeError, CouldntEncodeError, OSError) as e:
            raise AudioProcessingError(f"Combining {len(clip_paths)} clips failed: {e}") from e
        finally:
            tmp_path.unlink(missing_ok=True)

        logger.info(
            f"Combined {len(clip_paths)} clips into {output_path} ({len(combined) / 1000:.1f}s)"
        )
        return output_path

    def _concatenate(self, clip_paths: list[Path]) -> AudioSegment:
        combined: AudioSegment | None = None
        silence: AudioSegment | None = None
        for i, clip_path in enumerate(clip_paths):
            logger.debug(f"Loading clip {i + 1}/{len(clip_paths)}: {clip_path}")
            segment = AudioSegment.from_file(clip_path)
            if combined is None:
                combined = segment
                silence = AudioSegment.silent(
                    duration=self.silence_ms, frame_rate=segment.frame_rate
                )
            else:
                combined += silence
                combined += segment
        return combined

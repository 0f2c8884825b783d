"""
Storyvoice – voiced children's audio stories.

A prompt becomes a structured script, each character is cast with a distinct
voice, every line is synthesised and the clips are mixed into one track.
"""

from .models import (
    Character,
    GenerateStoryRequest,
    Job,
    JobStatus,
    Script,
    VoiceCategory,
)

__all__ = [
    "Character",
    "GenerateStoryRequest",
    "Job",
    "JobStatus",
    "Script",
    "VoiceCategory",
]

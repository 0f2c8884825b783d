"""Building blocks of the generation pipeline (casting, voicing, mixing) live here."""

from .audio_assembler import AudioAssembler
from .line_synthesizer import LineSynthesizer
from .voice_assigner import VoiceAssigner

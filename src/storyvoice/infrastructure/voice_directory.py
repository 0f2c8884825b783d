"""Static catalog of ElevenLabs voice identities grouped by category."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from storyvoice.models import VoiceCategory


@dataclass(frozen=True)
class VoiceIdentity:
    """A pre-recorded voice available for casting."""

    id: str
    display_name: str
    description: str
    category: VoiceCategory


@dataclass(frozen=True)
class TraitRule:
    """Maps a set of personality traits to the voice that fits them."""

    traits: tuple[str, ...]
    voice_id: str

    @classmethod
    def parse(cls, traits: str, voice_id: str) -> TraitRule:
        return cls(tuple(t.strip() for t in traits.split(",") if t.strip()), voice_id)


@dataclass(frozen=True)
class VoiceDirectory:
    """Voices, per-category pools, trait rules and category fallbacks."""

    voices: Mapping[str, VoiceIdentity]
    pools: Mapping[VoiceCategory, tuple[str, ...]]
    trait_rules: Mapping[VoiceCategory, tuple[TraitRule, ...]]
    fallbacks: Mapping[VoiceCategory, VoiceCategory] = field(default_factory=dict)
    narrator_voice_id: str = ""
    default_fallback: VoiceCategory = VoiceCategory.ADULT_MALE

    def get(self, voice_id: str) -> VoiceIdentity | None:
        return self.voices.get(voice_id)

    def pool(self, category: VoiceCategory) -> tuple[str, ...]:
        return self.pools.get(category, ())

    def rules(self, category: VoiceCategory) -> tuple[TraitRule, ...]:
        return self.trait_rules.get(category, ())

    def fallback(self, category: VoiceCategory) -> VoiceCategory:
        """Category to borrow voices from when *category* has an empty pool."""
        return self.fallbacks.get(category, self.default_fallback)

    def list_voices(self) -> list[VoiceIdentity]:
        return list(self.voices.values())


def _voices(entries: Iterable[tuple[str, str, str, VoiceCategory]]) -> dict[str, VoiceIdentity]:
    return {vid: VoiceIdentity(vid, name, desc, cat) for vid, name, desc, cat in entries}


def _rules(entries: Mapping[str, str]) -> tuple[TraitRule, ...]:
    return tuple(TraitRule.parse(traits, voice_id) for traits, voice_id in entries.items())


NARRATOR_VOICE_ID = "GoXyzBapJk3AoCJoMQl9"  # Daniel

_C = VoiceCategory

DEFAULT_DIRECTORY = VoiceDirectory(
    voices=_voices(
        [
            (NARRATOR_VOICE_ID, "Daniel", "neutral, professionell", _C.NARRATOR),
            ("Ewvy14akxdhONg4fmNry", "Finnegan", "neugierig, aufgeweckt, mutig", _C.CHILD_MALE),
            ("LRpNiUBlcqgIsKUzcrlN", "Georg", "lustig, emotional, albern", _C.CHILD_MALE),
            ("8RjxcQ6tY1F2YZiIvWqY", "Jasper", "schüchtern, zurückhaltend", _C.CHILD_MALE),
            ("9sjP3TfMlzEjAa6uXh3A", "Kelly", "fröhlich, lebhaft", _C.CHILD_FEMALE),
            ("xOKkuQfZt5N7XfbFdn9W", "Lucy Fennek", "warm, einfühlsam", _C.CHILD_FEMALE),
            ("VD1if7jDVYtAKs4P0FIY", "Milly Maple", "hell, quirlig", _C.CHILD_FEMALE),
            ("g1jpii0iyvtRs8fqXsd1", "Helmut Epic", "episch, kräftig", _C.ADULT_MALE),
            ("ruSJRhA64v8HAqiqKXVw", "Thomas", "laut, neutral", _C.ADULT_MALE),
            ("Tsns2HvNFKfGiNjllgqo", "Sven", "emotional, nett", _C.ADULT_MALE),
            ("wloRHjPaKZv3ucH7TQOT", "Jorin", "ruhig, freundlich", _C.ADULT_MALE),
            ("dFA3XRddYScy6ylAYTIO", "Helmut", "sanft, märchenhaft", _C.ADULT_MALE),
            ("tqsaTjde7edL1GHtFchL", "Ben Smile", "warmherzig, vertrauenswürdig", _C.ADULT_MALE),
            ("8tJgFGd1nr7H5KLTvjjt", "Captain Comedy", "verrückt, Spaßvogel", _C.ADULT_MALE),
            ("6n4YmXLiuP4C7cZqYOJl", "Finn", "locker, modern, cool", _C.ADULT_MALE),
            ("eWmswbut7I70CIuRsFwP", "Frankie Slim", "gelangweilt, verschmitzt", _C.ADULT_MALE),
            ("UFO0Yv86wqRxAt1DmXUu", "Sarcastic Villain", "sarkastisch, durchtrieben", _C.ADULT_MALE),
            ("h1IssowVS2h4nL5ZbkkK", "The Fox", "streng, dominant", _C.ADULT_MALE),
            ("3t6439mGAsHvQFPpoPdf", "Raya", "warm, natürlich, Mama-Typ", _C.ADULT_FEMALE),
            ("XNYSrtboH10kulPETnVC", "Celestine", "arrogant, hochnäsig", _C.ADULT_FEMALE),
            ("RMDEjuHXo5bcQLkbu6MB", "Janine", "verspielt, expressiv", _C.ADULT_FEMALE),
            ("VNHNa6nN6yJdVF3YRyuF", "Hilde", "liebevolle Oma", _C.ELDER_FEMALE),
        ]
    ),
    pools={
        _C.CHILD_MALE: (
            "Ewvy14akxdhONg4fmNry",  # Finnegan
            "LRpNiUBlcqgIsKUzcrlN",  # Georg
            "8RjxcQ6tY1F2YZiIvWqY",  # Jasper
        ),
        _C.CHILD_FEMALE: (
            "9sjP3TfMlzEjAa6uXh3A",  # Kelly
            "xOKkuQfZt5N7XfbFdn9W",  # Lucy Fennek
            "VD1if7jDVYtAKs4P0FIY",  # Milly Maple
        ),
        _C.ADULT_MALE: (
            "tqsaTjde7edL1GHtFchL",  # Ben Smile
            "dFA3XRddYScy6ylAYTIO",  # Helmut
            "wloRHjPaKZv3ucH7TQOT",  # Jorin
            "8tJgFGd1nr7H5KLTvjjt",  # Captain Comedy
            "6n4YmXLiuP4C7cZqYOJl",  # Finn
            "eWmswbut7I70CIuRsFwP",  # Frankie Slim
            "UFO0Yv86wqRxAt1DmXUu",  # Sarcastic Villain
            "h1IssowVS2h4nL5ZbkkK",  # The Fox
        ),
        _C.ADULT_FEMALE: (
            "3t6439mGAsHvQFPpoPdf",  # Raya
            "XNYSrtboH10kulPETnVC",  # Celestine
        ),
        _C.ELDER_FEMALE: ("VNHNa6nN6yJdVF3YRyuF",),  # Hilde
        _C.ELDER_MALE: (),
        _C.CREATURE: (
            "LRpNiUBlcqgIsKUzcrlN",  # Georg
            "eWmswbut7I70CIuRsFwP",  # Frankie Slim
            "UFO0Yv86wqRxAt1DmXUu",  # Sarcastic Villain
            "8tJgFGd1nr7H5KLTvjjt",  # Captain Comedy
        ),
    },
    trait_rules={
        _C.CHILD_MALE: _rules(
            {
                "mutig,neugierig,aufgeweckt": "Ewvy14akxdhONg4fmNry",
                "lustig,albern,fröhlich": "LRpNiUBlcqgIsKUzcrlN",
                "schüchtern,ruhig,leise": "8RjxcQ6tY1F2YZiIvWqY",
            }
        ),
        _C.CHILD_FEMALE: _rules(
            {
                "fröhlich,lebhaft,mutig": "9sjP3TfMlzEjAa6uXh3A",
                "warm,liebevoll,einfühlsam": "xOKkuQfZt5N7XfbFdn9W",
                "fröhlich,quirlig,lustig": "VD1if7jDVYtAKs4P0FIY",
            }
        ),
        _C.ADULT_MALE: _rules(
            {
                "warm,liebevoll,stolz,fröhlich,episch,kräftig,märchenhaft": "g1jpii0iyvtRs8fqXsd1",
                "laut,neutral": "ruSJRhA64v8HAqiqKXVw",
                "emotional,nett,freundlich,ruhig": "Tsns2HvNFKfGiNjllgqo",
                "vertrauenswürdig,sanft": "wloRHjPaKZv3ucH7TQOT",
                "sanft,liebevoll": "dFA3XRddYScy6ylAYTIO",
                "dominant,streng,autoritär": "tqsaTjde7edL1GHtFchL",
                "verrückt,lustig,albern": "8tJgFGd1nr7H5KLTvjjt",
                "cool,locker,modern": "6n4YmXLiuP4C7cZqYOJl",
                "verschmitzt,gerissen,gelangweilt": "eWmswbut7I70CIuRsFwP",
                "sarkastisch,durchtrieben": "UFO0Yv86wqRxAt1DmXUu",
                "streng,dominant": "h1IssowVS2h4nL5ZbkkK",
            }
        ),
        _C.ADULT_FEMALE: _rules(
            {
                "warm,liebevoll,mütterlich": "3t6439mGAsHvQFPpoPdf",
                "arrogant,hochnäsig,streng": "XNYSrtboH10kulPETnVC",
            }
        ),
        _C.ELDER_FEMALE: _rules({"warm,liebevoll": "VNHNa6nN6yJdVF3YRyuF"}),
        _C.CREATURE: _rules(
            {
                "lustig,freundlich,emotional,albern,liebevoll,warm,fröhlich": "LRpNiUBlcqgIsKUzcrlN",
                "durchtrieben,sarkastisch,böse": "UFO0Yv86wqRxAt1DmXUu",
                "verrückt,chaotisch": "8tJgFGd1nr7H5KLTvjjt",
                "verschmitzt,gerissen,schlau": "eWmswbut7I70CIuRsFwP",
            }
        ),
    },
    fallbacks={
        _C.ELDER_MALE: _C.ADULT_MALE,
        _C.ELDER_FEMALE: _C.ADULT_FEMALE,
    },
    narrator_voice_id=NARRATOR_VOICE_ID,
)


def get_voice_directory() -> VoiceDirectory:
    """Return the catalog loaded at import time."""

    return DEFAULT_DIRECTORY

"""Script post-processing applied before voices are assigned."""

from __future__ import annotations

import logging
import re

from storyvoice.models import NARRATOR_NAME, Character, Script, VoiceCategory

logger = logging.getLogger(__name__)

# Laughter, sighs and sound words. Characters must not "speak" these; the
# narrator may describe them.
ONOMATOPOEIA = (
    r"H[aie]h[aie]h?[aie]?",
    "Buhuhu",
    "Hihihi",
    "Ächz",
    "Seufz",
    "Grr+",
    "Brumm+",
    "Miau",
    "Wuff",
    "Schnurr",
    "Piep",
    "Prust",
    "Uff",
    "Autsch",
    "Hmpf",
    "Pah",
    "Tss",
    "Juhu",
    "Juchhu",
    "Hurra",
    "Wiehern?",
)
ONOMATOPOEIA_PATTERN = re.compile(
    r"\b(?:" + "|".join(ONOMATOPOEIA) + r")\b[.,!?…]*\s*", re.IGNORECASE
)
_LEADING_ELLIPSIS = re.compile(r"^\.\.\.\s*")
_MULTI_SPACE = re.compile(r"\s{2,}")


def strip_onomatopoeia(text: str) -> str:
    """Remove sound words (and the punctuation right after them) from *text*.

    Returns the original text if nothing would be left.
    """
    cleaned = ONOMATOPOEIA_PATTERN.sub("", text)
    cleaned = _LEADING_ELLIPSIS.sub("", cleaned)
    cleaned = _MULTI_SPACE.sub(" ", cleaned).strip()
    return cleaned or text


def narrator_names(script: Script, narrator_name: str = NARRATOR_NAME) -> set[str]:
    """Speakers treated as the narrator: the narrator name plus any narrator-category character."""
    names = {c.name for c in script.characters if c.category is VoiceCategory.NARRATOR}
    names.add(narrator_name)
    return names


def clean_script(script: Script, narrator_name: str = NARRATOR_NAME) -> int:
    """Strip onomatopoeia from every non-narrator line in place; return lines changed."""
    exempt = narrator_names(script, narrator_name)
    changed = 0
    for scene in script.scenes:
        for line in scene.lines:
            if line.speaker in exempt:
                continue
            cleaned = strip_onomatopoeia(line.text)
            if cleaned != line.text:
                logger.info(f'[post-process] {line.speaker}: "{line.text}" -> "{cleaned}"')
                line.text = cleaned
                changed += 1
    return changed


def ensure_narrator(script: Script, narrator_name: str = NARRATOR_NAME) -> bool:
    """Put the narrator at the front of the cast if the script left it out."""
    if any(c.name == narrator_name for c in script.characters):
        return False
    script.characters.insert(
        0, Character(name=narrator_name, category=VoiceCategory.NARRATOR, traits=["neutral"])
    )
    return True


def dedupe_cast(script: Script) -> int:
    """Drop repeated cast entries by name, keeping the first; return how many were dropped."""
    seen: set[str] = set()
    unique: list[Character] = []
    for character in script.characters:
        if character.name in seen:
            logger.warning(f"[post-process] duplicate cast entry dropped: {character.name}")
            continue
        seen.add(character.name)
        unique.append(character)
    dropped = len(script.characters) - len(unique)
    script.characters = unique
    return dropped

from __future__ import annotations

import logging
from collections import defaultdict

from storyvoice.infrastructure.voice_directory import VoiceDirectory, get_voice_directory
from storyvoice.models import NARRATOR_NAME, Character, VoiceCategory

logger = logging.getLogger(__name__)


def traits_overlap(trait: str, rule_trait: str) -> bool:
    """Substring-tolerant trait comparison ("mutig" matches "übermutig" and vice versa)."""
    return trait in rule_trait or rule_trait in trait


class VoiceAssigner:
    """Assigns voices to a story's cast, keeping major characters distinct."""

    def __init__(
        self,
        directory: VoiceDirectory | None = None,
        narrator_name: str = NARRATOR_NAME,
    ) -> None:
        self.directory = directory or get_voice_directory()
        self.narrator_name = narrator_name

    def is_narrator(self, character: Character) -> bool:
        return character.name == self.narrator_name or character.category is VoiceCategory.NARRATOR

    def assign(self, cast: list[Character]) -> dict[str, str]:
        """Return a character-name -> voice-id map for *cast*.

        Each call is an independent pass: the used-voice set and the per-category
        round-robin cursors start empty, so results depend only on the cast and
        the directory.
        """
        voice_map: dict[str, str] = {}
        used: set[str] = set()
        cursors: dict[VoiceCategory, int] = defaultdict(int)

        for character in cast:
            if self.is_narrator(character):
                voice_id = self.directory.narrator_voice_id
            else:
                voice_id = self._match_by_traits(character, used)
                if voice_id is None:
                    voice_id = self._allocate_from_pool(character.category, used, cursors)
            voice_map[character.name] = voice_id
            used.add(voice_id)
            logger.debug("Assigned voice %s to %s", voice_id, character.name)

        return voice_map

    def _match_by_traits(self, character: Character, used: set[str]) -> str | None:
        """Pick the unused rule voice sharing the most traits; first rule wins ties."""
        if not character.traits:
            return None

        best_voice: str | None = None
        best_score = 0
        for rule in self.directory.rules(character.category):
            if rule.voice_id in used:
                continue
            score = sum(
                1
                for trait in character.traits
                if any(traits_overlap(trait, rule_trait) for rule_trait in rule.traits)
            )
            if score > best_score:
                best_score = score
                best_voice = rule.voice_id
        return best_voice

    def _allocate_from_pool(
        self,
        category: VoiceCategory,
        used: set[str],
        cursors: dict[VoiceCategory, int],
    ) -> str:
        pool = self.directory.pool(category)
        if not pool:
            category = self.directory.fallback(category)
            pool = self.directory.pool(category)
        if not pool:
            # Nothing to borrow from either; the narrator voice always exists.
            logger.warning("No voices for category %s, using narrator voice", category.value)
            return self.directory.narrator_voice_id

        start = cursors[category]
        for offset in range(len(pool)):
            idx = (start + offset) % len(pool)
            if pool[idx] not in used:
                cursors[category] = idx + 1
                return pool[idx]

        # Pool exhausted: accept a repeat rather than block generation.
        idx = start % len(pool)
        cursors[category] = idx + 1
        logger.info("Voice pool for %s exhausted, reusing %s", category.value, pool[idx])
        return pool[idx]

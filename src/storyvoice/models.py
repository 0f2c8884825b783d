from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

NARRATOR_NAME = "Erzähler"
MAX_TRAITS = 3


# =============================================================================
# Enumerations
# =============================================================================


class VoiceCategory(str, Enum):
    """Demographic classification that drives voice-pool selection."""

    CHILD_MALE = "child_m"
    CHILD_FEMALE = "child_f"
    ADULT_MALE = "adult_m"
    ADULT_FEMALE = "adult_f"
    ELDER_MALE = "elder_m"
    ELDER_FEMALE = "elder_f"
    CREATURE = "creature"
    NARRATOR = "narrator"


class JobStatus(str, Enum):
    """Generation job states, in forward order."""

    WAITING_FOR_SCRIPT = "waiting_for_script"
    PREVIEW = "preview"
    GENERATING_AUDIO = "generating_audio"
    DONE = "done"
    ERROR = "error"


class StoryStatus(str, Enum):
    """Persisted story record states."""

    DRAFT = "draft"
    PRODUCED = "produced"


class ApiModel(BaseModel):
    """Base model serialised with camelCase keys, accepting snake_case input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Script models
# =============================================================================


class Character(ApiModel):
    """A member of a story's cast."""

    name: str
    category: VoiceCategory = Field(
        VoiceCategory.ADULT_MALE,
        validation_alias=AliasChoices("category", "gender"),
    )
    traits: list[str] = Field(default_factory=list, description="0-3 personality tags")
    emoji: str | None = None
    description: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Any:
        # LLM output occasionally invents categories; treat them as adult male.
        if value is None:
            return VoiceCategory.ADULT_MALE
        if isinstance(value, VoiceCategory):
            return value
        try:
            return VoiceCategory(str(value).strip().lower())
        except ValueError:
            return VoiceCategory.ADULT_MALE

    @field_validator("traits", mode="before")
    @classmethod
    def _normalise_traits(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        traits: list[str] = []
        for trait in value:
            tag = str(trait).strip().lower()
            if tag and tag not in traits:
                traits.append(tag)
        return traits[:MAX_TRAITS]


class ScriptLine(ApiModel):
    speaker: str
    text: str


class ScriptScene(ApiModel):
    lines: list[ScriptLine] = Field(default_factory=list)


class Script(ApiModel):
    """Structured script returned by the script generator."""

    title: str
    summary: str = ""
    characters: list[Character] = Field(default_factory=list)
    scenes: list[ScriptScene] = Field(default_factory=list)

    def all_lines(self) -> list[ScriptLine]:
        """Return every line in scene/line order."""
        return [line for scene in self.scenes for line in scene.lines]


class ScriptDraft(ApiModel):
    """Persisted draft: script plus voice map, enough to resume a preview."""

    version: Literal[1] = 1
    script: Script
    voice_map: dict[str, str]
    prompt: str | None = None
    age_group: str | None = None
    system_prompt: str | None = None


class LineRecord(ApiModel):
    """One persisted, clip-producing line of a produced story."""

    scene_index: int
    line_index: int
    speaker: str
    text: str
    audio_path: str | None = None


# =============================================================================
# Voice models
# =============================================================================


class VoiceSettings(ApiModel):
    """ElevenLabs voice settings."""

    stability: float = 0.35
    similarity_boost: float = 0.75
    style: float = 0.6
    use_speaker_boost: bool = False


DEFAULT_VOICE_SETTINGS = VoiceSettings()
PREVIEW_VOICE_SETTINGS = VoiceSettings(stability=0.5, similarity_boost=0.75, style=1.0)


class VoiceSettingsOverride(ApiModel):
    """Partial voice settings supplied by a caller; unset fields use defaults."""

    stability: float | None = None
    similarity_boost: float | None = None
    style: float | None = None
    use_speaker_boost: bool | None = None

    def merged_with(self, base: VoiceSettings) -> VoiceSettings:
        return base.model_copy(update=self.model_dump(exclude_none=True))


class VoiceResponse(ApiModel):
    id: str
    name: str
    description: str
    category: VoiceCategory


# =============================================================================
# Request / response models
# =============================================================================


class HeroHint(ApiModel):
    name: str
    age: str | None = None


class SideCharacterHint(ApiModel):
    name: str
    role: str


class CharacterHints(ApiModel):
    """Optional cast hints supplied with a generation request."""

    hero: HeroHint | None = None
    side_characters: list[SideCharacterHint] = Field(default_factory=list)


class GenerateStoryRequest(ApiModel):
    prompt: str = ""
    age_group: str | None = None
    characters: CharacterHints | None = None
    story_id: str | None = None


class GenerateAcceptedResponse(ApiModel):
    id: str
    status: Literal["accepted"] = "accepted"


class ConfirmResponse(ApiModel):
    status: Literal["confirmed"] = "confirmed"


class StoryResult(ApiModel):
    """Summary of a finished story attached to a ``done`` job."""

    id: str
    title: str
    summary: str | None = None
    characters: list[Character] = Field(default_factory=list)
    voice_map: dict[str, str] = Field(default_factory=dict)
    audio_url: str
    cover_url: str | None = None


class Job(ApiModel):
    """Transient generation state for one story."""

    id: str
    status: JobStatus
    progress: str | None = None
    title: str | None = None
    script: Script | None = None
    voice_map: dict[str, str] | None = None
    prompt: str | None = None
    age_group: str | None = None
    system_prompt: str | None = Field(None, exclude=True)
    error: str | None = None
    started_at: float | None = None
    completed_at: float | None = None
    story: StoryResult | None = None


class NotFoundStatus(ApiModel):
    status: Literal["not_found"] = "not_found"


class PreviewLineRequest(ApiModel):
    text: str = ""
    voice_id: str = ""
    voice_settings: VoiceSettingsOverride | None = None
    previous_text: str | None = None
    next_text: str | None = None


class VoiceSwapRequest(ApiModel):
    character: str = ""
    voice_id: str = ""


class VoiceSwapResponse(ApiModel):
    status: Literal["ok", "no_lines"]
    character: str | None = None
    voice_id: str | None = None
    lines_regenerated: int | None = None
    message: str | None = None

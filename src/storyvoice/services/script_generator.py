"""Script generation via the OpenAI chat completions API."""

import json
import logging
import os
import re
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError as PydanticValidationError

from storyvoice.errors import ConfigurationError, UpstreamError
from storyvoice.models import NARRATOR_NAME, CharacterHints, Script, VoiceCategory

logger = logging.getLogger(__name__)

TRAIT_VOCABULARY = (
    "mutig, neugierig, schüchtern, lustig, albern, fröhlich, warm, liebevoll, streng, "
    "arrogant, verschmitzt, gerissen, verrückt, cool, ruhig, dominant, sarkastisch, "
    "durchtrieben, sanft, märchenhaft"
)

SYSTEM_PROMPT_TEMPLATE = """Du schreibst Hörspiele für Kinder im Alter von {age_group} Jahren.
Antworte ausschließlich mit einem JSON-Objekt in diesem Format:
{{
  "title": "...",
  "summary": "ein Satz",
  "characters": [{{"name": "...", "category": "...", "traits": ["..."]}}],
  "scenes": [{{"lines": [{{"speaker": "...", "text": "..."}}]}}]
}}

Regeln:
- Der Erzähler heißt immer "{narrator}" und führt durch die Geschichte.
- category ist eine von: {categories}
- traits (1-3 pro Charakter) wähle aus: {traits}
- Jeder speaker muss in characters vorkommen.
- Klangwörter (Lachen, Seufzen, Tiergeräusche) nur im Erzählertext, nie in Figurenrede.
- Happy End ist Pflicht."""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


@dataclass
class GeneratedScript:
    script: Script
    system_prompt: str


def describe_hints(hints: CharacterHints | None) -> str:
    """Render optional cast hints as prompt text."""
    if hints is None:
        return ""
    parts: list[str] = []
    if hints.hero:
        age = f" ({hints.hero.age} Jahre)" if hints.hero.age else ""
        parts.append(f"Held: {hints.hero.name}{age}")
    for side in hints.side_characters:
        parts.append(f"Nebenfigur: {side.name} ({side.role})")
    return "\n".join(parts)


def parse_script(content: str) -> Script:
    """Parse the model's JSON reply, tolerating a markdown code fence."""
    try:
        return Script.model_validate(json.loads(_CODE_FENCE.sub("", content.strip())))
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise UpstreamError(f"Script generator returned an unusable script: {e}") from e


class ScriptGenerator:
    """Writes a structured story script from a prompt."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o",
        timeout: float = 300.0,
        client: AsyncOpenAI | None = None,
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("OpenAI API key not found. Set OPENAI_API_KEY.")
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def build_system_prompt(self, age_group: str) -> str:
        return SYSTEM_PROMPT_TEMPLATE.format(
            age_group=age_group,
            narrator=NARRATOR_NAME,
            categories=", ".join(c.value for c in VoiceCategory if c is not VoiceCategory.NARRATOR),
            traits=TRAIT_VOCABULARY,
        )

    async def generate_script(
        self,
        prompt: str,
        age_group: str,
        character_hints: CharacterHints | None = None,
    ) -> GeneratedScript:
        """Ask the LLM for a script; raises UpstreamError on any API failure."""
        client = self.client
        system_prompt = self.build_system_prompt(age_group)
        user_prompt = f"Schreibe ein Hörspiel basierend auf diesem Prompt:\n\n{prompt}"
        hints = describe_hints(character_hints)
        if hints:
            user_prompt += f"\n\nFiguren:\n{hints}"

        logger.info(f"Requesting script from {self.model} ({len(prompt)} char prompt)")
        try:
            response = await client.chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except openai.APIStatusError as e:
            raise UpstreamError(f"OpenAI {e.status_code}: {e.message}") from e
        except openai.APIError as e:
            raise UpstreamError(f"OpenAI request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise UpstreamError("Script generator returned an empty response")

        script = parse_script(content)
        logger.info(
            f"Script '{script.title}' received: {len(script.characters)} characters, "
            f"{len(script.all_lines())} lines"
        )
        return GeneratedScript(script=script, system_prompt=system_prompt)

"""Best-effort cover art via the OpenAI Images API."""

import asyncio
import base64
import logging
import os
import time
from pathlib import Path

import httpx
from openai import AsyncOpenAI

from storyvoice.models import NARRATOR_NAME, Character

logger = logging.getLogger(__name__)


def build_cover_prompt(title: str, summary: str, characters: list[Character]) -> str:
    cast = [c for c in characters if c.name != NARRATOR_NAME][:4]
    cast_part = ", ".join(
        f"{c.name} ({c.description or c.category.value.replace('_', ' ')})" for c in cast
    )
    return (
        "Watercolor children's storybook illustration. "
        f"Characters: {cast_part or 'a child on an adventure'}. "
        f"Scene: {summary or title}. "
        "Style: warm magical lighting, soft pastel colors, whimsical fairy tale watercolor, "
        "cute rounded character designs, no text, no words, no letters."
    )


class CoverGenerator:
    """Generates a cover image; never raises into the caller."""

    def __init__(
        self,
        covers_dir: Path,
        api_key: str | None = None,
        model: str = "gpt-image-1",
        timeout: float = 180.0,
        client: AsyncOpenAI | None = None,
    ):
        self.covers_dir = Path(covers_dir)
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    async def generate_cover(
        self, title: str, summary: str, characters: list[Character], story_id: str
    ) -> str | None:
        """Return the cover URL, or None if anything goes wrong."""
        if self._client is None and not self.api_key:
            logger.warning("No OPENAI_API_KEY - skipping cover generation")
            return None

        try:
            return await asyncio.wait_for(
                self._generate(title, summary, characters, story_id), timeout=self.timeout
            )
        except Exception as e:
            logger.error(f"Cover generation for {story_id} failed: {e}", exc_info=True)
            return None

    async def _generate(
        self, title: str, summary: str, characters: list[Character], story_id: str
    ) -> str | None:
        response = await self.client.images.generate(
            model=self.model,
            prompt=build_cover_prompt(title, summary, characters),
            size="1024x1024",
            n=1,
        )
        if not response.data:
            logger.warning(f"Image API returned no data for {story_id}")
            return None

        image = response.data[0]
        if image.b64_json:
            content = base64.b64decode(image.b64_json)
        elif image.url:
            async with httpx.AsyncClient(timeout=self.timeout) as http:
                download = await http.get(image.url)
                download.raise_for_status()
                content = download.content
        else:
            return None

        self.covers_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{story_id}.png"
        (self.covers_dir / filename).write_bytes(content)
        cover_url = f"/covers/{filename}?v={int(time.time())}"
        logger.info(f"Cover generated: {cover_url}")
        return cover_url

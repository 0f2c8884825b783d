import asyncio
import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from storyvoice.models import Character
from storyvoice.services.cover_generator import CoverGenerator, build_cover_prompt


def test_cover_prompt_leaves_out_narrator():
    prompt = build_cover_prompt(
        "Titel",
        "Ein Fuchs teilt Beeren.",
        [Character(name="Erzähler"), Character(name="Fuchs", description="schlauer Fuchs")],
    )
    assert "Fuchs (schlauer Fuchs)" in prompt
    assert "Erzähler" not in prompt
    assert "Ein Fuchs teilt Beeren." in prompt


@pytest.mark.asyncio
async def test_cover_written_from_base64(tmp_path):
    client = MagicMock()
    client.images.generate = AsyncMock(
        return_value=SimpleNamespace(
            data=[SimpleNamespace(b64_json=base64.b64encode(b"png-bytes").decode(), url=None)]
        )
    )
    generator = CoverGenerator(tmp_path, api_key="key", client=client)

    url = await generator.generate_cover("Titel", "Zusammenfassung", [], "s1")

    assert url.startswith("/covers/s1.png?v=")
    assert (tmp_path / "s1.png").read_bytes() == b"png-bytes"


@pytest.mark.asyncio
async def test_cover_failure_returns_none(tmp_path):
    client = MagicMock()
    client.images.generate = AsyncMock(side_effect=RuntimeError("boom"))
    generator = CoverGenerator(tmp_path, api_key="key", client=client)

    assert await generator.generate_cover("Titel", "", [], "s1") is None
    assert not (tmp_path / "s1.png").exists()


@pytest.mark.asyncio
async def test_cover_timeout_returns_none(tmp_path):
    async def slow(**kwargs):
        await asyncio.sleep(1)

    client = MagicMock()
    client.images.generate = slow
    generator = CoverGenerator(tmp_path, api_key="key", timeout=0.01, client=client)

    assert await generator.generate_cover("Titel", "", [], "s1") is None


@pytest.mark.asyncio
async def test_no_key_skips_cover(tmp_path, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert await CoverGenerator(tmp_path).generate_cover("Titel", "", [], "s1") is None


@pytest.mark.asyncio
async def test_openai_client_is_built_once(tmp_path, monkeypatch):
    client = MagicMock()
    client.images.generate = AsyncMock(
        return_value=SimpleNamespace(
            data=[SimpleNamespace(b64_json=base64.b64encode(b"png-bytes").decode(), url=None)]
        )
    )
    factory = MagicMock(return_value=client)
    monkeypatch.setattr("storyvoice.services.cover_generator.AsyncOpenAI", factory)
    generator = CoverGenerator(tmp_path, api_key="key", timeout=5.0)

    assert await generator.generate_cover("Titel", "", [], "s1") is not None
    assert await generator.generate_cover("Titel", "", [], "s2") is not None

    factory.assert_called_once_with(api_key="key", timeout=5.0)
    assert client.images.generate.await_count == 2

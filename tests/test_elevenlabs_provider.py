from unittest.mock import MagicMock

import pytest
from elevenlabs.core.api_error import ApiError

from storyvoice.errors import ConfigurationError, UpstreamError
from storyvoice.infrastructure.tts import ElevenLabsProvider
from storyvoice.models import PREVIEW_VOICE_SETTINGS


def _provider_with(convert):
    provider = ElevenLabsProvider(api_key="test-key")
    client = MagicMock()
    client.text_to_speech.convert = convert
    provider._client = client
    return provider


@pytest.mark.asyncio
async def test_synth_streams_chunks_with_context(tmp_path):
    async def chunks():
        yield b"ID3"
        yield b"-audio"

    convert = MagicMock(return_value=chunks())
    provider = _provider_with(convert)
    out = tmp_path / "line_0.mp3"

    await provider.synth(
        text="Hallo",
        voice="voice-a",
        out_path=out,
        settings=PREVIEW_VOICE_SETTINGS,
        previous_text="Vorher.",
        next_text="Nachher.",
    )

    assert out.read_bytes() == b"ID3-audio"
    kwargs = convert.call_args.kwargs
    assert kwargs["voice_id"] == "voice-a"
    assert kwargs["model_id"] == "eleven_multilingual_v2"
    assert kwargs["previous_text"] == "Vorher."
    assert kwargs["next_text"] == "Nachher."
    assert kwargs["voice_settings"].style == 1.0


@pytest.mark.asyncio
async def test_api_error_becomes_upstream_error(tmp_path):
    def convert(**kwargs):
        raise ApiError(status_code=401, body={"detail": "invalid api key"})

    provider = _provider_with(convert)
    out = tmp_path / "line_0.mp3"

    with pytest.raises(UpstreamError, match="ElevenLabs 401"):
        await provider.synth(text="Hallo", voice="voice-a", out_path=out)
    assert not out.exists()


@pytest.mark.asyncio
async def test_missing_key_is_configuration_error(tmp_path, monkeypatch):
    monkeypatch.delenv("ELEVEN_API_KEY", raising=False)
    monkeypatch.delenv("ELEVEN_LABS_API_KEY", raising=False)
    provider = ElevenLabsProvider(api_key=None)

    with pytest.raises(ConfigurationError):
        await provider.synth(text="Hallo", voice="voice-a", out_path=tmp_path / "x.mp3")


def test_list_voices_comes_from_directory():
    voices = ElevenLabsProvider(api_key="k").list_voices()
    assert any(v.display_name == "Daniel" for v in voices)

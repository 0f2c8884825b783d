import pytest
from pydub import AudioSegment
from pydub.generators import Sine

from storyvoice.errors import AudioProcessingError, ValidationError
from storyvoice.services.audio_assembler import AudioAssembler


def _write_clip(path, duration_ms=300, frequency=440):
    Sine(frequency).to_audio_segment(duration=duration_ms).export(path, format="wav")
    return path


@pytest.mark.asyncio
async def test_combine_inserts_silence_between_clips(tmp_path):
    clips = [_write_clip(tmp_path / f"line_{i}.wav", 300, 440 + 110 * i) for i in range(3)]
    output = tmp_path / "story.wav"

    await AudioAssembler().combine(clips, output)

    result = AudioSegment.from_file(output, format="wav")
    # 3 x 300ms of speech plus two 500ms gaps, no leading or trailing gap
    assert abs(len(result) - 1900) <= 5
    assert result[-50:].rms > 0


@pytest.mark.asyncio
async def test_combine_fades_in(tmp_path):
    clip = _write_clip(tmp_path / "line_0.wav", 1000)
    output = tmp_path / "story.wav"

    await AudioAssembler().combine([clip], output)

    result = AudioSegment.from_file(output, format="wav")
    original = AudioSegment.from_file(clip, format="wav")
    assert result[:20].rms < original[:20].rms
    assert abs(result[800:900].rms - original[800:900].rms) <= 1


@pytest.mark.asyncio
async def test_combine_single_clip_has_no_gap(tmp_path):
    clip = _write_clip(tmp_path / "line_0.wav", 400)
    output = tmp_path / "story.wav"

    await AudioAssembler().combine([clip], output)

    assert abs(len(AudioSegment.from_file(output, format="wav")) - 400) <= 5


@pytest.mark.asyncio
async def test_combine_rejects_empty_clip_list(tmp_path):
    with pytest.raises(ValidationError):
        await AudioAssembler().combine([], tmp_path / "story.wav")


@pytest.mark.asyncio
async def test_failed_combine_leaves_existing_output_and_no_temp_files(tmp_path):
    good = _write_clip(tmp_path / "line_0.wav")
    broken = tmp_path / "line_1.wav"
    broken.write_bytes(b"this is not audio")
    output = tmp_path / "out" / "story.wav"
    output.parent.mkdir()
    output.write_bytes(b"previous mix")

    with pytest.raises(AudioProcessingError):
        await AudioAssembler().combine([good, broken], output)

    assert output.read_bytes() == b"previous mix"
    assert sorted(p.name for p in output.parent.iterdir()) == ["story.wav"]

import sys
from pathlib import Path

import pytest
import pytest_asyncio

SRC_DIR = Path(__file__).resolve().parent.parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from storyvoice.database import (  # noqa: E402
    StoryRepository,
    create_all,
    create_engine,
    create_session_factory,
)
from storyvoice.infrastructure.tts import TTSProvider  # noqa: E402
from storyvoice.infrastructure.voice_directory import VoiceIdentity, get_voice_directory  # noqa: E402
from storyvoice.models import (  # noqa: E402
    DEFAULT_VOICE_SETTINGS,
    Character,
    Script,
    ScriptLine,
    ScriptScene,
    VoiceCategory,
    VoiceSettings,
)


class MockTTSProvider(TTSProvider):
    """Mock TTS provider that writes a dummy file and records every call."""

    def __init__(self, fail_on: str | None = None):
        self.calls: list[dict] = []
        self.fail_on = fail_on
        self.before_synth = None

    @property
    def name(self) -> str:
        return "mock"

    def list_voices(self) -> list[VoiceIdentity]:
        return get_voice_directory().list_voices()

    async def synth(
        self,
        *,
        text: str,
        voice: str,
        out_path: Path,
        settings: VoiceSettings = DEFAULT_VOICE_SETTINGS,
        previous_text: str | None = None,
        next_text: str | None = None,
    ) -> None:
        if self.before_synth is not None:
            self.before_synth(text)
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError(f"TTS failed for: {text}")
        self.calls.append(
            {
                "text": text,
                "voice": voice,
                "out_path": out_path,
                "settings": settings,
                "previous_text": previous_text,
                "next_text": next_text,
            }
        )
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(f"Mock audio for voice {voice}: {text[:50]}")


def make_fox_script() -> Script:
    """A small script without a narrator entry in the cast."""
    return Script(
        title="Der Fuchs lernt teilen",
        summary="Ein Fuchs lernt, seine Beeren zu teilen.",
        characters=[
            Character(name="Fuchs", category=VoiceCategory.ADULT_MALE, traits=["verschmitzt"]),
            Character(name="Hase", category=VoiceCategory.CHILD_FEMALE, traits=["fröhlich"]),
        ],
        scenes=[
            ScriptScene(
                lines=[
                    ScriptLine(speaker="Erzähler", text="Im Wald lebte ein Fuchs."),
                    ScriptLine(speaker="Fuchs", text="Haha, die Beeren gehören mir!"),
                ]
            ),
            ScriptScene(
                lines=[
                    ScriptLine(speaker="Hase", text="Wollen wir sie teilen?"),
                    ScriptLine(speaker="Fuchs", text="Na gut, wir teilen."),
                    ScriptLine(speaker="Erzähler", text="Und so wurden sie Freunde."),
                ]
            ),
        ],
    )


@pytest.fixture
def mock_provider():
    return MockTTSProvider()


@pytest.fixture
def fox_script():
    return make_fox_script()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'storyvoice-test.db'}")
    await create_all(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def repository(session_factory):
    return StoryRepository(session_factory)

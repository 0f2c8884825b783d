import logging
from collections.abc import Mapping
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    delete,
    select,
    update,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

from storyvoice.models import LineRecord, ScriptDraft, StoryStatus

Base = declarative_base()
logger = logging.getLogger(__name__)


class Story(Base):
    """A story: draft script data until audio is produced, then the full record."""

    __tablename__ = "stories"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    status: Mapped[StoryStatus] = mapped_column(
        Enum(StoryStatus), nullable=False, default=StoryStatus.DRAFT, index=True
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    age: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Versioned ScriptDraft payload (script + voice map)
    script_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    audio_path: Mapped[str | None] = mapped_column(String, nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String, nullable=True)
    system_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    characters = relationship(
        "StoryCharacter", back_populates="story", cascade="all, delete-orphan"
    )
    lines = relationship("StoryLine", back_populates="story", cascade="all, delete-orphan")


class StoryCharacter(Base):
    __tablename__ = "story_characters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    story_id: Mapped[str] = mapped_column(
        String, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    voice_id: Mapped[str | None] = mapped_column(String, nullable=True)

    story = relationship("Story", back_populates="characters")

    __table_args__ = (UniqueConstraint("story_id", "name", name="unique_story_character"),)


class StoryLine(Base):
    __tablename__ = "story_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    story_id: Mapped[str] = mapped_column(
        String, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    scene_idx: Mapped[int] = mapped_column(Integer, nullable=False)
    line_idx: Mapped[int] = mapped_column(Integer, nullable=False)
    speaker: Mapped[str] = mapped_column(String, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    audio_path: Mapped[str | None] = mapped_column(String, nullable=True)

    story = relationship("Story", back_populates="lines")

    __table_args__ = (
        UniqueConstraint("story_id", "scene_idx", "line_idx", name="unique_story_line"),
    )


def _age(age_group: str | None) -> float | None:
    """'5-7' -> 5.0; anything unparsable -> None."""
    if not age_group:
        return None
    try:
        return float(age_group.split("-")[0])
    except ValueError:
        return None


class StoryRepository:
    """Durable storage for drafts and produced stories."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def upsert_draft(self, story_id: str, draft: ScriptDraft) -> None:
        """Create or overwrite the draft record for *story_id*."""
        payload = draft.model_dump(mode="json")
        async with self.session_factory() as session, session.begin():
            story = await session.get(Story, story_id)
            if story is None:
                story = Story(id=story_id, prompt=draft.prompt, age=_age(draft.age_group))
                session.add(story)
            story.status = StoryStatus.DRAFT
            story.title = draft.script.title
            story.summary = draft.script.summary or None
            story.script_data = payload
            story.system_prompt = draft.system_prompt
        logger.info(f"Draft for story {story_id} persisted")

    async def get_draft(self, story_id: str) -> ScriptDraft | None:
        """Return the resumable draft for *story_id*, if the story is still a draft."""
        async with self.session_factory() as session:
            story = await session.get(Story, story_id)
        if story is None or story.status != StoryStatus.DRAFT or not story.script_data:
            return None
        return ScriptDraft.model_validate(story.script_data)

    async def get_story(self, story_id: str) -> Story | None:
        async with self.session_factory() as session:
            return await session.get(Story, story_id)

    async def save_story(
        self,
        story_id: str,
        draft: ScriptDraft,
        audio_path: str,
        line_paths: list[str],
        cover_url: str | None = None,
    ) -> Story:
        """Persist story, characters and lines in one transaction."""
        script = draft.script
        async with self.session_factory() as session, session.begin():
            story = await session.get(Story, story_id)
            if story is None:
                story = Story(id=story_id)
                session.add(story)
            story.status = StoryStatus.PRODUCED
            story.title = script.title
            story.prompt = draft.prompt
            story.summary = script.summary or None
            story.age = _age(draft.age_group)
            story.script_data = draft.model_dump(mode="json")
            story.system_prompt = draft.system_prompt
            story.audio_path = audio_path
            story.cover_url = cover_url

            await session.execute(delete(StoryCharacter).where(StoryCharacter.story_id == story_id))
            await session.execute(delete(StoryLine).where(StoryLine.story_id == story_id))

            names: set[str] = set()
            for character in script.characters:
                if character.name in names:
                    continue
                names.add(character.name)
                session.add(
                    StoryCharacter(
                        story_id=story_id,
                        name=character.name,
                        category=character.category.value,
                        voice_id=draft.voice_map.get(character.name),
                    )
                )

            global_idx = 0
            for scene_idx, scene in enumerate(script.scenes):
                for line_idx, line in enumerate(scene.lines):
                    session.add(
                        StoryLine(
                            story_id=story_id,
                            scene_idx=scene_idx,
                            line_idx=line_idx,
                            speaker=line.speaker,
                            text=line.text,
                            audio_path=line_paths[global_idx],
                        )
                    )
                    global_idx += 1
        logger.info(f"Story {story_id} saved with {global_idx} lines")
        return story

    async def get_lines(self, story_id: str) -> list[LineRecord]:
        """All lines of a produced story in scene/line order."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(StoryLine)
                .where(StoryLine.story_id == story_id)
                .order_by(StoryLine.scene_idx, StoryLine.line_idx)
            )
            rows = result.scalars().all()
        return [
            LineRecord(
                scene_index=row.scene_idx,
                line_index=row.line_idx,
                speaker=row.speaker,
                text=row.text,
                audio_path=row.audio_path,
            )
            for row in rows
        ]

    async def set_character_voice(self, story_id: str, name: str, voice_id: str) -> bool:
        """Update a character's voice; False when the character does not exist."""
        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                update(StoryCharacter)
                .where(StoryCharacter.story_id == story_id, StoryCharacter.name == name)
                .values(voice_id=voice_id)
            )
            if result.rowcount == 0:
                return False

            # Keep the stored voice map in step with the characters table.
            story = await session.get(Story, story_id)
            if story is not None and story.script_data:
                data = dict(story.script_data)
                data["voice_map"] = {**data.get("voice_map", {}), name: voice_id}
                story.script_data = data
        return True

    async def set_line_audio_paths(
        self, story_id: str, paths: Mapping[tuple[int, int], str]
    ) -> None:
        """Record new audio paths keyed by (scene index, line index)."""
        async with self.session_factory() as session, session.begin():
            for (scene_idx, line_idx), audio_path in paths.items():
                await session.execute(
                    update(StoryLine)
                    .where(
                        StoryLine.story_id == story_id,
                        StoryLine.scene_idx == scene_idx,
                        StoryLine.line_idx == line_idx,
                    )
                    .values(audio_path=audio_path)
                )


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(database_url, echo=echo, future=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created (Story, StoryCharacter, StoryLine)")

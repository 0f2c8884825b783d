"""Story generation state machine: script -> preview -> voiced, mixed and persisted story."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any
from uuid import uuid4

from storyvoice.database import StoryRepository
from storyvoice.errors import NotFoundError, ValidationError
from storyvoice.models import (
    DEFAULT_VOICE_SETTINGS,
    NARRATOR_NAME,
    PREVIEW_VOICE_SETTINGS,
    ConfirmResponse,
    GenerateAcceptedResponse,
    GenerateStoryRequest,
    Job,
    JobStatus,
    NotFoundStatus,
    PreviewLineRequest,
    ScriptDraft,
    StoryResult,
    VoiceSettings,
    VoiceSwapResponse,
)
from storyvoice.services.audio_assembler import AudioAssembler
from storyvoice.services.cover_generator import CoverGenerator
from storyvoice.services.job_store import JobStore
from storyvoice.services.line_synthesizer import LineContext, LineSynthesizer, line_context
from storyvoice.services.script_generator import ScriptGenerator
from storyvoice.services.text_cleanup import clean_script, dedupe_cast, ensure_narrator
from storyvoice.services.voice_assigner import VoiceAssigner

logger = logging.getLogger(__name__)

PROGRESS_WRITING_SCRIPT = "Writing script..."
PROGRESS_RECORDING = "Recording voices..."
PROGRESS_MIXING = "Mixing audio..."

# States in which a job is still being worked on by a background task.
IN_FLIGHT = (JobStatus.WAITING_FOR_SCRIPT, JobStatus.GENERATING_AUDIO)


class GenerationService:
    """Drives story generation jobs and the operations on produced stories."""

    def __init__(
        self,
        jobs: JobStore,
        repository: StoryRepository,
        script_generator: ScriptGenerator,
        voice_assigner: VoiceAssigner,
        synthesizer: LineSynthesizer,
        assembler: AudioAssembler,
        cover_generator: CoverGenerator,
        audio_dir: Path,
        default_age_group: str = "5-7",
        voice_settings: VoiceSettings = DEFAULT_VOICE_SETTINGS,
        narrator_name: str = NARRATOR_NAME,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ):
        self.jobs = jobs
        self.repository = repository
        self.script_generator = script_generator
        self.voice_assigner = voice_assigner
        self.synthesizer = synthesizer
        self.assembler = assembler
        self.cover_generator = cover_generator
        self.audio_dir = Path(audio_dir)
        self.default_age_group = default_age_group
        self.voice_settings = voice_settings
        self.narrator_name = narrator_name
        self.id_factory = id_factory
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def line_path(self, story_id: str, index: int) -> Path:
        return self.audio_dir / "lines" / story_id / f"line_{index}.mp3"

    def final_audio_path(self, story_id: str) -> Path:
        return self.audio_dir / f"{story_id}.mp3"

    @staticmethod
    def audio_url(story_id: str) -> str:
        return f"/api/audio/{story_id}"

    # ------------------------------------------------------------------
    # Task supervision
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every background task (including ones they spawn) has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel in-flight work at process shutdown."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _fail(self, story_id: str, error: Exception) -> None:
        previous = self.jobs.get(story_id)
        self.jobs.put(
            Job(
                id=story_id,
                status=JobStatus.ERROR,
                title=previous.title if previous else None,
                error=str(error) or type(error).__name__,
                started_at=previous.started_at if previous else None,
                completed_at=self.jobs.now(),
            )
        )

    def _set_progress(self, story_id: str, progress: str) -> None:
        job = self.jobs.get(story_id)
        if job is not None:
            job.progress = progress

    def _preview_job(self, story_id: str, draft: ScriptDraft) -> Job:
        return Job(
            id=story_id,
            status=JobStatus.PREVIEW,
            title=draft.script.title,
            script=draft.script,
            voice_map=draft.voice_map,
            prompt=draft.prompt,
            age_group=draft.age_group,
            system_prompt=draft.system_prompt,
        )

    # ------------------------------------------------------------------
    # submit -> script received -> preview
    # ------------------------------------------------------------------

    async def generate_story(self, request: GenerateStoryRequest) -> GenerateAcceptedResponse:
        """Accept a generation request and start writing the script in the background."""
        prompt = (request.prompt or "").strip()
        if not prompt:
            raise ValidationError("Prompt is required")

        story_id = request.story_id or self.id_factory()
        existing = self.jobs.get(story_id)
        if existing is not None and existing.status in IN_FLIGHT:
            raise ValidationError(f"Story {story_id} is already being generated")

        age_group = request.age_group or self.default_age_group
        self.jobs.put(
            Job(
                id=story_id,
                status=JobStatus.WAITING_FOR_SCRIPT,
                progress=PROGRESS_WRITING_SCRIPT,
                prompt=prompt,
                age_group=age_group,
                started_at=self.jobs.now(),
            )
        )
        logger.info(f"Story {story_id} accepted (age group {age_group})")
        self._spawn(
            self._generate_script(story_id, prompt, age_group, request), name=f"script-{story_id}"
        )
        return GenerateAcceptedResponse(id=story_id)

    async def _generate_script(
        self, story_id: str, prompt: str, age_group: str, request: GenerateStoryRequest
    ) -> None:
        try:
            generated = await self.script_generator.generate_script(
                prompt, age_group, request.characters
            )
            script = generated.script
            dedupe_cast(script)
            clean_script(script, self.narrator_name)
            ensure_narrator(script, self.narrator_name)
            voice_map = self.voice_assigner.assign(script.characters)

            draft = ScriptDraft(
                script=script,
                voice_map=voice_map,
                prompt=prompt,
                age_group=age_group,
                system_prompt=generated.system_prompt,
            )
            await self.repository.upsert_draft(story_id, draft)

            job = self._preview_job(story_id, draft)
            previous = self.jobs.get(story_id)
            job.started_at = previous.started_at if previous else None
            self.jobs.put(job)
            logger.info(f"Story {story_id} ready for preview: '{script.title}'")
        except Exception as e:
            logger.error(f"Script generation for {story_id} failed: {e!s}", exc_info=True)
            self._fail(story_id, e)

    # ------------------------------------------------------------------
    # confirm -> generating_audio -> done
    # ------------------------------------------------------------------

    async def confirm_script(self, story_id: str) -> ConfirmResponse:
        """Start audio generation for a previewed script.

        Only a ``preview`` job (in memory, or resumed from a persisted draft when
        the job is gone or failed) can be confirmed. The job leaves ``preview``
        before any background work starts, so a second confirm is rejected.
        """
        job = self.jobs.get(story_id)
        if job is not None and job.status is JobStatus.PREVIEW and job.script is not None:
            draft = ScriptDraft(
                script=job.script,
                voice_map=job.voice_map or {},
                prompt=job.prompt,
                age_group=job.age_group,
                system_prompt=job.system_prompt,
            )
        elif job is None or job.status is JobStatus.ERROR:
            draft = await self.repository.get_draft(story_id)
            current = self.jobs.get(story_id)
            if draft is None or (
                current is not None and current.status not in (JobStatus.PREVIEW, JobStatus.ERROR)
            ):
                raise NotFoundError("No script awaiting confirmation")
            logger.info(f"Resuming story {story_id} from persisted draft")
        else:
            raise NotFoundError("No script awaiting confirmation")

        self.jobs.put(
            Job(
                id=story_id,
                status=JobStatus.GENERATING_AUDIO,
                progress=PROGRESS_RECORDING,
                title=draft.script.title,
                started_at=self.jobs.now(),
            )
        )
        self._spawn(self._generate_audio(story_id, draft), name=f"audio-{story_id}")
        return ConfirmResponse()

    async def _generate_audio(self, story_id: str, draft: ScriptDraft) -> None:
        script = draft.script
        cover_task = self._spawn(
            self.cover_generator.generate_cover(
                script.title, script.summary or (draft.prompt or ""), script.characters, story_id
            ),
            name=f"cover-{story_id}",
        )

        try:
            lines = script.all_lines()
            total = len(lines)
            if total == 0:
                raise ValidationError("Script has no lines")

            narrator_voice = self.voice_assigner.directory.narrator_voice_id
            clip_paths: list[Path] = []
            for i, line in enumerate(lines):
                voice = draft.voice_map.get(line.speaker) or narrator_voice
                clip_path = self.line_path(story_id, i)
                await self.synthesizer.synthesize(
                    line.text,
                    voice,
                    clip_path,
                    settings=self.voice_settings,
                    context=line_context(lines, i),
                )
                clip_paths.append(clip_path)
                self._set_progress(story_id, f"Voices: {i + 1}/{total}")

            self._set_progress(story_id, PROGRESS_MIXING)
            final_path = self.final_audio_path(story_id)
            await self.assembler.combine(clip_paths, final_path)

            cover_url = await cover_task
            logger.info(f"Cover for {story_id}: {cover_url or 'none'}")

            await self.repository.save_story(
                story_id,
                draft,
                audio_path=str(final_path),
                line_paths=[str(p) for p in clip_paths],
                cover_url=cover_url,
            )

            previous = self.jobs.get(story_id)
            self.jobs.put(
                Job(
                    id=story_id,
                    status=JobStatus.DONE,
                    title=script.title,
                    started_at=previous.started_at if previous else None,
                    completed_at=self.jobs.now(),
                    story=StoryResult(
                        id=story_id,
                        title=script.title,
                        summary=script.summary or None,
                        characters=script.characters,
                        voice_map=draft.voice_map,
                        audio_url=self.audio_url(story_id),
                        cover_url=cover_url,
                    ),
                )
            )
            logger.info(f"Story {story_id} done ({total} lines)")
        except Exception as e:
            logger.error(f"Audio generation for {story_id} failed: {e!s}", exc_info=True)
            self._fail(story_id, e)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def get_job_status(self, story_id: str) -> Job | NotFoundStatus:
        """In-memory job, else a preview rebuilt from the persisted draft, else not_found."""
        job = self.jobs.get(story_id)
        if job is not None:
            return job

        draft = await self.repository.get_draft(story_id)
        job = self.jobs.get(story_id)
        if job is not None:
            return job
        if draft is not None:
            logger.info(f"Restored preview job for {story_id} from draft")
            job = self._preview_job(story_id, draft)
            job.started_at = self.jobs.now()
            return self.jobs.put(job)
        return NotFoundStatus()

    # ------------------------------------------------------------------
    # Single-line preview and voice swap
    # ------------------------------------------------------------------

    async def preview_line(self, request: PreviewLineRequest) -> Path:
        """Synthesise one line to a temporary file; the caller deletes it after sending."""
        if not request.text or not request.voice_id:
            raise ValidationError("text and voiceId required")

        settings = PREVIEW_VOICE_SETTINGS
        if request.voice_settings is not None:
            settings = request.voice_settings.merged_with(PREVIEW_VOICE_SETTINGS)

        tmp_path = self.audio_dir / f"preview_{uuid4().hex}.mp3"
        try:
            return await self.synthesizer.synthesize(
                request.text,
                request.voice_id,
                tmp_path,
                settings=settings,
                context=LineContext(request.previous_text, request.next_text),
            )
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise

    async def swap_voice(self, story_id: str, character: str, voice_id: str) -> VoiceSwapResponse:
        """Re-voice one character of a produced story and remix the full track."""
        if not character or not voice_id:
            raise ValidationError("character and voiceId required")

        if await self.repository.get_story(story_id) is None:
            raise NotFoundError(f"Story {story_id} not found")
        if self.voice_assigner.directory.get(voice_id) is None:
            raise ValidationError(f"Unknown voice {voice_id}")
        if not await self.repository.set_character_voice(story_id, character, voice_id):
            raise NotFoundError(f"Character {character} not found in story {story_id}")

        lines = await self.repository.get_lines(story_id)
        if not lines:
            return VoiceSwapResponse(status="no_lines", message="No lines in DB to regenerate")

        regenerated = await self.synthesizer.resynthesize_character(
            lines,
            character,
            voice_id,
            path_for=lambda i: self.line_path(story_id, i),
            settings=self.voice_settings,
        )
        await self.repository.set_line_audio_paths(
            story_id,
            {
                (lines[i].scene_index, lines[i].line_index): str(self.line_path(story_id, i))
                for i in regenerated
            },
        )

        segments = [
            path
            for path in (self.line_path(story_id, i) for i in range(len(lines)))
            if path.exists()
        ]
        if segments:
            await self.assembler.combine(segments, self.final_audio_path(story_id))

        return VoiceSwapResponse(
            status="ok",
            character=character,
            voice_id=voice_id,
            lines_regenerated=len(regenerated),
        )

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storyvoice.database import StoryRepository, create_all, create_engine, create_session_factory
from storyvoice.infrastructure.tts import ElevenLabsProvider
from storyvoice.infrastructure.voice_directory import get_voice_directory
from storyvoice.services.audio_assembler import AudioAssembler
from storyvoice.services.cover_generator import CoverGenerator
from storyvoice.services.generation import GenerationService
from storyvoice.services.job_store import JobStore
from storyvoice.services.line_synthesizer import LineSynthesizer
from storyvoice.services.script_generator import ScriptGenerator
from storyvoice.services.voice_assigner import VoiceAssigner

from .errors import register_exception_handlers
from .generation import router as generation_router
from .middleware import LoggingMiddleware
from .settings import Settings, get_settings
from .stories import router as stories_router
from .voices import router as voices_router

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_generation_service(
    settings: Settings, session_factory: async_sessionmaker[AsyncSession]
) -> GenerationService:
    """Wire the generation pipeline from settings."""
    directory = get_voice_directory()
    provider = ElevenLabsProvider(
        api_key=settings.eleven_labs_api_key,
        model_id=settings.tts_model_id,
        timeout=settings.tts_timeout_seconds,
        directory=directory,
    )
    return GenerationService(
        jobs=JobStore(ttl_seconds=settings.job_ttl_seconds),
        repository=StoryRepository(session_factory),
        script_generator=ScriptGenerator(
            api_key=settings.openai_api_key,
            model=settings.script_model,
            timeout=settings.llm_timeout_seconds,
        ),
        voice_assigner=VoiceAssigner(directory),
        synthesizer=LineSynthesizer(provider, normalize=settings.tts_normalize),
        assembler=AudioAssembler(),
        cover_generator=CoverGenerator(
            settings.covers_dir,
            api_key=settings.openai_api_key,
            model=settings.cover_model,
            timeout=settings.cover_timeout_seconds,
        ),
        audio_dir=settings.audio_dir,
        default_age_group=settings.default_age_group,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    engine = create_engine(settings.database_url)
    await create_all(engine)
    logger.info("DB bootstrap complete.")

    service = build_generation_service(settings, create_session_factory(engine))
    app.state.generation_service = service
    sweeper = asyncio.create_task(service.jobs.run_sweeper(settings.job_sweep_interval_seconds))
    try:
        yield
    finally:
        sweeper.cancel()
        await service.shutdown()
        await engine.dispose()
        logger.info("Shutdown complete.")


app = FastAPI(title="Storyvoice API", version="0.1.0", lifespan=lifespan)
app.add_middleware(LoggingMiddleware)

# CORS middleware (allow all for now; adjust in prod)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(generation_router)
app.include_router(stories_router)
app.include_router(voices_router)


@app.get("/api/health", tags=["Utility"])
async def health() -> dict[str, str]:
    """Return basic service health status."""
    return {"status": "ok"}


app.mount("/covers", StaticFiles(directory=settings.covers_dir, check_dir=False), name="covers")

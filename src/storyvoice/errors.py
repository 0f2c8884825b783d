"""Error taxonomy shared by the generation pipeline and the HTTP layer."""


class StoryvoiceError(Exception):
    """Base class for all domain errors."""


class ConfigurationError(StoryvoiceError):
    """A required credential or setting is missing."""


class UpstreamError(StoryvoiceError):
    """An external collaborator (LLM, TTS, image API) returned a failure."""


class NotFoundError(StoryvoiceError):
    """The referenced story, job or character does not exist."""


class ValidationError(StoryvoiceError):
    """Required input is missing or malformed."""


class AudioProcessingError(StoryvoiceError):
    """Decoding, mixing or encoding audio failed."""

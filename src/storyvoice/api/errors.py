"""Translate domain errors into HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storyvoice.errors import (
    AudioProcessingError,
    ConfigurationError,
    NotFoundError,
    StoryvoiceError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[StoryvoiceError], int] = {
    ConfigurationError: 500,
    UpstreamError: 502,
    NotFoundError: 404,
    ValidationError: 400,
    AudioProcessingError: 500,
}


def status_code_for(error: StoryvoiceError) -> int:
    for error_type in type(error).__mro__:
        if error_type in STATUS_CODES:
            return STATUS_CODES[error_type]
    return 500


async def handle_storyvoice_error(request: Request, exc: StoryvoiceError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StoryvoiceError, handle_storyvoice_error)

"""Maps the pipeline error taxonomy onto HTTP responses."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from talentmatch.core.errors import (
    EmbeddingError,
    EmptyInputError,
    EntityNotFound,
    ExtractionError,
    InvariantViolation,
    MissingEmbedding,
    ParseError,
    PipelineError,
    ProviderFatalError,
    ProviderTransientError,
    UnsupportedFormat,
)

logger = logging.getLogger("api.errors")

# Most specific first: the first isinstance match wins
STATUS_BY_ERROR = (
    (EntityNotFound, 404),
    (UnsupportedFormat, 415),
    (MissingEmbedding, 409),
    (EmptyInputError, 422),
    (InvariantViolation, 422),
    (ExtractionError, 422),
    (ProviderTransientError, 503),
    (ProviderFatalError, 502),
    (ParseError, 502),
    (EmbeddingError, 502),
)


def status_for(exc: PipelineError) -> int:
    if isinstance(exc, EmbeddingError) and exc.transient:
        return 503
    for cls, status in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status, content={"detail": exc.message, "error": exc.to_dict()})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PipelineError, pipeline_error_handler)

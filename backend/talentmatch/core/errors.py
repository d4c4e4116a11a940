"""
Error taxonomy for the matching pipeline.

Per-file errors (extraction, parsing, saving) are caught by the batch
orchestrator and reported; MissingEmbedding on a query entity always reaches
the caller.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base exception for the matching pipeline."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class UnsupportedFormat(PipelineError):
    """Declared MIME type is not one of the recognized document formats."""

    def __init__(self, mime_type: Optional[str], **kwargs):
        details = kwargs.pop("details", {})
        details["mime_type"] = mime_type
        super().__init__(f"Unsupported file type: {mime_type}", details=details, **kwargs)
        self.mime_type = mime_type


class ExtractionError(PipelineError):
    """A document parser failed on the input bytes (corrupt or unreadable file)."""


class EmptyInputError(PipelineError):
    """Normalized text is too short to contain a real resume or job."""


class ParseError(PipelineError):
    """Model output could not be decoded into the expected schema."""


class EmbeddingError(PipelineError):
    """Embedding generation failed.

    ``transient`` is True when the underlying provider error is worth one retry.
    """

    def __init__(self, message: str, transient: bool = False, **kwargs):
        super().__init__(message, **kwargs)
        self.transient = transient
        self.details.setdefault("transient", transient)


class MissingEmbedding(PipelineError):
    """The query entity has no stored vector, so no similarity search is possible."""

    def __init__(self, entity_type: str, entity_id: Any, **kwargs):
        super().__init__(
            f"{entity_type.capitalize()} {entity_id} has no embedding. Generate an embedding first.",
            details={"entity_type": entity_type, "entity_id": str(entity_id)},
            **kwargs,
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvariantViolation(PipelineError):
    """A caller handed over data that breaks a persisted-record invariant."""


class EntityNotFound(PipelineError):
    """Referenced candidate, job or match result does not exist."""

    def __init__(self, entity_type: str, entity_id: Any, **kwargs):
        super().__init__(
            f"{entity_type.capitalize()} {entity_id} not found",
            details={"entity_type": entity_type, "entity_id": str(entity_id)},
            **kwargs,
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class ProviderError(PipelineError):
    """Base for failures reported by the language-model provider."""


class ProviderTransientError(ProviderError):
    """Network failure, timeout or throttling. Eligible for one retry by the caller."""


class ProviderFatalError(ProviderError):
    """Authentication, quota or request errors. Never retried."""

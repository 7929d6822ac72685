"""
Error taxonomy for the story pipeline.

Every error records the pipeline stage it ended in, so callers (and logs) can
tell a bad request from a provider outage without parsing messages.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all story pipeline failures."""

    default_stage = "unknown"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage


class ValidationError(PipelineError):
    """Missing or contradictory request fields. Surfaced to HTTP callers as 400."""

    default_stage = "received"


class InvalidReferenceError(PipelineError):
    """The subject reference could not be normalized into a usable image."""

    default_stage = "reference_resolving"


class UnsupportedMediaTypeError(InvalidReferenceError):
    """The uploaded reference is not one of the allowed image types."""


class PayloadTooLargeError(InvalidReferenceError):
    """The uploaded reference exceeds the configured size ceiling."""


class TextGenerationError(PipelineError):
    """Story text could not be produced. Always fatal."""

    default_stage = "text_generating"


class MalformedGenerationError(TextGenerationError):
    """The text model answered, but not with a usable bilingual story."""


class IllustrationError(PipelineError):
    """A single page could not be illustrated. Never fatal to the request."""

    default_stage = "illustrating"

    def __init__(self, message: str, page_index: int, stage: Optional[str] = None):
        super().__init__(message, stage)
        self.page_index = page_index


class UpstreamTimeoutError(PipelineError):
    """An external generation call did not finish within its timeout."""


class GenerationCancelledError(PipelineError):
    """The request deadline elapsed before the story was assembled."""

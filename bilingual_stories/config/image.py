"""
Image generation configuration for the Bilingual Story Generator.

Uses Gemini image generation (Nano Banana) for page illustrations. The subject
reference image is passed as a multimodal part alongside each page's scene.
"""

import base64
import logging
import os

from dotenv import load_dotenv
from google import genai
from google.genai.errors import ClientError, ServerError
from google.genai.types import GenerateContentConfig, Modality
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
)

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Image generation constants
IMAGE_CONSTANTS = {
    "model": "gemini-2.5-flash-image",  # Nano Banana
    "default_mime_type": "image/png",
}

# Provider and network errors that should trigger retry.
# ClientError is only retried for 429 (rate limit), see _is_retryable.
RETRYABLE_EXCEPTIONS = (
    ServerError,
    ConnectionError,
    TimeoutError,
    BrokenPipeError,
    OSError,
)


def get_image_client() -> genai.Client:
    """
    Get the Gemini client for illustration generation.

    Uses GOOGLE_API_KEY from environment.
    """
    api_key = os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise ValueError("GOOGLE_API_KEY not found in environment. Set it in .env file.")

    return genai.Client(api_key=api_key)


def get_image_model() -> str:
    """Get the image model ID (IMAGE_MODEL overrides the default)."""
    return os.getenv("IMAGE_MODEL") or IMAGE_CONSTANTS["model"]


def get_image_config() -> GenerateContentConfig:
    """Get the default config for image generation."""
    return GenerateContentConfig(
        response_modalities=[Modality.TEXT, Modality.IMAGE]
    )


def extract_image_from_response(response) -> tuple[bytes, str]:
    """
    Extract image bytes and MIME type from a Gemini API response.

    Args:
        response: The response from genai.Client.models.generate_content()

    Returns:
        Tuple of (image bytes, MIME type)

    Raises:
        ValueError: If no image found in response (e.g. blocked by safety filters)
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0].content is None:
        raise ValueError("No image found in response")

    for part in candidates[0].content.parts or []:
        if hasattr(part, 'inline_data') and part.inline_data:
            data = part.inline_data.data
            image_bytes = base64.b64decode(data) if isinstance(data, str) else data
            mime_type = getattr(part.inline_data, "mime_type", None)
            if not isinstance(mime_type, str) or not mime_type:
                mime_type = IMAGE_CONSTANTS["default_mime_type"]
            return image_bytes, mime_type

    raise ValueError("No image found in response")


def _is_retryable(exc: BaseException) -> bool:
    """Retry server errors, rate limits, and network errors. Other client errors are final."""
    if isinstance(exc, ClientError):
        return exc.code == 429
    return isinstance(exc, RETRYABLE_EXCEPTIONS)


# Retry decorator for image calls (works for both sync and async functions)
image_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=2, max=10),
    retry=retry_if_exception(_is_retryable),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)

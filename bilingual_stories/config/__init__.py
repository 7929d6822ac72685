"""
Configuration module for the Bilingual Story Generator.

Re-exports all configuration for convenient access.
"""

from .llm import configure_dspy, get_inference_lm, llm_retry, LLM_TIMEOUT
from .story import STORY_CONSTANTS
from .image import (
    IMAGE_CONSTANTS,
    get_image_client,
    get_image_model,
    get_image_config,
    extract_image_from_response,
    image_retry,
)
from .pipeline import PipelineSettings, IllustrationFailureMode

__all__ = [
    # LLM
    "configure_dspy",
    "get_inference_lm",
    "llm_retry",
    "LLM_TIMEOUT",
    # Story
    "STORY_CONSTANTS",
    # Image
    "IMAGE_CONSTANTS",
    "get_image_client",
    "get_image_model",
    "get_image_config",
    "extract_image_from_response",
    "image_retry",
    # Pipeline
    "PipelineSettings",
    "IllustrationFailureMode",
]

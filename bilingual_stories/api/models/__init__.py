"""Pydantic models for API requests and responses."""

from .requests import GenerateStoryRequest
from .responses import (
    GenerateStoryResponse,
    StoryResponse,
    StoryPageResponse,
    ErrorResponse,
    EndpointInfoResponse,
)
from .enums import AgeGroup, ChineseLevel

__all__ = [
    "GenerateStoryRequest",
    "GenerateStoryResponse",
    "StoryResponse",
    "StoryPageResponse",
    "ErrorResponse",
    "EndpointInfoResponse",
    "AgeGroup",
    "ChineseLevel",
]

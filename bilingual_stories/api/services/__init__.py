"""API service layer."""

from .story_service import StoryService

__all__ = ["StoryService"]

"""FastAPI dependency injection for the story pipeline and service."""

from functools import lru_cache
from typing import Annotated

from dotenv import find_dotenv, load_dotenv
from fastapi import Depends

# Load .env from project root (find_dotenv searches parent directories)
load_dotenv(find_dotenv())

from bilingual_stories.config import PipelineSettings  # noqa: E402
from bilingual_stories.core.programs.story_pipeline import StoryPipeline  # noqa: E402
from .services.story_service import StoryService  # noqa: E402


@lru_cache(maxsize=1)
def get_settings() -> PipelineSettings:
    """Pipeline settings, read once from the environment."""
    return PipelineSettings.from_env()


@lru_cache(maxsize=1)
def get_pipeline() -> StoryPipeline:
    """Shared pipeline instance. Safe to share: it keeps no per-request state."""
    return StoryPipeline(settings=get_settings())


def get_story_service(
    pipeline: Annotated[StoryPipeline, Depends(get_pipeline)]
) -> StoryService:
    """Get a StoryService instance with injected pipeline."""
    return StoryService(pipeline)


# Type alias for cleaner route signatures
Service = Annotated[StoryService, Depends(get_story_service)]

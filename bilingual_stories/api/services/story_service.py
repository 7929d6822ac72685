"""Service layer between the HTTP routes and the story pipeline."""

import time

from bilingual_stories.core.programs.story_pipeline import StoryPipeline
from bilingual_stories.core.types import GenerationRequest, Story

from ..logging import story_logger


class StoryService:
    """Runs one story generation per call and logs its lifecycle."""

    def __init__(self, pipeline: StoryPipeline):
        self.pipeline = pipeline

    async def generate_story(self, request: GenerationRequest) -> Story:
        """
        Generate a story.

        Raises:
            PipelineError: The subclass that ended the run (ValidationError,
                InvalidReferenceError, TextGenerationError, ...)
        """
        start_time = time.time()
        story_logger.generation_started(request.story_id, request.include_images)

        run = await self.pipeline.execute(request)

        for stage, duration in run.stage_durations.items():
            story_logger.stage_completed(request.story_id, stage, duration)

        if run.error is not None:
            story_logger.generation_failed(request.story_id, run.error, stage=run.failed_stage)
            raise run.error

        story = run.story
        for page_index in run.illustration_failures:
            story_logger.illustration_failed(request.story_id, page_index + 1)
        if run.illustration_failures:
            story_logger.illustrations_degraded(
                request.story_id, run.illustration_failures, story.page_count
            )

        story_logger.generation_completed(
            request.story_id,
            time.time() - start_time,
            page_count=story.page_count,
            illustrated_count=story.illustrated_page_count,
        )
        return story

"""
Integration tests for story generation with real API calls.

Run with: pytest tests/integration -v -m slow
"""

import pytest

from bilingual_stories.config import PipelineSettings, configure_dspy
from bilingual_stories.core.modules import BilingualStoryGenerator
from bilingual_stories.core.programs import PipelineState, StoryPipeline
from bilingual_stories.core.types import GenerationRequest


@pytest.mark.requires_llm_api
@pytest.mark.slow
class TestTextGenerationReal:
    """Text generation against the configured LM."""

    def test_generates_bilingual_pages(self):
        configure_dspy()
        generator = BilingualStoryGenerator()

        result = generator(prompt="a brave mouse", age_group="3-5", chinese_level="beginner")

        assert result.story_title
        assert len(result.pages) >= 1
        for page in result.pages:
            assert page.english.strip()
            assert page.chinese.strip()


@pytest.mark.requires_google_api
@pytest.mark.slow
class TestIllustratedStoryReal:
    """End-to-end illustrated story with Gemini for both text and images."""

    @pytest.mark.asyncio
    async def test_every_page_returns_image_or_null(self):
        configure_dspy()
        pipeline = StoryPipeline(settings=PipelineSettings(illustration_concurrency=2))

        run = await pipeline.execute(GenerationRequest(
            prompt="a cat who learns to share",
            age_group="3-5",
            chinese_level="beginner",
            include_images=True,
            subject_reference="https://picsum.photos/id/40/512/512",
        ))

        assert run.state == PipelineState.ASSEMBLED
        for page in run.story.pages:
            assert page.image is None or page.image.startswith("data:image/")

"""Pydantic models for API requests."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bilingual_stories.config.story import STORY_CONSTANTS
from bilingual_stories.core.types import GenerationRequest


class GenerateStoryRequest(BaseModel):
    """Request body for generating a story.

    Required fields are typed optional on purpose: the pipeline reports a
    missing prompt/ageGroup/chineseLevel as a 400 with a readable message.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    prompt: Optional[str] = Field(
        default=None,
        max_length=STORY_CONSTANTS["prompt_max_length"],
        description="What the story should be about",
        examples=["A brave little mouse who goes on an adventure to find magical cheese"],
    )
    age_group: Optional[str] = Field(
        default=None,
        description="Reader age group: 3-5, 6-8, 9-12, or 13+",
        examples=["6-8"],
    )
    chinese_level: Optional[str] = Field(
        default=None,
        description="Chinese proficiency: beginner, intermediate, or advanced",
        examples=["beginner"],
    )
    include_images: bool = Field(
        default=False,
        description="Generate an illustration for every page",
    )
    subject_reference: Optional[str] = Field(
        default=None,
        description="Image URL or base64 image (data URI) of the character to draw; required with includeImages",
    )
    story_id: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Correlation token for logs; derived from the current time when omitted",
    )

    def to_generation_request(self) -> GenerationRequest:
        """Convert to the pipeline's request type."""
        kwargs = {}
        if self.story_id:
            kwargs["story_id"] = self.story_id
        return GenerationRequest(
            prompt=self.prompt,
            age_group=self.age_group,
            chinese_level=self.chinese_level,
            include_images=self.include_images,
            subject_reference=self.subject_reference,
            **kwargs,
        )

"""Pydantic models for API responses."""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from bilingual_stories.core.types import Story


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StoryPageResponse(_CamelModel):
    """A single page: English text, its Chinese translation, optional illustration.

    ``image`` is an http(s) URL, a data: URI, or null. Never a broken path.
    """

    english: str
    chinese: str
    image: Optional[str] = None


class StoryResponse(_CamelModel):
    """The assembled bilingual story."""

    story_title: str
    chinese_title: Optional[str] = None
    story_pages: list[StoryPageResponse]

    @classmethod
    def from_story(cls, story: Story) -> "StoryResponse":
        return cls(
            story_title=story.story_title,
            chinese_title=story.chinese_title,
            story_pages=[
                StoryPageResponse(english=page.english, chinese=page.chinese, image=page.image)
                for page in story.pages
            ],
        )


class GenerateStoryResponse(_CamelModel):
    """Successful generation response."""

    story: StoryResponse
    message: str


class ErrorResponse(BaseModel):
    """Error body for 400 and 500 responses."""

    error: str


class EndpointInfoResponse(_CamelModel):
    """Static description of the generate endpoint."""

    message: str
    endpoint: str
    required_fields: list[str]
    optional_fields: list[str]

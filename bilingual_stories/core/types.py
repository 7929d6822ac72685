"""
Centralized domain types for the Bilingual Story Generator.

All dataclasses that are used across multiple modules are defined here
to make data flow explicit and avoid circular imports. Everything that
crosses a pipeline stage is frozen.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


# =============================================================================
# Request Types
# =============================================================================


class AgeGroup(str, Enum):
    """Target reader age group."""

    TODDLER = "3-5"
    EARLY_READER = "6-8"
    MIDDLE_GRADE = "9-12"
    TEEN = "13+"


class ChineseLevel(str, Enum):
    """Target Chinese proficiency of the reader."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


def _time_derived_story_id() -> str:
    return str(int(time.time() * 1000))


@dataclass(frozen=True)
class GenerationRequest:
    """
    One story generation call.

    Enum fields accept raw strings; they are checked when the pipeline
    receives the request, not here, so a bad request still produces a
    ValidationError instead of a construction failure.
    """

    prompt: Optional[str]
    age_group: Union[AgeGroup, str, None]
    chinese_level: Union[ChineseLevel, str, None]
    include_images: bool = False
    subject_reference: Optional[str] = None
    story_id: str = field(default_factory=_time_derived_story_id)


# =============================================================================
# Reference Types
# =============================================================================


class ReferenceProvenance(str, Enum):
    """Where a resolved subject reference came from."""

    FROM_URL = "from_url"
    FROM_UPLOAD = "from_upload"


@dataclass(frozen=True)
class ReferenceUrl:
    """A subject reference given as a remote image URL."""

    url: str


@dataclass(frozen=True)
class Base64Payload:
    """A subject reference given as base64 image data (data URI or bare)."""

    data: str
    declared_mime_type: Optional[str] = None


ReferenceInput = Union[ReferenceUrl, Base64Payload]


@dataclass(frozen=True)
class ResolvedReference:
    """
    Canonical conditioning payload for the illustrator.

    Exactly one of ``url`` or ``data`` is set.
    """

    provenance: ReferenceProvenance
    mime_type: str
    url: Optional[str] = None
    data: Optional[bytes] = field(default=None, repr=False)

    def __post_init__(self):
        if (self.url is None) == (self.data is None):
            raise ValueError("ResolvedReference needs exactly one of url or data")

    @property
    def size_bytes(self) -> Optional[int]:
        return len(self.data) if self.data is not None else None


# =============================================================================
# Story Structure Types
# =============================================================================


@dataclass(frozen=True)
class PageText:
    """One English/Chinese pair as written by the text model."""

    english: str
    chinese: str


@dataclass(frozen=True)
class GeneratedText:
    """Output of the text generation stage."""

    story_title: str
    chinese_title: Optional[str]
    pages: tuple[PageText, ...]


@dataclass(frozen=True)
class StoryPage:
    """One page unit: an English/Chinese pair plus an optional illustration."""

    english: str
    chinese: str
    image: Optional[str] = None  # http(s) URL or data: URI, never a broken path

    @property
    def has_image(self) -> bool:
        return bool(self.image)

    def to_dict(self) -> dict[str, Any]:
        return {"english": self.english, "chinese": self.chinese, "image": self.image}


@dataclass(frozen=True)
class Story:
    """The assembled bilingual story handed back to the caller."""

    story_title: str
    chinese_title: Optional[str]
    pages: tuple[StoryPage, ...]

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def illustrated_page_count(self) -> int:
        return sum(1 for page in self.pages if page.has_image)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the field names the UI and PDF renderer expect."""
        return {
            "storyTitle": self.story_title,
            "chineseTitle": self.chinese_title,
            "storyPages": [page.to_dict() for page in self.pages],
        }

    def to_formatted_string(self) -> str:
        """Format the story as readable text (used by the CLI)."""
        title = self.story_title
        if self.chinese_title:
            title = f"{title} / {self.chinese_title}"
        lines = [f"# {title}", ""]
        for number, page in enumerate(self.pages, start=1):
            lines.append(f"## Page {number}")
            lines.append("")
            lines.append(page.english)
            lines.append("")
            lines.append(page.chinese)
            if page.image and not page.image.startswith("data:"):
                lines.append("")
                lines.append(f"![Page {number}]({page.image})")
            lines.append("")
        return "\n".join(lines)


@dataclass(frozen=True)
class PageIllustration:
    """Outcome of one page's illustration call."""

    page_index: int
    image: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.image is not None and self.error is None

"""
DSPy Module for generating the bilingual story text.

One LLM call writes the whole story: an English title, a Chinese title, and
numbered pages each holding an English passage and its Chinese translation.
The age group and Chinese level are turned into prompt guidance here; the
model does the writing, this module only builds the policy and checks the
shape of what comes back.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

import dspy

from bilingual_stories.config.story import (
    AGE_GROUP_GUIDANCE,
    CHINESE_LEVEL_GUIDANCE,
    STORY_CONSTANTS,
)
from ..errors import MalformedGenerationError
from ..signatures.bilingual_story import BilingualStorySignature
from ..types import AgeGroup, ChineseLevel, GeneratedText, PageText

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoryPolicy:
    """Content policy handed to the text model for one age group and level."""

    page_count: int
    age_guidance: str
    chinese_guidance: str


def build_story_policy(
    age_group: Union[AgeGroup, str],
    chinese_level: Union[ChineseLevel, str],
) -> StoryPolicy:
    """Build the (deterministic) writing policy for an age group and Chinese level."""
    age = AgeGroup(age_group)
    level = ChineseLevel(chinese_level)
    age_entry = AGE_GROUP_GUIDANCE[age.value]
    return StoryPolicy(
        page_count=age_entry["page_count"],
        age_guidance=age_entry["guidance"],
        chinese_guidance=CHINESE_LEVEL_GUIDANCE[level.value],
    )


class BilingualStoryGenerator(dspy.Module):
    """
    Generate a bilingual (English/Chinese) story from a prompt.

    Args:
        lm: Optional explicit LM to use. If provided, bypasses global
            dspy.configure() state. Useful for testing and explicit control.
    """

    def __init__(self, lm: Optional[dspy.LM] = None):
        super().__init__()
        self.generate = dspy.ChainOfThought(BilingualStorySignature)
        self._lm = lm

    def forward(
        self,
        prompt: str,
        age_group: Union[AgeGroup, str],
        chinese_level: Union[ChineseLevel, str],
    ) -> GeneratedText:
        """
        Generate the story text.

        Args:
            prompt: What the story should be about
            age_group: Target reader age group
            chinese_level: Target Chinese proficiency

        Returns:
            GeneratedText with titles and at least one complete page

        Raises:
            MalformedGenerationError: If the model output has no usable page
        """
        policy = build_story_policy(age_group, chinese_level)

        if self._lm is not None:
            with dspy.context(lm=self._lm):
                result = self.generate(
                    prompt=prompt,
                    age_guidance=policy.age_guidance,
                    chinese_guidance=policy.chinese_guidance,
                    page_count=policy.page_count,
                )
        else:
            result = self.generate(
                prompt=prompt,
                age_guidance=policy.age_guidance,
                chinese_guidance=policy.chinese_guidance,
                page_count=policy.page_count,
            )

        generated = self._parse_story_output(result.story or "")

        if len(generated.pages) != policy.page_count:
            logger.warning(
                f"Expected {policy.page_count} pages, got {len(generated.pages)}"
            )

        return generated

    def _parse_story_output(self, raw_output: str) -> GeneratedText:
        """
        Parse the raw LLM output into titles and pages.

        Pages missing either language are dropped; pages are ordered by their
        page number.
        """
        # Extract titles (anchored so the CHINESE TITLE line is not taken for the English one)
        title_match = re.search(r'^\s*TITLE:\s*(.+?)\s*$', raw_output, re.IGNORECASE | re.MULTILINE)
        chinese_title_match = re.search(r'CHINESE\s+TITLE:\s*(.+?)\s*$', raw_output, re.IGNORECASE | re.MULTILINE)

        story_title = title_match.group(1).strip() if title_match else ""
        story_title = story_title or STORY_CONSTANTS["default_title"]
        chinese_title = chinese_title_match.group(1).strip() if chinese_title_match else None
        chinese_title = chinese_title or None

        # Split by "Page N:" markers
        numbered_pages = []
        incomplete_pages = []
        parts = re.split(r'(?=^\s*Page\s+\d+\s*:)', raw_output, flags=re.IGNORECASE | re.MULTILINE)

        for part in parts:
            num_match = re.match(r'\s*Page\s+(\d+)\s*:(.*)', part, re.DOTALL | re.IGNORECASE)
            if not num_match:
                continue

            page_number = int(num_match.group(1))
            content = num_match.group(2)

            english = self._extract_field(content, "English")
            chinese = self._extract_field(content, "Chinese")

            if not english or not chinese:
                incomplete_pages.append(page_number)
                continue

            numbered_pages.append((page_number, PageText(english=english, chinese=chinese)))

        if incomplete_pages:
            logger.warning(
                f"Dropped {len(incomplete_pages)} page(s) missing English or Chinese text: {incomplete_pages}"
            )

        if len(numbered_pages) < STORY_CONSTANTS["min_page_count"]:
            raise MalformedGenerationError(
                "Text model returned no page with both English and Chinese text"
            )

        # Stable sort keeps model order for duplicate numbers
        numbered_pages.sort(key=lambda item: item[0])

        return GeneratedText(
            story_title=story_title,
            chinese_title=chinese_title,
            pages=tuple(page for _, page in numbered_pages),
        )

    @staticmethod
    def _extract_field(content: str, label: str) -> str:
        """Extract the text after 'English:' or 'Chinese:' up to the next label."""
        match = re.search(
            rf'\b{label}\s*:\s*(.*?)(?=(?:^|\s)(?:English|Chinese)\s*:|\Z)',
            content,
            re.DOTALL | re.IGNORECASE | re.MULTILINE,
        )
        if not match:
            return ""
        return " ".join(match.group(1).split())

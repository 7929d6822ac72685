"""
Module for generating page illustrations with Gemini image generation.

Every page is drawn from a multimodal prompt: the subject reference image,
an identity-lock instruction, and the page's scene. The reference part and
style anchor are built once per story and the same objects are passed to
every page call, which is what keeps the character looking the same
from page to page (best-effort: the model makes no seed guarantee).

Pages are illustrated concurrently, bounded by a semaphore. A failed page
never affects its siblings.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from google.genai import types

from bilingual_stories.config import (
    extract_image_from_response,
    get_image_client,
    get_image_config,
    get_image_model,
    image_retry,
)
from bilingual_stories.config.pipeline import DEFAULT_ILLUSTRATION_STYLE
from ..errors import IllustrationError, UpstreamTimeoutError
from ..types import PageIllustration, ResolvedReference, StoryPage

logger = logging.getLogger(__name__)

IDENTITY_LOCK = (
    "CHARACTER REFERENCE: This image shows the main character of the story. "
    "Use it as strict visual reference. Keep the exact facial features, proportions, "
    "hair, skin tone, and clothing on every page, drawn in the illustration style below."
)

# Type alias for progress callback: (completed, total)
ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class IllustrationContext:
    """Conditioning shared by every page of one story."""

    reference_part: types.Part
    identity_lock: str
    style_anchor: str
    story_title: str


class PageIllustrator:
    """
    Generate illustrations for story pages from one subject reference.

    Args:
        style: Illustration style anchor shared by every page
        concurrency: Maximum number of image calls in flight per story
        timeout: Seconds allowed per page call (retries included)
    """

    def __init__(
        self,
        style: str = DEFAULT_ILLUSTRATION_STYLE,
        concurrency: int = 4,
        timeout: float = 90.0,
    ):
        self.client = get_image_client()
        self.model = get_image_model()
        self.config = get_image_config()
        self.style = style
        self.concurrency = concurrency
        self.timeout = timeout

    def build_context(self, reference: ResolvedReference, story_title: str) -> IllustrationContext:
        """Build the per-story conditioning once; it is reused for every page."""
        if reference.url is not None:
            reference_part = types.Part.from_uri(file_uri=reference.url, mime_type=reference.mime_type)
        else:
            reference_part = types.Part.from_bytes(data=reference.data, mime_type=reference.mime_type)

        return IllustrationContext(
            reference_part=reference_part,
            identity_lock=IDENTITY_LOCK,
            style_anchor=self.style,
            story_title=story_title,
        )

    def _build_scene_prompt(
        self,
        page: StoryPage,
        page_number: int,
        total_pages: int,
        context: IllustrationContext,
    ) -> str:
        """Build the scene prompt from the page's English text."""
        return f"""{context.style_anchor}, square picture book page illustration.

Story: "{context.story_title}" (page {page_number} of {total_pages}).

Scene: {page.english}

Single cohesive illustration with a clear focal point and space at the bottom for text.
No text or words in the image. Maintain exact character identity from the reference image above."""

    def _build_contents(self, scene_prompt: str, context: IllustrationContext) -> list:
        """Build multimodal contents list for image generation."""
        return [context.reference_part, context.identity_lock, scene_prompt]

    @image_retry
    async def _generate_image(self, contents: list) -> tuple[bytes, str]:
        """Generate image from multimodal contents with retry for transient errors."""
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=self.config,
        )
        return extract_image_from_response(response)

    async def illustrate_page(
        self,
        page: StoryPage,
        page_index: int,
        total_pages: int,
        context: IllustrationContext,
    ) -> PageIllustration:
        """
        Illustrate a single page.

        Never raises for provider problems: any failure is returned as an
        IllustrationError on the outcome. Cancellation still propagates.
        """
        page_number = page_index + 1
        scene_prompt = self._build_scene_prompt(page, page_number, total_pages, context)
        contents = self._build_contents(scene_prompt, context)

        try:
            image_bytes, mime_type = await asyncio.wait_for(
                self._generate_image(contents),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            cause = UpstreamTimeoutError(
                f"Image generation for page {page_number} timed out after {self.timeout:g}s",
                stage="illustrating",
            )
            return self._failed(page_index, cause)
        except Exception as e:
            return self._failed(page_index, e)

        encoded = base64.b64encode(image_bytes).decode("ascii")
        return PageIllustration(page_index=page_index, image=f"data:{mime_type};base64,{encoded}")

    def _failed(self, page_index: int, cause: Exception) -> PageIllustration:
        error = IllustrationError(
            f"Illustration failed for page {page_index + 1}: {cause}",
            page_index=page_index,
        )
        error.__cause__ = cause
        logger.warning(
            str(error),
            extra={"page_number": page_index + 1, "error_type": type(cause).__name__},
        )
        return PageIllustration(page_index=page_index, error=error)

    async def illustrate_story(
        self,
        pages: Sequence[StoryPage],
        reference: ResolvedReference,
        story_title: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[PageIllustration]:
        """
        Illustrate all pages concurrently.

        Args:
            pages: Story pages in narrative order
            reference: Resolved subject reference, shared by every page
            story_title: English story title, part of the shared style anchor
            on_progress: Optional callback(completed, total)

        Returns:
            One PageIllustration per page, in completion order. Callers
            place them by page_index.
        """
        context = self.build_context(reference, story_title)
        total_pages = len(pages)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def illustrate_one(index: int, page: StoryPage) -> PageIllustration:
            async with semaphore:
                return await self.illustrate_page(page, index, total_pages, context)

        tasks = [asyncio.ensure_future(illustrate_one(i, page)) for i, page in enumerate(pages)]
        outcomes: list[PageIllustration] = []

        try:
            for next_done in asyncio.as_completed(tasks):
                outcomes.append(await next_done)
                if on_progress:
                    on_progress(len(outcomes), total_pages)
        finally:
            # Cancel in-flight page calls if we were cancelled mid-way
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        return outcomes

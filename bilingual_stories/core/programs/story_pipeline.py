"""
Story pipeline: turns a GenerationRequest into an assembled Story.

States:

    received -> text_generating -> (reference_resolving ->) illustrating -> assembled
                                   any state -> failed

Text and reference problems are fatal. Illustration problems are recorded per
page and never fail the request. Results from every stage meet at a single
merge point (_assemble), which is the only place a Story is built.

A subject reference is resolved as soon as the request is received (resolution
is pure), so a bad reference fails the run in reference_resolving without
costing a text call. The resolved reference is held until illustrating.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from bilingual_stories.config import PipelineSettings, IllustrationFailureMode, llm_retry
from ..errors import (
    GenerationCancelledError,
    InvalidReferenceError,
    PipelineError,
    TextGenerationError,
    UpstreamTimeoutError,
    ValidationError,
)
from ..modules.page_illustrator import PageIllustrator
from ..modules.reference_resolver import ReferenceResolver
from ..modules.story_text_generator import BilingualStoryGenerator
from ..types import (
    AgeGroup,
    ChineseLevel,
    GeneratedText,
    GenerationRequest,
    PageIllustration,
    ResolvedReference,
    Story,
    StoryPage,
)

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Named states of one pipeline run."""

    RECEIVED = "received"
    TEXT_GENERATING = "text_generating"
    REFERENCE_RESOLVING = "reference_resolving"
    ILLUSTRATING = "illustrating"
    ASSEMBLED = "assembled"
    FAILED = "failed"


@dataclass
class PipelineRun:
    """
    Record of one pipeline execution.

    Exactly one of ``story`` (state ASSEMBLED) or ``error`` (state FAILED)
    is set once the run ends. Holds no reference payload.
    """

    story_id: str
    state: PipelineState = PipelineState.RECEIVED
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.RECEIVED])
    story: Optional[Story] = None
    error: Optional[PipelineError] = None
    illustration_failures: list[int] = field(default_factory=list)
    stage_durations: dict[str, float] = field(default_factory=dict)
    started_at: float = field(default_factory=time.monotonic)
    _stage_started_at: float = field(default_factory=time.monotonic, repr=False)

    @property
    def failed_stage(self) -> Optional[str]:
        return self.error.stage if self.error else None

    def transition(self, state: PipelineState) -> None:
        if self.state in (PipelineState.ASSEMBLED, PipelineState.FAILED):
            raise RuntimeError(f"Run {self.story_id} already ended in state {self.state.value}")
        now = time.monotonic()
        self.stage_durations[self.state.value] = now - self._stage_started_at
        self._stage_started_at = now
        logger.info(
            f"Stage: {self.state.value} -> {state.value}",
            extra={"story_id": self.story_id, "stage": state.value},
        )
        self.state = state
        self.history.append(state)


class StoryPipeline:
    """
    Coordinates text generation, reference resolution and illustration.

    Stateless between requests; safe to share across concurrent requests.

    Args:
        text_generator: Callable (prompt, age_group, chinese_level) -> GeneratedText
        illustrator: PageIllustrator (or compatible); only used when images are requested
        resolver: ReferenceResolver for subject references
        settings: Limits, timeouts and failure policy
    """

    def __init__(
        self,
        text_generator: Optional[BilingualStoryGenerator] = None,
        illustrator: Optional[PageIllustrator] = None,
        resolver: Optional[ReferenceResolver] = None,
        settings: Optional[PipelineSettings] = None,
    ):
        self.settings = settings or PipelineSettings()
        self.text_generator = text_generator or BilingualStoryGenerator()
        self.resolver = resolver or ReferenceResolver(self.settings.max_reference_bytes)
        self._illustrator = illustrator

    @property
    def illustrator(self) -> PageIllustrator:
        """Illustrator, created on first use so text-only stories need no image client."""
        if self._illustrator is None:
            self._illustrator = PageIllustrator(
                style=self.settings.illustration_style,
                concurrency=self.settings.illustration_concurrency,
                timeout=self.settings.image_timeout,
            )
        return self._illustrator

    async def run(self, request: GenerationRequest) -> Story:
        """Generate a story, raising the PipelineError that ended a failed run."""
        run = await self.execute(request)
        if run.error is not None:
            raise run.error
        return run.story

    async def execute(self, request: GenerationRequest) -> PipelineRun:
        """
        Execute the pipeline and return the run record.

        Pipeline failures end the run in FAILED with ``error`` set. An external
        asyncio cancellation propagates after the run is marked FAILED.
        """
        run = PipelineRun(story_id=request.story_id)

        try:
            if self.settings.request_timeout is None:
                run.story = await self._advance(run, request)
            else:
                try:
                    run.story = await asyncio.wait_for(
                        self._advance(run, request),
                        timeout=self.settings.request_timeout,
                    )
                except asyncio.TimeoutError:
                    raise GenerationCancelledError(
                        f"Story generation did not finish within {self.settings.request_timeout:g}s",
                        stage=run.state.value,
                    ) from None
        except PipelineError as e:
            run.error = e
            run.transition(PipelineState.FAILED)
        except asyncio.CancelledError:
            run.error = GenerationCancelledError("Story generation was cancelled", stage=run.state.value)
            run.transition(PipelineState.FAILED)
            raise
        else:
            run.transition(PipelineState.ASSEMBLED)

        return run

    async def _advance(self, run: PipelineRun, request: GenerationRequest) -> Story:
        """Walk the states in order; returns the assembled story."""
        age_group, chinese_level = self._validate(request)

        # Resolution is pure, so a bad reference is rejected before the text call
        reference = None
        if request.include_images:
            try:
                reference = self._resolve_reference(run, request)
            except InvalidReferenceError:
                run.transition(PipelineState.REFERENCE_RESOLVING)
                raise

        run.transition(PipelineState.TEXT_GENERATING)
        text = await self._generate_text(request.prompt.strip(), age_group, chinese_level)

        illustrations: list[PageIllustration] = []
        if reference is not None:
            run.transition(PipelineState.REFERENCE_RESOLVING)
            run.transition(PipelineState.ILLUSTRATING)
            pages = [StoryPage(english=p.english, chinese=p.chinese) for p in text.pages]
            illustrations = await self.illustrator.illustrate_story(
                pages,
                reference,
                story_title=text.story_title,
                on_progress=lambda done, total: logger.info(
                    f"Illustrated {done}/{total} pages",
                    extra={"story_id": run.story_id, "stage": PipelineState.ILLUSTRATING.value},
                ),
            )
            # Reference lives only for the duration of this request
            del reference

        return self._assemble(run, text, illustrations)

    def _resolve_reference(self, run: PipelineRun, request: GenerationRequest) -> ResolvedReference:
        reference = self.resolver.resolve(request.subject_reference)
        size = f", {reference.size_bytes} bytes" if reference.size_bytes is not None else ""
        logger.info(
            f"Subject reference resolved ({reference.provenance.value}, {reference.mime_type}{size})",
            extra={"story_id": run.story_id, "stage": PipelineState.REFERENCE_RESOLVING.value},
        )
        return reference

    def _validate(self, request: GenerationRequest) -> tuple[AgeGroup, ChineseLevel]:
        """Check the request before any external call is made."""
        missing = [
            name
            for name, value in (
                ("prompt", request.prompt.strip() if isinstance(request.prompt, str) else None),
                ("ageGroup", request.age_group),
                ("chineseLevel", request.chinese_level),
            )
            if not value
        ]
        if missing:
            raise ValidationError(
                f"prompt, ageGroup, and chineseLevel are required (missing: {', '.join(missing)})"
            )

        try:
            age_group = AgeGroup(request.age_group)
        except ValueError:
            allowed = ", ".join(a.value for a in AgeGroup)
            raise ValidationError(f"ageGroup must be one of: {allowed}") from None

        try:
            chinese_level = ChineseLevel(request.chinese_level)
        except ValueError:
            allowed = ", ".join(c.value for c in ChineseLevel)
            raise ValidationError(f"chineseLevel must be one of: {allowed}") from None

        if request.include_images and not (request.subject_reference or "").strip():
            raise ValidationError("subjectReference is required when includeImages is true")

        return age_group, chinese_level

    async def _generate_text(
        self,
        prompt: str,
        age_group: AgeGroup,
        chinese_level: ChineseLevel,
    ) -> GeneratedText:
        """Run the (blocking) text generator in a worker thread with a timeout."""

        async def call_generator() -> GeneratedText:
            # Generator errors are wrapped here so only the deadline below reads as a timeout
            try:
                return await asyncio.to_thread(
                    llm_retry(self.text_generator),
                    prompt=prompt,
                    age_group=age_group,
                    chinese_level=chinese_level,
                )
            except TextGenerationError:
                raise
            except Exception as e:
                raise TextGenerationError(f"Text generation failed: {e}") from e

        try:
            return await asyncio.wait_for(call_generator(), timeout=self.settings.text_timeout)
        except asyncio.TimeoutError:
            cause = UpstreamTimeoutError(
                f"Text generation timed out after {self.settings.text_timeout:g}s",
                stage=PipelineState.TEXT_GENERATING.value,
            )
            raise TextGenerationError(str(cause)) from cause

    def _assemble(
        self,
        run: PipelineRun,
        text: GeneratedText,
        illustrations: list[PageIllustration],
    ) -> Story:
        """Merge text and illustration outcomes into the final, immutable Story."""
        images: dict[int, Optional[str]] = {}
        for outcome in illustrations:
            if outcome.succeeded:
                images[outcome.page_index] = outcome.image
            else:
                run.illustration_failures.append(outcome.page_index)

        run.illustration_failures.sort()
        failure_image = None
        if self.settings.on_illustration_failure == IllustrationFailureMode.PLACEHOLDER:
            failure_image = self.settings.placeholder_image_url

        pages = []
        for index, page_text in enumerate(text.pages):
            if index in images:
                image = images[index]
            elif index in run.illustration_failures:
                image = failure_image
            else:
                image = None
            pages.append(StoryPage(english=page_text.english, chinese=page_text.chinese, image=image))

        if illustrations and not images:
            logger.warning(
                f"No pages could be illustrated; returning text-only story ({len(pages)} pages)",
                extra={"story_id": run.story_id, "stage": PipelineState.ILLUSTRATING.value},
            )
        elif run.illustration_failures:
            logger.warning(
                f"{len(run.illustration_failures)} of {len(pages)} pages could not be illustrated: "
                f"{[i + 1 for i in run.illustration_failures]}",
                extra={"story_id": run.story_id, "stage": PipelineState.ILLUSTRATING.value},
            )

        return Story(
            story_title=text.story_title,
            chinese_title=text.chinese_title,
            pages=tuple(pages),
        )

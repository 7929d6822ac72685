"""Shared fixtures for unit tests: fake generators, fake image client, API client."""

import asyncio
import base64
import re
import struct
import zlib
from io import BytesIO
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from bilingual_stories.api.dependencies import get_pipeline
from bilingual_stories.api.main import app
from bilingual_stories.config import PipelineSettings
from bilingual_stories.core.modules.page_illustrator import PageIllustrator
from bilingual_stories.core.programs.story_pipeline import StoryPipeline
from bilingual_stories.core.types import GeneratedText, PageIllustration, PageText


# =============================================================================
# Test doubles
# =============================================================================


class FakeTextGenerator:
    """Stands in for BilingualStoryGenerator; records every call."""

    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = []

    def __call__(self, prompt, age_group, chinese_level):
        self.calls.append((prompt, age_group, chinese_level))
        if self.delay:
            import time
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class FakeIllustrator:
    """Stands in for PageIllustrator; fails the listed page indexes."""

    def __init__(self, fail_pages=(), delays=None):
        self.fail_pages = set(fail_pages)
        self.delays = delays or {}
        self.calls = []

    async def illustrate_story(self, pages, reference, story_title, on_progress=None):
        self.calls.append((list(pages), reference, story_title))

        async def one(index):
            await asyncio.sleep(self.delays.get(index, 0))
            if index in self.fail_pages:
                return PageIllustration(page_index=index, error=RuntimeError("provider error"))
            return PageIllustration(page_index=index, image=f"https://img.example.com/page{index + 1}.png")

        outcomes = []
        for next_done in asyncio.as_completed([one(i) for i in range(len(pages))]):
            outcomes.append(await next_done)
            if on_progress is not None:
                on_progress(len(outcomes), len(pages))
        return outcomes


def make_image_response(image_bytes: bytes = b"generated image bytes", mime_type: str = "image/png"):
    """Build a fake Gemini response carrying one inline image."""
    fake_part = MagicMock()
    fake_part.inline_data = MagicMock()
    fake_part.inline_data.data = image_bytes
    fake_part.inline_data.mime_type = mime_type

    fake_response = MagicMock()
    fake_response.candidates = [MagicMock()]
    fake_response.candidates[0].content.parts = [fake_part]
    return fake_response


def page_number_of(contents) -> int:
    """Read the page number back out of a scene prompt."""
    match = re.search(r"page (\d+) of \d+", contents[-1])
    return int(match.group(1))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def generated_text():
    """A three-page bilingual story as the text generator would return it."""
    return GeneratedText(
        story_title="The Brave Mouse",
        chinese_title="勇敢的小老鼠",
        pages=(
            PageText(english="Mimi was a small mouse.", chinese="米米是一只小老鼠。"),
            PageText(english="She heard a loud noise.", chinese="她听到一个很大的声音。"),
            PageText(english="Mimi was brave and looked.", chinese="米米很勇敢，去看了看。"),
        ),
    )


@pytest.fixture
def fake_text_generator(generated_text):
    return FakeTextGenerator(result=generated_text)


@pytest.fixture
def fake_illustrator():
    return FakeIllustrator()


@pytest.fixture
def settings():
    return PipelineSettings(text_timeout=5.0, image_timeout=5.0)


@pytest.fixture
def pipeline(fake_text_generator, fake_illustrator, settings):
    """StoryPipeline wired to fakes."""
    return StoryPipeline(
        text_generator=fake_text_generator,
        illustrator=fake_illustrator,
        settings=settings,
    )


@pytest.fixture
def png_bytes():
    """A tiny real PNG image."""
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color=(200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_data_uri(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def oversized_png_base64():
    """Bare base64 of a tiny PNG whose header claims 100000x100000 pixels."""
    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    header = struct.pack(">IIBBBBB", 100_000, 100_000, 8, 2, 0, 0, 0)
    png = b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IDAT", b"") + chunk(b"IEND", b"")
    return base64.b64encode(png).decode("ascii")


@pytest.fixture
def mock_image_client():
    """Mock google-genai client whose async generate_content returns a fake image."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=make_image_response())
    return client


@pytest.fixture
def illustrator(mock_image_client):
    """PageIllustrator with mocked client."""
    with patch('bilingual_stories.core.modules.page_illustrator.get_image_client', return_value=mock_image_client):
        with patch('bilingual_stories.core.modules.page_illustrator.get_image_model', return_value='test-model'):
            with patch('bilingual_stories.core.modules.page_illustrator.get_image_config', return_value={}):
                yield PageIllustrator(style="Test watercolor style", concurrency=2, timeout=5.0)


@pytest.fixture
def no_llm_keys(monkeypatch):
    """Keep the app lifespan from configuring DSPy from a developer's .env."""
    for key in ("GOOGLE_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def client_with_pipeline(pipeline, no_llm_keys):
    """TestClient whose pipeline dependency is wired to fakes."""
    app.dependency_overrides[get_pipeline] = lambda: pipeline

    with TestClient(app) as client:
        yield client, pipeline

    app.dependency_overrides.clear()

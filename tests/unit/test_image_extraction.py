"""Unit tests for image extraction from Gemini API responses."""

import pytest
from unittest.mock import MagicMock
import base64

from bilingual_stories.config.image import extract_image_from_response


class FakePart:
    """Fake Gemini response part."""
    def __init__(self, image_data=None, mime_type=None):
        if image_data is not None:
            self.inline_data = MagicMock()
            self.inline_data.data = image_data
            self.inline_data.mime_type = mime_type
        else:
            self.inline_data = None


class FakeCandidate:
    """Fake Gemini response candidate."""
    def __init__(self, parts):
        self.content = MagicMock()
        self.content.parts = parts


class FakeResponse:
    """Fake Gemini API response."""
    def __init__(self, parts):
        self.candidates = [FakeCandidate(parts)]


class TestExtractImageFromResponse:
    """Tests for extract_image_from_response()."""

    def test_extracts_raw_bytes(self):
        """Returns bytes directly when response contains raw bytes."""
        image_bytes = b"\x89PNG\r\n\x1a\n fake image data"
        response = FakeResponse([FakePart(image_bytes, "image/png")])

        assert extract_image_from_response(response) == (image_bytes, "image/png")

    def test_decodes_base64_string(self):
        """Decodes base64 string when response contains encoded data."""
        original_bytes = b"\x89PNG\r\n\x1a\n fake image data"
        encoded = base64.b64encode(original_bytes).decode('utf-8')
        response = FakeResponse([FakePart(encoded, "image/png")])

        image_bytes, _ = extract_image_from_response(response)

        assert image_bytes == original_bytes

    def test_keeps_reported_mime_type(self):
        response = FakeResponse([FakePart(b"jpeg bytes", "image/jpeg")])
        assert extract_image_from_response(response)[1] == "image/jpeg"

    def test_defaults_mime_type(self):
        """Falls back to PNG when the part carries no MIME type."""
        response = FakeResponse([FakePart(b"bytes")])
        assert extract_image_from_response(response)[1] == "image/png"

    def test_skips_text_parts(self):
        """The model may answer with a text part before the image part."""
        response = FakeResponse([FakePart(None), FakePart(b"img", "image/webp")])
        assert extract_image_from_response(response) == (b"img", "image/webp")

    def test_raises_when_no_image_in_response(self):
        """Raises ValueError when response has no image parts."""
        response = FakeResponse([FakePart(None)])  # Part without inline_data

        with pytest.raises(ValueError, match="No image found"):
            extract_image_from_response(response)

    def test_raises_when_no_candidates(self):
        """Safety-blocked responses come back without candidates."""
        response = MagicMock()
        response.candidates = []

        with pytest.raises(ValueError, match="No image found"):
            extract_image_from_response(response)

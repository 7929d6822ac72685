"""Pytest configuration for tests that call the real text and image models."""

import os

import pytest
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

LLM_KEYS = ("GOOGLE_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY")


def pytest_collection_modifyitems(config, items):
    """Skip live tests whose API key is not configured."""
    google_available = bool(os.getenv("GOOGLE_API_KEY"))
    llm_available = any(os.getenv(key) for key in LLM_KEYS)

    for item in items:
        if "requires_google_api" in item.keywords and not google_available:
            item.add_marker(pytest.mark.skip(reason="GOOGLE_API_KEY not set"))
        if "requires_llm_api" in item.keywords and not llm_available:
            item.add_marker(pytest.mark.skip(reason="No LLM API key set"))

"""
LLM configuration for the Bilingual Story Generator.

The story text (English pages plus their Chinese translations) is written by a
single DSPy-driven LM call. Provider is chosen from whichever API key is set.

Includes:
- 120s timeout per LLM call to fail fast on hanging connections
- Retry with exponential backoff for transient network errors
"""

import os
import logging
from dotenv import load_dotenv
import dspy
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

# Load environment variables from .env file
load_dotenv()

# Logging for retry attempts
logger = logging.getLogger(__name__)

# Timeout for LLM calls (seconds)
LLM_TIMEOUT = 120

# Network errors that should trigger retry
RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    BrokenPipeError,
    OSError,  # Catches [Errno 32] Broken pipe
)


def get_inference_lm() -> dspy.LM:
    """
    Get the inference LM for bilingual story generation.

    Priority order:
    1. Gemini (GOOGLE_API_KEY) - strong at Chinese translation
    2. Claude (ANTHROPIC_API_KEY)
    3. GPT (OPENAI_API_KEY)

    Includes 120s timeout per call.
    """
    if os.getenv("GOOGLE_API_KEY"):
        return dspy.LM(
            "gemini/gemini-2.5-pro",
            api_key=os.getenv("GOOGLE_API_KEY"),
            max_tokens=8192,
            temperature=1.0,
            timeout=LLM_TIMEOUT,
        )
    elif os.getenv("ANTHROPIC_API_KEY"):
        return dspy.LM(
            "anthropic/claude-sonnet-4-20250514",
            api_key=os.getenv("ANTHROPIC_API_KEY"),
            max_tokens=8192,
            temperature=1.0,
            timeout=LLM_TIMEOUT,
        )
    elif os.getenv("OPENAI_API_KEY"):
        return dspy.LM(
            "openai/gpt-4.1",
            api_key=os.getenv("OPENAI_API_KEY"),
            max_tokens=8192,
            temperature=0.7,
            timeout=LLM_TIMEOUT,
        )
    else:
        raise ValueError(
            "No API key found. Set GOOGLE_API_KEY, ANTHROPIC_API_KEY, or OPENAI_API_KEY in .env"
        )


# Retry decorator for LLM calls with network errors
llm_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=2, max=10),
    retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def get_inference_model_name() -> str:
    """Get the name of the inference model that will be used."""
    if os.getenv("GOOGLE_API_KEY"):
        return "gemini-2.5-pro"
    elif os.getenv("ANTHROPIC_API_KEY"):
        return "claude-sonnet-4-20250514"
    elif os.getenv("OPENAI_API_KEY"):
        return "gpt-4.1"
    else:
        return "unknown"


def configure_dspy() -> None:
    """
    Configure DSPy with the inference LM globally.

    Note:
        For testing or when you need explicit control, prefer passing
        an LM directly to BilingualStoryGenerator(lm=...) instead of using
        this global configuration.
    """
    dspy.configure(lm=get_inference_lm())

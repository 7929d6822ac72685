"""
Runtime settings for the story pipeline.

All knobs can be set from the environment (or .env):

    MAX_REFERENCE_BYTES            decoded upload ceiling (default 10 MiB)
    ILLUSTRATION_CONCURRENCY       parallel image calls per story (default 4)
    TEXT_TIMEOUT_SECONDS           text generation call timeout (default 120)
    IMAGE_TIMEOUT_SECONDS          per-page image call timeout (default 90)
    REQUEST_TIMEOUT_SECONDS        end-to-end deadline, unset for none
    ON_ILLUSTRATION_FAILURE        omit | placeholder (default omit)
    ILLUSTRATION_PLACEHOLDER_URL   http(s) URL used by placeholder mode
    ILLUSTRATION_STYLE             style anchor shared by every page
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

load_dotenv()

DEFAULT_MAX_REFERENCE_BYTES = 10 * 1024 * 1024
DEFAULT_ILLUSTRATION_STYLE = (
    "Warm, colorful children's picture book illustration, soft painterly textures, "
    "gentle lighting, friendly rounded shapes"
)


class IllustrationFailureMode(str, Enum):
    """What a page's image field holds when its illustration failed."""

    OMIT = "omit"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class PipelineSettings:
    """Limits, timeouts and failure policy for one pipeline instance."""

    max_reference_bytes: int = DEFAULT_MAX_REFERENCE_BYTES
    illustration_concurrency: int = 4
    text_timeout: float = 120.0
    image_timeout: float = 90.0
    request_timeout: Optional[float] = None
    on_illustration_failure: IllustrationFailureMode = IllustrationFailureMode.OMIT
    placeholder_image_url: Optional[str] = None
    illustration_style: str = DEFAULT_ILLUSTRATION_STYLE

    def __post_init__(self):
        if self.max_reference_bytes <= 0:
            raise ValueError("max_reference_bytes must be positive")
        if self.illustration_concurrency < 1:
            raise ValueError("illustration_concurrency must be at least 1")
        if self.text_timeout <= 0 or self.image_timeout <= 0:
            raise ValueError("timeouts must be positive")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive when set")

        # Accept plain strings for the mode
        mode = IllustrationFailureMode(self.on_illustration_failure)
        object.__setattr__(self, "on_illustration_failure", mode)

        if mode == IllustrationFailureMode.PLACEHOLDER:
            if not self.placeholder_image_url:
                raise ValueError(
                    "placeholder_image_url is required when on_illustration_failure is 'placeholder'"
                )
            parsed = urlparse(self.placeholder_image_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError("placeholder_image_url must be an absolute http(s) URL")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineSettings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        def _number(key: str, default, cast=float):
            raw = env.get(key)
            if raw is None or raw.strip() == "":
                return default
            try:
                return cast(raw)
            except ValueError:
                raise ValueError(f"{key} must be a number, got {raw!r}") from None

        return cls(
            max_reference_bytes=_number("MAX_REFERENCE_BYTES", DEFAULT_MAX_REFERENCE_BYTES, int),
            illustration_concurrency=_number("ILLUSTRATION_CONCURRENCY", 4, int),
            text_timeout=_number("TEXT_TIMEOUT_SECONDS", 120.0),
            image_timeout=_number("IMAGE_TIMEOUT_SECONDS", 90.0),
            request_timeout=_number("REQUEST_TIMEOUT_SECONDS", None),
            on_illustration_failure=env.get("ON_ILLUSTRATION_FAILURE", "omit").strip().lower(),
            placeholder_image_url=env.get("ILLUSTRATION_PLACEHOLDER_URL") or None,
            illustration_style=env.get("ILLUSTRATION_STYLE") or DEFAULT_ILLUSTRATION_STYLE,
        )

"""Structured logging infrastructure for the API layer.

Provides JSON-formatted logging for production and human-readable
logging for development, plus a StoryLogger helper for story generation events.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Extra record attributes copied into JSON output when present
STRUCTURED_FIELDS = (
    "story_id",
    "stage",
    "duration",
    "attempt",
    "error_type",
    "page_number",
    "page_count",
    "illustrated_count",
    "include_images",
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        for name in STRUCTURED_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Configure structured logging for the application."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create console handler
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)


def configure_logging_from_env() -> None:
    """Configure logging from LOG_FORMAT (json|text) and LOG_LEVEL."""
    json_format = os.getenv("LOG_FORMAT", "json").strip().lower() != "text"
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").strip().upper())
    if not isinstance(level, int):
        level = logging.INFO
    configure_logging(json_format=json_format, level=level)


class StoryLogger:
    """Logger for story generation events with structured fields."""

    def __init__(self):
        self.logger = logging.getLogger("story_generation")

    def generation_started(self, story_id: str, include_images: bool) -> None:
        self.logger.info(
            "Story generation started",
            extra={"story_id": story_id, "stage": "started", "include_images": include_images},
        )

    def stage_completed(self, story_id: str, stage: str, duration: float = None) -> None:
        extra = {"story_id": story_id, "stage": stage}
        if duration:
            extra["duration"] = round(duration, 2)
        self.logger.info(f"Stage completed: {stage}", extra=extra)

    def generation_completed(
        self,
        story_id: str,
        duration: float,
        page_count: int,
        illustrated_count: int,
    ) -> None:
        self.logger.info(
            "Story generation completed",
            extra={
                "story_id": story_id,
                "stage": "completed",
                "duration": round(duration, 2),
                "page_count": page_count,
                "illustrated_count": illustrated_count,
            },
        )

    def generation_failed(self, story_id: str, error: Exception, stage: str = None) -> None:
        extra = {"story_id": story_id, "stage": stage or "failed", "error_type": type(error).__name__}
        self.logger.error(f"Story generation failed: {error}", extra=extra, exc_info=error)

    def illustration_failed(self, story_id: str, page_number: int) -> None:
        self.logger.warning(
            f"Page {page_number} returned without illustration",
            extra={"story_id": story_id, "stage": "illustrating", "page_number": page_number},
        )

    def illustrations_degraded(self, story_id: str, failed_pages: list[int], page_count: int) -> None:
        self.logger.warning(
            f"{len(failed_pages)} of {page_count} pages returned without illustration",
            extra={
                "story_id": story_id,
                "stage": "illustrating",
                "page_count": page_count,
                "illustrated_count": page_count - len(failed_pages),
            },
        )


# Global story logger instance
story_logger = StoryLogger()

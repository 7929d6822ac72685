"""Shared enums for API models."""

from bilingual_stories.core.types import AgeGroup, ChineseLevel

__all__ = ["AgeGroup", "ChineseLevel"]

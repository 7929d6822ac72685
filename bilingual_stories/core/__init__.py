# Bilingual Story Generator - Core Domain

# Re-export types for convenient access
from .types import (
    AgeGroup,
    ChineseLevel,
    GenerationRequest,
    ReferenceProvenance,
    ReferenceUrl,
    Base64Payload,
    ResolvedReference,
    PageText,
    GeneratedText,
    StoryPage,
    Story,
    PageIllustration,
)

__all__ = [
    "AgeGroup",
    "ChineseLevel",
    "GenerationRequest",
    "ReferenceProvenance",
    "ReferenceUrl",
    "Base64Payload",
    "ResolvedReference",
    "PageText",
    "GeneratedText",
    "StoryPage",
    "Story",
    "PageIllustration",
]

from .bilingual_story import BilingualStorySignature

__all__ = [
    "BilingualStorySignature",
]

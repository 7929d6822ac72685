from .reference_resolver import ReferenceResolver, parse_reference
from .story_text_generator import BilingualStoryGenerator, StoryPolicy, build_story_policy
from .page_illustrator import PageIllustrator, IllustrationContext

__all__ = [
    "ReferenceResolver",
    "parse_reference",
    "BilingualStoryGenerator",
    "StoryPolicy",
    "build_story_policy",
    "PageIllustrator",
    "IllustrationContext",
]

"""
Story generation constants for the Bilingual Story Generator.

Per-age and per-level guidance is handed to the text model verbatim, so the
wording here is effectively part of the prompt.
"""

# Story generation constants
STORY_CONSTANTS = {
    "min_page_count": 1,
    "default_title": "Untitled Story",
    "prompt_max_length": 2000,
}

# Keyed by AgeGroup value
AGE_GROUP_GUIDANCE = {
    "3-5": {
        "page_count": 6,
        "guidance": (
            "Reader is 3-5 years old. One or two very short sentences per page "
            "(max 8 words each). Concrete everyday words, lots of repetition, "
            "gentle and reassuring tone."
        ),
    },
    "6-8": {
        "page_count": 8,
        "guidance": (
            "Reader is 6-8 years old. Two or three short sentences per page "
            "(max 12 words each). Simple vocabulary with an occasional new word "
            "explained by context. Clear beginning, middle, and end."
        ),
    },
    "9-12": {
        "page_count": 10,
        "guidance": (
            "Reader is 9-12 years old. A short paragraph per page (3-5 sentences). "
            "Richer vocabulary, some dialogue, a real problem the character solves."
        ),
    },
    "13+": {
        "page_count": 12,
        "guidance": (
            "Reader is a teenager. A full paragraph per page. Varied sentence "
            "structure, nuanced emotions, and a theme worth thinking about."
        ),
    },
}

# Keyed by ChineseLevel value
CHINESE_LEVEL_GUIDANCE = {
    "beginner": (
        "Chinese for a beginner learner: very short sentences, HSK 1-2 vocabulary, "
        "simplified characters with pinyin in parentheses after each sentence."
    ),
    "intermediate": (
        "Chinese for an intermediate learner: simplified characters only, "
        "HSK 3-4 vocabulary, compound sentences are fine, no pinyin."
    ),
    "advanced": (
        "Chinese for an advanced learner: natural, fluent simplified Chinese "
        "with full character text, richer vocabulary, and common idioms (成语) "
        "where they fit. No pinyin."
    ),
}

"""
DSPy Signature for generating a complete bilingual story in one call.

The English text is written first and the Chinese is a translation of it,
page by page, so both languages always describe the same narrative beat.
"""

import dspy


class BilingualStorySignature(dspy.Signature):
    """
    Write a children's story in English, then translate every page into Chinese.

    RULES:
    - Follow the age guidance for English length and vocabulary.
    - Follow the Chinese guidance for script, vocabulary, and pinyin.
    - The Chinese on each page is a faithful translation of that page's English.
      Do not add, drop, or reorder events between languages.
    - Write exactly the requested number of pages.
    - Each page is one narrative beat that could be illustrated as one picture.
    - Age-appropriate, kind, no frightening content.

    OUTPUT FORMAT:
    TITLE: [English title]
    CHINESE TITLE: [Chinese title]

    Page 1:
    English: [text]
    Chinese: [translation]

    Page 2:
    English: [text]
    Chinese: [translation]

    ... through the last page
    """

    prompt: str = dspy.InputField(
        desc="What the story should be about, in the reader's or parent's own words"
    )
    age_guidance: str = dspy.InputField(
        desc="How long and how complex the English should be for the reader's age"
    )
    chinese_guidance: str = dspy.InputField(
        desc="Script, vocabulary, and pinyin rules for the Chinese translation"
    )
    page_count: int = dspy.InputField(
        desc="Number of pages to write"
    )

    story: str = dspy.OutputField(
        desc="The complete bilingual story in the exact OUTPUT FORMAT: TITLE, CHINESE TITLE, then 'Page N:' blocks with 'English:' and 'Chinese:' lines"
    )

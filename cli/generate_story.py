#!/usr/bin/env python3
"""
CLI for generating bilingual children's stories.

Usage:
    python cli/generate_story.py "a brave mouse"
    python cli/generate_story.py "a brave mouse" --age 3-5 --level intermediate
    python cli/generate_story.py "a dragon who loves dumplings" --image photos/lily.jpg
    python cli/generate_story.py "a brave mouse" --stdout  # print to terminal instead of file
"""

import argparse
import asyncio
import base64
import json
import logging
import mimetypes
import re
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bilingual_stories.api.logging import configure_logging
from bilingual_stories.config import PipelineSettings, configure_dspy
from bilingual_stories.config.llm import get_inference_model_name
from bilingual_stories.core.errors import PipelineError
from bilingual_stories.core.programs.story_pipeline import StoryPipeline
from bilingual_stories.core.types import AgeGroup, ChineseLevel, GenerationRequest


def _load_reference(value: str) -> str:
    """Pass URLs through; turn a local image file into a data URI."""
    if "://" in value or value.startswith("data:"):
        return value

    path = Path(value)
    if not path.is_file():
        raise SystemExit(f"Reference image not found: {value}")

    mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def main():
    parser = argparse.ArgumentParser(
        description="Generate bilingual (English/Chinese) children's stories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python cli/generate_story.py "a brave mouse"
    python cli/generate_story.py "sharing toys" --age 3-5 --level beginner
    python cli/generate_story.py "a trip to the moon" --image https://i.imgur.com/abc123.png
    python cli/generate_story.py "a brave mouse" --output brave_mouse.json
        """,
    )

    parser.add_argument(
        "prompt",
        type=str,
        help="What the story should be about",
    )

    parser.add_argument(
        "--age",
        type=str,
        default=AgeGroup.EARLY_READER.value,
        choices=[a.value for a in AgeGroup],
        help="Reader age group (default: 6-8)",
    )

    parser.add_argument(
        "--level",
        type=str,
        default=ChineseLevel.BEGINNER.value,
        choices=[c.value for c in ChineseLevel],
        help="Chinese proficiency level (default: beginner)",
    )

    parser.add_argument(
        "--image",
        type=str,
        default=None,
        help="Reference image URL or local file; enables illustrations",
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file name (saved to output/ directory). Auto-generated if not specified.",
    )

    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print to terminal instead of saving to file",
    )

    parser.add_argument(
        "--markdown",
        action="store_true",
        help="Write readable Markdown instead of JSON",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print progress information",
    )

    args = parser.parse_args()

    configure_logging(json_format=False, level=logging.INFO if args.verbose else logging.WARNING)

    if args.verbose:
        print(f"Configuring DSPy ({get_inference_model_name()})...")
    configure_dspy()

    request = GenerationRequest(
        prompt=args.prompt,
        age_group=args.age,
        chinese_level=args.level,
        include_images=args.image is not None,
        subject_reference=_load_reference(args.image) if args.image else None,
    )

    if args.verbose:
        print(f"Generating story for prompt: {args.prompt}")
        print(f"Age group: {args.age}, Chinese level: {args.level}, illustrated: {request.include_images}")

    pipeline = StoryPipeline(settings=PipelineSettings.from_env())
    run = asyncio.run(pipeline.execute(request))

    if run.error is not None:
        print(f"Failed to generate story: {run.error.message}", file=sys.stderr)
        sys.exit(1)

    story = run.story

    if args.markdown:
        formatted = story.to_formatted_string()
        suffix = ".md"
    else:
        formatted = json.dumps({"story": story.to_dict()}, ensure_ascii=False, indent=2)
        suffix = ".json"

    if args.stdout:
        print(formatted)
    else:
        # Determine output path
        output_dir = Path(__file__).parent.parent / "output"
        output_dir.mkdir(exist_ok=True)

        if args.output:
            filename = args.output if args.output.endswith(suffix) else f"{args.output}{suffix}"
        else:
            # Auto-generate filename from prompt and timestamp
            slug = re.sub(r"[^a-z0-9]+", "_", args.prompt.lower())[:30].strip("_") or "story"
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"{slug}_{timestamp}{suffix}"

        output_path = output_dir / filename
        output_path.write_text(formatted, encoding="utf-8")
        print(f"Story saved to: {output_path}")

    # Print summary if verbose
    if args.verbose:
        print("\n--- Generation Summary ---")
        print(f"Title: {story.story_title} / {story.chinese_title or '-'}")
        print(f"Pages: {story.page_count}")
        if request.include_images:
            print(f"Illustrated: {story.illustrated_page_count}/{story.page_count}")
            if run.illustration_failures:
                print(f"Failed pages: {[i + 1 for i in run.illustration_failures]}")


if __name__ == "__main__":
    try:
        main()
    except PipelineError as e:
        print(f"Failed to generate story: {e.message}", file=sys.stderr)
        sys.exit(1)

"""Load story documents (title + pages) from JSON."""

import json
import os

from storybook_video.errors import StoryFormatError
from storybook_video.models import Story, StoryPage


def _page_from_dict(i: int, data: dict) -> StoryPage:
    if not isinstance(data, dict):
        raise StoryFormatError(f"Page {i} is not an object")
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        raise StoryFormatError(f"Page {i} has no text")
    return StoryPage(
        text=text.strip(),
        image_prompt=data.get("imagePrompt") or data.get("image_prompt") or "",
        image=data.get("imageUrl") or data.get("image") or "",
        audio=data.get("audio") or "",
    )


def parse_story(data: dict) -> Story:
    """Build a Story from the decoded JSON document.

    Accepts both the web app's camelCase keys (imagePrompt, imageUrl)
    and snake_case equivalents.
    """
    if not isinstance(data, dict):
        raise StoryFormatError("Story must be a JSON object")
    pages = data.get("pages")
    if not isinstance(pages, list) or not pages:
        raise StoryFormatError("Story has no pages")
    timing = data.get("timing") or {}
    if not isinstance(timing, dict):
        raise StoryFormatError("'timing' must be an object")
    return Story(
        title=(data.get("title") or "").strip(),
        prompt=data.get("prompt") or "",
        pages=[_page_from_dict(i, p) for i, p in enumerate(pages)],
        timing=timing,
    )


def load_story(path: str) -> Story:
    if not os.path.exists(path):
        raise StoryFormatError(f"File not found: {path}")
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise StoryFormatError(f"Invalid JSON in {path}: {e}") from e
    return parse_story(data)

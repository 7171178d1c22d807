"""Output directory management and JSON artifacts."""

import json
import os
import re

from storybook_video.constants import DEFAULT_TITLE, OUTPUT_DIR

PROJECT_SUBDIRS = ["pages", "narration", "final"]


def slug_from_title(title: str | None) -> str:
    """Convert a story title to an output slug.

    "The Starlit Library" → "the_starlit_library"
    "" or None → "storybook"
    """
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", title or "").strip("_").lower()
    return slug or DEFAULT_TITLE


def init_output_dir(slug: str, output_base: str = OUTPUT_DIR) -> str:
    """Create output/<slug>/ and all subdirectories.

    Returns the project directory path.
    """
    project_dir = os.path.join(output_base, slug)
    for subdir in PROJECT_SUBDIRS:
        os.makedirs(os.path.join(project_dir, subdir), exist_ok=True)
    return project_dir


def clear_generated(project_dir: str) -> list[str]:
    """Empty every generated subdirectory (used by --force).

    Returns list of cleared subdirectory names.
    """
    cleared = []
    for subdir in PROJECT_SUBDIRS:
        path = os.path.join(project_dir, subdir)
        if not os.path.isdir(path):
            continue
        for name in os.listdir(path):
            full = os.path.join(path, name)
            if os.path.isfile(full):
                os.remove(full)
        cleared.append(subdir)
    return cleared


def write_artifact(project_dir: str, filename: str, data: dict) -> str:
    """Write JSON artifact to project_dir/filename.

    Returns path to the written file.
    """
    path = os.path.join(project_dir, filename)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    return path


def load_artifact(project_dir: str, filename: str) -> dict | None:
    """Read JSON artifact. Returns None if file doesn't exist."""
    path = os.path.join(project_dir, filename)
    if not os.path.exists(path):
        return None
    with open(path) as f:
        return json.load(f)

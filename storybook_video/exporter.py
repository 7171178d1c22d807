"""Write the finished video and its provenance manifest."""

import os
from datetime import datetime, timezone

from storybook_video.artifacts import write_artifact
from storybook_video.constants import VERSION
from storybook_video.models import Story


def export(
    video: bytes,
    project_dir: str,
    slug: str,
    story: Story,
    settings: dict,
    duration_seconds: float,
) -> str:
    """Save the video and an output.json next to it.

    Creates:
      - output/<slug>/final/<slug>.mp4 (the video)
      - output/<slug>/final/output.json (provenance manifest)

    Returns path to the final MP4 file.
    """
    final_dir = os.path.join(project_dir, "final")
    os.makedirs(final_dir, exist_ok=True)

    output_path = os.path.join(final_dir, f"{slug}.mp4")
    with open(output_path, "wb") as f:
        f.write(video)

    manifest = {
        "project": slug,
        "title": story.title,
        "prompt": story.prompt,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "producer_version": VERSION,
        "settings": settings,
        "stats": {
            "pages": len(story.pages),
            "duration_seconds": round(duration_seconds, 1),
            "bytes": len(video),
        },
    }
    write_artifact(final_dir, "output.json", manifest)

    return output_path

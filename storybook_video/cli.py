"""CLI interface with subcommand routing and pipeline orchestration."""

import argparse
import logging
import os
import shutil
import sys

import requests
from pydub.exceptions import CouldntDecodeError

from storybook_video.artifacts import clear_generated, init_output_dir, load_artifact, slug_from_title, write_artifact
from storybook_video.constants import (
    AUDIO_POLICIES,
    AUDIO_POLICY,
    FADE_SECONDS,
    HOLD_SECONDS,
    NARRATOR_VOICE,
    OUTPUT_DIR,
    VERSION,
)
from storybook_video.effects import load_whoosh
from storybook_video.errors import NarrationFailed, StorybookVideoError, StoryFormatError
from storybook_video.exporter import export
from storybook_video.models import PageAsset, Story, TimingConfig
from storybook_video.pages import load_illustration, render_page
from storybook_video.pipeline import render_video
from storybook_video.story import load_story
from storybook_video.tts import VOICE_POOL, generate_narration


def _check_ffmpeg():
    """Verify ffmpeg is installed."""
    if not shutil.which("ffmpeg"):
        print("Error: ffmpeg is required but not found.", file=sys.stderr)
        print("Install with: brew install ffmpeg (or apt install ffmpeg)", file=sys.stderr)
        raise SystemExit(1)


def _fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    raise SystemExit(1)


def _load_story_or_exit(path: str) -> Story:
    try:
        return load_story(path)
    except StoryFormatError as e:
        _fail(str(e))


def _timing_from_args(args, story: Story | None = None) -> TimingConfig:
    """CLI flags win over the story's "timing" block, which wins over defaults."""
    story_timing = story.timing if story else {}
    hold = args.hold if args.hold is not None else story_timing.get("hold", HOLD_SECONDS)
    fade = args.fade if args.fade is not None else story_timing.get("fade", FADE_SECONDS)
    return TimingConfig(hold_seconds=hold, fade_seconds=fade)


def _print_segment(segment, total):
    print(f"  Encoded page {segment.page_index + 1}/{total} ({segment.duration:g}s)")


def _render_pages(story: Story, pages_dir: str, base_dir: str) -> list[str]:
    """Render every story page to pages/page_NNN.png, skipping existing files."""
    os.makedirs(pages_dir, exist_ok=True)
    total = len(story.pages)
    paths = []
    for i, page in enumerate(story.pages):
        path = os.path.join(pages_dir, f"page_{i:03d}.png")
        if os.path.exists(path) and os.path.getsize(path) > 0:
            print(f"  [skip] Page {i + 1}/{total}: {os.path.basename(path)}")
            paths.append(path)
            continue
        print(f"  Rendering page {i + 1}/{total}")
        try:
            illustration = load_illustration(page.image, base_dir)
            image = render_page(page.text, illustration, page_number=i + 1)
        except (OSError, requests.RequestException) as e:
            _fail(f"Could not load illustration for page {i + 1}: {e}")
        with open(path, "wb") as f:
            f.write(image)
        paths.append(path)
    return paths


def _narrate_or_exit(story: Story, narration_dir: str, voice: str, base_dir: str) -> list[str]:
    try:
        return generate_narration(story, narration_dir, voice=voice, base_dir=base_dir)
    except (OSError, NarrationFailed) as e:
        _fail(f"Narration failed: {e}")


def _load_whoosh_or_exit(path: str | None) -> tuple[bytes, str]:
    try:
        return load_whoosh(path)
    except (OSError, CouldntDecodeError) as e:
        _fail(f"Could not load page-turn sound: {e}")


def _read(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _run_pipeline(page_assets, timing, whoosh, audio_policy):
    segments = []

    def progress(segment, total):
        segments.append(segment)
        _print_segment(segment, total)

    try:
        video = render_video(page_assets, timing, whoosh, audio_policy=audio_policy, progress=progress)
    except StorybookVideoError as e:
        _fail(f"{type(e).__name__}: {e}")
    return video, sum(s.duration for s in segments)


def _project_for(story: Story) -> tuple[str, str]:
    slug = slug_from_title(story.title)
    return slug, init_output_dir(slug, output_base=OUTPUT_DIR)


def _story_document(story: Story) -> dict:
    return {
        "title": story.title,
        "prompt": story.prompt,
        "pages": [
            {"text": p.text, "imagePrompt": p.image_prompt, "image": p.image, "audio": p.audio}
            for p in story.pages
        ],
    }


def cmd_pages(args):
    """Render page images only."""
    story = _load_story_or_exit(args.story)
    slug, project_dir = _project_for(story)
    base_dir = os.path.dirname(os.path.abspath(args.story))
    _render_pages(story, os.path.join(project_dir, "pages"), base_dir)
    print(f"Pages written to {project_dir}/pages/")


def cmd_narrate(args):
    """Generate narration only."""
    story = _load_story_or_exit(args.story)
    slug, project_dir = _project_for(story)
    base_dir = os.path.dirname(os.path.abspath(args.story))
    _narrate_or_exit(story, os.path.join(project_dir, "narration"), args.voice, base_dir)
    print(f"Narration written to {project_dir}/narration/")


def cmd_render(args):
    """Full pipeline: pages, narration, video, export."""
    _check_ffmpeg()
    story = _load_story_or_exit(args.story)
    timing = _timing_from_args(args, story)
    try:
        timing.validate()
    except StorybookVideoError as e:
        _fail(f"{type(e).__name__}: {e}")
    slug, project_dir = _project_for(story)
    base_dir = os.path.dirname(os.path.abspath(args.story))

    story_doc = _story_document(story)
    previous = load_artifact(project_dir, "story.json")
    if args.force or (previous is not None and previous != story_doc):
        if not args.force:
            print("Story changed since the last render, regenerating pages and narration")
        cleared = clear_generated(project_dir)
        if args.verbose:
            print(f"Cleared: {', '.join(cleared)}")

    write_artifact(project_dir, "story.json", story_doc)

    print(f"Rendering {len(story.pages)} pages...")
    page_paths = _render_pages(story, os.path.join(project_dir, "pages"), base_dir)

    print("Generating narration...")
    audio_paths = _narrate_or_exit(story, os.path.join(project_dir, "narration"), args.voice, base_dir)

    whoosh, whoosh_source = _load_whoosh_or_exit(args.whoosh)
    if args.verbose:
        print(f"Page-turn sound: {whoosh_source}")

    page_assets = [
        PageAsset(index=i, image=_read(img), audio=_read(aud))
        for i, (img, aud) in enumerate(zip(page_paths, audio_paths))
    ]

    print("Building video...")
    video, duration = _run_pipeline(page_assets, timing, whoosh, args.audio_policy)

    settings = {
        "hold_seconds": timing.hold_seconds,
        "fade_seconds": timing.fade_seconds,
        "audio_policy": args.audio_policy,
        "voice": args.voice,
        "whoosh_source": whoosh_source,
    }
    output_path = export(video, project_dir, slug, story, settings, duration)
    print(f"Done: {output_path}")


def _list_media(directory: str, extensions: tuple[str, ...]) -> list[str]:
    if not os.path.isdir(directory):
        _fail(f"Directory not found: {directory}")
    return sorted(
        os.path.join(directory, name)
        for name in os.listdir(directory)
        if name.lower().endswith(extensions)
    )


def cmd_assemble(args):
    """Build a video from ready-made page images and narration clips."""
    _check_ffmpeg()
    images = _list_media(args.images, (".png", ".jpg", ".jpeg", ".webp"))
    audios = _list_media(args.audio, (".mp3", ".wav", ".m4a", ".ogg"))
    if not images:
        _fail(f"No images found in {args.images}")
    if len(images) != len(audios):
        _fail(f"Found {len(images)} images but {len(audios)} narration clips")

    timing = _timing_from_args(args)
    whoosh, _ = _load_whoosh_or_exit(args.whoosh)
    page_assets = [
        PageAsset(index=i, image=_read(img), audio=_read(aud))
        for i, (img, aud) in enumerate(zip(images, audios))
    ]

    print(f"Building video from {len(page_assets)} pages...")
    video, _ = _run_pipeline(page_assets, timing, whoosh, args.audio_policy)

    out_dir = os.path.dirname(os.path.abspath(args.output))
    os.makedirs(out_dir, exist_ok=True)
    with open(args.output, "wb") as f:
        f.write(video)
    print(f"Done: {args.output}")


def cmd_voices(args):
    """List available voices."""
    filter_str = args.filter.lower() if args.filter else None
    voices = VOICE_POOL
    if filter_str:
        voices = [v for v in voices if filter_str in v.lower()]
    if not voices:
        print("No matching voices found.")
        return
    print("Available voices:")
    for v in voices:
        print(f"  {v}")


def _add_timing_args(parser):
    parser.add_argument("--hold", type=float, default=None, help=f"Seconds each page is shown (default {HOLD_SECONDS:g})")
    parser.add_argument("--fade", type=float, default=None, help=f"Fade-out seconds at the end of each page (default {FADE_SECONDS:g})")
    parser.add_argument(
        "--audio-policy", choices=AUDIO_POLICIES, default=AUDIO_POLICY,
        help="shortest: cut narration at the page length; extend: lengthen the page to fit narration",
    )
    parser.add_argument("--whoosh", help="Page-turn sound file (default: bundled or generated)")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="storybook",
        description="Storybook Video: turn an illustrated story into a narrated MP4",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # render
    render_parser = subparsers.add_parser("render", help="Render pages, narrate, and build the video")
    render_parser.add_argument("story", help="Path to the story JSON file")
    render_parser.add_argument("--voice", default=NARRATOR_VOICE, help="Narrator voice")
    render_parser.add_argument("--force", action="store_true", help="Regenerate pages and narration")
    render_parser.add_argument("-v", "--verbose", action="store_true", help="Show ffmpeg commands and extra detail")
    _add_timing_args(render_parser)
    render_parser.set_defaults(func=cmd_render)

    # pages
    pages_parser = subparsers.add_parser("pages", help="Render page images only")
    pages_parser.add_argument("story", help="Path to the story JSON file")
    pages_parser.set_defaults(func=cmd_pages)

    # narrate
    narrate_parser = subparsers.add_parser("narrate", help="Generate narration only")
    narrate_parser.add_argument("story", help="Path to the story JSON file")
    narrate_parser.add_argument("--voice", default=NARRATOR_VOICE, help="Narrator voice")
    narrate_parser.set_defaults(func=cmd_narrate)

    # assemble
    assemble_parser = subparsers.add_parser("assemble", help="Build a video from page images + narration clips")
    assemble_parser.add_argument("images", help="Directory of page images (sorted by name)")
    assemble_parser.add_argument("audio", help="Directory of narration clips (sorted by name)")
    assemble_parser.add_argument("-o", "--output", default="storybook.mp4", help="Output MP4 path")
    _add_timing_args(assemble_parser)
    assemble_parser.set_defaults(func=cmd_assemble)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.set_defaults(func=cmd_voices)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if getattr(args, "verbose", False):
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    args.func(args)

"""Narration via edge-tts with retry logic."""

import asyncio
import os
import shutil
import time

import edge_tts

from storybook_video.constants import NARRATOR_VOICE, TTS_RATE, TTS_RETRY_BASE_DELAY, TTS_RETRY_COUNT
from storybook_video.errors import NarrationFailed
from storybook_video.models import Story

# English voices suited to read-aloud narration (avoids a network call to list them)
VOICE_POOL = [
    "en-US-JennyNeural",
    "en-US-AnaNeural",
    "en-US-AriaNeural",
    "en-US-GuyNeural",
    "en-US-DavisNeural",
    "en-GB-SoniaNeural",
    "en-GB-MaisieNeural",
    "en-GB-RyanNeural",
    "en-AU-NatashaNeural",
    "en-AU-WilliamNeural",
    "en-CA-ClaraNeural",
    "en-IE-EmilyNeural",
    "en-IN-NeerjaNeural",
]


def generate_single(text: str, voice: str, output_path: str, rate: str = TTS_RATE) -> None:
    """Generate a single narration clip with retry logic.

    Sync wrapper around edge_tts.Communicate(). Retries on network errors,
    HTTP errors, or 0-byte output files. Rate is a relative string like "-10%".
    """
    last_error = None
    for attempt in range(TTS_RETRY_COUNT):
        try:
            communicate = edge_tts.Communicate(text, voice, rate=rate)
            asyncio.run(communicate.save(output_path))

            if os.path.exists(output_path) and os.path.getsize(output_path) > 0:
                return

            last_error = Exception(f"TTS produced 0-byte file for: {text[:50]}...")
        except Exception as e:
            last_error = e

        if attempt < TTS_RETRY_COUNT - 1:
            delay = TTS_RETRY_BASE_DELAY * (2 ** attempt)
            time.sleep(delay)

    raise NarrationFailed(f"TTS failed after {TTS_RETRY_COUNT} attempts: {last_error}") from last_error


def narration_filename(index: int) -> str:
    return f"page_{index:03d}.mp3"


def generate_narration(
    story: Story,
    output_dir: str,
    voice: str = NARRATOR_VOICE,
    rate: str = TTS_RATE,
    base_dir: str = ".",
) -> list[str]:
    """Write one narration clip per page, in page order.

    Pages that name a pre-recorded `audio` file get that file copied in
    instead of TTS. Existing clips are kept (resumability).
    Returns list of output file paths.
    """
    os.makedirs(output_dir, exist_ok=True)
    total = len(story.pages)
    paths = []

    for i, page in enumerate(story.pages):
        filename = narration_filename(i)
        output_path = os.path.join(output_dir, filename)

        if os.path.exists(output_path) and os.path.getsize(output_path) > 0:
            print(f"  [skip] Narration {i + 1}/{total}: {filename}")
            paths.append(output_path)
            continue

        if page.audio:
            source = page.audio if os.path.isabs(page.audio) else os.path.join(base_dir, page.audio)
            if not os.path.isfile(source):
                raise NarrationFailed(f"Narration file for page {i + 1} not found: {source}")
            print(f"  Copying narration {i + 1}/{total}: {os.path.basename(source)}")
            shutil.copyfile(source, output_path)
        else:
            print(f"  Narrating page {i + 1}/{total}: {filename}")
            generate_single(page.text, voice, output_path, rate=rate)
        paths.append(output_path)

    return paths

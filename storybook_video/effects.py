"""Page-turn sound: user file, bundled file, or a procedural whoosh."""

import io
import logging
import os

import numpy as np
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from storybook_video.constants import AUDIO_SAMPLE_RATE, WHOOSH_FILE, WHOOSH_MS

logger = logging.getLogger(__name__)


def generate_whoosh(duration_ms: int = WHOOSH_MS, seed: int = 7) -> AudioSegment:
    """Generate a paper-swipe whoosh using numpy.

    White noise smoothed by a moving average whose window shrinks over
    time (the sound brightens as the page sweeps), under a fast-attack,
    slow-release envelope. Seeded so every export uses the same clip.
    """
    sample_rate = AUDIO_SAMPLE_RATE
    n = int(sample_rate * duration_ms / 1000)
    rng = np.random.default_rng(seed)
    noise = rng.uniform(-1.0, 1.0, n)

    # Two low-pass passes: dark at the start, bright at the end
    dark = np.convolve(noise, np.ones(64) / 64, mode="same")
    bright = np.convolve(noise, np.ones(8) / 8, mode="same")
    t = np.linspace(0.0, 1.0, n, endpoint=False)
    swept = dark * (1 - t) + bright * t

    # Envelope peaks at 30% of the clip
    envelope = np.where(t < 0.3, t / 0.3, (1 - t) / 0.7) ** 2
    combined = swept * envelope

    peak = np.max(np.abs(combined))
    if peak > 0:
        combined = combined / peak * 0.6
    samples = (combined * 32767).astype(np.int16)

    return AudioSegment(
        data=samples.tobytes(),
        sample_width=2,
        frame_rate=sample_rate,
        channels=1,
    )


def _to_mp3(audio: AudioSegment) -> bytes:
    buf = io.BytesIO()
    audio.export(buf, format="mp3")
    return buf.getvalue()


def load_whoosh(path: str | None = None) -> tuple[bytes, str]:
    """Resolve the page-turn sound and return (mp3_bytes, source_string).

    Priority:
    1. path argument (any format ffmpeg can decode)
    2. Bundled WHOOSH_FILE
    3. Procedural numpy fallback
    """
    if path:
        if not os.path.exists(path):
            raise FileNotFoundError(f"Page-turn sound not found: {path}")
        # Let decode errors from a user-chosen file propagate
        return _to_mp3(AudioSegment.from_file(path)), f"user:{os.path.basename(path)}"

    if os.path.exists(WHOOSH_FILE):
        try:
            return _to_mp3(AudioSegment.from_file(WHOOSH_FILE)), "bundled"
        except CouldntDecodeError:
            logger.warning("Bundled page-turn sound %s is unreadable, using procedural", WHOOSH_FILE)

    return _to_mp3(generate_whoosh()), "procedural"

"""Integration tests: real ffmpeg end to end (skipped without ffmpeg)."""

import io
import os
import shutil
import subprocess

import pytest

from storybook_video.effects import generate_whoosh
from storybook_video.engine import FfmpegEngine
from storybook_video.models import PageAsset, TimingConfig
from storybook_video.pages import render_page
from storybook_video.pipeline import render_video
from storybook_video.segments import build_segment

from conftest import png_bytes, requires_ffmpeg

pytestmark = requires_ffmpeg


def _whoosh_mp3():
    buf = io.BytesIO()
    generate_whoosh().export(buf, format="mp3")
    return buf.getvalue()


def _probe_duration(data, tmp_path, name="probe.mp4"):
    """Container duration in seconds via ffprobe."""
    if not shutil.which("ffprobe"):
        pytest.skip("ffprobe not installed")
    path = tmp_path / name
    path.write_bytes(data)
    r = subprocess.run(
        ["ffprobe", "-v", "error", "-show_entries", "format=duration", "-of", "csv=p=0", str(path)],
        capture_output=True, text=True, check=True,
    )
    return float(r.stdout.strip())


def _pages(n, audio, size=(64, 48)):
    return [PageAsset(index=i, image=png_bytes(size), audio=audio) for i in range(n)]


def test_segment_visual_length_equals_hold(silent_mp3, tmp_path):
    timing = TimingConfig(hold_seconds=1.5, fade_seconds=0.5)
    with FfmpegEngine() as engine:
        engine.write_buffer("whoosh.mp3", _whoosh_mp3())
        seg = build_segment(engine, _pages(1, silent_mp3)[0], timing)
    assert len(seg.data) > 0
    assert _probe_duration(seg.data, tmp_path) == pytest.approx(1.5, abs=0.15)


def test_full_video_three_pages(silent_mp3, tmp_path):
    timing = TimingConfig(hold_seconds=1.0, fade_seconds=0.3)
    video = render_video(_pages(3, silent_mp3), timing, _whoosh_mp3())
    assert len(video) > 0
    assert _probe_duration(video, tmp_path) == pytest.approx(3.0, abs=0.3)


def test_single_page_video_is_the_segment(silent_mp3, tmp_path):
    timing = TimingConfig(hold_seconds=1.0, fade_seconds=0.2)
    video = render_video(_pages(1, silent_mp3), timing, _whoosh_mp3())
    assert _probe_duration(video, tmp_path) == pytest.approx(1.0, abs=0.15)


def test_rendered_pages_feed_the_pipeline(silent_mp3, tmp_path):
    pages = [
        PageAsset(index=i, image=render_page(f"Page {i}.", size=(320, 180)), audio=silent_mp3)
        for i in range(2)
    ]
    video = render_video(pages, TimingConfig(1.0, 0.25), _whoosh_mp3())
    assert _probe_duration(video, tmp_path) == pytest.approx(2.0, abs=0.3)


def test_odd_frame_size_is_encodable(silent_mp3, tmp_path):
    video = render_video(_pages(2, silent_mp3, size=(63, 47)), TimingConfig(1.0, 0.2), _whoosh_mp3())
    assert len(video) > 0


def test_repeated_runs_have_identical_duration(silent_mp3, tmp_path):
    timing = TimingConfig(hold_seconds=1.0, fade_seconds=0.3)
    a = render_video(_pages(2, silent_mp3), timing, _whoosh_mp3())
    b = render_video(_pages(2, silent_mp3), timing, _whoosh_mp3())
    assert _probe_duration(a, tmp_path, "a.mp4") == _probe_duration(b, tmp_path, "b.mp4")


def test_no_scratch_files_left_behind(silent_mp3, monkeypatch):
    scopes = []

    class TrackingEngine(FfmpegEngine):
        def __init__(self):
            super().__init__()
            scopes.append(self.scope)

    render_video(_pages(2, silent_mp3), TimingConfig(1.0, 0.2), _whoosh_mp3(), engine_factory=TrackingEngine)
    assert scopes and not os.path.exists(scopes[0])

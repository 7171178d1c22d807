"""Shared fixtures for storybook video tests."""

import io
import shutil

import pytest
from PIL import Image

from storybook_video.engine import RunResult
from storybook_video.errors import StorageReadNotFound, StorageWriteFailed
from storybook_video.models import PageAsset

requires_ffmpeg = pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg not installed")


def png_bytes(size=(64, 48), color=(200, 120, 40), fmt="PNG"):
    """Encode a solid-colour image."""
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format=fmt)
    return buf.getvalue()


class FakeEngine:
    """In-memory engine that records commands instead of running ffmpeg.

    Each run "produces" its last argument, filled with the names of its
    inputs. fail_when(args) -> True makes that run fail.
    """

    def __init__(self, fail_when=None, empty_output=False):
        self.files = {}
        self.commands = []
        self.written = []
        self.closed = False
        self.fail_when = fail_when
        self.empty_output = empty_output

    def write_buffer(self, name, data):
        if self.closed:
            raise StorageWriteFailed(name, "engine scope is closed")
        self.written.append(name)
        self.files[name] = bytes(data)

    def read_buffer(self, name):
        if self.closed or name not in self.files:
            raise StorageReadNotFound(name)
        return self.files[name]

    def remove(self, name):
        self.files.pop(name, None)

    def run(self, args):
        args = list(args)
        self.commands.append(args)
        if self.fail_when and self.fail_when(args):
            return RunResult(returncode=1, stderr="Invalid data found when processing input")
        inputs = [args[i + 1] for i, a in enumerate(args) if a == "-i"]
        self.files[args[-1]] = b"" if self.empty_output else ("FAKE:" + "+".join(inputs)).encode()
        return RunResult(returncode=0)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def engine_factory():
    """Factory for render_video that remembers every engine it built."""
    created = []

    def factory():
        engine = FakeEngine()
        created.append(engine)
        return engine

    factory.created = created
    return factory


@pytest.fixture
def make_pages():
    """Build n valid PageAssets with identical frame sizes."""
    def _make(n=3, size=(64, 48)):
        return [
            PageAsset(index=i, image=png_bytes(size), audio=f"narration-{i}".encode())
            for i in range(n)
        ]
    return _make


@pytest.fixture
def silent_mp3():
    """1s of silence as MP3 bytes (needs ffmpeg)."""
    from pydub import AudioSegment
    buf = io.BytesIO()
    AudioSegment.silent(duration=1000).export(buf, format="mp3")
    return buf.getvalue()

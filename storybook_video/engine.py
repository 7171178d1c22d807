"""Transcoding engine adapter: a private scratch directory plus ffmpeg.

Every export gets its own FfmpegEngine. Buffers are staged into the
engine's scope by plain file name, commands run with the scope as the
working directory, and close() throws the whole scope away.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Protocol, Sequence

from storybook_video.constants import DIAGNOSTIC_TAIL
from storybook_video.errors import StorageReadNotFound, StorageWriteFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def diagnostic(self) -> str:
        return self.stderr.strip()[-DIAGNOSTIC_TAIL:]


class Engine(Protocol):
    def write_buffer(self, name: str, data: bytes) -> None: ...

    def run(self, args: Sequence[str]) -> RunResult: ...

    def read_buffer(self, name: str) -> bytes: ...

    def remove(self, name: str) -> None: ...

    def close(self) -> None: ...


def _check_name(name: str) -> bool:
    return bool(name) and name not in (".", "..") and os.path.basename(name) == name and "/" not in name


class FfmpegEngine:
    """ffmpeg subprocess backend over a temporary directory."""

    def __init__(self, binary: str = "ffmpeg"):
        # Resolved once; reused by every command in this export
        self.binary = shutil.which(binary) or binary
        self.scope = tempfile.mkdtemp(prefix="storybook_")
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _path(self, name: str) -> str:
        return os.path.join(self.scope, name)

    def write_buffer(self, name: str, data: bytes) -> None:
        if self.closed:
            raise StorageWriteFailed(name, "engine scope is closed")
        if not _check_name(name):
            raise StorageWriteFailed(name, "names must be plain file names")
        try:
            with open(self._path(name), "wb") as f:
                f.write(data)
        except OSError as e:
            raise StorageWriteFailed(name, str(e)) from e

    def read_buffer(self, name: str) -> bytes:
        if self.closed or not _check_name(name):
            raise StorageReadNotFound(name)
        path = self._path(name)
        if not os.path.isfile(path):
            raise StorageReadNotFound(name)
        with open(path, "rb") as f:
            return f.read()

    def exists(self, name: str) -> bool:
        return not self.closed and _check_name(name) and os.path.isfile(self._path(name))

    def remove(self, name: str) -> None:
        if self.exists(name):
            os.remove(self._path(name))

    def run(self, args: Sequence[str]) -> RunResult:
        """Run one ffmpeg command inside the scope.

        A missing binary or other OS error comes back as a failed
        RunResult carrying the error text, so callers always see why.
        """
        if self.closed:
            return RunResult(returncode=-1, stderr="engine scope is closed")
        cmd = [self.binary, "-hide_banner", "-nostdin", "-y", *args]
        logger.debug("ffmpeg: %s", " ".join(cmd))
        try:
            r = subprocess.run(cmd, cwd=self.scope, capture_output=True, check=False)
        except OSError as e:
            return RunResult(returncode=-1, stderr=f"{self.binary}: {e}")
        stderr = r.stderr.decode("utf-8", "ignore")
        if r.returncode != 0:
            logger.warning("ffmpeg exited with %d", r.returncode)
        return RunResult(returncode=r.returncode, stderr=stderr)

    def close(self) -> None:
        if not self.closed:
            shutil.rmtree(self.scope, ignore_errors=True)
            self.closed = True

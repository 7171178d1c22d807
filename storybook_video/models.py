"""Data models for storybook video production."""

import math
from dataclasses import dataclass, field, replace

from storybook_video.constants import FRAME_RATE, MANIFEST_HEADER
from storybook_video.errors import InvalidTimingConfig


@dataclass(frozen=True)
class PageAsset:
    index: int         # 0-based playback position
    image: bytes       # rendered page still
    audio: bytes       # narration clip (may be silent, never absent)


@dataclass(frozen=True)
class TimingConfig:
    hold_seconds: float
    fade_seconds: float

    def validate(self) -> "TimingConfig":
        """Raise InvalidTimingConfig unless 0 <= fade < hold.

        A non-zero hold or fade must last at least one frame.
        """
        for label, value in (("hold", self.hold_seconds), ("fade", self.fade_seconds)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidTimingConfig(f"{label} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidTimingConfig(f"{label} must be finite, got {value!r}")
        frame = 1 / FRAME_RATE
        if self.hold_seconds <= 0:
            raise InvalidTimingConfig(f"hold must be > 0, got {self.hold_seconds}")
        if self.hold_seconds < frame:
            raise InvalidTimingConfig(f"hold must be at least one frame ({frame}s), got {self.hold_seconds}")
        if self.fade_seconds < 0:
            raise InvalidTimingConfig(f"fade must be >= 0, got {self.fade_seconds}")
        if 0 < self.fade_seconds < frame:
            raise InvalidTimingConfig(f"fade must be 0 or at least one frame ({frame}s), got {self.fade_seconds}")
        if self.fade_seconds >= self.hold_seconds:
            raise InvalidTimingConfig(
                f"fade ({self.fade_seconds}) must be shorter than hold ({self.hold_seconds})"
            )
        return self

    @property
    def fade_start(self) -> float:
        return self.hold_seconds - self.fade_seconds

    @property
    def whoosh_delay_ms(self) -> int:
        return int(round(self.fade_start * 1000))

    def extended_to(self, seconds: float) -> "TimingConfig":
        """Copy with hold grown to at least `seconds`; fade is unchanged."""
        if seconds <= self.hold_seconds:
            return self
        return replace(self, hold_seconds=float(seconds))


@dataclass(frozen=True)
class Segment:
    page_index: int
    name: str          # file name inside the engine scope
    data: bytes
    duration: float    # visual length in seconds


@dataclass
class Manifest:
    names: list[str] = field(default_factory=list)

    def render(self) -> str:
        """ffconcat text: header then one `file` line per segment, no blank lines."""
        lines = [MANIFEST_HEADER]
        lines.extend(f"file {name}" for name in self.names)
        return "\n".join(lines)


@dataclass
class StoryPage:
    text: str
    image_prompt: str = ""
    image: str = ""    # local path or http(s) URL of the illustration
    audio: str = ""    # optional pre-recorded narration


@dataclass
class Story:
    title: str
    prompt: str = ""
    pages: list[StoryPage] = field(default_factory=list)
    timing: dict = field(default_factory=dict)

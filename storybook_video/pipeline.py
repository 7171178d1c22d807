"""Narrated video pipeline: pages in, one MP4 out."""

import logging
from typing import Callable, Iterable

from storybook_video.assembly import assemble
from storybook_video.constants import AUDIO_POLICY, WHOOSH_NAME
from storybook_video.engine import Engine, FfmpegEngine
from storybook_video.errors import InvalidPageAsset, StorageWriteFailed
from storybook_video.models import PageAsset, Segment, TimingConfig
from storybook_video.segments import build_segment, check_uniform_frames

logger = logging.getLogger(__name__)

# Called after each page is encoded with (segment, page_count)
ProgressCallback = Callable[[Segment, int], None]


def validate_pages(pages: Iterable[PageAsset]) -> list[PageAsset]:
    """Return pages sorted by index after checking they form 0..N-1.

    Missing image or narration on any page fails the whole set; the
    lowest offending index is reported.
    """
    ordered = sorted(pages, key=lambda p: p.index)
    if not ordered:
        raise InvalidPageAsset(0, "no pages to render")

    for position, page in enumerate(ordered):
        if page.index != position:
            if position > 0 and page.index == ordered[position - 1].index:
                raise InvalidPageAsset(page.index, "duplicate page index")
            raise InvalidPageAsset(position, "page index missing from sequence")
        if not page.image:
            raise InvalidPageAsset(page.index, "image is empty")
        if not page.audio:
            raise InvalidPageAsset(page.index, "narration audio is empty")

    return ordered


def render_video(
    pages: Iterable[PageAsset],
    timing: TimingConfig,
    whoosh: bytes,
    engine_factory: Callable[[], Engine] = FfmpegEngine,
    audio_policy: str = AUDIO_POLICY,
    progress: ProgressCallback | None = None,
) -> bytes:
    """Build one segment per page and concatenate them.

    All validation happens before the engine is created. Each call gets
    a fresh engine scope that is closed on every exit path, so staged
    buffers never outlive the export.
    """
    timing.validate()
    ordered = validate_pages(pages)
    check_uniform_frames(ordered)
    if not whoosh:
        raise StorageWriteFailed(WHOOSH_NAME, "page-turn sound is empty")

    engine = engine_factory()
    try:
        engine.write_buffer(WHOOSH_NAME, whoosh)
        segments = []
        for page in ordered:
            segment = build_segment(engine, page, timing, whoosh_name=WHOOSH_NAME, audio_policy=audio_policy)
            segments.append(segment)
            if progress:
                progress(segment, len(ordered))
        logger.debug("Encoded %d segments, concatenating", len(segments))
        return assemble(engine, segments)
    finally:
        engine.close()

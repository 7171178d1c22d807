"""Assemble per-page segments into the final video."""

from storybook_video.constants import MANIFEST_NAME, OUTPUT_NAME
from storybook_video.engine import Engine
from storybook_video.errors import ConcatenationFailed, StorageReadNotFound
from storybook_video.models import Manifest, Segment


def build_manifest(segments: list[Segment]) -> Manifest:
    """Concat manifest naming every segment once, in page order.

    Segments must already be sorted by page index 0..N-1 with no gaps.
    """
    if not segments:
        raise ConcatenationFailed("no segments to concatenate")
    for expected, seg in enumerate(segments):
        if seg.page_index != expected:
            raise ConcatenationFailed(
                f"segment order broken at position {expected} (page {seg.page_index})"
            )
    return Manifest(names=[seg.name for seg in segments])


def assemble(engine: Engine, segments: list[Segment]) -> bytes:
    """Stream-copy the segments into one video and return its bytes.

    A single segment is already the whole video and is returned as-is.
    """
    manifest = build_manifest(segments)

    if len(segments) == 1:
        return segments[0].data

    engine.write_buffer(MANIFEST_NAME, manifest.render().encode("utf-8"))
    result = engine.run([
        "-f", "concat",
        "-safe", "0",
        "-i", MANIFEST_NAME,
        "-c", "copy",
        OUTPUT_NAME,
    ])
    if not result.ok:
        raise ConcatenationFailed(result.diagnostic)

    try:
        data = engine.read_buffer(OUTPUT_NAME)
    except StorageReadNotFound as e:
        raise ConcatenationFailed(f"no output produced ({e})") from e
    if not data:
        raise ConcatenationFailed("concatenation produced an empty file")

    for seg in segments:
        engine.remove(seg.name)
    engine.remove(MANIFEST_NAME)

    return data

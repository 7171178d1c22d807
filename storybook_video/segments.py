"""Encode one fixed-length video segment per story page."""

import io

from PIL import Image, UnidentifiedImageError
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from storybook_video.constants import (
    AUDIO_CHANNEL_LAYOUT,
    AUDIO_CODEC,
    AUDIO_POLICIES,
    AUDIO_POLICY,
    AUDIO_SAMPLE_RATE,
    FRAME_RATE,
    PIXEL_FORMAT,
    VIDEO_CODEC,
    WHOOSH_NAME,
)
from storybook_video.engine import Engine
from storybook_video.errors import (
    FrameSizeMismatch,
    InvalidPageAsset,
    SegmentEncodeFailed,
    StorageReadNotFound,
)
from storybook_video.models import PageAsset, Segment, TimingConfig

_IMAGE_EXTENSIONS = {"PNG": "png", "JPEG": "jpg", "WEBP": "webp", "BMP": "bmp", "GIF": "gif"}


def _seconds(value: float) -> str:
    """Format seconds for ffmpeg without float noise: 3.5 -> "3.5", 4.0 -> "4"."""
    return f"{value:.6f}".rstrip("0").rstrip(".")


def _open_image(page: PageAsset) -> Image.Image:
    try:
        return Image.open(io.BytesIO(page.image))
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidPageAsset(page.index, f"unreadable image ({e})") from e


def image_extension(page: PageAsset) -> str:
    fmt = _open_image(page).format or "PNG"
    return _IMAGE_EXTENSIONS.get(fmt, "png")


def check_uniform_frames(pages: list[PageAsset]) -> tuple[int, int]:
    """Every page image must match page 0's size; returns that size.

    Stream-copy concatenation needs identical resolution across segments,
    so a mismatch is rejected here rather than at concat time.
    """
    size = None
    for page in pages:
        page_size = _open_image(page).size
        if size is None:
            size = page_size
        elif page_size != size:
            raise FrameSizeMismatch(
                page.index, f"image is {page_size[0]}x{page_size[1]}, expected {size[0]}x{size[1]}"
            )
    return size


def narration_seconds(audio: bytes) -> float:
    """Duration of a narration clip, decoded with pydub."""
    return len(AudioSegment.from_file(io.BytesIO(audio))) / 1000


def segment_name(index: int) -> str:
    return f"seg{index:03d}.mp4"


def build_filter_graph(timing: TimingConfig, mix_duration: str = "shortest") -> str:
    """Filter graph: still image with fade-out, narration mixed with a delayed whoosh.

    Example for hold=4, fade=0.5: fade starts at 3.5s and the whoosh is
    delayed by 3500ms so it lands on the fade.
    """
    video = f"[0:v]scale=trunc(iw/2)*2:trunc(ih/2)*2,format={PIXEL_FORMAT}"
    if timing.fade_seconds > 0:
        video += f",fade=t=out:st={_seconds(timing.fade_start)}:d={_seconds(timing.fade_seconds)}"
    video += "[vout]"

    aformat = f"aformat=sample_rates={AUDIO_SAMPLE_RATE}:channel_layouts={AUDIO_CHANNEL_LAYOUT}"
    delay = timing.whoosh_delay_ms
    audio = (
        f"[1:a]{aformat},adelay=0|0[a1];"
        f"[2:a]{aformat},adelay={delay}|{delay}[a2];"
        f"[a1][a2]amix=inputs=2:duration={mix_duration}[aout]"
    )
    return f"{video};{audio}"


def build_segment_args(
    image_name: str,
    audio_name: str,
    whoosh_name: str,
    output_name: str,
    timing: TimingConfig,
    mix_duration: str = "shortest",
) -> list[str]:
    """ffmpeg arguments for one page segment.

    Encoder parameters are fixed so every segment can be stream-copied
    into the final video.
    """
    hold = _seconds(timing.hold_seconds)
    return [
        "-loop", "1",
        "-framerate", str(FRAME_RATE),
        "-t", hold,
        "-i", image_name,
        "-i", audio_name,
        "-i", whoosh_name,
        "-filter_complex", build_filter_graph(timing, mix_duration),
        "-map", "[vout]",
        "-map", "[aout]",
        "-c:v", VIDEO_CODEC,
        "-pix_fmt", PIXEL_FORMAT,
        "-r", str(FRAME_RATE),
        "-c:a", AUDIO_CODEC,
        "-ar", str(AUDIO_SAMPLE_RATE),
        "-ac", "2",
        "-t", hold,
        output_name,
    ]


def build_segment(
    engine: Engine,
    page: PageAsset,
    timing: TimingConfig,
    whoosh_name: str = WHOOSH_NAME,
    audio_policy: str = AUDIO_POLICY,
) -> Segment:
    """Encode a page's image + narration + page-turn sound into one segment.

    The whoosh must already be staged in the engine under whoosh_name.
    Inputs are validated before anything touches the engine.
    """
    timing.validate()
    if not page.image:
        raise InvalidPageAsset(page.index, "image is empty")
    if not page.audio:
        raise InvalidPageAsset(page.index, "narration audio is empty")
    if audio_policy not in AUDIO_POLICIES:
        raise ValueError(f"Unknown audio policy: {audio_policy}")

    ext = image_extension(page)
    mix_duration = "shortest"
    if audio_policy == "extend":
        try:
            spoken = narration_seconds(page.audio)
        except CouldntDecodeError as e:
            raise InvalidPageAsset(page.index, f"unreadable narration ({e})") from e
        timing = timing.extended_to(spoken)
        mix_duration = "longest"

    image_name = f"page{page.index:03d}.{ext}"
    audio_name = f"narration{page.index:03d}.mp3"
    output_name = segment_name(page.index)

    engine.write_buffer(image_name, page.image)
    engine.write_buffer(audio_name, page.audio)

    args = build_segment_args(image_name, audio_name, whoosh_name, output_name, timing, mix_duration)
    result = engine.run(args)
    if not result.ok:
        raise SegmentEncodeFailed(page.index, result.diagnostic)

    try:
        data = engine.read_buffer(output_name)
    except StorageReadNotFound as e:
        raise SegmentEncodeFailed(page.index, f"no output produced ({e})") from e
    if not data:
        raise SegmentEncodeFailed(page.index, "encoder produced an empty file")

    # Inputs are no longer needed once the segment exists
    engine.remove(image_name)
    engine.remove(audio_name)

    return Segment(
        page_index=page.index,
        name=output_name,
        data=data,
        duration=timing.hold_seconds,
    )

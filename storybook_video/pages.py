"""Render story pages to still images: illustration left, text right."""

import io
import os

import requests
from PIL import Image, ImageDraw, ImageFont, ImageOps

from storybook_video.constants import DOWNLOAD_TIMEOUT, PAGE_FONT_SIZE, PAGE_MARGIN, PAGE_SIZE

_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSerif.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/System/Library/Fonts/Supplemental/Georgia.ttf",
    "C:/Windows/Fonts/georgia.ttf",
)


def _resolve_font(size: int) -> ImageFont.ImageFont:
    """Load a truetype font, falling back to Pillow's default."""
    for path in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(path, size=size)
        except OSError:
            continue
    return ImageFont.load_default()


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont, max_width: int) -> list[str]:
    """Greedy word wrap; blank line between paragraphs."""
    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            left, _, right, _ = draw.textbbox((0, 0), candidate, font=font)
            if right - left <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
        lines.append("")
    while lines and lines[-1] == "":
        lines.pop()
    return lines


def load_illustration(ref: str, base_dir: str = ".") -> bytes | None:
    """Read an illustration from a local path or an http(s) URL.

    Relative paths resolve against base_dir (the story file's folder).
    Returns None when ref is empty.
    """
    if not ref:
        return None
    if ref.startswith(("http://", "https://")):
        response = requests.get(ref, timeout=DOWNLOAD_TIMEOUT)
        response.raise_for_status()
        return response.content
    path = ref if os.path.isabs(ref) else os.path.join(base_dir, ref)
    with open(path, "rb") as f:
        return f.read()


def render_page(
    text: str,
    illustration: bytes | None = None,
    size: tuple[int, int] = PAGE_SIZE,
    page_number: int | None = None,
) -> bytes:
    """Compose one page and return it as PNG bytes.

    Every page rendered with the same size yields identically sized
    frames, which the video pipeline requires.
    """
    width, height = size
    margin = PAGE_MARGIN
    page = Image.new("RGB", size, color=(255, 255, 255))
    draw = ImageDraw.Draw(page)

    # Left half: illustration, letterboxed into its panel
    panel_w = width // 2 - margin - margin // 2
    panel_h = height - 2 * margin
    panel_box = (margin, margin, margin + panel_w, margin + panel_h)
    if illustration:
        art = Image.open(io.BytesIO(illustration)).convert("RGB")
        art = ImageOps.contain(art, (panel_w, panel_h))
        x = margin + (panel_w - art.width) // 2
        y = margin + (panel_h - art.height) // 2
        page.paste(art, (x, y))
    else:
        draw.rounded_rectangle(panel_box, radius=16, fill=(241, 245, 249), outline=(221, 221, 221))
        hint_font = _resolve_font(PAGE_FONT_SIZE - 10)
        hint = "Illustration pending"
        left, top, right, bottom = draw.textbbox((0, 0), hint, font=hint_font)
        hint_x = (panel_box[0] + panel_box[2] - (right - left)) // 2
        hint_y = (panel_box[1] + panel_box[3] - (bottom - top)) // 2
        draw.text((hint_x, hint_y), hint, fill=(120, 120, 120), font=hint_font)

    # Right half: story text
    font = _resolve_font(PAGE_FONT_SIZE)
    text_x = width // 2 + margin // 2
    text_w = width - text_x - margin
    lines = wrap_text(draw, text, font, text_w)
    line_height = int(PAGE_FONT_SIZE * 1.5)
    block_h = line_height * len(lines)
    y = max(margin, (height - block_h) // 2)
    for line in lines:
        if y + line_height > height - margin:
            break
        draw.text((text_x, y), line, fill=(34, 34, 34), font=font)
        y += line_height

    if page_number is not None:
        small = _resolve_font(PAGE_FONT_SIZE - 14)
        label = str(page_number)
        left, top, right, bottom = draw.textbbox((0, 0), label, font=small)
        draw.text((width - margin - (right - left), height - margin + (margin - (bottom - top)) // 2), label, fill=(150, 150, 150), font=small)

    buf = io.BytesIO()
    page.save(buf, format="PNG")
    return buf.getvalue()

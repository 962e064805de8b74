"""Caption layout and drawing onto template images."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence

from PIL import Image, ImageDraw, ImageFont

from .models import MemeTemplate, Point
from .resources import SizedFont

logger = logging.getLogger("memebot.compositor")

TEXT_COLOR = (0, 0, 0, 255)


class RenderError(Exception):
    """Raised when a caption cannot be drawn onto its template."""


@dataclass(frozen=True)
class PlacedLine:
    text: str
    x: int
    y: int


def build_caption(template: MemeTemplate, text: str) -> str:
    return f"{template.text_prefix}{text.upper()}{template.text_suffix}"


def split_lines(text: str) -> List[str]:
    """Split on explicit newlines only; long lines are not wrapped."""
    if not text:
        return []
    return [line.strip() for line in text.split("\n")]


def text_width(font: ImageFont.FreeTypeFont, line: str) -> int:
    if not line:
        return 0
    left, top, right, bottom = font.getbbox(line)
    return max(0, int(right))


def layout_lines(
    lines: Sequence[str],
    center: Point,
    line_height: int,
    measure: Callable[[str], int],
) -> List[PlacedLine]:
    """Center a block of lines on ``center`` using floor division throughout."""
    start_y = center.y - (line_height * len(lines)) // 2
    placed: List[PlacedLine] = []
    for index, line in enumerate(lines):
        x = center.x - measure(line) // 2
        placed.append(PlacedLine(text=line, x=x, y=start_y + index * line_height))
    return placed


def render(template: MemeTemplate, font: SizedFont, text: str) -> Image.Image:
    """Draw ``text`` centered in the template region on a copy of its image."""
    lines = split_lines(text)
    placed = layout_lines(
        lines,
        template.center,
        font.line_height,
        lambda line: text_width(font.font, line),
    )
    canvas = template.image.copy()
    if not placed:
        return canvas

    try:
        draw = ImageDraw.Draw(canvas)
        for line in placed:
            if line.text:
                draw.text((line.x, line.y), line.text, font=font.font, fill=TEXT_COLOR)
    except (OSError, ValueError) as exc:
        raise RenderError(f"Failed to draw caption on {template.name}: {exc}") from exc

    logger.debug(
        "Rendered %s line(s) on %s at %s (line height %s)",
        len(placed),
        template.name,
        template.center,
        font.line_height,
    )
    return canvas


def encode_png(image: Image.Image) -> io.BytesIO:
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="PNG")
    except (OSError, ValueError) as exc:
        raise RenderError(f"Failed to encode image: {exc}") from exc
    buffer.seek(0)
    return buffer


__all__ = [
    "PlacedLine",
    "RenderError",
    "TEXT_COLOR",
    "build_caption",
    "encode_png",
    "layout_lines",
    "render",
    "split_lines",
    "text_width",
]

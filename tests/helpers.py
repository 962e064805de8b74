"""Shared fixtures for the meme bot test suites."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageFont

from memebot.models import MemeTemplate, Region, Scale
from memebot.resources import SizedFont


def write_image(path: Path, size: Tuple[int, int] = (800, 400), color=(255, 255, 255)) -> Path:
    Image.new("RGB", size, color).save(path)
    return path


def write_bundled_font(path: Path) -> Optional[Path]:
    """Write Pillow's embedded FreeType font to ``path`` when this build has one."""
    font = ImageFont.load_default()
    data = getattr(font, "font_bytes", None)
    if not data:
        return None
    path.write_bytes(data)
    return path


def default_sized_font(ascent: int = 8, descent: int = 2, line_gap: int = 0) -> SizedFont:
    return SizedFont(font=ImageFont.load_default(), size=10, ascent=ascent, descent=descent, line_gap=line_gap)


def make_template(
    size: Tuple[int, int] = (800, 400),
    region: Optional[Region] = None,
    **overrides,
) -> MemeTemplate:
    options = dict(
        name="template",
        image=Image.new("RGBA", size, (255, 255, 255, 255)),
        font_key="font.ttf",
        scale=Scale.uniform(12),
        region=region or Region(0, 0, size[0], size[1]),
    )
    options.update(overrides)
    return MemeTemplate(**options)

"""Shared, load-once caches for template images and fonts."""

from __future__ import annotations

import io
import logging
import math
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple, Union

from PIL import Image, ImageFont

from .models import DEFAULT_FONT_SIZE, Scale

logger = logging.getLogger("memebot.resources")

PathLike = Union[str, Path]


class ResourceLoadError(Exception):
    """Raised when an image or font cannot be read or decoded."""


def _cache_key(path: PathLike) -> str:
    return Path(path).as_posix()


@dataclass(frozen=True)
class SizedFont:
    """A Pillow font at a fixed pixel size plus its vertical metrics."""

    font: ImageFont.FreeTypeFont = field(repr=False)
    size: int
    ascent: int
    descent: int
    line_gap: int = 0

    @property
    def line_height(self) -> int:
        # Pillow reports descent as a positive distance below the baseline.
        return math.ceil(self.line_gap / 2 + self.ascent + self.descent)


class LoadedFont:
    """Raw font bytes, decoded once, handing out sized variants on demand."""

    def __init__(self, path: str, data: bytes):
        self.path = path
        self._data = data
        self._sized: Dict[int, SizedFont] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"LoadedFont({self.path!r})"

    def sized(self, scale: Scale) -> SizedFont:
        # FreeType sizes are uniform; the vertical scale is the pixel size.
        size = max(1, int(round(scale.y)))
        with self._lock:
            cached = self._sized.get(size)
            if cached is not None:
                return cached
            font = ImageFont.truetype(io.BytesIO(self._data), size=size)
            ascent, descent = font.getmetrics()
            height = getattr(font.font, "height", ascent + descent)
            sized = SizedFont(
                font=font,
                size=size,
                ascent=ascent,
                descent=descent,
                line_gap=max(0, height - ascent - descent),
            )
            self._sized[size] = sized
            return sized


class ImageCache:
    """Template images keyed by path, converted to RGBA on first load."""

    def __init__(self) -> None:
        self._images: Dict[str, Image.Image] = {}
        self._failures: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __contains__(self, path: PathLike) -> bool:
        return _cache_key(path) in self._images

    def __len__(self) -> int:
        return len(self._images)

    def load_image(self, path: PathLike) -> Image.Image:
        key = _cache_key(path)
        with self._lock:
            cached = self._images.get(key)
            if cached is not None:
                return cached
            failure = self._failures.get(key)
            if failure is not None:
                raise ResourceLoadError(failure)
            try:
                with Image.open(key) as opened:
                    image = opened.convert("RGBA")
            except OSError as exc:
                error = ResourceLoadError(f"Unable to open image {key}: {exc}")
                self._failures[key] = str(error)
                raise error from exc
            self._images[key] = image
            logger.debug("Loaded image %s (%sx%s)", key, image.width, image.height)
            return image


class FontCache:
    """Fonts keyed by path; a path is read from disk at most once."""

    def __init__(self) -> None:
        self._fonts: Dict[str, LoadedFont] = {}
        self._failures: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __contains__(self, path: PathLike) -> bool:
        return _cache_key(path) in self._fonts

    def __len__(self) -> int:
        return len(self._fonts)

    def keys(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._fonts)

    def load_font(self, path: PathLike) -> LoadedFont:
        key = _cache_key(path)
        with self._lock:
            cached = self._fonts.get(key)
            if cached is not None:
                return cached
            failure = self._failures.get(key)
            if failure is not None:
                raise ResourceLoadError(failure)
            try:
                data = Path(key).read_bytes()
                ImageFont.truetype(io.BytesIO(data), size=DEFAULT_FONT_SIZE)
            except OSError as exc:
                error = ResourceLoadError(f"Unable to load font {key}: {exc}")
                self._failures[key] = str(error)
                raise error from exc
            loaded = LoadedFont(key, data)
            self._fonts[key] = loaded
            logger.debug("Loaded font %s (%s bytes)", key, len(data))
            return loaded

    def resolve(self, path: PathLike) -> LoadedFont:
        """Return the font for ``path`` or any loaded font in its place."""
        key = _cache_key(path)
        with self._lock:
            font = self._fonts.get(key)
            if font is not None:
                return font
            if not self._fonts:
                raise ResourceLoadError(f"Font {key} is unavailable and no fallback font is loaded")
            fallback = next(iter(self._fonts.values()))
        logger.warning("Font %s is unavailable; falling back to %s", key, fallback.path)
        return fallback


__all__ = [
    "FontCache",
    "ImageCache",
    "LoadedFont",
    "ResourceLoadError",
    "SizedFont",
]

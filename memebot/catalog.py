"""Meme template catalog built from the YAML configuration document."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from .models import DEFAULT_FONT_SIZE, Command, MemeTemplate, Region, Scale
from .resources import FontCache, ImageCache, ResourceLoadError

logger = logging.getLogger("memebot.catalog")

REGION_KEYS = ("left", "top", "right", "bottom")
RECOGNIZED_KEYS = frozenset(
    (
        "filename",
        "font",
        "font_size",
        *REGION_KEYS,
        "text_prefix",
        "text_suffix",
        "command",
        "is_default",
    )
)


class ConfigurationError(Exception):
    """Raised when the template configuration cannot be used at all."""


@dataclass(frozen=True)
class Resolution:
    """A template chosen for a command and the text that becomes its caption."""

    template: MemeTemplate
    text: str
    by_trigger: bool


class TemplateCatalog:
    """Templates in load order; the first match wins every lookup."""

    def __init__(self, templates: Sequence[MemeTemplate], fonts: FontCache, images: ImageCache):
        self.templates: Tuple[MemeTemplate, ...] = tuple(templates)
        self.fonts = fonts
        self.images = images

    def __len__(self) -> int:
        return len(self.templates)

    def __iter__(self):
        return iter(self.templates)

    def find(self, trigger: str) -> Optional[MemeTemplate]:
        if not trigger:
            return None
        for template in self.templates:
            if template.matches(trigger):
                return template
        return None

    def default(self) -> Optional[MemeTemplate]:
        for template in self.templates:
            if template.is_default:
                return template
        return None

    def resolve(self, command: Command) -> Optional[Resolution]:
        template = self.find(command.trigger)
        if template is not None:
            return Resolution(template=template, text=command.argument, by_trigger=True)
        template = self.default()
        if template is not None:
            return Resolution(template=template, text=command.entire, by_trigger=False)
        return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _read_options(entry: Mapping[Any, Any], label: str) -> Dict[str, Any]:
    """Keep the recognized, correctly typed keys of one entry."""
    options: Dict[str, Any] = {}
    for key, value in entry.items():
        if key not in RECOGNIZED_KEYS:
            logger.warning("%s: ignoring unknown key %r", label, key)
            continue
        if key in ("filename", "font", "text_prefix", "text_suffix", "command"):
            valid = isinstance(value, str)
            expected = "a string"
        elif key == "font_size":
            valid = _is_int(value) and value > 0
            expected = "a positive integer"
        elif key in REGION_KEYS:
            valid = _is_int(value) and value >= 0
            expected = "a non-negative integer"
        else:
            valid = isinstance(value, bool)
            expected = "a boolean"
        if not valid:
            logger.warning("%s: ignoring %s=%r (expected %s)", label, key, value, expected)
            continue
        options[key] = value
    return options


def _resolve_path(raw: str, base_dir: Path) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


def _clamped_region(options: Mapping[str, Any], width: int, height: int, label: str) -> Region:
    left = options.get("left", 0)
    top = options.get("top", 0)
    right = options.get("right", width)
    bottom = options.get("bottom", height)

    clamped_left = min(left, width)
    clamped_top = min(top, height)
    clamped_right = max(clamped_left, min(right, width))
    clamped_bottom = max(clamped_top, min(bottom, height))
    region = Region(clamped_left, clamped_top, clamped_right, clamped_bottom)
    if (left, top, right, bottom) != (region.left, region.top, region.right, region.bottom):
        logger.warning(
            "%s: region (%s, %s, %s, %s) exceeds the %sx%s image; clamped to (%s, %s, %s, %s)",
            label,
            left,
            top,
            right,
            bottom,
            width,
            height,
            region.left,
            region.top,
            region.right,
            region.bottom,
        )
    return region


def build_catalog(
    document: Any,
    base_dir: Path,
    fonts: Optional[FontCache] = None,
    images: Optional[ImageCache] = None,
) -> TemplateCatalog:
    """Build the catalog from a parsed configuration document.

    The document is a sequence of template entries. Defects inside an entry are
    logged and skipped key by key; an entry without a usable image, or without
    any font to draw with, is dropped. A document that is not a sequence,
    declares nothing, or yields no usable template raises ``ConfigurationError``.
    """
    fonts = fonts if fonts is not None else FontCache()
    images = images if images is not None else ImageCache()

    if not isinstance(document, list):
        raise ConfigurationError(
            f"Template configuration must be a list of entries, not {type(document).__name__}"
        )
    if not document:
        raise ConfigurationError("Template configuration declares no entries")

    templates: List[MemeTemplate] = []
    last_font_key: Optional[str] = None

    for index, entry in enumerate(document, start=1):
        label = f"Template #{index}"
        if not isinstance(entry, Mapping):
            logger.warning("%s: expected a mapping, got %s; skipping", label, type(entry).__name__)
            continue
        options = _read_options(entry, label)

        filename = options.get("filename")
        if filename is None:
            logger.warning("%s: missing filename; skipping", label)
            continue
        label = f"{label} ({filename})"
        try:
            image = images.load_image(_resolve_path(filename, base_dir))
        except ResourceLoadError as exc:
            logger.warning("%s: %s; skipping", label, exc)
            continue

        font_name = options.get("font")
        if font_name is not None:
            font_key = _resolve_path(font_name, base_dir).as_posix()
            try:
                fonts.load_font(font_key)
                last_font_key = font_key
            except ResourceLoadError as exc:
                logger.warning("%s: %s; a fallback font will be used", label, exc)
        elif last_font_key is not None:
            logger.warning("%s: no font given; reusing %s", label, last_font_key)
            font_key = last_font_key
        else:
            logger.warning("%s: no font given and none loaded yet; skipping", label)
            continue

        template = MemeTemplate(
            name=Path(filename).stem,
            image=image,
            font_key=font_key,
            scale=Scale.uniform(options.get("font_size", DEFAULT_FONT_SIZE)),
            region=_clamped_region(options, image.width, image.height, label),
            text_prefix=options.get("text_prefix", ""),
            text_suffix=options.get("text_suffix", ""),
            command=options.get("command"),
            is_default=options.get("is_default", False),
        )
        templates.append(template)
        logger.info(
            "Loaded template %s (command=%s, default=%s)",
            template.name,
            template.command or "-",
            template.is_default,
        )

    if not templates:
        raise ConfigurationError("Template configuration contains no usable templates")
    return TemplateCatalog(templates, fonts, images)


def load_catalog(path: Path) -> TemplateCatalog:
    """Read and build the catalog from a YAML file."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Unable to read {path}: {exc}") from exc
    try:
        document = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path}: {exc}") from exc
    catalog = build_catalog(document, path.parent)
    logger.info("Loaded %s template(s) and %s font(s) from %s", len(catalog), len(catalog.fonts), path)
    return catalog


__all__ = [
    "ConfigurationError",
    "RECOGNIZED_KEYS",
    "Resolution",
    "TemplateCatalog",
    "build_catalog",
    "load_catalog",
]

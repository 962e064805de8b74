"""Dataclasses and shared type definitions for the meme bot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from PIL import Image


DEFAULT_FONT_SIZE = 12


@dataclass(frozen=True)
class Command:
    """A message addressed to the bot, split into trigger and argument."""

    entire: str
    trigger: str
    argument: str

    @property
    def keyword(self) -> str:
        return self.trigger.lower()


@dataclass(frozen=True)
class KnownUser:
    id: int
    name: str


@dataclass(frozen=True)
class Scale:
    x: float
    y: float

    @classmethod
    def uniform(cls, size: float) -> "Scale":
        return cls(float(size), float(size))


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class Region:
    left: int
    top: int
    right: int
    bottom: int

    @property
    def center(self) -> Point:
        return Point((self.left + self.right) // 2, (self.top + self.bottom) // 2)


@dataclass(frozen=True, eq=False)
class MemeTemplate:
    name: str
    image: Image.Image = field(repr=False)
    font_key: str
    scale: Scale
    region: Region
    text_prefix: str = ""
    text_suffix: str = ""
    command: Optional[str] = None
    is_default: bool = False

    @property
    def center(self) -> Point:
        return self.region.center

    def matches(self, keyword: str) -> bool:
        return self.command is not None and self.command.lower() == keyword.lower()


__all__ = [
    "Command",
    "DEFAULT_FONT_SIZE",
    "KnownUser",
    "MemeTemplate",
    "Point",
    "Region",
    "Scale",
]

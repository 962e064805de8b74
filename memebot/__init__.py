"""Meme bot package providing command parsing, templates, and rendering."""

from . import catalog, commands, compositor, dispatch, mentions, models, resources, session, utils  # noqa: F401

__all__ = [
    "catalog",
    "commands",
    "compositor",
    "dispatch",
    "mentions",
    "models",
    "resources",
    "session",
    "utils",
]

"""Rewrite Discord mention tokens into plain display text."""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Optional, Sequence

from .models import KnownUser

logger = logging.getLogger("memebot.mentions")

NameLookup = Callable[[int], Optional[str]]

USER_MENTION_RE = re.compile(r"<@!?(\d+)>")
CHANNEL_MENTION_RE = re.compile(r"<#(\d+)>")
ROLE_MENTION_RE = re.compile(r"<@&(\d+)>")
# Captions are upper-cased before expansion, so the animated flag may arrive as "A".
CUSTOM_EMOJI_RE = re.compile(r"<[aA]?:([a-zA-Z0-9_]{2,}):(\d+)>")

DELETED_CHANNEL = "#deleted-channel"
DELETED_ROLE = "@deleted-role"

MAX_EXPANSION_PASSES = 8


def _lookup_name(lookup: Optional[NameLookup], target_id: int) -> Optional[str]:
    if lookup is None:
        return None
    name = lookup(target_id)
    if not name:
        return None
    return name


def expand_user_mentions(text: str, known_users: Sequence[KnownUser]) -> str:
    names: Dict[int, str] = {}
    for user in known_users:
        names.setdefault(user.id, user.name)

    def repl(match: re.Match[str]) -> str:
        target_id = int(match.group(1))
        return f"@{names.get(target_id, target_id)}"

    return USER_MENTION_RE.sub(repl, text)


def expand_channel_mentions(text: str, channel_lookup: Optional[NameLookup]) -> str:
    def repl(match: re.Match[str]) -> str:
        name = _lookup_name(channel_lookup, int(match.group(1)))
        return f"#{name}" if name else DELETED_CHANNEL

    return CHANNEL_MENTION_RE.sub(repl, text)


def expand_role_mentions(text: str, role_lookup: Optional[NameLookup]) -> str:
    def repl(match: re.Match[str]) -> str:
        name = _lookup_name(role_lookup, int(match.group(1)))
        return f"@{name}" if name else DELETED_ROLE

    return ROLE_MENTION_RE.sub(repl, text)


def expand_custom_emoji(text: str) -> str:
    return CUSTOM_EMOJI_RE.sub(lambda match: f":{match.group(1)}:", text)


def _until_stable(text: str, step: Callable[[str], str], label: str) -> str:
    """Apply ``step`` until the text stops changing, a text repeats, or the pass limit is hit."""
    seen = {text}
    for _ in range(MAX_EXPANSION_PASSES):
        expanded = step(text)
        if expanded == text:
            return text
        if expanded in seen:
            logger.warning("Mention expansion of %s cycles; stopping at %r", label, expanded)
            return expanded
        seen.add(expanded)
        text = expanded
    logger.warning("Stopped expanding %s after %s passes", label, MAX_EXPANSION_PASSES)
    return text


def expand_mentions(
    text: str,
    known_users: Sequence[KnownUser],
    channel_lookup: Optional[NameLookup] = None,
    role_lookup: Optional[NameLookup] = None,
) -> str:
    """Return ``text`` with user, channel, role and emoji tokens made readable.

    Users are resolved from ``known_users`` with a numeric fallback. Channel and
    role names come from the lookups, which are only available for messages
    sent inside a guild; without them every channel and role token collapses to
    its "deleted" placeholder. A display name may itself contain a token, so
    each category is expanded until nothing more matches, and the whole
    sequence repeats while a later category still uncovers tokens of an earlier
    one. Names that expand into themselves stop at ``MAX_EXPANSION_PASSES``.
    """
    if not text:
        return text

    def users(current: str) -> str:
        return expand_user_mentions(current, known_users)

    def channels_and_roles(current: str) -> str:
        return expand_role_mentions(expand_channel_mentions(current, channel_lookup), role_lookup)

    def all_categories(current: str) -> str:
        current = _until_stable(current, users, "user mentions")
        current = _until_stable(current, channels_and_roles, "channel and role mentions")
        return _until_stable(current, expand_custom_emoji, "custom emoji")

    expanded = _until_stable(text, all_categories, "mentions")
    if expanded != text:
        logger.debug("Expanded mentions: %r -> %r", text, expanded)
    return expanded


__all__ = [
    "CHANNEL_MENTION_RE",
    "CUSTOM_EMOJI_RE",
    "DELETED_CHANNEL",
    "DELETED_ROLE",
    "MAX_EXPANSION_PASSES",
    "NameLookup",
    "ROLE_MENTION_RE",
    "USER_MENTION_RE",
    "expand_channel_mentions",
    "expand_custom_emoji",
    "expand_mentions",
    "expand_role_mentions",
    "expand_user_mentions",
]

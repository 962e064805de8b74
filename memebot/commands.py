"""Extraction of bot commands from raw message content."""

from __future__ import annotations

import logging
import re
from typing import Optional, Pattern

from .models import Command

logger = logging.getLogger("memebot.commands")

_DIRECT_COMMAND_RE = re.compile(r"(\S*)\s*(.*)", re.DOTALL)


def _addressed_command_re(bot_id: int) -> Pattern[str]:
    return re.compile(rf"<@!?{bot_id}>\s*(\S*)\s*(.*)", re.DOTALL)


def parse_command(bot_id: Optional[int], is_direct_message: bool, content: str) -> Optional[Command]:
    """Split ``content`` into a command if it is addressed to the bot.

    A message that opens with a mention of the bot is a command wherever it was
    sent; in a direct message the whole content is the command. ``entire`` for
    the mention form starts at the trigger, so whitespace after the mention is
    dropped, while the direct form keeps the content untouched.
    """
    if bot_id is not None:
        match = _addressed_command_re(bot_id).fullmatch(content)
        if match:
            return Command(
                entire=content[match.start(1):],
                trigger=match.group(1),
                argument=match.group(2),
            )

    if is_direct_message:
        match = _DIRECT_COMMAND_RE.fullmatch(content)
        if match:
            return Command(entire=content, trigger=match.group(1), argument=match.group(2))

    return None


__all__ = ["parse_command"]

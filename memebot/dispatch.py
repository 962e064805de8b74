"""Route parsed commands to authorization or meme rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from PIL import Image

from .catalog import TemplateCatalog
from .commands import parse_command
from .compositor import RenderError, build_caption, render
from .mentions import NameLookup, expand_mentions
from .models import Command, KnownUser
from .resources import ResourceLoadError
from .session import AuthOutcome, Session

logger = logging.getLogger("memebot.dispatch")

APOLOGY = "Sorry, something went wrong! Maybe try again?"
ALREADY_AUTHORIZED_REPLY = "You are already authorized."
AUTHORIZED_REPLY = "Successfully authorized."

AUTH_COMMAND = "auth"
QUIT_COMMAND = "quit"


@dataclass(frozen=True)
class IncomingMessage:
    content: str
    author_id: int
    author_name: str = ""
    is_direct_message: bool = False
    mentioned_users: Sequence[KnownUser] = ()
    channel_lookup: Optional[NameLookup] = field(default=None, repr=False)
    role_lookup: Optional[NameLookup] = field(default=None, repr=False)
    author_is_bot: bool = False

    @property
    def author_label(self) -> str:
        if self.author_name:
            return f"{self.author_name} ({self.author_id})"
        return str(self.author_id)


@dataclass(frozen=True)
class Reply:
    text: Optional[str] = None
    image: Optional[Image.Image] = field(default=None, repr=False)
    filename: Optional[str] = None
    shutdown: bool = False


class MessageDispatcher:
    def __init__(self, session: Session, catalog: TemplateCatalog):
        self.session = session
        self.catalog = catalog

    def handle(self, message: IncomingMessage) -> Optional[Reply]:
        if message.author_is_bot:
            return None

        command = parse_command(self.session.bot_id, message.is_direct_message, message.content)
        if command is None:
            return None

        logger.debug("Received command; trigger: %r, argument: %r", command.trigger, command.argument)

        if command.keyword == AUTH_COMMAND:
            return self._handle_auth(message, command)
        if command.keyword == QUIT_COMMAND:
            return self._handle_quit(message)
        return self._handle_meme(message, command)

    def _handle_auth(self, message: IncomingMessage, command: Command) -> Optional[Reply]:
        if not message.is_direct_message:
            return None

        outcome = self.session.authenticate(message.author_id, command.argument)
        if outcome is AuthOutcome.ALREADY_AUTHORIZED:
            return Reply(text=ALREADY_AUTHORIZED_REPLY)
        if outcome is AuthOutcome.AUTHORIZED:
            logger.info("User successfully authorized as admin: %s", message.author_label)
            return Reply(text=AUTHORIZED_REPLY)
        if outcome is AuthOutcome.DISABLED:
            logger.warning(
                "User attempted to authorize but no admin password is configured: %s",
                message.author_label,
            )
            return None
        logger.info("User failed attempt to authorize as admin: %s", message.author_label)
        return None

    def _handle_quit(self, message: IncomingMessage) -> Optional[Reply]:
        if not self.session.is_authorized(message.author_id):
            logger.info("Ignoring quit from unauthorized user: %s", message.author_label)
            return None
        logger.info("User requested quit: %s", message.author_label)
        return Reply(shutdown=True)

    def _handle_meme(self, message: IncomingMessage, command: Command) -> Optional[Reply]:
        resolution = self.catalog.resolve(command)
        if resolution is None:
            logger.debug("No template for trigger %r and no default template", command.trigger)
            return None

        template = resolution.template
        caption = expand_mentions(
            build_caption(template, resolution.text),
            message.mentioned_users,
            message.channel_lookup,
            message.role_lookup,
        )
        logger.info("Creating %s image for string %r", template.name, caption)

        try:
            font = self.catalog.fonts.resolve(template.font_key).sized(template.scale)
            image = render(template, font, caption)
        except (ResourceLoadError, RenderError, OSError) as exc:
            logger.warning("Failed to create %s image: %s", template.name, exc)
            return Reply(text=APOLOGY)

        return Reply(image=image, filename=f"{template.name}.png")


__all__ = [
    "ALREADY_AUTHORIZED_REPLY",
    "APOLOGY",
    "AUTHORIZED_REPLY",
    "IncomingMessage",
    "MessageDispatcher",
    "Reply",
]

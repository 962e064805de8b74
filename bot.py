import asyncio
import io
import logging
import sys
from typing import Optional, Tuple

import discord
from dotenv import load_dotenv

from memebot.catalog import ConfigurationError, TemplateCatalog, load_catalog
from memebot.compositor import RenderError, encode_png
from memebot.dispatch import APOLOGY, IncomingMessage, MessageDispatcher, Reply
from memebot.models import KnownUser
from memebot.session import Session
from memebot.utils import log_level_from_env, path_from_env, secret_from_env

load_dotenv()

logging.basicConfig(
    level=log_level_from_env("MEMEBOT_LOG_LEVEL"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("memebot")
logging.getLogger("PIL").setLevel(logging.ERROR)

DEFAULT_CONFIG_PATH = "memes.yml"

intents = discord.Intents.default()
intents.message_content = True


class MemeBot(discord.Client):
    def __init__(self, *, session: Session, catalog: TemplateCatalog, **options):
        super().__init__(**options)
        self.session = session
        self.dispatcher = MessageDispatcher(session, catalog)


def _incoming_from_message(message: discord.Message) -> IncomingMessage:
    guild = message.guild
    channel_lookup = role_lookup = None
    if guild is not None:

        def channel_lookup(channel_id: int) -> Optional[str]:
            channel = guild.get_channel_or_thread(channel_id)
            return channel.name if channel else None

        def role_lookup(role_id: int) -> Optional[str]:
            role = guild.get_role(role_id)
            return role.name if role else None

    return IncomingMessage(
        content=message.content,
        author_id=message.author.id,
        author_name=str(message.author),
        is_direct_message=isinstance(message.channel, discord.DMChannel),
        mentioned_users=tuple(KnownUser(user.id, user.display_name) for user in message.mentions),
        channel_lookup=channel_lookup,
        role_lookup=role_lookup,
        author_is_bot=message.author.bot,
    )


def _prepare_reply(dispatcher: MessageDispatcher, incoming: IncomingMessage) -> Tuple[Optional[Reply], Optional[io.BytesIO]]:
    reply = dispatcher.handle(incoming)
    if reply is None or reply.image is None:
        return reply, None
    try:
        return reply, encode_png(reply.image)
    except RenderError as exc:
        logger.warning("Failed to encode %s: %s", reply.filename, exc)
        return Reply(text=APOLOGY), None


async def _deliver(message: discord.Message, reply: Reply, buffer: Optional[io.BytesIO]) -> None:
    try:
        if buffer is not None:
            await message.channel.send(file=discord.File(fp=buffer, filename=reply.filename or "meme.png"))
        elif reply.text:
            await message.channel.send(reply.text)
    except discord.HTTPException as exc:
        logger.warning("Failed to deliver reply to channel %s: %s", message.channel.id, exc)
        if buffer is None:
            return
        try:
            await message.channel.send(APOLOGY)
        except discord.HTTPException as apology_exc:
            logger.warning("Failed to send apology to channel %s: %s", message.channel.id, apology_exc)


def create_bot(session: Session, catalog: TemplateCatalog) -> MemeBot:
    bot = MemeBot(session=session, catalog=catalog, intents=intents)

    @bot.event
    async def on_ready():
        if bot.user is None:
            return
        bot.session.identify(bot.user.id)
        logger.info("Connected as %s (id=%s)", bot.user, bot.user.id)

    @bot.event
    async def on_message(message: discord.Message):
        if message.author.bot:
            return None

        incoming = _incoming_from_message(message)
        loop = asyncio.get_running_loop()
        try:
            reply, buffer = await loop.run_in_executor(None, _prepare_reply, bot.dispatcher, incoming)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Failed to handle message %s: %s", message.id, exc, exc_info=True)
            reply, buffer = Reply(text=APOLOGY), None

        if reply is None:
            return None
        if reply.shutdown:
            logger.info("Shutting down at the request of %s", incoming.author_label)
            await bot.close()
            return None
        await _deliver(message, reply, buffer)
        return None

    return bot


def main():
    token = secret_from_env("DISCORD_BOT_TOKEN")
    if not token:
        logger.error("DISCORD_BOT_TOKEN is missing")
        sys.exit(1)

    config_path = path_from_env("MEMEBOT_CONFIG", DEFAULT_CONFIG_PATH)
    try:
        catalog = load_catalog(config_path)
    except ConfigurationError as exc:
        logger.error("Unable to load templates: %s", exc)
        sys.exit(1)

    admin_password = secret_from_env("BOT_ADMIN_PASSWORD")
    if admin_password is None:
        logger.warning("No bot admin password specified")

    bot = create_bot(Session(admin_password), catalog)
    logger.info("Connecting")
    bot.run(token, log_handler=None)


if __name__ == "__main__":
    main()

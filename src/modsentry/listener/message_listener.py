"""Message listener Cog for ModSentry.

Feeds every guild message through the moderation pipeline. Failures are
logged and the message is dropped; they never reach the gateway loop.
"""

import discord
from discord.ext import commands

from modsentry.moderation.moderation_pipeline import ModerationPipeline
from modsentry.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for handling message creation events."""

    def __init__(self, discord_bot_instance, pipeline: ModerationPipeline):
        self.bot = discord_bot_instance
        self.pipeline = pipeline
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        if message.author.bot or message.guild is None:
            return

        try:
            await self.pipeline.process_message(message)
        except Exception:
            logger.exception("[MESSAGE LISTENER] Error handling message %s", message.id)


def setup(discord_bot_instance, pipeline: ModerationPipeline):
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, pipeline))

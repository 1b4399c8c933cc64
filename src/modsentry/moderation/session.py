"""
Capability interface the action executor drives, and its py-cord implementation.

The executor never touches discord objects directly. It asks a
`ModerationSession` whether an operation is allowed and then performs it.
Operations that may fail for ordinary reasons (message already gone, DMs
closed, missing permission) return an `OperationResult` instead of raising,
so best-effort steps read as "check the result, log, move on".
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Protocol, Union, runtime_checkable

import discord

from modsentry.util.logger import get_logger

logger = get_logger("moderation_session")


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Outcome of a platform operation that is allowed to fail."""

    ok: bool
    error: str | None = None

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> "OperationResult":
        return cls(ok=False, error=error)


@dataclass(slots=True)
class ModerationTarget:
    """The triggering message and the people and places it belongs to.

    Attributes:
        message: The message that was classified.
        author: Its author (a user even when no member object is available).
        member: The author's member object, or None when it could not be resolved.
        channel: Channel the message was posted in; notices go here.
        guild: Guild the message was posted in.
    """

    message: Any
    author: Any
    member: Any | None
    channel: Any
    guild: Any

    @classmethod
    def from_message(cls, message: discord.Message) -> "ModerationTarget":
        member = message.author if isinstance(message.author, discord.Member) else None
        return cls(
            message=message,
            author=message.author,
            member=member,
            channel=message.channel,
            guild=message.guild,
        )


@runtime_checkable
class ModerationSession(Protocol):
    """Platform operations needed to carry out moderation actions."""

    def deletable(self, message: Any) -> bool: ...

    async def delete(self, message: Any) -> OperationResult: ...

    async def post_notice(self, channel: Any, text: str) -> Any | None: ...

    async def delete_notice(self, notice: Any) -> OperationResult: ...

    def moderatable(self, member: Any) -> bool: ...

    async def timeout(self, member: Any, duration_seconds: int, reason: str) -> OperationResult: ...

    def kickable(self, member: Any) -> bool: ...

    async def kick(self, member: Any, reason: str) -> OperationResult: ...

    async def send_private(self, user: Any, text: str) -> OperationResult: ...

    def find_channel_by_name(self, guild: Any, name: str) -> Any | None: ...


# ==========================================
# Permission helpers
# ==========================================

def bot_can_manage_messages(channel: discord.abc.GuildChannel, guild: discord.Guild) -> bool:
    """
    Determine if the bot can read and manage messages in a channel.

    Args:
        channel (discord.abc.GuildChannel): The channel to check permissions for.
        guild (discord.Guild): The guild used to resolve the bot's member object.

    Returns:
        bool: True if the bot can read and manage messages, False otherwise.
    """
    me = getattr(guild, "me", None)
    if me is None:
        return False

    try:
        permissions = channel.permissions_for(me)
    except (AttributeError, TypeError):
        return False

    return permissions.read_messages and permissions.manage_messages


def has_elevated_permissions(member: Union[discord.User, discord.Member]) -> bool:
    """
    Check if a member has moderator-level privileges (administrator, manage guild, or moderate members).

    Args:
        member (discord.User | discord.Member): The member to evaluate.

    Returns:
        bool: True if the member has elevated permissions, False otherwise.
    """
    if not isinstance(member, discord.Member):
        return False

    perms = member.guild_permissions
    return any(
        getattr(perms, attr, False)
        for attr in (
            "administrator",
            "manage_guild",
            "moderate_members",
        )
    )


class DiscordModerationSession:
    """`ModerationSession` backed by a py-cord client connection."""

    def _can_act_on(self, member: discord.Member | None, permission: str) -> bool:
        """Whether the bot holds ``permission`` and outranks a non-moderator ``member``."""
        if member is None or not isinstance(member, discord.Member):
            return False

        guild = member.guild
        me = guild.me
        if me is None or member.id in (guild.owner_id, me.id):
            return False
        if has_elevated_permissions(member):
            return False
        if not getattr(me.guild_permissions, permission, False):
            return False
        return me.top_role > member.top_role

    def deletable(self, message: discord.Message) -> bool:
        guild = message.guild
        if guild is None or guild.me is None:
            return False
        if message.author.id == guild.me.id:
            return True
        return bot_can_manage_messages(message.channel, guild)

    async def delete(self, message: discord.Message) -> OperationResult:
        try:
            await message.delete()
            return OperationResult.success()
        except discord.NotFound:
            return OperationResult.failure("message already deleted")
        except discord.Forbidden:
            logger.warning("No permission to delete message %s", message.id)
            return OperationResult.failure("missing permission to delete message")
        except discord.HTTPException as exc:
            logger.error("Error deleting message %s: %s", message.id, exc)
            return OperationResult.failure(str(exc))

    async def post_notice(self, channel: discord.abc.Messageable, text: str) -> discord.Message | None:
        try:
            return await channel.send(text)
        except discord.HTTPException as exc:
            logger.warning("Failed to post notice in channel %s: %s", getattr(channel, "id", "?"), exc)
            return None

    async def delete_notice(self, notice: discord.Message) -> OperationResult:
        try:
            await notice.delete()
            return OperationResult.success()
        except discord.HTTPException as exc:
            return OperationResult.failure(str(exc))

    def moderatable(self, member: discord.Member | None) -> bool:
        return self._can_act_on(member, "moderate_members")

    async def timeout(self, member: discord.Member, duration_seconds: int, reason: str) -> OperationResult:
        until = discord.utils.utcnow() + datetime.timedelta(seconds=duration_seconds)
        try:
            await member.timeout(until, reason=reason)
            return OperationResult.success()
        except discord.HTTPException as exc:
            logger.error("Failed to timeout user %s: %s", member.id, exc)
            return OperationResult.failure(str(exc))

    def kickable(self, member: discord.Member | None) -> bool:
        return self._can_act_on(member, "kick_members")

    async def kick(self, member: discord.Member, reason: str) -> OperationResult:
        try:
            await member.guild.kick(member, reason=reason)
            return OperationResult.success()
        except discord.HTTPException as exc:
            logger.error("Failed to kick user %s: %s", member.id, exc)
            return OperationResult.failure(str(exc))

    async def send_private(self, user: Union[discord.User, discord.Member], text: str) -> OperationResult:
        try:
            await user.send(text)
            return OperationResult.success()
        except discord.Forbidden:
            return OperationResult.failure("direct messages disabled")
        except discord.HTTPException as exc:
            return OperationResult.failure(str(exc))

    def find_channel_by_name(self, guild: discord.Guild, name: str) -> discord.TextChannel | None:
        return discord.utils.get(guild.text_channels, name=name)

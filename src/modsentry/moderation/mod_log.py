"""Moderation-log channel lookup and kick entries."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from modsentry.configuration.moderation_settings import DEFAULT_MOD_LOG_CHANNEL_NAMES
from modsentry.moderation.session import ModerationSession, ModerationTarget
from modsentry.util.logger import get_logger

logger = get_logger("mod_log")


def find_log_channel(
    session: ModerationSession,
    guild: Any,
    channel_names: Iterable[str] = DEFAULT_MOD_LOG_CHANNEL_NAMES,
) -> Any | None:
    """Return the first text channel whose name is a conventional log name, if any."""
    for name in channel_names:
        channel = session.find_channel_by_name(guild, name)
        if channel is not None:
            return channel
    return None


def build_kick_entry(target: ModerationTarget, reasoning: str, when: datetime) -> str:
    author = target.author
    return (
        "**[AUTO-KICK]**\n"
        f"User: {author} ({author.id})\n"
        f"Reason: {reasoning}\n"
        f"Channel: {getattr(target.channel, 'name', target.channel)}\n"
        f"Time: {when.isoformat()}"
    )


async def post_kick_entry(
    session: ModerationSession,
    target: ModerationTarget,
    reasoning: str,
    channel_names: Iterable[str] = DEFAULT_MOD_LOG_CHANNEL_NAMES,
) -> bool:
    """Post an AUTO-KICK entry to the guild's log channel.

    Best effort: a missing channel or a failed post is logged and reported
    as False, never raised.
    """
    try:
        channel = find_log_channel(session, target.guild, channel_names)
        if channel is None:
            logger.debug("[MOD LOG] No moderation log channel in guild %s", getattr(target.guild, "id", "?"))
            return False

        entry = build_kick_entry(target, reasoning, datetime.now(timezone.utc))
        return await session.post_notice(channel, entry) is not None
    except Exception as exc:
        logger.warning("[MOD LOG] Failed to post kick entry: %s", exc)
        return False

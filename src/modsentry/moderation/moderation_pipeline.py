"""
Per-message moderation flow.

For each guild message from a human author:

1. record the user (and membership) and read their recent history and warnings;
2. log the message itself, hash and length only;
3. classify, then execute the recommended action;
4. log the outcome, add a warning for punitive outcomes, refresh the
   user's average risk score.

`DatabaseError` is not caught here. If a write fails the message is dropped
by the caller rather than moderated against a partial record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import discord

from modsentry.configuration.moderation_settings import ModerationSettings
from modsentry.database.database import Database, MessageLogEntry
from modsentry.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID
from modsentry.datatypes.moderation_datatypes import ActionType, ModerationResult, WarningSeverity
from modsentry.moderation import feature_extractor
from modsentry.moderation.action_executor import ActionExecutor
from modsentry.moderation.risk_classifier import classify
from modsentry.moderation.session import ModerationTarget
from modsentry.util.logger import get_logger

logger = get_logger("moderation_pipeline")

UNWARNED_ACTIONS = frozenset({ActionType.ALLOW, ActionType.CAPTCHA})


@dataclass(frozen=True, slots=True)
class PipelineOutcome:
    result: ModerationResult
    action_taken: ActionType


class ModerationPipeline:
    """
    Wires persistence, classification and execution together.

    Args:
        database: Initialized persistence coordinator.
        executor: Carries out the recommended action.
        settings: Supplies the history window.
    """

    def __init__(self, database: Database, executor: ActionExecutor, settings: ModerationSettings) -> None:
        self.database = database
        self.executor = executor
        self.settings = settings

    async def process_message(self, message: discord.Message, now: datetime | None = None) -> PipelineOutcome | None:
        """Moderate one message. Returns None for bot authors and direct messages."""
        author = message.author
        guild = message.guild
        if getattr(author, "bot", False) or guild is None:
            return None

        target = ModerationTarget.from_message(message)
        member = target.member
        joined_at = getattr(member, "joined_at", None) if member is not None else None
        guild_id = GuildID.from_guild(guild)

        user = await self.database.get_or_create_user(
            UserID.from_user(author),
            author.name,
            author.created_at,
            getattr(author, "discriminator", "0"),
        )
        if member is not None:
            await self.database.get_or_create_server_member(user.id, guild_id, joined_at)

        recent = await self.database.get_recent_messages(user.id, guild_id, self.settings.history_window)
        history = feature_extractor.summarize_history([record.message_length for record in recent])
        warnings = await self.database.get_user_warnings(user.id, guild_id)

        content = message.content or ""
        attachments = list(message.attachments)
        moderation_input = feature_extractor.build_moderation_input(
            content=content,
            history=history,
            account_created_at=author.created_at,
            joined_at=joined_at,
            attachments=attachments,
            warning_count=len(warnings),
            captcha_verified=user.captcha_verified,
            now=now,
        )

        message_record = await self.database.log_message(
            MessageLogEntry(
                message_id=MessageID.from_message(message),
                user_id=user.id,
                guild_id=guild_id,
                channel_id=ChannelID.from_channel(message.channel),
                content=content,
                has_attachments=moderation_input.attachments_present,
                has_links=moderation_input.links_present,
                has_images=moderation_input.image_uploaded,
            )
        )

        result = classify(moderation_input)
        logger.info(
            "[PIPELINE] User: %s | Risk: %d (%s) | Action: %s",
            author, result.risk_score, result.risk_level, result.recommended_action,
        )

        action_taken = await self.executor.execute(result.recommended_action, target, result.reasoning)

        action_id = await self.database.log_moderation_action(
            message_record.id, user.id, guild_id, result, action_taken
        )
        if action_taken not in UNWARNED_ACTIONS:
            await self.database.add_warning(
                user.id, guild_id, action_id, result.reasoning, WarningSeverity.for_level(result.risk_level)
            )

        await self.database.update_average_risk_score(user.id)
        return PipelineOutcome(result=result, action_taken=action_taken)

"""
Carries a recommended action out against a live chat session.

Execution is a small state machine. The current action picks a handler;
a handler either completes (the action is the outcome) or asks to degrade,
in which case the next rung of the ladder in `escalation` becomes the
current action. The walk is bounded by ``MAX_DEGRADE_STEPS``.

Ordering within one execution:
- the triggering message is deleted before any notice is posted, and at
  most once even when a handler degrades into another;
- the private notice for a kick is sent before the member is removed.

Public notices are removed again by the injected scheduler. Failures of
notices, private messages and the mod log never change the outcome. Any
exception that escapes a handler is reported as ``ActionType.ERROR``.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import Enum
from typing import Any

from modsentry.configuration.moderation_settings import ModerationSettings
from modsentry.datatypes.moderation_datatypes import ActionType
from modsentry.moderation import mod_log
from modsentry.moderation.escalation import MAX_DEGRADE_STEPS, degrade
from modsentry.moderation.session import ModerationSession, ModerationTarget
from modsentry.scheduler.notice_scheduler import DeferredTaskScheduler
from modsentry.util.format_utils import format_duration
from modsentry.util.logger import get_logger

logger = get_logger("action_executor")


class HandlerOutcome(Enum):
    COMPLETED = "completed"
    DEGRADE = "degrade"


@dataclass(slots=True)
class ExecutionState:
    """Per-execution bookkeeping shared by handlers across degradation steps."""

    deletion_attempted: bool = False


class ActionExecutor:
    """Execute moderation actions with ordered fallback.

    Args:
        session: Platform operations (see `ModerationSession`).
        scheduler: Runs the deferred removal of posted notices.
        settings: Timeout durations, notice lifetimes and log channel names.
    """

    def __init__(
        self,
        session: ModerationSession,
        scheduler: DeferredTaskScheduler,
        settings: ModerationSettings | None = None,
    ) -> None:
        self.session = session
        self.scheduler = scheduler
        self.settings = settings or ModerationSettings()

    async def execute(self, action: ActionType, target: ModerationTarget, reasoning: str) -> ActionType:
        """Carry out ``action`` and return what was actually done. Never raises."""
        state = ExecutionState()
        current = action
        try:
            for _ in range(MAX_DEGRADE_STEPS + 1):
                outcome = await self.dispatch(current, target, reasoning, state)
                if outcome is HandlerOutcome.COMPLETED:
                    return current

                next_action = degrade(current)
                if next_action is None:
                    return current
                logger.warning(
                    "[EXECUTOR] %s not possible for user %s; degrading to %s",
                    current, getattr(target.author, "id", "?"), next_action,
                )
                current = next_action
            return current
        except Exception:
            logger.exception("[EXECUTOR] Error executing action %s", current)
            return ActionType.ERROR

    async def dispatch(
        self,
        action: ActionType,
        target: ModerationTarget,
        reasoning: str,
        state: ExecutionState,
    ) -> HandlerOutcome:
        match action:
            case ActionType.ALLOW:
                return HandlerOutcome.COMPLETED
            case ActionType.CAPTCHA:
                return await self.handle_captcha(target, state)
            case ActionType.WARN:
                return await self.handle_warn(target, reasoning)
            case ActionType.DELETE:
                return await self.handle_delete(target, reasoning, state)
            case ActionType.MUTE:
                return await self.handle_mute(target, reasoning, state)
            case ActionType.KICK:
                return await self.handle_kick(target, reasoning, state)
        raise ValueError(f"Cannot execute action {action}")

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    async def delete_trigger(self, target: ModerationTarget, state: ExecutionState) -> None:
        if state.deletion_attempted:
            return
        state.deletion_attempted = True

        if not self.session.deletable(target.message):
            logger.debug("[EXECUTOR] Message %s is not deletable", getattr(target.message, "id", "?"))
            return

        result = await self.session.delete(target.message)
        if not result.ok:
            logger.warning("[EXECUTOR] Could not delete message %s: %s", getattr(target.message, "id", "?"), result.error)

    async def post_timed_notice(self, channel: Any, text: str, lifetime_seconds: float) -> Any | None:
        notice = await self.session.post_notice(channel, text)
        if notice is not None:
            self.scheduler.schedule_after(lifetime_seconds, functools.partial(self.expire_notice, notice))
        return notice

    async def expire_notice(self, notice: Any) -> None:
        result = await self.session.delete_notice(notice)
        if not result.ok:
            logger.debug("[EXECUTOR] Could not remove expired notice: %s", result.error)

    async def send_private_notice(self, target: ModerationTarget, text: str, action: ActionType) -> None:
        result = await self.session.send_private(target.author, text)
        if not result.ok:
            logger.debug("[EXECUTOR] Could not DM user %s about %s: %s", getattr(target.author, "id", "?"), action, result.error)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def handle_captcha(self, target: ModerationTarget, state: ExecutionState) -> HandlerOutcome:
        try:
            await self.delete_trigger(target, state)
            await self.post_timed_notice(
                target.channel,
                f"⚠️ {target.author.mention}, your account is new or has been flagged. "
                "Please complete CAPTCHA verification before posting.\n\n"
                "To verify, use the command: `/verify`\n\n"
                "This is a safety measure to protect our community from spam and malicious activity.",
                self.settings.notice_lifetime("captcha"),
            )

            if target.member is not None and self.session.moderatable(target.member):
                result = await self.session.timeout(
                    target.member, self.settings.captcha_timeout_seconds, "CAPTCHA verification required"
                )
                if not result.ok:
                    logger.warning("[EXECUTOR] Verification timeout failed: %s", result.error)
        except Exception:
            logger.exception("[EXECUTOR] Error handling CAPTCHA requirement")
        return HandlerOutcome.COMPLETED

    async def handle_warn(self, target: ModerationTarget, reasoning: str) -> HandlerOutcome:
        try:
            await self.post_timed_notice(
                target.channel,
                f"⚠️ Warning {target.author.mention}: Your message has been flagged by our moderation system.\n\n"
                f"**Reason:** {reasoning}\n\n"
                "Please review our community guidelines. Repeated violations may result in further action.",
                self.settings.notice_lifetime("warn"),
            )
        except Exception:
            logger.exception("[EXECUTOR] Error sending warning")
        return HandlerOutcome.COMPLETED

    async def handle_delete(self, target: ModerationTarget, reasoning: str, state: ExecutionState) -> HandlerOutcome:
        try:
            await self.delete_trigger(target, state)
            await self.post_timed_notice(
                target.channel,
                f"🗑️ A message from {target.author.mention} was removed by our moderation system.\n\n"
                "**Reason:** Violation detected\n\n"
                "This action has been logged. Continued violations may result in timeout or removal from the server.",
                self.settings.notice_lifetime("delete"),
            )
            await self.send_private_notice(
                target,
                f"Your message in **{target.guild.name}** was automatically removed.\n\n"
                f"**Reason:** {reasoning}\n\n"
                "Please be mindful of our community guidelines. If you believe this was an error, contact a moderator.",
                ActionType.DELETE,
            )
        except Exception:
            logger.exception("[EXECUTOR] Error deleting message")
        return HandlerOutcome.COMPLETED

    async def handle_mute(self, target: ModerationTarget, reasoning: str, state: ExecutionState) -> HandlerOutcome:
        try:
            await self.delete_trigger(target, state)

            if target.member is None or not self.session.moderatable(target.member):
                logger.warning("[EXECUTOR] Cannot mute user: insufficient permissions or user is moderator")
                return HandlerOutcome.DEGRADE

            duration = self.settings.mute_timeout_seconds
            result = await self.session.timeout(target.member, duration, f"Moderation system: {reasoning}")
            if not result.ok:
                logger.warning("[EXECUTOR] Timeout failed: %s", result.error)
                return HandlerOutcome.DEGRADE

            label = format_duration(duration)
            await self.post_timed_notice(
                target.channel,
                f"🔇 {target.author.mention} has been temporarily muted for {label}.\n\n"
                f"**Reason:** {reasoning}\n\n"
                "This action has been logged. Repeated violations will result in longer timeouts or removal.",
                self.settings.notice_lifetime("mute"),
            )
            await self.send_private_notice(
                target,
                f"You have been temporarily muted in **{target.guild.name}** for {label}.\n\n"
                f"**Reason:** {reasoning}\n\n"
                "Please review our community guidelines. Repeated violations may result in permanent removal.",
                ActionType.MUTE,
            )
        except Exception:
            # TODO: decide with moderators whether transient outages should degrade or retry
            logger.exception("[EXECUTOR] Error muting user")
            return HandlerOutcome.DEGRADE
        return HandlerOutcome.COMPLETED

    async def handle_kick(self, target: ModerationTarget, reasoning: str, state: ExecutionState) -> HandlerOutcome:
        try:
            await self.delete_trigger(target, state)

            if target.member is None or not self.session.kickable(target.member):
                logger.warning("[EXECUTOR] Cannot kick user: insufficient permissions or user is moderator")
                return HandlerOutcome.DEGRADE

            # Sent first: once removed the user may share no server with the bot
            await self.send_private_notice(
                target,
                f"You have been removed from **{target.guild.name}**.\n\n"
                f"**Reason:** {reasoning}\n\n"
                "Our moderation system detected severe violations of community guidelines. "
                "If you believe this was an error, please contact the server administrators.",
                ActionType.KICK,
            )

            result = await self.session.kick(target.member, f"Moderation system: {reasoning}")
            if not result.ok:
                logger.warning("[EXECUTOR] Kick failed: %s", result.error)
                return HandlerOutcome.DEGRADE

            await self.post_timed_notice(
                target.channel,
                "🚫 A user has been removed from the server by our moderation system.\n\n"
                "**Reason:** Severe violation detected\n\n"
                "This action has been logged and reviewed.",
                self.settings.notice_lifetime("kick"),
            )
            await mod_log.post_kick_entry(self.session, target, reasoning, self.settings.mod_log_channel_names)
        except Exception:
            logger.exception("[EXECUTOR] Error kicking user")
            return HandlerOutcome.DEGRADE
        return HandlerOutcome.COMPLETED

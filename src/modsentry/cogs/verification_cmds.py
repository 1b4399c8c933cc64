"""
Verification and risk profile commands.
"""

import discord
from discord import Option
from discord.ext import commands

from modsentry.database.database import Database
from modsentry.datatypes.discord_datatypes import GuildID, UserID
from modsentry.moderation.risk_classifier import determine_risk_level
from modsentry.util.format_utils import action_emoji, risk_emoji, truncate
from modsentry.util.logger import get_logger

logger = get_logger("verification_cog")


def has_permissions(application_context: discord.ApplicationContext, **required_permissions) -> bool:
    """True when the command issuer holds every permission flag in ``required_permissions``."""
    if not isinstance(application_context.author, discord.Member):
        return False
    return all(
        getattr(application_context.author.guild_permissions, permission_name, False)
        for permission_name in required_permissions
    )


class VerificationCog(commands.Cog):
    """Cog for CAPTCHA verification and moderator lookups."""

    def __init__(self, discord_bot_instance, database: Database):
        self.discord_bot_instance = discord_bot_instance
        self.database = database
        logger.info("Verification cog loaded")

    @commands.slash_command(
        name="verify", description="Confirm you are a real person to lift the new-account posting restriction."
    )
    async def verify(self, application_context: discord.ApplicationContext):
        user = application_context.author
        try:
            record = await self.database.get_or_create_user(
                UserID.from_user(user), user.name, user.created_at, getattr(user, "discriminator", "0")
            )
            await self.database.update_captcha_status(record.id, True)
        except Exception:
            logger.exception("Error verifying user %s", user.id)
            await application_context.respond("❌ Verification failed, please try again later.", ephemeral=True)
            return

        logger.info("User %s completed verification", user)
        await application_context.respond("🔐 You are verified. Thanks for helping keep the server safe!", ephemeral=True)

    @commands.slash_command(name="risk_profile", description="Show a member's warnings and average risk score.")
    async def risk_profile(
        self,
        application_context: discord.ApplicationContext,
        member: Option(discord.Member, "The member to look up.", required=True),  # type: ignore
    ):
        if not has_permissions(application_context, moderate_members=True):
            await application_context.respond("You don't have permission to use this command.", ephemeral=True)
            return
        if application_context.guild is None:
            await application_context.respond("❌ This command must be used in a guild.", ephemeral=True)
            return

        record = await self.database.get_user(UserID.from_user(member))
        if record is None:
            await application_context.respond(f"No moderation history for {member.mention}.", ephemeral=True)
            return

        guild_id = GuildID.from_guild(application_context.guild)
        warnings = await self.database.get_user_warnings(record.id, guild_id)
        action_counts = await self.database.get_action_counts(record.id, guild_id)

        level = determine_risk_level(round(record.average_risk_score))
        embed = discord.Embed(
            title=f"{risk_emoji(level)} Risk profile: {member.display_name}",
            color=discord.Color.orange() if warnings else discord.Color.green(),
        )
        embed.add_field(name="Average risk score", value=f"{record.average_risk_score:.2f} ({level})", inline=False)
        embed.add_field(name="Warnings in this server", value=str(len(warnings)), inline=True)
        embed.add_field(name="Verified", value="Yes" if record.captcha_verified else "No", inline=True)
        if action_counts:
            summary = ", ".join(
                f"{action_emoji(action)} {action} ×{count}" for action, count in sorted(action_counts.items(), key=lambda item: item[0].value)
            )
            embed.add_field(name="Actions", value=summary, inline=False)
        if warnings:
            embed.add_field(name="Latest warning", value=truncate(warnings[0].warning_reason, 1024), inline=False)

        await application_context.respond(embed=embed, ephemeral=True)


def setup(discord_bot_instance, database: Database):
    """Setup function for the cog."""
    discord_bot_instance.add_cog(VerificationCog(discord_bot_instance, database))

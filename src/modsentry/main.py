"""
ModSentry
=========

A Discord bot that scores every guild message for spam, scams and
harassment, then applies the matching moderation action (warning,
deletion, timeout or kick) with automatic fallback when an action is not
permitted.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. MODSENTRY_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("MODSENTRY_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
from dataclasses import dataclass

import discord
from dotenv import load_dotenv

from modsentry.cogs import verification_cmds
from modsentry.configuration.app_configuration import AppConfig, app_config
from modsentry.database.database import Database
from modsentry.listener import message_listener
from modsentry.moderation.action_executor import ActionExecutor
from modsentry.moderation.moderation_pipeline import ModerationPipeline
from modsentry.moderation.session import DiscordModerationSession
from modsentry.scheduler.notice_scheduler import AsyncioTaskScheduler
from modsentry.util.logger import get_logger, handle_exception

logger = get_logger("main")


@dataclass(slots=True)
class BotRuntime:
    """Everything created at startup that needs closing at shutdown."""

    bot: discord.Bot
    database: Database
    scheduler: AsyncioTaskScheduler


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the Discord intents needed to read messages and resolve members."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def create_bot(config: AppConfig = app_config) -> BotRuntime:
    """Instantiate the bot and wire the moderation stack into its cogs."""
    bot = discord.Bot(intents=build_intents())
    settings = config.moderation
    database = Database(config.database_path)
    scheduler = AsyncioTaskScheduler()

    session = DiscordModerationSession()
    executor = ActionExecutor(session, scheduler, settings)
    pipeline = ModerationPipeline(database, executor, settings)

    message_listener.setup(bot, pipeline)
    verification_cmds.setup(bot, database)
    logger.info("All cogs loaded successfully.")

    @bot.event
    async def on_ready():
        logger.info("Bot logged in as %s", bot.user)
        logger.info("Monitoring %d server(s)", len(bot.guilds))

    return BotRuntime(bot=bot, database=database, scheduler=scheduler)


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(runtime: BotRuntime) -> None:
    """Stop the bot, cancel pending notice removals and close the database."""
    if not runtime.bot.is_closed():
        try:
            await runtime.bot.close()
        except Exception as exc:
            logger.exception("Error while closing Discord bot: %s", exc)

    await runtime.scheduler.shutdown()

    try:
        await runtime.database.shutdown()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database and bot, returning an exit code."""
    token = load_environment()

    try:
        runtime = create_bot()
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        return 1

    try:
        logger.info("Initializing database...")
        await runtime.database.initialize()
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        await shutdown_runtime(runtime)
        return 1

    exit_code = 0
    try:
        await start_bot(runtime.bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(runtime)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting ModSentry…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        if code is None:
            return 1
        try:
            return int(code)
        except (ValueError, TypeError):
            logger.warning("SystemExit.code is not an int (%r); defaulting to 1", code)
            return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())

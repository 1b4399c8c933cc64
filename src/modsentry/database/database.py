"""
Persistence for users, memberships, message logs, moderation actions and warnings.

The `Database` class is the only component that talks SQL. It is built
explicitly and handed to the moderation pipeline; there is no module-level
instance. Every operation is timed by `DatabasePerformanceMonitor` and any
``aiosqlite.Error`` surfaces as `DatabaseError`, which callers are expected
to let propagate: moderation does not continue on a half-written snapshot.
"""

from __future__ import annotations

import hashlib
import json
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Dict, List, Sequence

import aiosqlite

from modsentry.database.db_connection import ConnectionManager
from modsentry.database.db_perf_mon import DatabasePerformanceMonitor
from modsentry.database.db_schema import SchemaManager
from modsentry.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID
from modsentry.datatypes.moderation_datatypes import ActionType, ModerationResult, WarningSeverity
from modsentry.util.logger import get_logger

logger = get_logger("database")


class DatabaseError(Exception):
    """A persistence operation failed."""


def hash_content(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


@dataclass(frozen=True, slots=True)
class UserRecord:
    id: int
    discord_user_id: UserID
    username: str
    discriminator: str
    account_created_at: str | None
    captcha_verified: bool
    total_warnings: int
    average_risk_score: float


@dataclass(frozen=True, slots=True)
class MemberRecord:
    id: int
    user_id: int
    guild_id: GuildID
    joined_at: str | None
    server_warnings: int


@dataclass(frozen=True, slots=True)
class MessageRecord:
    id: int
    message_id: MessageID
    user_id: int
    guild_id: GuildID
    channel_id: ChannelID
    content_hash: str
    has_attachments: bool
    has_links: bool
    has_images: bool
    message_length: int
    created_at: str


@dataclass(frozen=True, slots=True)
class WarningRecord:
    id: int
    user_id: int
    guild_id: GuildID
    moderation_action_id: int | None
    warning_reason: str
    severity: WarningSeverity
    created_at: str


@dataclass(frozen=True, slots=True)
class MessageLogEntry:
    """What gets recorded about an incoming message."""

    message_id: MessageID
    user_id: int
    guild_id: GuildID
    channel_id: ChannelID
    content: str
    has_attachments: bool
    has_links: bool
    has_images: bool


def _user_from_row(row: aiosqlite.Row) -> UserRecord:
    return UserRecord(
        id=row["id"],
        discord_user_id=UserID(row["discord_user_id"]),
        username=row["username"],
        discriminator=row["discriminator"],
        account_created_at=row["account_created_at"],
        captcha_verified=bool(row["captcha_verified"]),
        total_warnings=row["total_warnings"],
        average_risk_score=float(row["average_risk_score"]),
    )


def _member_from_row(row: aiosqlite.Row) -> MemberRecord:
    return MemberRecord(
        id=row["id"],
        user_id=row["user_id"],
        guild_id=GuildID(row["guild_id"]),
        joined_at=row["joined_at"],
        server_warnings=row["server_warnings"],
    )


def _message_from_row(row: aiosqlite.Row) -> MessageRecord:
    return MessageRecord(
        id=row["id"],
        message_id=MessageID(row["message_id"]),
        user_id=row["user_id"],
        guild_id=GuildID(row["guild_id"]),
        channel_id=ChannelID(row["channel_id"]),
        content_hash=row["content_hash"],
        has_attachments=bool(row["has_attachments"]),
        has_links=bool(row["has_links"]),
        has_images=bool(row["has_images"]),
        message_length=row["message_length"],
        created_at=row["created_at"],
    )


def _warning_from_row(row: aiosqlite.Row) -> WarningRecord:
    return WarningRecord(
        id=row["id"],
        user_id=row["user_id"],
        guild_id=GuildID(row["guild_id"]),
        moderation_action_id=row["moderation_action_id"],
        warning_reason=row["warning_reason"],
        severity=WarningSeverity(row["severity"]),
        created_at=row["created_at"],
    )


class Database:
    """
    Coordinator for all persistence operations.

    Lifecycle:
        1. ``await initialize()`` at startup (opens the connection, creates the schema)
        2. call the operations below
        3. ``await shutdown()`` at exit
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.connection_manager = ConnectionManager()
        self.db_perf_mon = DatabasePerformanceMonitor()

    async def initialize(self) -> None:
        if self.connection_manager.is_open:
            logger.debug("[DATABASE] Already initialized, skipping")
            return
        try:
            await self.connection_manager.open(self.db_path)
            await SchemaManager.initialize_schema(self.connection_manager.connection)
        except aiosqlite.Error as exc:
            logger.error("[DATABASE] Database initialization failed: %s", exc)
            raise DatabaseError(f"initialization failed: {exc}") from exc
        logger.info("[DATABASE] Database initialized at %s", self.db_path)

    async def shutdown(self) -> None:
        await self.connection_manager.close()
        logger.info("[DATABASE] Database shutdown complete")

    @asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[None]:
        start_time = time.perf_counter()
        try:
            yield
        except aiosqlite.Error as exc:
            logger.error("[DATABASE] %s failed: %s", name, exc)
            raise DatabaseError(f"{name} failed: {exc}") from exc
        finally:
            self.db_perf_mon.track(name, time.perf_counter() - start_time)

    # ------------------------------------------------------------------
    # Users and memberships
    # ------------------------------------------------------------------

    async def get_user(self, discord_user_id: UserID) -> UserRecord | None:
        async with self._operation("get_user"), self.connection_manager.read() as db:
            cursor = await db.execute(
                "SELECT * FROM discord_users WHERE discord_user_id = ?", (str(discord_user_id),)
            )
            row = await cursor.fetchone()
        return _user_from_row(row) if row else None

    async def get_or_create_user(
        self,
        discord_user_id: UserID,
        username: str,
        account_created_at: datetime | None,
        discriminator: str = "0",
    ) -> UserRecord:
        """Return the stored user for ``discord_user_id``, inserting it on first sight."""
        existing = await self.get_user(discord_user_id)
        if existing is not None:
            return existing

        async with self._operation("create_user"), self.connection_manager.transaction() as db:
            await db.execute(
                """
                INSERT OR IGNORE INTO discord_users (discord_user_id, username, discriminator, account_created_at)
                VALUES (?, ?, ?, ?)
                """,
                (str(discord_user_id), username, discriminator or "0", _iso(account_created_at)),
            )
        logger.debug("[DATABASE] Created user record for %s", discord_user_id)

        created = await self.get_user(discord_user_id)
        if created is None:
            raise DatabaseError(f"user {discord_user_id} missing after insert")
        return created

    async def get_or_create_server_member(
        self,
        user_id: int,
        guild_id: GuildID,
        joined_at: datetime | None,
    ) -> MemberRecord:
        async with self._operation("get_or_create_server_member"), self.connection_manager.transaction() as db:
            await db.execute(
                "INSERT OR IGNORE INTO server_members (user_id, guild_id, joined_at) VALUES (?, ?, ?)",
                (user_id, str(guild_id), _iso(joined_at)),
            )
            cursor = await db.execute(
                "SELECT * FROM server_members WHERE user_id = ? AND guild_id = ?",
                (user_id, str(guild_id)),
            )
            row = await cursor.fetchone()
        if row is None:
            raise DatabaseError(f"member {user_id}/{guild_id} missing after insert")
        return _member_from_row(row)

    async def update_captcha_status(self, user_id: int, verified: bool) -> UserRecord:
        verified_at = datetime.now(timezone.utc).isoformat() if verified else None
        async with self._operation("update_captcha_status"), self.connection_manager.transaction() as db:
            await db.execute(
                "UPDATE discord_users SET captcha_verified = ?, captcha_verified_at = ? WHERE id = ?",
                (int(verified), verified_at, user_id),
            )
            cursor = await db.execute("SELECT * FROM discord_users WHERE id = ?", (user_id,))
            row = await cursor.fetchone()
        if row is None:
            raise DatabaseError(f"user {user_id} not found")
        return _user_from_row(row)

    # ------------------------------------------------------------------
    # Message log
    # ------------------------------------------------------------------

    async def log_message(self, entry: MessageLogEntry) -> MessageRecord:
        """Record an incoming message (hash and length only) and return the stored row."""
        async with self._operation("log_message"), self.connection_manager.transaction() as db:
            cursor = await db.execute(
                """
                INSERT INTO messages (message_id, user_id, guild_id, channel_id, content_hash,
                                      has_attachments, has_links, has_images, message_length)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(entry.message_id),
                    entry.user_id,
                    str(entry.guild_id),
                    str(entry.channel_id),
                    hash_content(entry.content),
                    int(entry.has_attachments),
                    int(entry.has_links),
                    int(entry.has_images),
                    len(entry.content),
                ),
            )
            row_id = cursor.lastrowid
            cursor = await db.execute("SELECT * FROM messages WHERE id = ?", (row_id,))
            row = await cursor.fetchone()
        return _message_from_row(row)

    async def get_recent_messages(self, user_id: int, guild_id: GuildID, limit: int = 10) -> List[MessageRecord]:
        """The user's latest message records in ``guild_id``, most recent first."""
        if limit <= 0:
            return []
        async with self._operation("get_recent_messages"), self.connection_manager.read() as db:
            cursor = await db.execute(
                """
                SELECT * FROM messages
                WHERE user_id = ? AND guild_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (user_id, str(guild_id), limit),
            )
            rows = await cursor.fetchall()
        return [_message_from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Moderation actions and warnings
    # ------------------------------------------------------------------

    async def log_moderation_action(
        self,
        message_log_id: int | None,
        user_id: int,
        guild_id: GuildID,
        result: ModerationResult,
        action_taken: ActionType,
    ) -> int:
        """Persist a classification and its executed outcome; returns the new row id."""
        async with self._operation("log_moderation_action"), self.connection_manager.transaction() as db:
            cursor = await db.execute(
                """
                INSERT INTO moderation_actions (message_log_id, user_id, guild_id, risk_score, risk_level,
                                                detected_categories, recommended_action, action_taken, reasoning)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message_log_id,
                    user_id,
                    str(guild_id),
                    result.risk_score,
                    result.risk_level.value,
                    json.dumps(result.category_names),
                    result.recommended_action.value,
                    action_taken.value,
                    result.reasoning,
                ),
            )
            action_id = cursor.lastrowid
        logger.debug(
            "[DATABASE] Logged action %s (recommended %s) for user %s in guild %s",
            action_taken, result.recommended_action, user_id, guild_id,
        )
        return int(action_id)

    async def get_user_warnings(self, user_id: int, guild_id: GuildID) -> List[WarningRecord]:
        """Warnings for the user in ``guild_id``, most recent first."""
        async with self._operation("get_user_warnings"), self.connection_manager.read() as db:
            cursor = await db.execute(
                """
                SELECT * FROM user_warnings
                WHERE user_id = ? AND guild_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (user_id, str(guild_id)),
            )
            rows = await cursor.fetchall()
        return [_warning_from_row(row) for row in rows]

    async def add_warning(
        self,
        user_id: int,
        guild_id: GuildID,
        moderation_action_id: int | None,
        reason: str,
        severity: WarningSeverity,
    ) -> WarningRecord:
        """Insert a warning, then refresh the user's and member's warning counters."""
        async with self._operation("add_warning"), self.connection_manager.transaction() as db:
            cursor = await db.execute(
                """
                INSERT INTO user_warnings (user_id, guild_id, moderation_action_id, warning_reason, severity)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, str(guild_id), moderation_action_id, reason, severity.value),
            )
            cursor = await db.execute("SELECT * FROM user_warnings WHERE id = ?", (cursor.lastrowid,))
            row = await cursor.fetchone()

        await self.update_user_warning_count(user_id, guild_id)
        return _warning_from_row(row)

    async def update_user_warning_count(self, user_id: int, guild_id: GuildID) -> int:
        """Set both aggregate counters to the number of warnings in ``guild_id``."""
        warnings = await self.get_user_warnings(user_id, guild_id)
        count = len(warnings)
        async with self._operation("update_user_warning_count"), self.connection_manager.transaction() as db:
            await db.execute("UPDATE discord_users SET total_warnings = ? WHERE id = ?", (count, user_id))
            await db.execute(
                "UPDATE server_members SET server_warnings = ? WHERE user_id = ? AND guild_id = ?",
                (count, user_id, str(guild_id)),
            )
        return count

    async def update_average_risk_score(self, user_id: int) -> float | None:
        """Recompute the user's mean risk score over all logged actions.

        Returns the new average, or None when the user has no actions yet.
        """
        async with self._operation("update_average_risk_score"), self.connection_manager.transaction() as db:
            cursor = await db.execute(
                "SELECT AVG(risk_score) AS average, COUNT(*) AS total FROM moderation_actions WHERE user_id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()
            if row is None or not row["total"]:
                return None
            average = round(float(row["average"]), 2)
            await db.execute("UPDATE discord_users SET average_risk_score = ? WHERE id = ?", (average, user_id))
        return average

    async def get_action_counts(self, user_id: int, guild_id: GuildID) -> Dict[ActionType, int]:
        """How often each executed action was applied to the user in ``guild_id``."""
        async with self._operation("get_action_counts"), self.connection_manager.read() as db:
            cursor = await db.execute(
                """
                SELECT action_taken, COUNT(*) AS total FROM moderation_actions
                WHERE user_id = ? AND guild_id = ?
                GROUP BY action_taken
                """,
                (user_id, str(guild_id)),
            )
            rows: Sequence[aiosqlite.Row] = await cursor.fetchall()
        return {ActionType(row["action_taken"]): row["total"] for row in rows}

    def get_db_performance_stats(self) -> Dict[str, Dict[str, float]]:
        return self.db_perf_mon.get_statistics()

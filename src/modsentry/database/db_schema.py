"""
Database schema creation and version tracking.

Message content itself is never stored, only its SHA-256 hash and length.
"""

import aiosqlite
from modsentry.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1

# Millisecond resolution keeps "most recent first" ordering stable
_NOW = "(strftime('%Y-%m-%d %H:%M:%f', 'now'))"


class SchemaManager:
    """Creates tables, indexes and the schema version row."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all database tables and indexes if they do not exist yet.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute(f"""
            CREATE TABLE IF NOT EXISTS discord_users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                discord_user_id TEXT NOT NULL UNIQUE,
                username TEXT NOT NULL,
                discriminator TEXT NOT NULL DEFAULT '0',
                account_created_at TEXT,
                first_seen_at TEXT NOT NULL DEFAULT {_NOW},
                captcha_verified INTEGER NOT NULL DEFAULT 0,
                captcha_verified_at TEXT,
                total_warnings INTEGER NOT NULL DEFAULT 0,
                average_risk_score REAL NOT NULL DEFAULT 0
            )
        """)

        await db.execute(f"""
            CREATE TABLE IF NOT EXISTS server_members (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                guild_id TEXT NOT NULL,
                joined_at TEXT,
                server_warnings INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL DEFAULT {_NOW},
                UNIQUE (user_id, guild_id),
                FOREIGN KEY (user_id) REFERENCES discord_users(id) ON DELETE CASCADE
            )
        """)

        await db.execute(f"""
            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                message_id TEXT NOT NULL,
                user_id INTEGER NOT NULL,
                guild_id TEXT NOT NULL,
                channel_id TEXT NOT NULL,
                content_hash TEXT NOT NULL,
                has_attachments INTEGER NOT NULL DEFAULT 0,
                has_links INTEGER NOT NULL DEFAULT 0,
                has_images INTEGER NOT NULL DEFAULT 0,
                message_length INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL DEFAULT {_NOW},
                FOREIGN KEY (user_id) REFERENCES discord_users(id) ON DELETE CASCADE
            )
        """)

        await db.execute(f"""
            CREATE TABLE IF NOT EXISTS moderation_actions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                message_log_id INTEGER,
                user_id INTEGER NOT NULL,
                guild_id TEXT NOT NULL,
                risk_score INTEGER NOT NULL,
                risk_level TEXT NOT NULL,
                detected_categories TEXT NOT NULL DEFAULT '[]',
                recommended_action TEXT NOT NULL,
                action_taken TEXT NOT NULL,
                reasoning TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL DEFAULT {_NOW},
                FOREIGN KEY (message_log_id) REFERENCES messages(id) ON DELETE SET NULL,
                FOREIGN KEY (user_id) REFERENCES discord_users(id) ON DELETE CASCADE
            )
        """)

        await db.execute(f"""
            CREATE TABLE IF NOT EXISTS user_warnings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                guild_id TEXT NOT NULL,
                moderation_action_id INTEGER,
                warning_reason TEXT NOT NULL DEFAULT '',
                severity TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT {_NOW},
                FOREIGN KEY (user_id) REFERENCES discord_users(id) ON DELETE CASCADE,
                FOREIGN KEY (moderation_action_id) REFERENCES moderation_actions(id) ON DELETE SET NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute("CREATE INDEX IF NOT EXISTS idx_messages_user_guild ON messages(user_id, guild_id, created_at DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_moderation_actions_user ON moderation_actions(user_id, guild_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_moderation_actions_created ON moderation_actions(created_at DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_user_warnings_user_guild ON user_warnings(user_id, guild_id, created_at DESC)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))

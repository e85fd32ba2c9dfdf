"""SQLite schema management (code-first approach)."""

import logging

from src.core.db_client import get_connection


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, in dependency order
COLLECTIONS = [
    "profiles",
    "auth_credentials",
    "challenges",
    "challenge_participants",
    "challenge_logs",
]


_TABLE_DDL: dict[str, str] = {
    "profiles": """
        CREATE TABLE IF NOT EXISTS profiles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            role TEXT NOT NULL DEFAULT 'member' CHECK (role IN ('member', 'admin')),
            avatar TEXT,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    "auth_credentials": """
        CREATE TABLE IF NOT EXISTS auth_credentials (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            user_id INTEGER NOT NULL REFERENCES profiles (id) ON DELETE CASCADE,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    "challenges": """
        CREATE TABLE IF NOT EXISTS challenges (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            duration INTEGER NOT NULL,
            difficulty TEXT NOT NULL CHECK (difficulty IN ('Beginner', 'Intermediate', 'Advanced')),
            cover_image TEXT,
            daily_prompts TEXT NOT NULL DEFAULT '[]',
            participants INTEGER NOT NULL DEFAULT 0,
            created_by INTEGER REFERENCES profiles (id) ON DELETE SET NULL,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    "challenge_participants": """
        CREATE TABLE IF NOT EXISTS challenge_participants (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES profiles (id) ON DELETE CASCADE,
            challenge_id INTEGER NOT NULL REFERENCES challenges (id) ON DELETE CASCADE,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    "challenge_logs": """
        CREATE TABLE IF NOT EXISTS challenge_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES profiles (id) ON DELETE CASCADE,
            challenge_id INTEGER NOT NULL REFERENCES challenges (id) ON DELETE CASCADE,
            date TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            completed INTEGER NOT NULL DEFAULT 0,
            photo_url TEXT,
            reflection TEXT,
            timestamp TEXT NOT NULL,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
}

_INDEXES: list[str] = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_participant_pair ON challenge_participants (user_id, challenge_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_log_day ON challenge_logs (user_id, challenge_id, date)",
    "CREATE INDEX IF NOT EXISTS idx_log_challenge ON challenge_logs (challenge_id)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist (idempotent)."""
    conn = await get_connection(db_path=db_path)

    for collection in COLLECTIONS:
        await conn.execute(_TABLE_DDL[collection])
    for index_sql in _INDEXES:
        await conn.execute(index_sql)
    await conn.commit()

    logger.info("Schema initialized", extra={"collections": COLLECTIONS})

"""SQLite database connection manager with schema setup."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS guild_configs (
    id               TEXT PRIMARY KEY,
    vector_store_id  TEXT,
    created_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now')),
    updated_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now'))
);

CREATE TABLE IF NOT EXISTS knowledge_items (
    id                    TEXT PRIMARY KEY,
    guild_id              TEXT NOT NULL REFERENCES guild_configs(id) ON DELETE CASCADE,
    kind                  TEXT NOT NULL CHECK(kind IN ('FILE','URL')),
    title                 TEXT NOT NULL,
    source_url            TEXT,
    openai_file_id        TEXT NOT NULL,
    vector_store_file_id  TEXT NOT NULL,
    content_hash          TEXT NOT NULL,
    created_by            TEXT NOT NULL,
    created_at            TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now'))
);

CREATE INDEX IF NOT EXISTS idx_knowledge_guild_hash
    ON knowledge_items(guild_id, content_hash);

CREATE TABLE IF NOT EXISTS conversation_sessions (
    guild_id       TEXT NOT NULL,
    user_id        TEXT NOT NULL,
    channel_id     TEXT NOT NULL,
    messages_json  TEXT NOT NULL DEFAULT '[]',
    expires_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now')),
    PRIMARY KEY (guild_id, user_id, channel_id)
);

CREATE INDEX IF NOT EXISTS idx_sessions_expiry
    ON conversation_sessions(expires_at);

CREATE TABLE IF NOT EXISTS request_logs (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    guild_id          TEXT NOT NULL,
    user_id           TEXT NOT NULL,
    command           TEXT NOT NULL CHECK(command IN ('chat','search')),
    used_file_search  INTEGER NOT NULL DEFAULT 0,
    used_web_search   INTEGER NOT NULL DEFAULT 0,
    tool_calls_json   TEXT,
    error             TEXT,
    created_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now'))
);
"""


class Database:
    """Async SQLite database manager."""

    def __init__(self, db_path: str | Path):
        self._db_path = str(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection and create tables."""
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA foreign_keys=ON")
        await self._conn.executescript(SCHEMA_SQL)
        await self._conn.commit()
        logger.info(f"Database initialized at {self._db_path}")

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._conn

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("Database closed")

    async def __aenter__(self) -> Database:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False

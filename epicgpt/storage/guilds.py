"""Guild configuration and knowledge item repository."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

import aiosqlite

from epicgpt.storage.database import Database

logger = logging.getLogger(__name__)


@dataclass
class GuildConfig:
    id: str
    vector_store_id: str | None = None


@dataclass
class KnowledgeItem:
    id: str
    guild_id: str
    kind: Literal["FILE", "URL"]
    title: str
    openai_file_id: str
    vector_store_file_id: str
    content_hash: str
    created_by: str
    source_url: str | None = None
    created_at: datetime | None = None


class GuildStore:
    """CRUD over guild_configs and knowledge_items."""

    def __init__(self, db: Database):
        self._db = db

    async def get_or_create(self, guild_id: str) -> GuildConfig:
        await self._db.conn.execute(
            "INSERT INTO guild_configs (id) VALUES (?) ON CONFLICT(id) DO NOTHING",
            (guild_id,),
        )
        await self._db.conn.commit()
        cursor = await self._db.conn.execute(
            "SELECT id, vector_store_id FROM guild_configs WHERE id = ?", (guild_id,)
        )
        row = await cursor.fetchone()
        return GuildConfig(id=row["id"], vector_store_id=row["vector_store_id"])

    async def get_vector_store_id(self, guild_id: str) -> str | None:
        """The guild's knowledge base handle, creating the guild row if needed."""
        config = await self.get_or_create(guild_id)
        return config.vector_store_id

    async def set_vector_store_id(self, guild_id: str, vector_store_id: str) -> None:
        await self._db.conn.execute(
            """INSERT INTO guild_configs (id, vector_store_id) VALUES (?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   vector_store_id = excluded.vector_store_id,
                   updated_at = strftime('%Y-%m-%dT%H:%M:%f','now')""",
            (guild_id, vector_store_id),
        )
        await self._db.conn.commit()

    async def add_knowledge_item(
        self,
        guild_id: str,
        kind: Literal["FILE", "URL"],
        title: str,
        openai_file_id: str,
        vector_store_file_id: str,
        content_hash: str,
        created_by: str,
        source_url: str | None = None,
    ) -> KnowledgeItem:
        await self.get_or_create(guild_id)
        item = KnowledgeItem(
            id=uuid.uuid4().hex[:12],
            guild_id=guild_id,
            kind=kind,
            title=title,
            openai_file_id=openai_file_id,
            vector_store_file_id=vector_store_file_id,
            content_hash=content_hash,
            created_by=created_by,
            source_url=source_url,
        )
        await self._db.conn.execute(
            """INSERT INTO knowledge_items
               (id, guild_id, kind, title, source_url, openai_file_id,
                vector_store_file_id, content_hash, created_by)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                item.id,
                item.guild_id,
                item.kind,
                item.title,
                item.source_url,
                item.openai_file_id,
                item.vector_store_file_id,
                item.content_hash,
                item.created_by,
            ),
        )
        await self._db.conn.commit()
        logger.info(f"Added knowledge item {item.id} ({title}) to guild {guild_id}")
        return item

    async def list_knowledge_items(self, guild_id: str) -> list[KnowledgeItem]:
        """Newest first."""
        cursor = await self._db.conn.execute(
            "SELECT * FROM knowledge_items WHERE guild_id = ? ORDER BY created_at DESC",
            (guild_id,),
        )
        return [self._row_to_item(row) for row in await cursor.fetchall()]

    async def get_knowledge_item(self, item_id: str) -> KnowledgeItem | None:
        cursor = await self._db.conn.execute(
            "SELECT * FROM knowledge_items WHERE id = ?", (item_id,)
        )
        row = await cursor.fetchone()
        return self._row_to_item(row) if row else None

    async def get_knowledge_item_by_hash(
        self, guild_id: str, content_hash: str
    ) -> KnowledgeItem | None:
        cursor = await self._db.conn.execute(
            "SELECT * FROM knowledge_items WHERE guild_id = ? AND content_hash = ? LIMIT 1",
            (guild_id, content_hash),
        )
        row = await cursor.fetchone()
        return self._row_to_item(row) if row else None

    async def update_knowledge_item_file(
        self,
        item_id: str,
        openai_file_id: str,
        vector_store_file_id: str,
        content_hash: str,
    ) -> bool:
        """Point an item at a re-uploaded file. Returns False if the item is gone."""
        cursor = await self._db.conn.execute(
            """UPDATE knowledge_items
               SET openai_file_id = ?, vector_store_file_id = ?, content_hash = ?
               WHERE id = ?""",
            (openai_file_id, vector_store_file_id, content_hash, item_id),
        )
        await self._db.conn.commit()
        return cursor.rowcount > 0

    async def delete_knowledge_item(self, item_id: str) -> bool:
        cursor = await self._db.conn.execute(
            "DELETE FROM knowledge_items WHERE id = ?", (item_id,)
        )
        await self._db.conn.commit()
        return cursor.rowcount > 0

    async def file_titles(self, guild_id: str) -> dict[str, str]:
        """Map of OpenAI file ID to knowledge item title, used to resolve citations."""
        return {
            item.openai_file_id: item.title
            for item in await self.list_knowledge_items(guild_id)
        }

    @staticmethod
    def _row_to_item(row: aiosqlite.Row) -> KnowledgeItem:
        return KnowledgeItem(
            id=row["id"],
            guild_id=row["guild_id"],
            kind=row["kind"],
            title=row["title"],
            source_url=row["source_url"],
            openai_file_id=row["openai_file_id"],
            vector_store_file_id=row["vector_store_file_id"],
            content_hash=row["content_hash"],
            created_by=row["created_by"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

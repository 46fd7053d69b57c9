"""Adding, refreshing and removing knowledge base documents."""

from __future__ import annotations

import hashlib
import logging
from pathlib import PurePath
from typing import Literal

import httpx
from pydantic import BaseModel

from epicgpt.kb.fetch import (
    INVALID_URL_MESSAGE,
    MIN_CONTENT_LENGTH,
    FetchError,
    fetch_url,
    is_valid_url,
    url_filename,
)
from epicgpt.kb.vector_store import VectorStoreManager
from epicgpt.storage.guilds import GuildStore, KnowledgeItem

logger = logging.getLogger(__name__)


class IngestResult(BaseModel):
    success: bool
    item_id: str | None = None
    title: str | None = None
    error: str | None = None
    duplicate: bool = False


RefreshStatus = Literal[
    "refreshed",
    "unchanged",
    "not_found",
    "wrong_guild",
    "not_url",
    "no_vector_store",
    "fetch_failed",
]


class RefreshResult(BaseModel):
    status: RefreshStatus
    title: str | None = None
    error: str | None = None


def compute_content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower()


class KnowledgeIngestor:
    """
    Validates uploads, rejects duplicates by content hash, and keeps the
    vector store and the knowledge_items table in step.

    Args:
        vector_stores: Vector store manager for uploads and removals
        guild_store: Repository for knowledge item rows
        supported_file_types: Extensions accepted by ``ingest_file``
        max_file_size_mb: Largest accepted file
        http: Client used to fetch URLs; URL ingestion is unavailable without one
        min_content_length: Shortest extracted page text accepted from a URL
    """

    def __init__(
        self,
        vector_stores: VectorStoreManager,
        guild_store: GuildStore,
        supported_file_types: list[str],
        max_file_size_mb: int,
        http: httpx.AsyncClient | None = None,
        min_content_length: int = MIN_CONTENT_LENGTH,
    ):
        self._vector_stores = vector_stores
        self._guild_store = guild_store
        self._supported = [ext.lower() for ext in supported_file_types]
        self._max_file_size_mb = max_file_size_mb
        self._http = http
        self._min_content_length = min_content_length

    def is_supported(self, filename: str) -> bool:
        return file_extension(filename) in self._supported

    async def ingest_file(
        self, guild_id: str, user_id: str, filename: str, data: bytes
    ) -> IngestResult:
        if not self.is_supported(filename):
            return IngestResult(
                success=False,
                error=f"Unsupported file type: {file_extension(filename) or 'none'}. "
                      f"Supported types: {', '.join(self._supported)}",
            )

        size_mb = len(data) / (1024 * 1024)
        if size_mb > self._max_file_size_mb:
            return IngestResult(
                success=False,
                error=f"File too large: {size_mb:.2f}MB. Maximum: {self._max_file_size_mb}MB",
            )

        if not data.strip():
            return IngestResult(success=False, error="File is empty")

        content_hash = compute_content_hash(data)
        existing = await self._guild_store.get_knowledge_item_by_hash(guild_id, content_hash)
        if existing:
            return IngestResult(
                success=False,
                error=f"Duplicate content detected. This file matches: {existing.title}",
                duplicate=True,
            )

        vector_store_id = await self._vector_stores.get_or_create(guild_id)
        uploaded = await self._vector_stores.upload_file(vector_store_id, filename, data)
        item = await self._guild_store.add_knowledge_item(
            guild_id=guild_id,
            kind="FILE",
            title=filename,
            openai_file_id=uploaded.file_id,
            vector_store_file_id=uploaded.vector_store_file_id,
            content_hash=content_hash,
            created_by=user_id,
        )
        return IngestResult(success=True, item_id=item.id, title=filename)

    async def ingest_url(self, guild_id: str, user_id: str, url: str) -> IngestResult:
        """Fetch a web page or PDF and add its text to the guild's knowledge base."""
        url = url.strip()
        if not is_valid_url(url):
            return IngestResult(success=False, error=INVALID_URL_MESSAGE)
        if self._http is None:
            return IngestResult(success=False, error="URL ingestion is not configured")

        try:
            page = await fetch_url(self._http, url, self._min_content_length)
        except FetchError as e:
            logger.warning(f"Could not ingest {url}: {e}")
            return IngestResult(success=False, error=str(e))

        data = page.content.encode("utf-8")
        content_hash = compute_content_hash(data)
        existing = await self._guild_store.get_knowledge_item_by_hash(guild_id, content_hash)
        if existing:
            return IngestResult(
                success=False,
                error=f"Duplicate content detected. This URL matches: {existing.title}",
                duplicate=True,
            )

        vector_store_id = await self._vector_stores.get_or_create(guild_id)
        uploaded = await self._vector_stores.upload_file(vector_store_id, url_filename(url), data)
        item = await self._guild_store.add_knowledge_item(
            guild_id=guild_id,
            kind="URL",
            title=page.title,
            openai_file_id=uploaded.file_id,
            vector_store_file_id=uploaded.vector_store_file_id,
            content_hash=content_hash,
            created_by=user_id,
            source_url=url,
        )
        return IngestResult(success=True, item_id=item.id, title=page.title)

    async def refresh_item(self, guild_id: str, item_id: str) -> RefreshResult:
        """
        Re-fetch a URL item and replace its file if the content changed.

        The new file is uploaded and recorded before the old one is removed, so
        a failed upload leaves the item as it was. The item keeps its ID and
        title.
        """
        item = await self._guild_store.get_knowledge_item(item_id)
        if item is None:
            return RefreshResult(status="not_found")
        if item.guild_id != guild_id:
            return RefreshResult(status="wrong_guild")
        if item.kind != "URL" or not item.source_url:
            return RefreshResult(status="not_url", title=item.title)

        vector_store_id = await self._guild_store.get_vector_store_id(guild_id)
        if not vector_store_id:
            return RefreshResult(status="no_vector_store", title=item.title)
        if self._http is None:
            return RefreshResult(
                status="fetch_failed", title=item.title, error="URL ingestion is not configured"
            )

        try:
            page = await fetch_url(self._http, item.source_url, self._min_content_length)
        except FetchError as e:
            logger.warning(f"Could not refresh {item.source_url}: {e}")
            return RefreshResult(status="fetch_failed", title=item.title, error=str(e))

        data = page.content.encode("utf-8")
        content_hash = compute_content_hash(data)
        if content_hash == item.content_hash:
            return RefreshResult(status="unchanged", title=item.title)

        uploaded = await self._vector_stores.upload_file(
            vector_store_id, url_filename(item.source_url), data
        )
        await self._guild_store.update_knowledge_item_file(
            item.id,
            openai_file_id=uploaded.file_id,
            vector_store_file_id=uploaded.vector_store_file_id,
            content_hash=content_hash,
        )
        await self._vector_stores.remove_file(
            vector_store_id, item.vector_store_file_id, item.openai_file_id
        )
        logger.info(f"Refreshed knowledge item {item.id} ({item.source_url}) in guild {guild_id}")
        return RefreshResult(status="refreshed", title=page.title)

    async def remove_item(self, guild_id: str, item_id: str) -> KnowledgeItem | None:
        """Remove an item from the guild's knowledge base. Returns None if the guild has no such item."""
        item = await self._guild_store.get_knowledge_item(item_id)
        if item is None or item.guild_id != guild_id:
            return None

        vector_store_id = await self._guild_store.get_vector_store_id(guild_id)
        if vector_store_id:
            await self._vector_stores.remove_file(
                vector_store_id, item.vector_store_file_id, item.openai_file_id
            )
        await self._guild_store.delete_knowledge_item(item_id)
        logger.info(f"Removed knowledge item {item_id} ({item.title}) from guild {guild_id}")
        return item

"""
OpenAI vector store management.

Each guild gets one vector store holding the files admins upload. The store ID
lives in the guild's config row; if OpenAI no longer knows the stored ID a new
store is created and the row updated.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from epicgpt.storage.guilds import GuildStore

logger = logging.getLogger(__name__)

VECTOR_STORE_EXPIRY_DAYS = 365


@dataclass(frozen=True)
class UploadedFile:
    file_id: str
    vector_store_file_id: str


class VectorStoreManager:
    """
    Creates vector stores and moves files in and out of them.

    Args:
        client: OpenAI client
        guild_store: Where each guild's vector store ID is kept
        store_name: Display name given to new vector stores
        poll_interval: Seconds between file processing status checks
        max_poll_attempts: Status checks before an upload is declared failed
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        guild_store: GuildStore,
        store_name: str = "EpicGPT Knowledge Base",
        poll_interval: float = 1.0,
        max_poll_attempts: int = 120,
    ):
        self._client = client
        self._guild_store = guild_store
        self._store_name = store_name
        self._poll_interval = poll_interval
        self._max_poll_attempts = max_poll_attempts

    async def get_or_create(self, guild_id: str) -> str:
        """Return the guild's vector store ID, creating the store if needed."""
        existing = await self._guild_store.get_vector_store_id(guild_id)
        if existing:
            try:
                await self._client.vector_stores.retrieve(existing)
                return existing
            except openai.NotFoundError:
                logger.warning(f"Vector store {existing} not found, creating a new one")

        store = await self._client.vector_stores.create(
            name=self._store_name,
            expires_after={"anchor": "last_active_at", "days": VECTOR_STORE_EXPIRY_DAYS},
        )
        await self._guild_store.set_vector_store_id(guild_id, store.id)
        logger.info(f"Created vector store {store.id} for guild {guild_id}")
        return store.id

    async def upload_file(self, vector_store_id: str, filename: str, data: bytes) -> UploadedFile:
        """
        Upload a file and attach it to a vector store, waiting until it is indexed.

        Raises:
            RuntimeError: If OpenAI fails to process the file or processing
                does not finish within the polling budget
        """
        uploaded = await self._client.files.create(file=(filename, data), purpose="assistants")
        logger.info(f"Uploaded file {uploaded.id} ({filename})")

        attached = await self._client.vector_stores.files.create(
            vector_store_id=vector_store_id, file_id=uploaded.id
        )
        status = attached.status
        attempts = 0
        while status == "in_progress":
            if attempts >= self._max_poll_attempts:
                raise RuntimeError(f"Timed out processing file: {filename}")
            await asyncio.sleep(self._poll_interval)
            current = await self._client.vector_stores.files.retrieve(
                attached.id, vector_store_id=vector_store_id
            )
            status = current.status
            attempts += 1

        if status != "completed":
            raise RuntimeError(f"Failed to process file: {filename} (status: {status})")

        logger.info(f"Attached {uploaded.id} to vector store {vector_store_id}")
        return UploadedFile(file_id=uploaded.id, vector_store_file_id=attached.id)

    async def remove_file(
        self, vector_store_id: str, vector_store_file_id: str, file_id: str
    ) -> None:
        """Detach a file from the store and delete it. Either half may fail independently."""
        try:
            await self._client.vector_stores.files.delete(
                vector_store_file_id, vector_store_id=vector_store_id
            )
        except openai.OpenAIError as e:
            logger.warning(f"Failed to remove {vector_store_file_id} from vector store: {e}")

        try:
            await self._client.files.delete(file_id)
        except openai.OpenAIError as e:
            logger.warning(f"Failed to delete file {file_id}: {e}")

"""
Knowledge base retrieval.

Searches a guild's vector store by running a short-lived OpenAI assistant with
the ``file_search`` tool over it. The assistant answers the raw user prompt
from the uploaded documents; that answer becomes the knowledge base context
the orchestrator hands to the chat model. The assistant and its thread are
always deleted afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from epicgpt.llm.citations import extract_file_search_citations

logger = logging.getLogger(__name__)

ASSISTANT_NAME = "Knowledge Base Search"
ASSISTANT_INSTRUCTIONS = (
    "You are a knowledge base search assistant for Epicentral Labs DAO LLC. "
    "Extract and return relevant information from the knowledge base based on the "
    "user query. Be concise and accurate. When queries relate to DAO governance, "
    "roles, processes, or definitions, prioritize the EPICENTRAL LABS DAO LLC "
    "OPERATING AGREEMENT (file-VNyEvYFhiddg51i2Dt7oWv). For crypto-related legal or "
    "regulatory questions, prioritize the Clarity for Digital Tokens Act "
    "(file-SjDBvE2VmPyT8SgjCT6CVK)."
)

PENDING_RUN_STATUSES = ("queued", "in_progress")


class KnowledgeBaseResult(BaseModel):
    success: bool
    content: str | None = None
    citations: list[str] = Field(default_factory=list)
    error: str | None = None


class KnowledgeBaseRetriever:
    """
    Runs file_search queries against a vector store.

    Args:
        client: OpenAI client
        file_titles: Async lookup of ``{openai_file_id: title}`` for a guild,
            used to turn annotations into citations
        model: Assistants-capable model used for the search
        poll_interval: Seconds between run status checks
        max_poll_attempts: Status checks before the search is abandoned
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        file_titles: Callable[[str], Awaitable[dict[str, str]]],
        model: str = "gpt-4.1-2025-04-14",
        poll_interval: float = 1.0,
        max_poll_attempts: int = 30,
    ):
        self._client = client
        self._file_titles = file_titles
        self._model = model
        self._poll_interval = poll_interval
        self._max_poll_attempts = max_poll_attempts

    async def search(self, vector_store_id: str, query: str, guild_id: str) -> KnowledgeBaseResult:
        """
        Answer ``query`` from the vector store.

        Never raises for upstream problems: an empty store, a failed or stalled
        run, or an API error all come back as ``success=False``.
        """
        try:
            page = await self._client.vector_stores.files.list(
                vector_store_id=vector_store_id, limit=1
            )
            if not page.data:
                return KnowledgeBaseResult(success=False, error="Knowledge base is empty")
            return await self._run_search(vector_store_id, query, guild_id)
        except (openai.OpenAIError, RuntimeError) as e:
            logger.warning(f"Knowledge base search failed for guild {guild_id}: {e}")
            return KnowledgeBaseResult(success=False, error=str(e))

    async def _run_search(self, vector_store_id: str, query: str, guild_id: str) -> KnowledgeBaseResult:
        assistant = await self._client.beta.assistants.create(
            name=ASSISTANT_NAME,
            model=self._model,
            instructions=ASSISTANT_INSTRUCTIONS,
            tools=[{"type": "file_search"}],
            tool_resources={"file_search": {"vector_store_ids": [vector_store_id]}},
        )
        thread_id: str | None = None
        try:
            thread = await self._client.beta.threads.create(
                messages=[{"role": "user", "content": query}]
            )
            thread_id = thread.id
            run = await self._client.beta.threads.runs.create(
                thread_id=thread_id, assistant_id=assistant.id
            )
            await self._wait_for_run(thread_id, run.id)

            messages = await self._client.beta.threads.messages.list(
                thread_id=thread_id, order="asc"
            )
            for message in messages.data:
                if message.role != "assistant" or not message.content:
                    continue
                block = message.content[0]
                if block.type != "text":
                    continue
                titles = await self._file_titles(guild_id)
                citations = extract_file_search_citations(block.text.annotations or [], titles)
                return KnowledgeBaseResult(
                    success=True, content=block.text.value, citations=citations
                )

            return KnowledgeBaseResult(success=False, error="No response from knowledge base search")
        finally:
            await self._cleanup(assistant.id, thread_id)

    async def _wait_for_run(self, thread_id: str, run_id: str) -> None:
        run = await self._client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
        attempts = 0
        while run.status in PENDING_RUN_STATUSES:
            if attempts >= self._max_poll_attempts:
                raise RuntimeError("Knowledge base search timed out")
            await asyncio.sleep(self._poll_interval)
            run = await self._client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
            attempts += 1

        if run.status != "completed":
            raise RuntimeError(f"Knowledge base search failed with status: {run.status}")

    async def _cleanup(self, assistant_id: str, thread_id: str | None) -> None:
        if thread_id is not None:
            try:
                await self._client.beta.threads.delete(thread_id)
            except openai.OpenAIError as e:
                logger.debug(f"Could not delete thread {thread_id}: {e}")
        try:
            await self._client.beta.assistants.delete(assistant_id)
        except openai.OpenAIError as e:
            logger.debug(f"Could not delete assistant {assistant_id}: {e}")

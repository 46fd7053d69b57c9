"""
Service wiring shared by the Discord bot and the CLI.

Builds every long-lived collaborator from Settings and registers each async
resource on the caller's AsyncExitStack, so closing the stack releases
everything in reverse order of creation.
"""

from __future__ import annotations

from contextlib import AsyncExitStack
from dataclasses import dataclass
from datetime import timedelta

import httpx
from openai import AsyncOpenAI

from epicgpt.config.logging import get_logger
from epicgpt.config.settings import Settings
from epicgpt.guards.rate_limit import RateLimiter
from epicgpt.kb.ingest import KnowledgeIngestor
from epicgpt.kb.search import KnowledgeBaseRetriever
from epicgpt.kb.vector_store import VectorStoreManager
from epicgpt.llm.orchestrator import ConversationOrchestrator
from epicgpt.llm.prompts import load_system_template
from epicgpt.maintenance import PeriodicSweeper
from epicgpt.storage.database import Database
from epicgpt.storage.guilds import GuildStore
from epicgpt.storage.request_log import RequestLogStore
from epicgpt.storage.sessions import SessionStore
from epicgpt.tools.router import ToolRouter
from epicgpt.tools.web_search import SerperClient

logger = get_logger(__name__)


@dataclass
class Services:
    database: Database
    guild_store: GuildStore
    session_store: SessionStore
    request_log: RequestLogStore
    rate_limiter: RateLimiter
    orchestrator: ConversationOrchestrator
    ingestor: KnowledgeIngestor | None


async def create_services(
    settings: Settings,
    stack: AsyncExitStack,
    start_sweepers: bool = True,
) -> Services:
    """
    Initialize storage, tools, knowledge base and orchestrator.

    The knowledge base is only wired when an OpenAI key is available
    (``KB__API_KEY``, falling back to ``LLM__API_KEY``); without one the bot
    answers from the model alone.
    """
    # --- 1. Storage ---
    database = await stack.enter_async_context(Database(settings.session.db_path))
    guild_store = GuildStore(database)
    session_store = SessionStore(
        database,
        max_messages=settings.session.max_messages,
        ttl=timedelta(seconds=settings.session.ttl_seconds),
    )
    request_log = RequestLogStore(database)

    # --- 2. Guards ---
    rate_limiter = RateLimiter.from_settings(settings.rate_limit)

    # --- 3. Tools and web search ---
    tool_router = await stack.enter_async_context(ToolRouter(settings.tools))
    search_http = await stack.enter_async_context(
        httpx.AsyncClient(timeout=httpx.Timeout(settings.tools.http_timeout))
    )
    web_search = SerperClient(
        search_http,
        settings.tools.serper_api_key,
        max_results=settings.tools.web_search_max_results,
    )
    if not settings.tools.serper_api_key:
        logger.info("Web search not configured (TOOL__SERPER_API_KEY not set)")

    # --- 4. Knowledge base (optional) ---
    retriever = None
    ingestor = None
    openai_key = settings.kb.api_key or settings.llm.api_key
    if openai_key:
        client = await stack.enter_async_context(AsyncOpenAI(api_key=openai_key))
        retriever = KnowledgeBaseRetriever(
            client,
            file_titles=guild_store.file_titles,
            model=settings.kb.assistant_model,
            poll_interval=settings.kb.poll_interval,
            max_poll_attempts=settings.kb.max_poll_attempts,
        )
        vector_stores = VectorStoreManager(
            client,
            guild_store,
            store_name=f"{settings.bot.name} Knowledge Base",
            poll_interval=settings.kb.poll_interval,
        )
        fetch_http = await stack.enter_async_context(
            httpx.AsyncClient(timeout=httpx.Timeout(settings.kb.fetch_timeout))
        )
        ingestor = KnowledgeIngestor(
            vector_stores,
            guild_store,
            supported_file_types=settings.kb.supported_file_types,
            max_file_size_mb=settings.kb.max_file_size_mb,
            http=fetch_http,
            min_content_length=settings.kb.min_content_length,
        )
        logger.info(f"Knowledge base ready (assistant model: {settings.kb.assistant_model})")
    else:
        logger.info("Knowledge base not configured (no OpenAI API key)")

    # --- 5. Orchestrator ---
    orchestrator = ConversationOrchestrator(
        settings=settings.llm,
        system_template=load_system_template(bot_name=settings.bot.name),
        session_store=session_store,
        kb_resolver=guild_store if retriever else None,
        retriever=retriever,
        web_search=web_search,
        tool_adapter=tool_router,
        tool_limiter=rate_limiter,
        kb_timeout=settings.kb.search_timeout,
        web_search_timeout=settings.tools.web_search_timeout,
    )
    logger.info(f"Orchestrator ready (model: {settings.llm.model})")

    # --- 6. Background sweeps ---
    if start_sweepers:
        sweeper = PeriodicSweeper()
        sweeper.add("sessions", settings.session.cleanup_interval, session_store.delete_expired)
        sweeper.add("rate_limits", settings.rate_limit.cleanup_interval, rate_limiter.sweep)
        await stack.enter_async_context(sweeper)

    return Services(
        database=database,
        guild_store=guild_store,
        session_store=session_store,
        request_log=request_log,
        rate_limiter=rate_limiter,
        orchestrator=orchestrator,
        ingestor=ingestor,
    )

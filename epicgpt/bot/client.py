"""
EpicGPTBot: discord.py bot client.

Manages the full bot lifecycle:
- Builds shared services (storage, orchestrator, knowledge base) once at startup
- Loads command cogs (ChatCog, KnowledgeCog)
- Syncs slash commands (guild-local for dev, global for production)
- Cleans up all resources on shutdown via AsyncExitStack, which also stops
  the periodic session and rate limit sweeps
"""

from __future__ import annotations

from contextlib import AsyncExitStack

import discord
from discord.ext import commands

from epicgpt.config.logging import get_logger
from epicgpt.config.settings import Settings
from epicgpt.guards.rate_limit import RateLimiter
from epicgpt.kb.ingest import KnowledgeIngestor
from epicgpt.llm.orchestrator import ConversationOrchestrator
from epicgpt.services import create_services
from epicgpt.storage.guilds import GuildStore
from epicgpt.storage.request_log import RequestLogStore

logger = get_logger(__name__)


class EpicGPTBot(commands.Bot):
    """
    Discord bot for the Epicentral Labs community.

    Holds shared application state and exposes it to cogs. Slash commands
    only, so no privileged intents are requested.

    Args:
        settings: Full application settings
    """

    def __init__(self, settings: Settings) -> None:
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=discord.Intents.default(),
            help_command=None,
        )
        self.settings = settings
        self.orchestrator: ConversationOrchestrator | None = None
        self.rate_limiter: RateLimiter | None = None
        self.guild_store: GuildStore | None = None
        self.request_log: RequestLogStore | None = None
        self.ingestor: KnowledgeIngestor | None = None
        self._exit_stack = AsyncExitStack()

    async def setup_hook(self) -> None:
        """
        Called after login, before connecting to the Gateway.

        Initializes all services, loads cogs, and syncs slash commands.
        """
        services = await create_services(self.settings, self._exit_stack)
        self.orchestrator = services.orchestrator
        self.rate_limiter = services.rate_limiter
        self.guild_store = services.guild_store
        self.request_log = services.request_log
        self.ingestor = services.ingestor

        from epicgpt.bot.cogs.chat import ChatCog
        from epicgpt.bot.cogs.knowledge import KnowledgeCog
        await self.add_cog(ChatCog(self))
        await self.add_cog(KnowledgeCog(self))
        logger.info("Cogs loaded")

        try:
            if self.settings.bot.dev_guild_id:
                guild = discord.Object(id=self.settings.bot.dev_guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                logger.info(f"Slash commands synced to dev guild {self.settings.bot.dev_guild_id} (instant)")
            else:
                await self.tree.sync()
                logger.info("Slash commands synced globally (may take up to 1 hour to propagate)")
        except discord.errors.Forbidden:
            logger.warning(
                "Could not sync slash commands (403 Forbidden). "
                "Re-invite the bot with both the 'bot' and 'applications.commands' scopes."
            )
        except discord.HTTPException as e:
            logger.warning(f"Slash command sync failed: {e}. The bot will still start.")

    async def on_ready(self) -> None:
        logger.info(f"Logged in as {self.user} (id: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

    async def close(self) -> None:
        """Graceful shutdown: stop sweeps and release resources before disconnecting."""
        logger.info(f"Shutting down {self.settings.bot.name}...")
        await self._exit_stack.aclose()
        await super().close()

    def is_allowed_channel(self, channel_id: int | None) -> bool:
        """
        Return True if the bot should respond in this channel.

        If `allowed_channel_ids` is empty (the default), the bot responds everywhere.
        """
        allowed = self.settings.bot.allowed_channel_ids
        return not allowed or channel_id in allowed

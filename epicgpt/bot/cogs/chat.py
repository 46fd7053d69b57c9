"""
ChatCog: /chat, /search and /help.

/chat and /search share one pipeline and differ only in their rate limit
class and whether web search is enabled:

  rate limit check → defer → orchestrator.run() → request log → chunked reply

Rate-limited users get an ephemeral "please wait" reply and the orchestrator
is never called. Run failures are logged with full detail; users only see a
generic error message.
"""

from __future__ import annotations

from typing import Literal

import discord
from discord import app_commands
from discord.ext import commands

from epicgpt.bot.formatting import (
    GENERIC_ERROR,
    format_run_reply,
    rate_limit_message,
    split_message,
)
from epicgpt.config.logging import get_logger
from epicgpt.guards.rate_limit import OperationClass
from epicgpt.llm.models import RunResult

logger = get_logger(__name__)

# Discord's own cap on slash command string options
MAX_PROMPT_LENGTH = 2000

DM_GUILD_ID = "dm"


class ChatCog(commands.Cog):
    """Conversational commands backed by the orchestrator."""

    def __init__(self, bot) -> None:
        self.bot = bot

    @app_commands.command(name="chat", description="Chat with EpicGPT using the knowledge base")
    @app_commands.describe(prompt="Your question or message")
    async def chat(
        self,
        interaction: discord.Interaction,
        prompt: app_commands.Range[str, 1, MAX_PROMPT_LENGTH],
    ) -> None:
        await self._respond(interaction, prompt, command="chat")

    @app_commands.command(name="search", description="Ask EpicGPT with live web search enabled")
    @app_commands.describe(prompt="What to search for")
    async def search(
        self,
        interaction: discord.Interaction,
        prompt: app_commands.Range[str, 1, MAX_PROMPT_LENGTH],
    ) -> None:
        await self._respond(interaction, prompt, command="search")

    @app_commands.command(name="help", description="Learn how to use EpicGPT")
    async def help(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(embed=self._help_embed())

    # ------------------------------------------------------------------
    # Shared pipeline
    # ------------------------------------------------------------------

    async def _respond(
        self,
        interaction: discord.Interaction,
        prompt: str,
        command: Literal["chat", "search"],
    ) -> None:
        if not self.bot.is_allowed_channel(interaction.channel_id):
            await interaction.response.send_message(
                "I'm not configured to respond in this channel.", ephemeral=True
            )
            return

        operation = OperationClass.SEARCH if command == "search" else OperationClass.CHAT
        user_id = str(interaction.user.id)
        decision = self.bot.rate_limiter.check(user_id, operation)
        if decision.limited:
            await interaction.response.send_message(
                rate_limit_message(decision.retry_after_seconds), ephemeral=True
            )
            return

        # The orchestrator takes well over Discord's 3s acknowledgement limit
        await interaction.response.defer()

        guild_id = str(interaction.guild_id) if interaction.guild_id else DM_GUILD_ID
        try:
            result = await self.bot.orchestrator.run(
                guild_id=guild_id,
                user_id=user_id,
                channel_id=str(interaction.channel_id),
                prompt=prompt,
                web_search_enabled=command == "search",
            )
            await self._log_request(guild_id, user_id, command, result)

            if not result.success or not result.response:
                await interaction.followup.send(GENERIC_ERROR, ephemeral=True)
                return

            for chunk in split_message(format_run_reply(result)):
                await interaction.followup.send(chunk)
        except Exception:
            logger.exception(f"/{command} failed for user {user_id} in guild {guild_id}")
            await interaction.followup.send(GENERIC_ERROR, ephemeral=True)

    async def _log_request(
        self,
        guild_id: str,
        user_id: str,
        command: Literal["chat", "search"],
        result: RunResult,
    ) -> None:
        if self.bot.request_log is None:
            return
        try:
            await self.bot.request_log.record(guild_id, user_id, command, result)
        except Exception as e:
            logger.warning(f"Could not record /{command} request: {e}")

    def _help_embed(self) -> discord.Embed:
        settings = self.bot.settings.bot
        embed = discord.Embed(
            title=f"{settings.name} - Help",
            description=(
                f"I'm {settings.name}, your AI assistant for Epicentral Labs! I can answer "
                "questions using our knowledge base, search the web, and fetch live "
                "blockchain data."
            ),
            color=settings.color,
        )
        embed.add_field(
            name="💬 Chat Commands",
            value=(
                "`/chat prompt:<your question>` - Ask me anything! I'll search the "
                "knowledge base and use available tools.\n"
                "`/search prompt:<your question>` - Search the web for up-to-date "
                "information with citations."
            ),
            inline=False,
        )
        embed.add_field(
            name="📚 Knowledge Base (Admin)",
            value=(
                "`/kb_add_file` - Upload a file to the knowledge base\n"
                "`/kb_add_url url:<url>` - Add a web page or PDF to the knowledge base\n"
                "`/kb_refresh id:<id>` - Re-fetch a URL item if its content changed\n"
                "`/kb_list` - List all knowledge base items\n"
                "`/kb_remove id:<id>` - Remove an item from the knowledge base"
            ),
            inline=False,
        )
        embed.add_field(
            name="🔧 Available Tools",
            value=(
                "• **Solana Balance** - Check SOL balance for any wallet\n"
                "• **Token Supply** - Get total supply of any SPL token\n"
                "• **Token Price** - Get current price from Birdeye"
            ),
            inline=False,
        )
        ttl_minutes = self.bot.settings.session.ttl_seconds // 60
        embed.add_field(
            name="💡 Tips",
            value=(
                "• Use `/chat` for questions about Epicentral Labs products\n"
                "• Use `/search` when you need current information from the web\n"
                f"• I keep conversation context for {ttl_minutes} minutes per channel\n"
                "• Admin commands require the \"Manage Server\" permission"
            ),
            inline=False,
        )
        embed.set_footer(text=settings.footer)
        return embed

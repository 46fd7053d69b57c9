"""
KnowledgeCog: admin-only knowledge base management.

  /kb_add_file file:<attachment>   upload a document into the guild's vector store
  /kb_add_url url:<url>            fetch a web page or PDF into the vector store
  /kb_refresh id:<item id>         re-fetch a URL item and re-index it if it changed
  /kb_list                         list the guild's knowledge items
  /kb_remove id:<item id>          delete an item from the store and the database

Only members with the Manage Server permission, or the configured admin role,
may use these commands. All replies are ephemeral.
"""

from __future__ import annotations

import discord
from discord import app_commands
from discord.ext import commands

from epicgpt.bot.formatting import GENERIC_ERROR
from epicgpt.config.logging import get_logger
from epicgpt.guards.admin import is_admin
from epicgpt.kb.fetch import is_valid_url

logger = get_logger(__name__)

# Discord embeds hold at most 25 fields
MAX_LISTED_ITEMS = 25


class KnowledgeCog(commands.Cog):
    """Knowledge base administration commands."""

    def __init__(self, bot) -> None:
        self.bot = bot

    async def _require_admin(self, interaction: discord.Interaction) -> bool:
        if interaction.guild_id is None:
            await interaction.response.send_message(
                "❌ Knowledge base commands only work inside a server.", ephemeral=True
            )
            return False
        if not is_admin(interaction.user, self.bot.settings.bot.admin_role_id):
            await interaction.response.send_message(
                '❌ You need the "Manage Server" permission to use this command.',
                ephemeral=True,
            )
            return False
        if self.bot.ingestor is None:
            await interaction.response.send_message(
                "❌ The knowledge base is not configured. Set `KB__API_KEY` or `LLM__API_KEY`.",
                ephemeral=True,
            )
            return False
        return True

    @app_commands.command(name="kb_add_file", description="Add a file to the knowledge base (Admin only)")
    @app_commands.describe(file="The document to add")
    async def kb_add_file(self, interaction: discord.Interaction, file: discord.Attachment) -> None:
        if not await self._require_admin(interaction):
            return

        await interaction.response.defer(ephemeral=True)
        guild_id = str(interaction.guild_id)
        try:
            data = await file.read()
            result = await self.bot.ingestor.ingest_file(
                guild_id=guild_id,
                user_id=str(interaction.user.id),
                filename=file.filename,
                data=data,
            )
        except Exception:
            logger.exception(f"/kb_add_file failed for {file.filename!r} in guild {guild_id}")
            await interaction.followup.send(GENERIC_ERROR, ephemeral=True)
            return

        if not result.success:
            await interaction.followup.send(f"❌ {result.error}", ephemeral=True)
            return

        await interaction.followup.send(
            f"✅ Added **{file.filename}** to the knowledge base.\nID: `{result.item_id}`",
            ephemeral=True,
        )

    @app_commands.command(name="kb_add_url", description="Add a web page to the knowledge base (Admin only)")
    @app_commands.describe(url="The URL to fetch and add")
    async def kb_add_url(self, interaction: discord.Interaction, url: str) -> None:
        if not await self._require_admin(interaction):
            return

        url = url.strip()
        if not url.lower().startswith(("http://", "https://")):
            await interaction.response.send_message(
                "❌ Invalid URL. Please provide an HTTP or HTTPS URL.", ephemeral=True
            )
            return
        if not is_valid_url(url):
            await interaction.response.send_message("❌ Invalid URL format.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True)
        guild_id = str(interaction.guild_id)
        try:
            result = await self.bot.ingestor.ingest_url(
                guild_id=guild_id, user_id=str(interaction.user.id), url=url
            )
        except Exception:
            logger.exception(f"/kb_add_url failed for {url!r} in guild {guild_id}")
            await interaction.followup.send(GENERIC_ERROR, ephemeral=True)
            return

        if not result.success:
            await interaction.followup.send(f"❌ Failed to add URL: {result.error}", ephemeral=True)
            return

        await interaction.followup.send(
            f"✅ Successfully added **{result.title}** to the knowledge base!\n\n"
            f"URL: {url}\nID: `{result.item_id}`",
            ephemeral=True,
        )

    @app_commands.command(name="kb_list", description="List all knowledge base items (Admin only)")
    async def kb_list(self, interaction: discord.Interaction) -> None:
        if not await self._require_admin(interaction):
            return

        guild_id = str(interaction.guild_id)
        try:
            items = await self.bot.guild_store.list_knowledge_items(guild_id)
        except Exception:
            logger.exception(f"/kb_list failed in guild {guild_id}")
            await interaction.response.send_message(GENERIC_ERROR, ephemeral=True)
            return

        if not items:
            await interaction.response.send_message(
                "📚 The knowledge base is empty. Use `/kb_add_file` or `/kb_add_url` to add content.",
                ephemeral=True,
            )
            return

        settings = self.bot.settings.bot
        description = f"Found {len(items)} item{'' if len(items) == 1 else 's'}"
        if len(items) > MAX_LISTED_ITEMS:
            description = f"Showing {MAX_LISTED_ITEMS} of {len(items)} items."
        embed = discord.Embed(
            title="📚 Knowledge Base Items", description=description, color=settings.color
        )
        for item in items[:MAX_LISTED_ITEMS]:
            icon = "📄" if item.kind == "FILE" else "🔗"
            added = item.created_at.date().isoformat() if item.created_at else "unknown"
            source = f"\n[Source]({item.source_url})" if item.source_url else ""
            embed.add_field(
                name=f"{icon} {item.title}"[:256],
                value=f"ID: `{item.id}`\nAdded: {added}{source}",
                inline=True,
            )
        embed.set_footer(text=settings.footer)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="kb_remove", description="Remove an item from the knowledge base (Admin only)")
    @app_commands.describe(id="The ID of the knowledge base item to remove")
    async def kb_remove(self, interaction: discord.Interaction, id: str) -> None:
        if not await self._require_admin(interaction):
            return

        await interaction.response.defer(ephemeral=True)
        guild_id = str(interaction.guild_id)
        try:
            removed = await self.bot.ingestor.remove_item(guild_id, id)
        except Exception:
            logger.exception(f"/kb_remove failed for {id!r} in guild {guild_id}")
            await interaction.followup.send(GENERIC_ERROR, ephemeral=True)
            return

        if removed is None:
            await interaction.followup.send(
                f"❌ Knowledge base item not found: `{id}`", ephemeral=True
            )
            return

        await interaction.followup.send(
            f"✅ Removed **{removed.title}** from the knowledge base.", ephemeral=True
        )

    @app_commands.command(name="kb_refresh", description="Re-fetch a URL in the knowledge base (Admin only)")
    @app_commands.describe(id="The ID of the knowledge base item to refresh")
    async def kb_refresh(self, interaction: discord.Interaction, id: str) -> None:
        if not await self._require_admin(interaction):
            return

        await interaction.response.defer(ephemeral=True)
        guild_id = str(interaction.guild_id)
        try:
            result = await self.bot.ingestor.refresh_item(guild_id, id)
        except Exception:
            logger.exception(f"/kb_refresh failed for {id!r} in guild {guild_id}")
            await interaction.followup.send(GENERIC_ERROR, ephemeral=True)
            return

        messages = {
            "not_found": f"❌ Knowledge base item not found: `{id}`",
            "wrong_guild": "❌ This item does not belong to this server.",
            "not_url": "❌ Only URL items can be refreshed. File items must be re-uploaded.",
            "no_vector_store": "❌ No vector store found for this server.",
            "fetch_failed": f"❌ Failed to refresh: {result.error}",
            "unchanged": f"ℹ️ No changes detected for **{result.title}**. Content is up to date.",
            "refreshed": f"✅ Successfully refreshed **{result.title}**!\n\nNew content has been indexed.",
        }
        await interaction.followup.send(messages[result.status], ephemeral=True)

"""
Discord Bot Layer.

Slash command handling, rate limit and admin checks, and reply formatting
for the EpicGPT bot.
"""

from epicgpt.bot.client import EpicGPTBot

__all__ = ["EpicGPTBot"]

"""
Storage Layer.

SQLite persistence for guild configuration, knowledge items, conversation
sessions and request logs.
"""

from epicgpt.storage.database import Database
from epicgpt.storage.guilds import GuildConfig, GuildStore, KnowledgeItem
from epicgpt.storage.request_log import RequestLogStore
from epicgpt.storage.sessions import SessionStore

__all__ = [
    "Database",
    "GuildConfig",
    "GuildStore",
    "KnowledgeItem",
    "RequestLogStore",
    "SessionStore",
]

"""
Conversation session store.

One row per (guild, user, channel) holding the most recent turns as JSON and
an expiry timestamp. Saves replace the whole turn list and push the expiry
forward; reads that find an expired row delete it and report no session.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

from pydantic import TypeAdapter, ValidationError

from epicgpt.llm.models import ConversationTurn
from epicgpt.storage.database import Database

logger = logging.getLogger(__name__)

_TURNS = TypeAdapter(list[ConversationTurn])


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _iso(moment: datetime) -> str:
    # Fixed width so SQLite string comparison orders timestamps correctly
    return moment.astimezone(UTC).isoformat(timespec="microseconds")


class SessionStore:
    """
    Bounded, expiring conversation memory backed by SQLite.

    Args:
        db: Initialized database
        max_messages: Turns kept per session; older turns are dropped on save
        ttl: Lifetime of a session after its last save
        now: Clock, injectable for tests
    """

    def __init__(
        self,
        db: Database,
        max_messages: int = 10,
        ttl: timedelta = timedelta(hours=1),
        now: Callable[[], datetime] = _utc_now,
    ):
        if max_messages < 1:
            raise ValueError(f"max_messages must be at least 1, got {max_messages}")
        self._db = db
        self.max_messages = max_messages
        self._ttl = ttl
        self._now = now

    async def load(
        self, guild_id: str, user_id: str, channel_id: str
    ) -> list[ConversationTurn] | None:
        """
        Return the stored turns for a key, oldest first.

        Returns None if there is no session, it has expired (the row is deleted),
        or its stored JSON can no longer be parsed.
        """
        cursor = await self._db.conn.execute(
            """SELECT messages_json, expires_at FROM conversation_sessions
               WHERE guild_id = ? AND user_id = ? AND channel_id = ?""",
            (guild_id, user_id, channel_id),
        )
        row = await cursor.fetchone()
        if row is None:
            return None

        if datetime.fromisoformat(row["expires_at"]) <= self._now():
            await self.clear(guild_id, user_id, channel_id)
            logger.debug(f"Session {guild_id}/{user_id}/{channel_id} expired")
            return None

        try:
            return _TURNS.validate_json(row["messages_json"])
        except ValidationError as e:
            logger.warning(f"Discarding unreadable session {guild_id}/{user_id}/{channel_id}: {e}")
            return None

    async def save(
        self,
        guild_id: str,
        user_id: str,
        channel_id: str,
        turns: Sequence[ConversationTurn],
    ) -> list[ConversationTurn]:
        """
        Replace the stored turns for a key, keeping only the most recent ``max_messages``.

        Returns the turns actually stored.
        """
        kept = list(turns)[-self.max_messages:]
        now = self._now()
        expires_at = now + self._ttl
        messages_json = json.dumps([turn.model_dump() for turn in kept], ensure_ascii=False)

        await self._db.conn.execute(
            """INSERT INTO conversation_sessions
               (guild_id, user_id, channel_id, messages_json, expires_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(guild_id, user_id, channel_id)
               DO UPDATE SET messages_json = excluded.messages_json,
                             expires_at = excluded.expires_at,
                             updated_at = excluded.updated_at""",
            (guild_id, user_id, channel_id, messages_json, _iso(expires_at), _iso(now)),
        )
        await self._db.conn.commit()
        return kept

    async def clear(self, guild_id: str, user_id: str, channel_id: str) -> None:
        await self._db.conn.execute(
            """DELETE FROM conversation_sessions
               WHERE guild_id = ? AND user_id = ? AND channel_id = ?""",
            (guild_id, user_id, channel_id),
        )
        await self._db.conn.commit()

    async def delete_expired(self) -> int:
        """Delete every expired session. Returns the number of rows removed."""
        cursor = await self._db.conn.execute(
            "DELETE FROM conversation_sessions WHERE expires_at <= ?",
            (_iso(self._now()),),
        )
        await self._db.conn.commit()
        if cursor.rowcount:
            logger.info(f"Cleaned up {cursor.rowcount} expired sessions")
        return cursor.rowcount

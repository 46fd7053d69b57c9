"""Per-command request log used for usage review."""

from __future__ import annotations

import json
from typing import Literal

from epicgpt.llm.models import RunResult
from epicgpt.storage.database import Database


class RequestLogStore:
    def __init__(self, db: Database):
        self._db = db

    async def record(
        self,
        guild_id: str,
        user_id: str,
        command: Literal["chat", "search"],
        result: RunResult,
    ) -> None:
        tool_calls = [call.model_dump(mode="json") for call in result.tool_calls]
        await self._db.conn.execute(
            """INSERT INTO request_logs
               (guild_id, user_id, command, used_file_search, used_web_search,
                tool_calls_json, error)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                guild_id,
                user_id,
                command,
                int(result.used_file_search),
                int(result.used_web_search),
                json.dumps(tool_calls) if tool_calls else None,
                result.error,
            ),
        )
        await self._db.conn.commit()

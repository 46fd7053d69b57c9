"""
Tests for the SQLite session store.

Each test gets a fresh database file under tmp_path and a controllable clock.
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from epicgpt.llm.models import ConversationTurn
from epicgpt.storage.database import Database
from epicgpt.storage.sessions import SessionStore

KEY = ("guild-1", "user-1", "channel-1")


class FakeClock:
    def __init__(self):
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _turns(count: int, start: int = 0) -> list[ConversationTurn]:
    return [
        ConversationTurn(role="user" if i % 2 == 0 else "assistant", content=f"message {i}")
        for i in range(start, start + count)
    ]


@pytest_asyncio.fixture
async def db(tmp_path):
    async with Database(tmp_path / "test.db") as database:
        yield database


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(db, clock):
    return SessionStore(db, max_messages=4, ttl=timedelta(hours=1), now=clock)


class TestLoadAndSave:

    @pytest.mark.asyncio
    async def test_missing_session_is_none(self, store):
        assert await store.load(*KEY) is None

    @pytest.mark.asyncio
    async def test_round_trip_preserves_order(self, store):
        await store.save(*KEY, _turns(3))
        loaded = await store.load(*KEY)
        assert [t.content for t in loaded] == ["message 0", "message 1", "message 2"]
        assert loaded[1].role == "assistant"

    @pytest.mark.asyncio
    async def test_save_caps_to_most_recent(self, store):
        kept = await store.save(*KEY, _turns(7))
        assert [t.content for t in kept] == ["message 3", "message 4", "message 5", "message 6"]
        assert await store.load(*KEY) == kept

    @pytest.mark.asyncio
    async def test_cap_of_one_keeps_only_last_turn(self, db, clock):
        store = SessionStore(db, max_messages=1, now=clock)
        kept = await store.save(*KEY, _turns(3))
        assert [t.content for t in kept] == ["message 2"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("cap", [0, -1])
    async def test_cap_below_one_is_rejected(self, db, cap):
        with pytest.raises(ValueError, match="max_messages"):
            SessionStore(db, max_messages=cap)

    @pytest.mark.asyncio
    async def test_save_replaces_rather_than_merges(self, store):
        await store.save(*KEY, _turns(2))
        await store.save(*KEY, _turns(1, start=10))
        loaded = await store.load(*KEY)
        assert [t.content for t in loaded] == ["message 10"]

    @pytest.mark.asyncio
    async def test_count_after_run_is_min_of_cap_and_previous_plus_two(self, store):
        previous: list[ConversationTurn] = []
        for run in range(4):
            turns = [*previous, *_turns(2, start=run * 2)]
            await store.save(*KEY, turns)
            stored = await store.load(*KEY)
            assert len(stored) == min(4, len(previous) + 2)
            previous = stored

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, store):
        await store.save("guild-1", "user-1", "channel-1", _turns(1))
        await store.save("guild-1", "user-1", "channel-2", _turns(2))
        assert len(await store.load("guild-1", "user-1", "channel-1")) == 1
        assert len(await store.load("guild-1", "user-1", "channel-2")) == 2
        assert await store.load("guild-1", "user-2", "channel-1") is None

    @pytest.mark.asyncio
    async def test_non_ascii_content(self, store):
        await store.save(*KEY, [ConversationTurn(role="user", content="gm ☀️ 你好")])
        loaded = await store.load(*KEY)
        assert loaded[0].content == "gm ☀️ 你好"


class TestExpiry:

    @pytest.mark.asyncio
    async def test_expired_session_is_deleted_on_load(self, store, db, clock):
        await store.save(*KEY, _turns(2))
        clock.advance(hours=1)

        assert await store.load(*KEY) is None
        cursor = await db.conn.execute("SELECT COUNT(*) FROM conversation_sessions")
        assert (await cursor.fetchone())[0] == 0

    @pytest.mark.asyncio
    async def test_save_extends_expiry(self, store, clock):
        await store.save(*KEY, _turns(2))
        clock.advance(minutes=50)
        await store.save(*KEY, _turns(4))
        clock.advance(minutes=50)

        assert await store.load(*KEY) is not None

    @pytest.mark.asyncio
    async def test_delete_expired(self, store, clock):
        await store.save("g", "u", "old", _turns(1))
        clock.advance(minutes=30)
        await store.save("g", "u", "new", _turns(1))
        clock.advance(minutes=31)

        assert await store.delete_expired() == 1
        assert await store.load("g", "u", "old") is None
        assert await store.load("g", "u", "new") is not None

    @pytest.mark.asyncio
    async def test_clear(self, store):
        await store.save(*KEY, _turns(2))
        await store.clear(*KEY)
        assert await store.load(*KEY) is None


class TestCorruptRows:

    @pytest.mark.asyncio
    async def test_unreadable_json_is_treated_as_missing(self, store, db):
        await store.save(*KEY, _turns(1))
        await db.conn.execute(
            "UPDATE conversation_sessions SET messages_json = ?", ('[{"role": "system"}]',)
        )
        await db.conn.commit()

        assert await store.load(*KEY) is None

"""Record store tests against a temporary SQLite file."""

import asyncio
from datetime import datetime

import aiosqlite
import pytest
from helpers import run_with_db

from analytics import compute_statistics, resolve_deck_name
from config import DEFAULT_EVENT_NAME
from database import Database


# ─── Connection lifecycle ────────────────────────────────────────

class TestConnection:
    def test_conn_requires_connect(self, tmp_path):
        db = Database(str(tmp_path / "t.db"))
        with pytest.raises(RuntimeError):
            db.conn

    def test_reconnect_keeps_data(self, tmp_path):
        path = tmp_path / "t.db"

        async def write(db):
            await db.add_deck("u1", "Blue-Eyes")

        async def read(db):
            return await db.get_user_decks("u1")

        run_with_db(path, write)
        decks = run_with_db(path, read)
        assert [d.name for d in decks] == ["Blue-Eyes"]


# ─── Users ───────────────────────────────────────────────────────

class TestUsers:
    def test_get_or_create_is_stable(self, tmp_path):
        async def scenario(db):
            first = await db.get_or_create_user("42", "Kaiba")
            second = await db.get_or_create_user("42", "Seto")
            stored = await db.get_user_by_discord_id("42")
            return first, second, stored

        first, second, stored = run_with_db(tmp_path / "t.db", scenario)
        assert first.id == second.id
        assert stored.username == "Seto"

    def test_unknown_user(self, tmp_path):
        async def scenario(db):
            return await db.get_user_by_discord_id("nobody")

        assert run_with_db(tmp_path / "t.db", scenario) is None


# ─── Decks ───────────────────────────────────────────────────────

class TestDecks:
    def test_add_and_list(self, tmp_path):
        async def scenario(db):
            await db.add_deck("u1", "Sky Striker", archetype="Control", tags=["meta", " meta", ""])
            await db.add_deck("u1", "blue-eyes")
            await db.add_deck("u2", "Other Player Deck")
            return await db.get_user_decks("u1")

        decks = run_with_db(tmp_path / "t.db", scenario)
        assert [d.name for d in decks] == ["blue-eyes", "Sky Striker"]
        assert decks[1].archetype == "Control"
        assert decks[1].tags == ["meta"]

    def test_duplicate_name_returns_none(self, tmp_path):
        async def scenario(db):
            await db.add_deck("u1", "Blue-Eyes")
            return await db.add_deck("u1", "Blue-Eyes  ")

        assert run_with_db(tmp_path / "t.db", scenario) is None

    def test_same_name_for_different_owners(self, tmp_path):
        async def scenario(db):
            await db.add_deck("u1", "Blue-Eyes")
            return await db.add_deck("u2", "Blue-Eyes")

        assert run_with_db(tmp_path / "t.db", scenario) is not None

    def test_update(self, tmp_path):
        async def scenario(db):
            deck = await db.add_deck("u1", "Blue-Eyes")
            return await db.update_deck("u1", deck.id, name="Blue-Eyes Chaos", tags=["budget"])

        updated = run_with_db(tmp_path / "t.db", scenario)
        assert updated.name == "Blue-Eyes Chaos"
        assert updated.tags == ["budget"]
        assert updated.updated_at >= updated.created_at

    def test_update_rejects_unknown_field(self, tmp_path):
        async def scenario(db):
            deck = await db.add_deck("u1", "Blue-Eyes")
            await db.update_deck("u1", deck.id, created_at="2020-01-01T00:00:00")

        with pytest.raises(ValueError):
            run_with_db(tmp_path / "t.db", scenario)

    def test_update_other_owners_deck(self, tmp_path):
        async def scenario(db):
            deck = await db.add_deck("u1", "Blue-Eyes")
            return await db.update_deck("u2", deck.id, name="Stolen")

        assert run_with_db(tmp_path / "t.db", scenario) is None

    def test_delete_keeps_duels(self, tmp_path):
        async def scenario(db):
            deck = await db.add_deck("u1", "Blue-Eyes")
            await db.add_duel_record("u1", None, "first", "win", deck.id, "Dragons")
            deleted = await db.delete_deck("u1", deck.id)
            duels = await db.get_user_duel_records("u1")
            decks = await db.get_user_decks("u1")
            return deck.id, deleted, duels, decks

        deck_id, deleted, duels, decks = run_with_db(tmp_path / "t.db", scenario)
        assert deleted is True
        assert len(duels) == 1
        stats = compute_statistics(duels)
        assert list(stats.deck_stats) == [deck_id]
        assert resolve_deck_name(deck_id, decks) == str(deck_id)

    def test_delete_missing(self, tmp_path):
        async def scenario(db):
            return await db.delete_deck("u1", 999)

        assert run_with_db(tmp_path / "t.db", scenario) is False


# ─── Duels ───────────────────────────────────────────────────────

class TestDuels:
    def test_add_and_fetch_newest_first(self, tmp_path):
        async def scenario(db):
            await db.add_duel_record("u1", 1, "first", "win", 1, "Dragons",
                                     timestamp=datetime(2025, 1, 1, 10))
            await db.add_duel_record("u1", 1, "second", "lose", 1, "Spellcasters",
                                     notes="bricked", timestamp=datetime(2025, 1, 3, 10))
            await db.add_duel_record("u1", 1, "first", "win", 2, "Dragons",
                                     timestamp=datetime(2025, 1, 2, 10))
            return await db.get_user_duel_records("u1")

        duels = run_with_db(tmp_path / "t.db", scenario)
        assert [d.timestamp.day for d in duels] == [3, 2, 1]
        assert duels[0].notes == "bricked"
        assert duels[0].turn_order == "second"

    def test_limit(self, tmp_path):
        async def scenario(db):
            for _ in range(5):
                await db.add_duel_record("u1", 1, "first", "win", 1, "Dragons")
            return await db.get_user_duel_records("u1", limit=2)

        assert len(run_with_db(tmp_path / "t.db", scenario)) == 2

    def test_invalid_result_rejected(self, tmp_path):
        async def scenario(db):
            await db.add_duel_record("u1", 1, "first", "draw", 1, "Dragons")

        with pytest.raises(ValueError):
            run_with_db(tmp_path / "t.db", scenario)

    def test_invalid_turn_order_rejected(self, tmp_path):
        async def scenario(db):
            await db.add_duel_record("u1", 1, "third", "win", 1, "Dragons")

        with pytest.raises(ValueError):
            run_with_db(tmp_path / "t.db", scenario)

    def test_owner_scoping(self, tmp_path):
        async def scenario(db):
            mine = await db.add_duel_record("u1", 1, "first", "win", 1, "Dragons")
            await db.add_duel_record("u2", 1, "first", "lose", 1, "Dragons")
            return (
                await db.get_user_duel_records("u1"),
                await db.get_duel_record("u2", mine.id),
                await db.delete_duel_record("u2", mine.id),
            )

        mine, peeked, deleted = run_with_db(tmp_path / "t.db", scenario)
        assert len(mine) == 1
        assert mine[0].owner_id == "u1"
        assert peeked is None
        assert deleted is False

    def test_deck_and_event_queries(self, tmp_path):
        async def scenario(db):
            await db.add_duel_record("u1", 1, "first", "win", 10, "Dragons")
            await db.add_duel_record("u1", 2, "first", "lose", 10, "Dragons")
            await db.add_duel_record("u1", 2, "second", "win", 20, "Dragons")
            return (
                await db.get_deck_duel_records("u1", 10),
                await db.get_event_duel_records("u1", 2),
            )

        by_deck, by_event = run_with_db(tmp_path / "t.db", scenario)
        assert {d.own_deck_id for d in by_deck} == {10}
        assert len(by_deck) == 2
        assert {d.event_id for d in by_event} == {2}
        assert len(by_event) == 2

    def test_update(self, tmp_path):
        async def scenario(db):
            duel = await db.add_duel_record("u1", 1, "first", "win", 1, "Dragons")
            return await db.update_duel_record("u1", duel.id, result="lose", opponent_deck_name="Spellcasters")

        duel = run_with_db(tmp_path / "t.db", scenario)
        assert duel.result == "lose"
        assert duel.opponent_deck_name == "Spellcasters"

    def test_update_invalid_result(self, tmp_path):
        async def scenario(db):
            duel = await db.add_duel_record("u1", 1, "first", "win", 1, "Dragons")
            await db.update_duel_record("u1", duel.id, result="tie")

        with pytest.raises(ValueError):
            run_with_db(tmp_path / "t.db", scenario)

    def test_update_missing(self, tmp_path):
        async def scenario(db):
            return await db.update_duel_record("u1", 12345, notes="hi")

        assert run_with_db(tmp_path / "t.db", scenario) is None

    def test_delete(self, tmp_path):
        async def scenario(db):
            duel = await db.add_duel_record("u1", 1, "first", "win", 1, "Dragons")
            deleted = await db.delete_duel_record("u1", duel.id)
            return deleted, await db.get_user_duel_records("u1")

        deleted, remaining = run_with_db(tmp_path / "t.db", scenario)
        assert deleted is True
        assert remaining == []


# ─── Events ──────────────────────────────────────────────────────

class TestEvents:
    def test_new_event_is_the_only_active_one(self, tmp_path):
        async def scenario(db):
            await db.add_event("u1", "Season 1")
            second = await db.add_event("u1", "Season 2")
            return second, await db.get_user_events("u1"), await db.get_active_event("u1")

        second, events, active = run_with_db(tmp_path / "t.db", scenario)
        assert [e.is_active for e in events].count(True) == 1
        assert active.id == second.id

    def test_inactive_creation_keeps_current(self, tmp_path):
        async def scenario(db):
            first = await db.add_event("u1", "Season 1")
            await db.add_event("u1", "Later", activate=False)
            return first, await db.get_active_event("u1")

        first, active = run_with_db(tmp_path / "t.db", scenario)
        assert active.id == first.id

    def test_switch(self, tmp_path):
        async def scenario(db):
            first = await db.add_event("u1", "Season 1")
            await db.add_event("u1", "Season 2")
            switched = await db.switch_active_event("u1", first.id)
            return first, switched, await db.get_user_events("u1")

        first, switched, events = run_with_db(tmp_path / "t.db", scenario)
        assert switched.id == first.id
        assert switched.is_active
        assert [e.id for e in events if e.is_active] == [first.id]

    def test_switch_unknown(self, tmp_path):
        async def scenario(db):
            await db.add_event("u1", "Season 1")
            return await db.switch_active_event("u1", 999), await db.get_active_event("u1")

        switched, active = run_with_db(tmp_path / "t.db", scenario)
        assert switched is None
        assert active is not None

    def test_switch_other_owners_event(self, tmp_path):
        async def scenario(db):
            theirs = await db.add_event("u2", "Their Season")
            return await db.switch_active_event("u1", theirs.id)

        assert run_with_db(tmp_path / "t.db", scenario) is None

    def test_end(self, tmp_path):
        async def scenario(db):
            event = await db.add_event("u1", "Locals")
            return await db.end_event("u1", event.id), await db.get_active_event("u1")

        ended, active = run_with_db(tmp_path / "t.db", scenario)
        assert ended.end_date is not None
        assert not ended.is_active
        assert active is None

    def test_default_event_created_once(self, tmp_path):
        async def scenario(db):
            first = await db.get_or_create_default_event("u1")
            second = await db.get_or_create_default_event("u1")
            return first, second, await db.get_user_events("u1")

        first, second, events = run_with_db(tmp_path / "t.db", scenario)
        assert first.id == second.id
        assert first.is_default
        assert first.name == DEFAULT_EVENT_NAME
        assert len(events) == 1

    def test_default_event_active_only_without_other_active(self, tmp_path):
        async def scenario(db):
            season = await db.add_event("u1", "Season 1")
            default = await db.get_or_create_default_event("u1")
            return season, default, await db.get_active_event("u1")

        season, default, active = run_with_db(tmp_path / "t.db", scenario)
        assert not default.is_active
        assert active.id == season.id

    def test_concurrent_default_event_created_once(self, tmp_path):
        async def scenario(db):
            first, second = await asyncio.gather(
                db.get_or_create_default_event("u1"),
                db.get_or_create_default_event("u1"),
            )
            return first, second, await db.get_user_events("u1")

        first, second, events = run_with_db(tmp_path / "t.db", scenario)
        assert first.id == second.id
        assert len(events) == 1
        assert [e.is_active for e in events] == [True]

    def test_concurrent_creates_leave_one_active(self, tmp_path):
        async def scenario(db):
            await asyncio.gather(
                db.add_event("u1", "Season A"),
                db.add_event("u1", "Season B"),
                db.get_or_create_default_event("u1"),
            )
            return await db.get_user_events("u1")

        events = run_with_db(tmp_path / "t.db", scenario)
        assert len(events) == 3
        assert [e.is_active for e in events].count(True) == 1
        assert [e.is_default for e in events].count(True) == 1

    def test_concurrent_switches_leave_one_active(self, tmp_path):
        async def scenario(db):
            a = await db.add_event("u1", "Season A")
            b = await db.add_event("u1", "Season B")
            await asyncio.gather(
                db.switch_active_event("u1", a.id),
                db.switch_active_event("u1", b.id),
            )
            return await db.get_user_events("u1")

        events = run_with_db(tmp_path / "t.db", scenario)
        assert [e.is_active for e in events].count(True) == 1

    def test_schema_rejects_second_default(self, tmp_path):
        async def scenario(db):
            await db.get_or_create_default_event("u1")
            await db.conn.execute(
                "INSERT INTO events (owner_id, name, start_date, is_default, created_at, updated_at) "
                "VALUES ('u1', 'Copy', 'x', 1, 'x', 'x')"
            )

        with pytest.raises(aiosqlite.IntegrityError):
            run_with_db(tmp_path / "t.db", scenario)

    def test_schema_rejects_second_active(self, tmp_path):
        async def scenario(db):
            await db.add_event("u1", "Season 1")
            await db.conn.execute(
                "INSERT INTO events (owner_id, name, start_date, is_active, created_at, updated_at) "
                "VALUES ('u1', 'Copy', 'x', 1, 'x', 'x')"
            )

        with pytest.raises(aiosqlite.IntegrityError):
            run_with_db(tmp_path / "t.db", scenario)

    def test_defaults_are_per_owner(self, tmp_path):
        async def scenario(db):
            return await asyncio.gather(
                db.get_or_create_default_event("u1"),
                db.get_or_create_default_event("u2"),
            )

        mine, theirs = run_with_db(tmp_path / "t.db", scenario)
        assert mine.id != theirs.id
        assert mine.is_active and theirs.is_active

    def test_update_rejects_unknown_field(self, tmp_path):
        async def scenario(db):
            event = await db.add_event("u1", "Locals")
            await db.update_event("u1", event.id, is_default=True)

        with pytest.raises(ValueError):
            run_with_db(tmp_path / "t.db", scenario)

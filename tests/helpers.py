"""Shared test factories for Duel Tracker tests.

Provides factory functions for duel records and decks with sensible
defaults and easy overrides, plus a runner for the async store.
"""

import asyncio
from datetime import datetime
from itertools import count

from database import Database
from models import Deck, DuelRecord

_ids = count(1)


def make_duel(**overrides):
    """Build a valid DuelRecord. Override any field via kwargs.

    The default is a win going first with deck 1 against "Dragons".
    """
    fields = {
        "id": next(_ids),
        "owner_id": "1001",
        "event_id": 1,
        "timestamp": datetime(2025, 1, 15, 14, 30),
        "turn_order": "first",
        "result": "win",
        "own_deck_id": 1,
        "opponent_deck_name": "Dragons",
        "notes": "",
    }
    fields.update(overrides)
    return DuelRecord(**fields)


def make_duels(n, wins=None, **overrides):
    """Generate N duels, the first `wins` of them won (default: n // 2)."""
    if wins is None:
        wins = n // 2
    return [
        make_duel(result="win" if i < wins else "lose", **overrides)
        for i in range(n)
    ]


def make_deck(**overrides):
    """Build a valid Deck. Override any field via kwargs."""
    fields = {
        "id": 1,
        "owner_id": "1001",
        "name": "Blue-Eyes",
        "archetype": "Dragon",
        "tags": [],
        "notes": "",
        "created_at": datetime(2025, 1, 1),
        "updated_at": datetime(2025, 1, 1),
    }
    fields.update(overrides)
    return Deck(**fields)


def scenario_duels():
    """The three-duel reference scenario: two decks, two opponents."""
    return [
        make_duel(result="win", turn_order="first", own_deck_id="A", opponent_deck_name="Dragons"),
        make_duel(result="lose", turn_order="second", own_deck_id="A", opponent_deck_name="Dragons"),
        make_duel(result="win", turn_order="second", own_deck_id="B", opponent_deck_name="Spellcasters"),
    ]


def run_with_db(db_path, scenario):
    """Run `scenario(db)` against a freshly connected Database and close it."""
    async def runner():
        db = Database(str(db_path))
        await db.connect()
        try:
            return await scenario(db)
        finally:
            await db.close()

    return asyncio.run(runner())

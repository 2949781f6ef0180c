"""Database setup and async helpers for Duel Tracker Bot."""

import asyncio
import json
from collections import defaultdict
from datetime import datetime
from typing import Any, Optional

import aiosqlite

from config import DEFAULT_EVENT_DESCRIPTION, DEFAULT_EVENT_NAME, RESULTS, TURN_ORDERS
from models import Deck, DuelRecord, Event, User
from utils import Colors, log

DECK_FIELDS = {"name", "archetype", "tags", "notes"}
DUEL_FIELDS = {"event_id", "turn_order", "result", "own_deck_id", "opponent_deck_name", "notes", "timestamp"}
EVENT_FIELDS = {"name", "description", "end_date", "is_active"}


def _now() -> str:
    return datetime.now().isoformat()


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _encode_tags(tags: Optional[list[str]]) -> str:
    """Serialize tags as a JSON list, dropping blanks and duplicates."""
    seen = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return json.dumps(seen)


def _row_to_deck(row: aiosqlite.Row) -> Deck:
    return Deck(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        archetype=row["archetype"],
        tags=json.loads(row["tags"]),
        notes=row["notes"],
        created_at=_parse_dt(row["created_at"]),
        updated_at=_parse_dt(row["updated_at"]),
    )


def _row_to_event(row: aiosqlite.Row) -> Event:
    return Event(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        description=row["description"],
        start_date=_parse_dt(row["start_date"]),
        end_date=_parse_dt(row["end_date"]),
        is_active=bool(row["is_active"]),
        is_default=bool(row["is_default"]),
        created_at=_parse_dt(row["created_at"]),
        updated_at=_parse_dt(row["updated_at"]),
    )


def _row_to_duel(row: aiosqlite.Row) -> DuelRecord:
    return DuelRecord(
        id=row["id"],
        owner_id=row["owner_id"],
        event_id=row["event_id"],
        timestamp=_parse_dt(row["timestamp"]),
        turn_order=row["turn_order"],
        result=row["result"],
        own_deck_id=row["own_deck_id"],
        opponent_deck_name=row["opponent_deck_name"],
        notes=row["notes"],
    )


class Database:
    """Async SQLite record store, every query scoped to one owner."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None
        # Serializes read-then-write event changes for one owner
        self._event_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def connect(self) -> None:
        """Establish database connection and initialize schema."""
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._create_tables()

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def conn(self) -> aiosqlite.Connection:
        """Get the active connection."""
        if not self._connection:
            raise RuntimeError("Database not connected")
        return self._connection

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        # duels.event_id is nullable for rows logged before events existed
        # duels.own_deck_id has no foreign key so deleting a deck keeps its duels
        await self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                discord_id TEXT UNIQUE NOT NULL,
                username TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS decks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                archetype TEXT NOT NULL DEFAULT '',
                tags TEXT NOT NULL DEFAULT '[]',
                notes TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(owner_id, name)
            );

            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                start_date TEXT NOT NULL,
                end_date TEXT,
                is_active INTEGER NOT NULL DEFAULT 0,
                is_default INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS duels (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                event_id INTEGER,
                timestamp TEXT NOT NULL,
                turn_order TEXT NOT NULL CHECK (turn_order IN ('first', 'second')),
                result TEXT NOT NULL CHECK (result IN ('win', 'lose')),
                own_deck_id INTEGER NOT NULL,
                opponent_deck_name TEXT NOT NULL,
                notes TEXT NOT NULL DEFAULT '',
                FOREIGN KEY (event_id) REFERENCES events(id)
            );

            CREATE INDEX IF NOT EXISTS idx_duels_owner_time ON duels(owner_id, timestamp);

            -- At most one active and one default event per owner
            CREATE UNIQUE INDEX IF NOT EXISTS idx_events_one_active
                ON events(owner_id) WHERE is_active = 1;
            CREATE UNIQUE INDEX IF NOT EXISTS idx_events_one_default
                ON events(owner_id) WHERE is_default = 1;
        """)
        await self.conn.commit()

    # User operations
    async def get_or_create_user(self, discord_id: str, username: str) -> User:
        """Get existing user or create new one."""
        async with self.conn.execute(
            "SELECT * FROM users WHERE discord_id = ?",
            (discord_id,)
        ) as cursor:
            row = await cursor.fetchone()
            if row:
                # Update username if changed
                if row["username"] != username:
                    await self.conn.execute(
                        "UPDATE users SET username = ? WHERE id = ?",
                        (username, row["id"])
                    )
                    await self.conn.commit()
                return User(
                    id=row["id"],
                    discord_id=row["discord_id"],
                    username=username,
                    created_at=_parse_dt(row["created_at"])
                )

        created_at = _now()
        async with self.conn.execute(
            "INSERT INTO users (discord_id, username, created_at) VALUES (?, ?, ?)",
            (discord_id, username, created_at)
        ) as cursor:
            user_id = cursor.lastrowid
        await self.conn.commit()
        log("DB", f"Registered user {username} (discord_id={discord_id})", Colors.BLUE)

        return User(
            id=user_id,
            discord_id=discord_id,
            username=username,
            created_at=_parse_dt(created_at)
        )

    async def get_user_by_discord_id(self, discord_id: str) -> Optional[User]:
        """Get user by Discord ID."""
        async with self.conn.execute(
            "SELECT * FROM users WHERE discord_id = ?",
            (discord_id,)
        ) as cursor:
            row = await cursor.fetchone()
            if row:
                return User(
                    id=row["id"],
                    discord_id=row["discord_id"],
                    username=row["username"],
                    created_at=_parse_dt(row["created_at"])
                )
        return None

    # Deck operations
    async def add_deck(
        self,
        owner_id: str,
        name: str,
        archetype: str = "",
        tags: Optional[list[str]] = None,
        notes: str = ""
    ) -> Optional[Deck]:
        """Add a new deck. Returns None if the owner already has one by that name."""
        now = _now()
        try:
            async with self.conn.execute(
                """
                INSERT INTO decks (owner_id, name, archetype, tags, notes, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (owner_id, name.strip(), archetype.strip(), _encode_tags(tags), notes, now, now)
            ) as cursor:
                deck_id = cursor.lastrowid
            await self.conn.commit()
        except aiosqlite.IntegrityError:
            log("DB", f"add_deck: duplicate deck name '{name}' for {owner_id}", Colors.YELLOW)
            return None

        return await self.get_deck(owner_id, deck_id)

    async def get_deck(self, owner_id: str, deck_id: int) -> Optional[Deck]:
        """Get one of the owner's decks by ID."""
        async with self.conn.execute(
            "SELECT * FROM decks WHERE owner_id = ? AND id = ?",
            (owner_id, deck_id)
        ) as cursor:
            row = await cursor.fetchone()
            return _row_to_deck(row) if row else None

    async def get_user_decks(self, owner_id: str) -> list[Deck]:
        """Get all of the owner's decks, sorted by name."""
        async with self.conn.execute(
            "SELECT * FROM decks WHERE owner_id = ? ORDER BY name COLLATE NOCASE",
            (owner_id,)
        ) as cursor:
            return [_row_to_deck(row) async for row in cursor]

    async def update_deck(self, owner_id: str, deck_id: int, **fields: Any) -> Optional[Deck]:
        """Update editable deck fields.

        Returns None if the deck doesn't exist or the new name is already taken.
        """
        unknown = set(fields) - DECK_FIELDS
        if unknown:
            raise ValueError(f"Cannot update deck field(s): {', '.join(sorted(unknown))}")

        if "tags" in fields:
            fields["tags"] = _encode_tags(fields["tags"])
        fields["updated_at"] = _now()

        assignments = ", ".join(f"{column} = ?" for column in fields)
        try:
            async with self.conn.execute(
                f"UPDATE decks SET {assignments} WHERE owner_id = ? AND id = ?",
                (*fields.values(), owner_id, deck_id)
            ) as cursor:
                updated = cursor.rowcount
            await self.conn.commit()
        except aiosqlite.IntegrityError:
            return None

        if not updated:
            return None
        return await self.get_deck(owner_id, deck_id)

    async def delete_deck(self, owner_id: str, deck_id: int) -> bool:
        """Delete a deck. Duels played with it keep their deck ID."""
        async with self.conn.execute(
            "DELETE FROM decks WHERE owner_id = ? AND id = ?",
            (owner_id, deck_id)
        ) as cursor:
            deleted = cursor.rowcount
        await self.conn.commit()
        return deleted > 0

    # Duel operations
    async def add_duel_record(
        self,
        owner_id: str,
        event_id: Optional[int],
        turn_order: str,
        result: str,
        own_deck_id: int,
        opponent_deck_name: str,
        notes: str = "",
        timestamp: Optional[datetime] = None
    ) -> DuelRecord:
        """Log a new duel."""
        if result not in RESULTS:
            raise ValueError(f"Invalid duel result: {result!r}")
        if turn_order not in TURN_ORDERS:
            raise ValueError(f"Invalid turn order: {turn_order!r}")

        timestamp = timestamp or datetime.now()
        async with self.conn.execute(
            """
            INSERT INTO duels (owner_id, event_id, timestamp, turn_order, result,
                               own_deck_id, opponent_deck_name, notes)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (owner_id, event_id, timestamp.isoformat(), turn_order, result,
             own_deck_id, opponent_deck_name, notes)
        ) as cursor:
            duel_id = cursor.lastrowid
        await self.conn.commit()

        return DuelRecord(
            id=duel_id,
            owner_id=owner_id,
            event_id=event_id,
            timestamp=timestamp,
            turn_order=turn_order,
            result=result,
            own_deck_id=own_deck_id,
            opponent_deck_name=opponent_deck_name,
            notes=notes,
        )

    async def get_duel_record(self, owner_id: str, duel_id: int) -> Optional[DuelRecord]:
        """Get one of the owner's duels by ID."""
        async with self.conn.execute(
            "SELECT * FROM duels WHERE owner_id = ? AND id = ?",
            (owner_id, duel_id)
        ) as cursor:
            row = await cursor.fetchone()
            return _row_to_duel(row) if row else None

    async def get_user_duel_records(self, owner_id: str, limit: Optional[int] = None) -> list[DuelRecord]:
        """Get the owner's duels, newest first."""
        query = "SELECT * FROM duels WHERE owner_id = ? ORDER BY timestamp DESC, id DESC"
        params: tuple = (owner_id,)
        if limit is not None:
            query += " LIMIT ?"
            params += (limit,)

        async with self.conn.execute(query, params) as cursor:
            return [_row_to_duel(row) async for row in cursor]

    async def get_deck_duel_records(self, owner_id: str, deck_id: int) -> list[DuelRecord]:
        """Get the owner's duels played with one deck, newest first."""
        async with self.conn.execute(
            """
            SELECT * FROM duels
            WHERE owner_id = ? AND own_deck_id = ?
            ORDER BY timestamp DESC, id DESC
            """,
            (owner_id, deck_id)
        ) as cursor:
            return [_row_to_duel(row) async for row in cursor]

    async def get_event_duel_records(self, owner_id: str, event_id: int) -> list[DuelRecord]:
        """Get the owner's duels filed under one event, newest first."""
        async with self.conn.execute(
            """
            SELECT * FROM duels
            WHERE owner_id = ? AND event_id = ?
            ORDER BY timestamp DESC, id DESC
            """,
            (owner_id, event_id)
        ) as cursor:
            return [_row_to_duel(row) async for row in cursor]

    async def update_duel_record(self, owner_id: str, duel_id: int, **fields: Any) -> Optional[DuelRecord]:
        """Update editable duel fields. Returns None if the duel doesn't exist."""
        unknown = set(fields) - DUEL_FIELDS
        if unknown:
            raise ValueError(f"Cannot update duel field(s): {', '.join(sorted(unknown))}")
        if "result" in fields and fields["result"] not in RESULTS:
            raise ValueError(f"Invalid duel result: {fields['result']!r}")
        if "turn_order" in fields and fields["turn_order"] not in TURN_ORDERS:
            raise ValueError(f"Invalid turn order: {fields['turn_order']!r}")
        if not fields:
            return await self.get_duel_record(owner_id, duel_id)

        if isinstance(fields.get("timestamp"), datetime):
            fields["timestamp"] = fields["timestamp"].isoformat()

        assignments = ", ".join(f"{column} = ?" for column in fields)
        async with self.conn.execute(
            f"UPDATE duels SET {assignments} WHERE owner_id = ? AND id = ?",
            (*fields.values(), owner_id, duel_id)
        ) as cursor:
            updated = cursor.rowcount
        await self.conn.commit()

        if not updated:
            return None
        return await self.get_duel_record(owner_id, duel_id)

    async def delete_duel_record(self, owner_id: str, duel_id: int) -> bool:
        """Delete a duel."""
        async with self.conn.execute(
            "DELETE FROM duels WHERE owner_id = ? AND id = ?",
            (owner_id, duel_id)
        ) as cursor:
            deleted = cursor.rowcount
        await self.conn.commit()
        return deleted > 0

    async def count_duels_without_event(self, owner_id: str) -> int:
        """Count legacy duels that have no event yet."""
        async with self.conn.execute(
            "SELECT COUNT(*) FROM duels WHERE owner_id = ? AND event_id IS NULL",
            (owner_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return row[0]

    async def assign_event_to_unfiled_duels(self, owner_id: str, event_id: int) -> int:
        """File every event-less duel of the owner under event_id."""
        async with self.conn.execute(
            "UPDATE duels SET event_id = ? WHERE owner_id = ? AND event_id IS NULL",
            (event_id, owner_id)
        ) as cursor:
            updated = cursor.rowcount
        await self.conn.commit()
        return updated

    # Event operations
    async def add_event(
        self,
        owner_id: str,
        name: str,
        description: str = "",
        is_default: bool = False,
        activate: bool = True
    ) -> Event:
        """Create an event. When activate is set, every other event is deactivated."""
        async with self._event_locks[owner_id]:
            return await self._insert_event(owner_id, name, description, is_default, activate)

    async def _insert_event(
        self,
        owner_id: str,
        name: str,
        description: str,
        is_default: bool,
        activate: bool
    ) -> Event:
        # Callers hold the owner's event lock
        if activate:
            await self._deactivate_events(owner_id)

        now = _now()
        async with self.conn.execute(
            """
            INSERT INTO events (owner_id, name, description, start_date, end_date,
                                is_active, is_default, created_at, updated_at)
            VALUES (?, ?, ?, ?, NULL, ?, ?, ?, ?)
            """,
            (owner_id, name.strip(), description.strip(), now, int(activate), int(is_default), now, now)
        ) as cursor:
            event_id = cursor.lastrowid
        await self.conn.commit()
        log("DB", f"Created event '{name}' (id={event_id}, active={activate}) for {owner_id}", Colors.BLUE)

        return await self.get_event(owner_id, event_id)

    async def get_event(self, owner_id: str, event_id: int) -> Optional[Event]:
        """Get one of the owner's events by ID."""
        async with self.conn.execute(
            "SELECT * FROM events WHERE owner_id = ? AND id = ?",
            (owner_id, event_id)
        ) as cursor:
            row = await cursor.fetchone()
            return _row_to_event(row) if row else None

    async def get_user_events(self, owner_id: str) -> list[Event]:
        """Get the owner's events, newest first."""
        async with self.conn.execute(
            "SELECT * FROM events WHERE owner_id = ? ORDER BY start_date DESC, id DESC",
            (owner_id,)
        ) as cursor:
            return [_row_to_event(row) async for row in cursor]

    async def get_active_event(self, owner_id: str) -> Optional[Event]:
        """Get the owner's active event, if any."""
        async with self.conn.execute(
            "SELECT * FROM events WHERE owner_id = ? AND is_active = 1",
            (owner_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return _row_to_event(row) if row else None

    async def get_default_event(self, owner_id: str) -> Optional[Event]:
        """Get the owner's default (catch-all) event, if any."""
        async with self.conn.execute(
            "SELECT * FROM events WHERE owner_id = ? AND is_default = 1",
            (owner_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return _row_to_event(row) if row else None

    async def get_or_create_default_event(self, owner_id: str) -> Event:
        """Get the default event, creating it on first use.

        A freshly created default event is only activated when the owner has
        no active event.
        """
        async with self._event_locks[owner_id]:
            event = await self.get_default_event(owner_id)
            if event:
                return event

            active = await self.get_active_event(owner_id)
            try:
                return await self._insert_event(
                    owner_id,
                    DEFAULT_EVENT_NAME,
                    DEFAULT_EVENT_DESCRIPTION,
                    is_default=True,
                    activate=active is None,
                )
            except aiosqlite.IntegrityError:
                # Another connection to the same file created it first
                event = await self.get_default_event(owner_id)
                if event is None:
                    raise
                log("DB", f"get_or_create_default_event: reusing event {event.id} for {owner_id}", Colors.YELLOW)
                return event

    async def update_event(self, owner_id: str, event_id: int, **fields: Any) -> Optional[Event]:
        """Update editable event fields. Returns None if the event doesn't exist.

        Setting is_active deactivates the owner's other events first.
        """
        unknown = set(fields) - EVENT_FIELDS
        if unknown:
            raise ValueError(f"Cannot update event field(s): {', '.join(sorted(unknown))}")

        if "is_active" in fields:
            fields["is_active"] = int(fields["is_active"])
        if isinstance(fields.get("end_date"), datetime):
            fields["end_date"] = fields["end_date"].isoformat()
        fields["updated_at"] = _now()

        async with self._event_locks[owner_id]:
            if fields.get("is_active"):
                if not await self.get_event(owner_id, event_id):
                    return None
                await self._deactivate_events(owner_id)

            assignments = ", ".join(f"{column} = ?" for column in fields)
            async with self.conn.execute(
                f"UPDATE events SET {assignments} WHERE owner_id = ? AND id = ?",
                (*fields.values(), owner_id, event_id)
            ) as cursor:
                updated = cursor.rowcount
            await self.conn.commit()

        if not updated:
            return None
        return await self.get_event(owner_id, event_id)

    async def switch_active_event(self, owner_id: str, event_id: int) -> Optional[Event]:
        """Make event_id the owner's only active event."""
        return await self.update_event(owner_id, event_id, is_active=True)

    async def end_event(self, owner_id: str, event_id: int) -> Optional[Event]:
        """Close an event: stamp its end date and deactivate it."""
        return await self.update_event(owner_id, event_id, end_date=datetime.now(), is_active=False)

    async def _deactivate_events(self, owner_id: str) -> None:
        await self.conn.execute(
            "UPDATE events SET is_active = 0, updated_at = ? WHERE owner_id = ? AND is_active = 1",
            (_now(), owner_id)
        )
        await self.conn.commit()

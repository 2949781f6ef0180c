"""Data models for Duel Tracker Bot."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from config import RESULTS, TURN_ORDERS


@dataclass
class User:
    """Represents a Discord user who logs duels."""

    id: int
    discord_id: str
    username: str
    created_at: datetime


@dataclass
class Deck:
    """Represents one of a user's decks."""

    id: int
    owner_id: str
    name: str
    archetype: str
    tags: list[str]
    notes: str
    created_at: datetime
    updated_at: datetime


@dataclass
class Event:
    """A named, time-boxed grouping of duels (tournament, season, ...)."""

    id: int
    owner_id: str
    name: str
    description: str
    start_date: datetime
    end_date: Optional[datetime]
    is_active: bool
    is_default: bool
    created_at: datetime
    updated_at: datetime


@dataclass
class DuelRecord:
    """A single logged match.

    ``event_id`` is None only for rows written before events existed;
    see migration.migrate_existing_duels_to_default_event.
    """

    id: int
    owner_id: str
    event_id: Optional[int]
    timestamp: datetime
    turn_order: str  # 'first' or 'second'
    result: str  # 'win' or 'lose'
    own_deck_id: int
    opponent_deck_name: str
    notes: str = ""

    def __post_init__(self) -> None:
        if self.result not in RESULTS:
            raise ValueError(f"Invalid duel result: {self.result!r}")
        if self.turn_order not in TURN_ORDERS:
            raise ValueError(f"Invalid turn order: {self.turn_order!r}")

    @property
    def is_win(self) -> bool:
        return self.result == "win"


@dataclass
class OutcomeStats:
    """Win/loss tally for one deck or opponent archetype."""

    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0


@dataclass
class Statistics:
    """Computed statistics over a set of duels."""

    total_duels: int
    wins: int
    losses: int
    win_rate: float
    first_player_win_rate: float
    second_player_win_rate: float
    deck_stats: dict[int, OutcomeStats] = field(default_factory=dict)
    opponent_stats: dict[str, OutcomeStats] = field(default_factory=dict)
    first_player_duels: int = 0
    second_player_duels: int = 0


@dataclass
class EventStatistics(Statistics):
    """Statistics tagged with the event they were computed over."""

    event_id: Optional[int] = None
    event_name: str = ""

"""Statistics engine for Duel Tracker Bot.

Every function here takes already-fetched duel records and returns freshly
built results. No I/O, no side effects, inputs are never mutated.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Hashable, Iterable, Optional, TypeVar

from config import PERIOD_GRANULARITIES
from models import Deck, DuelRecord, EventStatistics, OutcomeStats, Statistics

K = TypeVar("K", bound=Hashable)


def win_rate(wins: int, losses: int) -> float:
    """Win percentage on a 0-100 scale; 0 when no games were played."""
    total = wins + losses
    if total == 0:
        return 0.0
    return wins / total * 100


def group_by(
    records: Iterable[DuelRecord],
    key: Callable[[DuelRecord], K],
) -> dict[K, list[DuelRecord]]:
    """Group records by key, keeping input order within each group."""
    groups: dict[K, list[DuelRecord]] = defaultdict(list)
    for record in records:
        groups[key(record)].append(record)
    return dict(groups)


def _tally(records: Iterable[DuelRecord], key: Callable[[DuelRecord], K]) -> dict[K, OutcomeStats]:
    """Count wins/losses per key and fill in each group's win rate."""
    tallies: dict[K, OutcomeStats] = defaultdict(OutcomeStats)
    for record in records:
        bucket = tallies[key(record)]
        if record.is_win:
            bucket.wins += 1
        else:
            bucket.losses += 1

    for bucket in tallies.values():
        bucket.win_rate = win_rate(bucket.wins, bucket.losses)
    return dict(tallies)


def compute_statistics(records: Iterable[DuelRecord]) -> Statistics:
    """Compute overall, turn-order, per-deck and per-opponent statistics.

    Duplicate records are counted once per occurrence. An empty input yields
    zero counts, zero rates and empty breakdowns.
    """
    records = list(records)

    wins = sum(1 for r in records if r.is_win)
    losses = len(records) - wins

    first_wins = first_losses = 0
    second_wins = second_losses = 0
    for r in records:
        if r.turn_order == "first":
            if r.is_win:
                first_wins += 1
            else:
                first_losses += 1
        else:
            if r.is_win:
                second_wins += 1
            else:
                second_losses += 1

    return Statistics(
        total_duels=len(records),
        wins=wins,
        losses=losses,
        win_rate=win_rate(wins, losses),
        first_player_win_rate=win_rate(first_wins, first_losses),
        second_player_win_rate=win_rate(second_wins, second_losses),
        deck_stats=_tally(records, lambda r: r.own_deck_id),
        opponent_stats=_tally(records, lambda r: r.opponent_deck_name),
        first_player_duels=first_wins + first_losses,
        second_player_duels=second_wins + second_losses,
    )


def compute_event_statistics(
    records: Iterable[DuelRecord],
    event_id: Optional[int],
    event_name: str,
) -> EventStatistics:
    """Compute statistics and tag them with an event.

    The records are not checked against ``event_id``; callers filter first.
    """
    base = compute_statistics(records)
    return EventStatistics(
        total_duels=base.total_duels,
        wins=base.wins,
        losses=base.losses,
        win_rate=base.win_rate,
        first_player_win_rate=base.first_player_win_rate,
        second_player_win_rate=base.second_player_win_rate,
        deck_stats=base.deck_stats,
        opponent_stats=base.opponent_stats,
        first_player_duels=base.first_player_duels,
        second_player_duels=base.second_player_duels,
        event_id=event_id,
        event_name=event_name,
    )


def compute_multiple_event_statistics(
    records_by_event: dict[Optional[int], list[DuelRecord]],
    event_names: dict[Optional[int], str],
) -> list[EventStatistics]:
    """Compute one EventStatistics per event in ``records_by_event``."""
    return [
        compute_event_statistics(records, event_id, event_names.get(event_id, ""))
        for event_id, records in records_by_event.items()
    ]


# Filtering

def filter_by_deck(records: Iterable[DuelRecord], deck_id: int) -> list[DuelRecord]:
    """Keep only duels played with the given deck."""
    return [r for r in records if r.own_deck_id == deck_id]


def filter_by_event(records: Iterable[DuelRecord], event_id: Optional[int]) -> list[DuelRecord]:
    """Keep only duels filed under the given event."""
    return [r for r in records if r.event_id == event_id]


def group_by_event(records: Iterable[DuelRecord]) -> dict[Optional[int], list[DuelRecord]]:
    """Group duels by event ID."""
    return group_by(records, lambda r: r.event_id)


# Period bucketing

def period_key(timestamp: datetime, granularity: str) -> str:
    """Derive the bucket key for a timestamp.

    day   -> YYYY-MM-DD
    week  -> YYYY-MM-DD of the Sunday starting that week
    month -> YYYY-MM
    """
    if granularity not in PERIOD_GRANULARITIES:
        raise ValueError(
            f"Unknown granularity {granularity!r}, expected one of {', '.join(PERIOD_GRANULARITIES)}"
        )

    day = timestamp.date()
    if granularity == "day":
        return day.isoformat()
    if granularity == "week":
        # date.weekday(): Monday=0 ... Sunday=6
        sunday = day - timedelta(days=(day.weekday() + 1) % 7)
        return sunday.isoformat()
    return f"{day.year:04d}-{day.month:02d}"


def compute_by_period(records: Iterable[DuelRecord], granularity: str) -> dict[str, Statistics]:
    """Compute statistics per day, week or month.

    Only periods with at least one duel appear. Keys are in ascending order.
    """
    if granularity not in PERIOD_GRANULARITIES:
        raise ValueError(
            f"Unknown granularity {granularity!r}, expected one of {', '.join(PERIOD_GRANULARITIES)}"
        )

    buckets = group_by(records, lambda r: period_key(r.timestamp, granularity))
    return {key: compute_statistics(buckets[key]) for key in sorted(buckets)}


# Display support

def resolve_deck_name(deck_id: int, decks: Iterable[Deck]) -> str:
    """Return the deck's name, or the raw ID if the deck has been deleted."""
    for deck in decks:
        if deck.id == deck_id:
            return deck.name
    return str(deck_id)


def opponent_name_collisions(opponent_stats: dict[str, OutcomeStats]) -> dict[str, list[str]]:
    """Find opponent labels that differ only by case or surrounding whitespace.

    Labels are kept verbatim as grouping keys, so "Dragons" and "dragons "
    land in separate buckets. Returns normalized label -> sorted variants,
    only for labels with more than one variant.
    """
    variants = group_by_label(opponent_stats)
    return {label: names for label, names in variants.items() if len(names) > 1}


def group_by_label(opponent_stats: dict[str, OutcomeStats]) -> dict[str, list[str]]:
    """Map each case/whitespace-normalized label to its verbatim variants."""
    variants: dict[str, list[str]] = defaultdict(list)
    for name in opponent_stats:
        variants[name.strip().casefold()].append(name)
    return {label: sorted(names) for label, names in variants.items()}

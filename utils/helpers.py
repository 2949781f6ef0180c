"""Helper utilities for Duel Tracker Bot."""

import discord
from typing import Optional

from config import EMBED_COLOR
from models import Deck, DuelRecord, Event, OutcomeStats, Statistics


def parse_tags(text: Optional[str]) -> list[str]:
    """
    Parse a comma-separated tag list.

    Blank entries and repeats are dropped, order is kept:
    "aggro, budget,,aggro" -> ["aggro", "budget"]
    """
    tags = []
    for part in (text or "").split(","):
        part = part.strip()
        if part and part not in tags:
            tags.append(part)
    return tags


def format_win_rate(win_rate: float) -> str:
    """Format win rate as percentage string."""
    return f"{win_rate:.1f}%"


def format_record(wins: int, losses: int) -> str:
    """Format a win/loss record, e.g. 3W/2L."""
    return f"{wins}W/{losses}L"


def format_result(result: str) -> str:
    return "Win" if result == "win" else "Loss"


def format_turn_order(turn_order: str) -> str:
    return "Going first" if turn_order == "first" else "Going second"


def create_error_embed(title: str, description: str) -> discord.Embed:
    """Create a standardized error embed."""
    return discord.Embed(
        title=f"Error: {title}",
        description=description,
        color=discord.Color.red()
    )


def create_success_embed(title: str, description: str) -> discord.Embed:
    """Create a standardized success embed."""
    return discord.Embed(
        title=title,
        description=description,
        color=discord.Color.green()
    )


def create_info_embed(title: str, description: str = "") -> discord.Embed:
    """Create a standardized info embed."""
    return discord.Embed(
        title=title,
        description=description,
        color=EMBED_COLOR
    )


def truncate_string(text: str, max_length: int = 100) -> str:
    """Truncate string with ellipsis if too long."""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def format_overview(stats: Statistics) -> str:
    """Format the headline numbers of a Statistics result.

    Each turn-order line shows the win rate, then how many duels were
    played that way and their share of the total.
    """
    def turn_line(label: str, rate: float, played: int) -> str:
        share = played / stats.total_duels * 100 if stats.total_duels > 0 else 0
        return (
            f"**{label}:** {format_win_rate(rate)} "
            f"in {played} duel(s), {format_win_rate(share)} of all"
        )

    return (
        f"**Duels:** {stats.total_duels}\n"
        f"**Record:** {format_record(stats.wins, stats.losses)}\n"
        f"**Win Rate:** {format_win_rate(stats.win_rate)}\n"
        f"{turn_line('Going first', stats.first_player_win_rate, stats.first_player_duels)}\n"
        f"{turn_line('Going second', stats.second_player_win_rate, stats.second_player_duels)}"
    )


def format_breakdown_rows(
    rows: dict[str, OutcomeStats],
    limit: int = 15
) -> str:
    """
    Format a label -> OutcomeStats breakdown, most played first.

    Ties on games played are broken by win rate, then by label so the
    output is stable.
    """
    ordered = sorted(
        rows.items(),
        key=lambda item: (-(item[1].wins + item[1].losses), -item[1].win_rate, item[0])
    )

    lines = []
    for i, (label, outcome) in enumerate(ordered[:limit], 1):
        lines.append(
            f"`{i}.` **{truncate_string(label, 40)}** - "
            f"{format_win_rate(outcome.win_rate)} "
            f"({format_record(outcome.wins, outcome.losses)})"
        )

    if len(ordered) > limit:
        lines.append(f"...and {len(ordered) - limit} more")
    return "\n".join(lines)


def label_deck_rows(
    deck_stats: dict[int, OutcomeStats],
    decks: list[Deck]
) -> dict[str, OutcomeStats]:
    """
    Re-key a per-deck breakdown by display label.

    Live decks show as "Name (#id)", deleted ones as the bare ID, so no
    two rows can share a label.
    """
    names = {deck.id: deck.name for deck in decks}
    return {
        f"{names[deck_id]} (#{deck_id})" if deck_id in names else str(deck_id): outcome
        for deck_id, outcome in deck_stats.items()
    }


def format_duel_line(duel: DuelRecord, deck_name: str) -> str:
    """Format one duel for the recent duels list."""
    date_str = duel.timestamp.strftime("%m/%d/%Y %H:%M")
    line = (
        f"`#{duel.id}` {date_str} - **{format_result(duel.result)}** "
        f"with {deck_name} vs {duel.opponent_deck_name} "
        f"({format_turn_order(duel.turn_order).lower()})"
    )
    if duel.notes:
        line += f"\n  _{truncate_string(duel.notes, 80)}_"
    return line


def format_event_line(event: Event) -> str:
    """Format one event with its status markers."""
    markers = []
    if event.is_active:
        markers.append("active")
    if event.is_default:
        markers.append("default")
    if event.end_date:
        markers.append(f"ended {event.end_date.strftime('%m/%d/%Y')}")

    status = f" [{', '.join(markers)}]" if markers else ""
    started = event.start_date.strftime("%m/%d/%Y")
    return f"`#{event.id}` **{event.name}**{status} - since {started}"


def format_collision_warning(collisions: dict[str, list[str]]) -> str:
    """Describe opponent labels that look like the same archetype."""
    if not collisions:
        return ""

    groups = [" / ".join(f"`{name}`" for name in names) for names in collisions.values()]
    return "Possible duplicate opponent names: " + "; ".join(groups)

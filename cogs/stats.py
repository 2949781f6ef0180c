"""Statistics cog for Duel Tracker Bot."""

import discord
from discord import app_commands
from discord.ext import commands
from typing import Optional

from analytics import (
    compute_by_period,
    compute_multiple_event_statistics,
    compute_statistics,
    filter_by_deck,
    filter_by_event,
    group_by_event,
    opponent_name_collisions,
    resolve_deck_name,
)
from config import MAX_EMBED_ROWS, PERIOD_GRANULARITIES
from utils import Colors, log
from utils.helpers import (
    create_error_embed,
    create_info_embed,
    format_breakdown_rows,
    format_collision_warning,
    format_overview,
    format_record,
    format_win_rate,
    label_deck_rows,
)
from utils.interactions import deck_autocomplete, event_autocomplete, register_caller


class Stats(commands.Cog):
    """Cog for viewing statistics."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="stats", description="View your duel statistics")
    @app_commands.describe(
        deck="Only count duels played with this deck",
        event="Only count duels from this event"
    )
    @app_commands.autocomplete(deck=deck_autocomplete, event=event_autocomplete)
    async def stats(
        self,
        interaction: discord.Interaction,
        deck: Optional[int] = None,
        event: Optional[int] = None
    ) -> None:
        """Display win rates overall, by turn order, by deck and by opponent."""
        log("STATS", f"stats command invoked by {interaction.user} (deck={deck}, event={event})", Colors.CYAN)
        db = self.bot.db
        owner_id = await register_caller(interaction)

        duels = await db.get_user_duel_records(owner_id)
        decks = await db.get_user_decks(owner_id)

        scope = []
        if deck is not None:
            duels = filter_by_deck(duels, deck)
            scope.append(resolve_deck_name(deck, decks))
        if event is not None:
            selected_event = await db.get_event(owner_id, event)
            if not selected_event:
                await interaction.response.send_message(
                    embed=create_error_embed("Event Not Found", f"You have no event `#{event}`."),
                    ephemeral=True
                )
                return
            duels = filter_by_event(duels, event)
            scope.append(selected_event.name)

        log("STATS", f"  computing over {len(duels)} duel(s)", Colors.CYAN)
        stats = compute_statistics(duels)

        title = f"Stats for {interaction.user.display_name}"
        if scope:
            title += f" ({' / '.join(scope)})"

        if stats.total_duels == 0:
            await interaction.response.send_message(
                embed=create_info_embed(title, "No duels match yet! Log one with **/duel log**."),
                ephemeral=True
            )
            return

        embed = create_info_embed(title)
        embed.add_field(name="Overview", value=format_overview(stats), inline=False)

        embed.add_field(
            name="By Deck",
            value=format_breakdown_rows(label_deck_rows(stats.deck_stats, decks), limit=MAX_EMBED_ROWS),
            inline=False
        )
        embed.add_field(
            name="By Opponent",
            value=format_breakdown_rows(stats.opponent_stats, limit=MAX_EMBED_ROWS),
            inline=False
        )

        warning = format_collision_warning(opponent_name_collisions(stats.opponent_stats))
        if warning:
            embed.set_footer(text=warning.replace("`", "'"))

        embed.set_thumbnail(url=interaction.user.display_avatar.url)
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="eventstats", description="Compare your results across events")
    async def event_stats(self, interaction: discord.Interaction) -> None:
        """Display one summary line per event."""
        db = self.bot.db
        owner_id = await register_caller(interaction)

        events = await db.get_user_events(owner_id)
        duels = await db.get_user_duel_records(owner_id)

        if not events:
            await interaction.response.send_message(
                embed=create_info_embed("Event Stats", "No events yet! Create one with **/event create**."),
                ephemeral=True
            )
            return

        # Every event gets a row, including ones without duels yet
        by_event = {event.id: [] for event in events}
        for event_id, records in group_by_event(duels).items():
            if event_id in by_event:
                by_event[event_id] = records
        names = {event.id: event.name for event in events}

        results = compute_multiple_event_statistics(by_event, names)
        log("STATS", f"eventstats: {len(results)} event(s) for {interaction.user}", Colors.CYAN)

        embed = create_info_embed("Event Stats")
        for result in results[:25]:  # Discord limit is 25 fields
            embed.add_field(
                name=result.event_name,
                value=(
                    f"**Duels:** {result.total_duels}\n"
                    f"**Record:** {format_record(result.wins, result.losses)}\n"
                    f"**Win Rate:** {format_win_rate(result.win_rate)}\n"
                    f"**1st / 2nd:** {format_win_rate(result.first_player_win_rate)} / "
                    f"{format_win_rate(result.second_player_win_rate)}"
                ),
                inline=True
            )

        unfiled = len(duels) - sum(len(records) for records in by_event.values())
        if unfiled:
            embed.set_footer(text=f"{unfiled} duel(s) have no event yet - run /event migrate")

        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="periodstats", description="View your results per day, week or month")
    @app_commands.describe(granularity="Bucket size", event="Only count duels from this event")
    @app_commands.choices(granularity=[
        app_commands.Choice(name=g.capitalize(), value=g) for g in PERIOD_GRANULARITIES
    ])
    @app_commands.autocomplete(event=event_autocomplete)
    async def period_stats(
        self,
        interaction: discord.Interaction,
        granularity: app_commands.Choice[str],
        event: Optional[int] = None
    ) -> None:
        """Display one row per period that has duels, most recent last."""
        db = self.bot.db
        owner_id = await register_caller(interaction)

        duels = await db.get_user_duel_records(owner_id)
        if event is not None:
            duels = filter_by_event(duels, event)

        periods = compute_by_period(duels, granularity.value)
        if not periods:
            await interaction.response.send_message(
                embed=create_info_embed("Period Stats", "No duels logged yet!"),
                ephemeral=True
            )
            return

        rows = list(periods.items())[-MAX_EMBED_ROWS:]
        lines = [
            f"`{key}` - {format_win_rate(stats.win_rate)} "
            f"({format_record(stats.wins, stats.losses)})"
            for key, stats in rows
        ]

        embed = create_info_embed(f"Results by {granularity.name}", "\n".join(lines))
        if len(periods) > len(rows):
            embed.set_footer(text=f"Showing the latest {len(rows)} of {len(periods)} periods")
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="opponents", description="View your results against each opponent archetype")
    @app_commands.describe(deck="Only count duels played with this deck")
    @app_commands.autocomplete(deck=deck_autocomplete)
    async def opponents(self, interaction: discord.Interaction, deck: Optional[int] = None) -> None:
        """Display the full opponent breakdown with duplicate-name hints."""
        db = self.bot.db
        owner_id = await register_caller(interaction)

        duels = await db.get_user_duel_records(owner_id)
        if deck is not None:
            duels = filter_by_deck(duels, deck)

        stats = compute_statistics(duels)
        if not stats.opponent_stats:
            await interaction.response.send_message(
                embed=create_info_embed("Opponents", "No duels logged yet!"),
                ephemeral=True
            )
            return

        description = format_breakdown_rows(stats.opponent_stats, limit=25)
        warning = format_collision_warning(opponent_name_collisions(stats.opponent_stats))
        if warning:
            description += f"\n\n{warning}"

        embed = create_info_embed(f"Opponents ({len(stats.opponent_stats)})", description)
        await interaction.response.send_message(embed=embed)


async def setup(bot: commands.Bot) -> None:
    """Set up the stats cog."""
    await bot.add_cog(Stats(bot))

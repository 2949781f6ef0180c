"""Duel logging cog for Duel Tracker Bot."""

import discord
from discord import app_commands, ui
from discord.ext import commands
from typing import Optional

from analytics import resolve_deck_name
from config import MAX_RECENT_DUELS
from utils import Colors, log
from utils.helpers import (
    create_error_embed,
    create_info_embed,
    create_success_embed,
    format_duel_line,
    format_result,
    format_turn_order,
)
from utils.interactions import deck_autocomplete, register_caller

RESULT_CHOICES = [
    app_commands.Choice(name="Win", value="win"),
    app_commands.Choice(name="Loss", value="lose"),
]

TURN_ORDER_CHOICES = [
    app_commands.Choice(name="Going first", value="first"),
    app_commands.Choice(name="Going second", value="second"),
]


class UndoDuelView(ui.View):
    """Offers a one-click undo right after a duel is logged."""

    def __init__(self, owner_id: str, duel_id: int):
        super().__init__(timeout=120)
        self.owner_id = owner_id
        self.duel_id = duel_id

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return str(interaction.user.id) == self.owner_id

    @ui.button(label="Undo", style=discord.ButtonStyle.danger)
    async def undo(self, interaction: discord.Interaction, button: ui.Button) -> None:
        """Delete the duel that was just logged."""
        deleted = await interaction.client.db.delete_duel_record(self.owner_id, self.duel_id)
        log("DUEL_LOG", f"  undo duel #{self.duel_id}: deleted={deleted}", Colors.YELLOW)

        content = f"Duel `#{self.duel_id}` removed." if deleted else "That duel was already removed."
        await interaction.response.edit_message(content=content, embed=None, view=None)
        self.stop()


class DuelLogging(commands.GroupCog, group_name="duel", group_description="Log and manage duels"):
    """Cog for logging duels."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def _current_event(self, owner_id: str):
        """The active event, falling back to the default event."""
        db = self.bot.db
        event = await db.get_active_event(owner_id)
        if event:
            return event
        return await db.get_or_create_default_event(owner_id)

    @app_commands.command(name="log", description="Log a duel result")
    @app_commands.describe(
        deck="The deck you played",
        result="Did you win?",
        turn_order="Did you go first or second?",
        opponent="Opponent's deck / archetype",
        notes="Optional notes"
    )
    @app_commands.choices(result=RESULT_CHOICES, turn_order=TURN_ORDER_CHOICES)
    @app_commands.autocomplete(deck=deck_autocomplete)
    async def log_duel(
        self,
        interaction: discord.Interaction,
        deck: int,
        result: app_commands.Choice[str],
        turn_order: app_commands.Choice[str],
        opponent: app_commands.Range[str, 1, 100],
        notes: Optional[str] = ""
    ) -> None:
        """File a duel under the caller's current event."""
        log("DUEL_LOG", f"duel log by {interaction.user}", Colors.MAGENTA)
        log("DUEL_LOG", f"  deck={deck} result={result.value} turn_order={turn_order.value} opponent='{opponent}'", Colors.MAGENTA)

        db = self.bot.db
        owner_id = await register_caller(interaction)

        own_deck = await db.get_deck(owner_id, deck)
        if not own_deck:
            log("DUEL_LOG", f"  ERROR: unknown deck {deck}", Colors.RED)
            await interaction.response.send_message(
                embed=create_error_embed(
                    "Deck Not Found",
                    "Pick one of your decks from the list, or register it first with **/deck add**."
                ),
                ephemeral=True
            )
            return

        # Surrounding whitespace only; case is kept as typed
        opponent_name = opponent.strip()
        if not opponent_name:
            await interaction.response.send_message(
                embed=create_error_embed("Missing Opponent", "Opponent deck name can't be blank."),
                ephemeral=True
            )
            return

        event = await self._current_event(owner_id)
        duel = await db.add_duel_record(
            owner_id,
            event.id,
            turn_order.value,
            result.value,
            own_deck.id,
            opponent_name,
            notes=notes or ""
        )
        log("DUEL_LOG", f"  logged duel #{duel.id} under event #{event.id}", Colors.GREEN)

        embed = create_success_embed(
            f"Duel #{duel.id} Logged!",
            f"**Result:** {format_result(duel.result)}\n"
            f"**Deck:** {own_deck.name}\n"
            f"**Opponent:** {duel.opponent_deck_name}\n"
            f"**Turn order:** {format_turn_order(duel.turn_order)}\n"
            f"**Event:** {event.name}"
        )

        await interaction.response.send_message(embed=embed, view=UndoDuelView(owner_id, duel.id))

    @app_commands.command(name="recent", description="View your recent duels")
    @app_commands.describe(count=f"Number of duels to show (default 5, max {MAX_RECENT_DUELS})")
    async def recent(self, interaction: discord.Interaction, count: int = 5) -> None:
        """Show the caller's latest duels."""
        count = max(1, min(count, MAX_RECENT_DUELS))  # Clamp between 1 and MAX_RECENT_DUELS

        db = self.bot.db
        owner_id = await register_caller(interaction)
        duels = await db.get_user_duel_records(owner_id, limit=count)

        if not duels:
            await interaction.response.send_message(
                embed=create_info_embed("Recent Duels", "No duels logged yet! Use **/duel log**."),
                ephemeral=True
            )
            return

        decks = await db.get_user_decks(owner_id)
        lines = [format_duel_line(d, resolve_deck_name(d.own_deck_id, decks)) for d in duels]

        embed = create_info_embed(f"Last {len(duels)} Duel(s)", "\n".join(lines))
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="edit", description="Edit a logged duel")
    @app_commands.describe(
        duel_id="Duel number (shown in /duel recent)",
        deck="The deck you played",
        result="Did you win?",
        turn_order="Did you go first or second?",
        opponent="Opponent's deck / archetype",
        notes="New notes"
    )
    @app_commands.choices(result=RESULT_CHOICES, turn_order=TURN_ORDER_CHOICES)
    @app_commands.autocomplete(deck=deck_autocomplete)
    async def edit(
        self,
        interaction: discord.Interaction,
        duel_id: int,
        deck: Optional[int] = None,
        result: Optional[app_commands.Choice[str]] = None,
        turn_order: Optional[app_commands.Choice[str]] = None,
        opponent: Optional[str] = None,
        notes: Optional[str] = None
    ) -> None:
        """Update the given fields of a duel."""
        db = self.bot.db
        owner_id = await register_caller(interaction)

        fields = {}
        if deck is not None:
            if not await db.get_deck(owner_id, deck):
                await interaction.response.send_message(
                    embed=create_error_embed("Deck Not Found", f"You have no deck `#{deck}`."),
                    ephemeral=True
                )
                return
            fields["own_deck_id"] = deck
        if result is not None:
            fields["result"] = result.value
        if turn_order is not None:
            fields["turn_order"] = turn_order.value
        if opponent is not None and opponent.strip():
            fields["opponent_deck_name"] = opponent.strip()
        if notes is not None:
            fields["notes"] = notes

        if not fields:
            await interaction.response.send_message(
                embed=create_error_embed("Nothing To Change", "Give at least one field to update."),
                ephemeral=True
            )
            return

        duel = await db.update_duel_record(owner_id, duel_id, **fields)
        if not duel:
            await interaction.response.send_message(
                embed=create_error_embed("Duel Not Found", f"You have no duel `#{duel_id}`."),
                ephemeral=True
            )
            return

        log("DUEL_LOG", f"duel #{duel_id} updated: {sorted(fields)}", Colors.MAGENTA)
        decks = await db.get_user_decks(owner_id)
        await interaction.response.send_message(
            embed=create_success_embed(
                "Duel Updated",
                format_duel_line(duel, resolve_deck_name(duel.own_deck_id, decks))
            ),
            ephemeral=True
        )

    @app_commands.command(name="delete", description="Delete a logged duel")
    @app_commands.describe(duel_id="Duel number (shown in /duel recent)")
    async def delete(self, interaction: discord.Interaction, duel_id: int) -> None:
        """Delete one of the caller's duels."""
        owner_id = await register_caller(interaction)

        if not await self.bot.db.delete_duel_record(owner_id, duel_id):
            await interaction.response.send_message(
                embed=create_error_embed("Duel Not Found", f"You have no duel `#{duel_id}`."),
                ephemeral=True
            )
            return

        log("DUEL_LOG", f"duel #{duel_id} deleted by {interaction.user}", Colors.YELLOW)
        await interaction.response.send_message(
            embed=create_success_embed("Duel Deleted", f"Duel `#{duel_id}` removed."),
            ephemeral=True
        )


async def setup(bot: commands.Bot) -> None:
    """Set up the duel logging cog."""
    await bot.add_cog(DuelLogging(bot))

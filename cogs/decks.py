"""Deck management cog for Duel Tracker Bot."""

import discord
from discord import app_commands
from discord.ext import commands
from typing import Optional

from utils import Colors, log
from utils.helpers import (
    create_error_embed,
    create_info_embed,
    create_success_embed,
    parse_tags,
    truncate_string,
)
from utils.interactions import deck_autocomplete, register_caller


class Decks(commands.GroupCog, group_name="deck", group_description="Manage your decks"):
    """Cog for registering and editing decks."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="add", description="Register a new deck")
    @app_commands.describe(
        name="Deck name",
        archetype="Strategic category, e.g. Control or Combo",
        tags="Comma-separated tags",
        notes="Anything worth remembering about the list"
    )
    async def add(
        self,
        interaction: discord.Interaction,
        name: app_commands.Range[str, 1, 100],
        archetype: Optional[str] = "",
        tags: Optional[str] = "",
        notes: Optional[str] = ""
    ) -> None:
        """Register a deck for the caller."""
        log("DECKS", f"deck add '{name}' by {interaction.user}", Colors.CYAN)
        owner_id = await register_caller(interaction)

        deck = await self.bot.db.add_deck(
            owner_id,
            name,
            archetype=archetype or "",
            tags=parse_tags(tags),
            notes=notes or ""
        )

        if not deck:
            await interaction.response.send_message(
                embed=create_error_embed(
                    "Duplicate Deck",
                    f"You already have a deck named **{name.strip()}**."
                ),
                ephemeral=True
            )
            return

        description = f"**{deck.name}** (`#{deck.id}`)"
        if deck.archetype:
            description += f"\n**Archetype:** {deck.archetype}"
        if deck.tags:
            description += f"\n**Tags:** {', '.join(deck.tags)}"

        await interaction.response.send_message(
            embed=create_success_embed("Deck Registered", description)
        )

    @app_commands.command(name="list", description="List your decks")
    async def list_decks(self, interaction: discord.Interaction) -> None:
        """Show the caller's decks."""
        owner_id = await register_caller(interaction)
        decks = await self.bot.db.get_user_decks(owner_id)

        if not decks:
            await interaction.response.send_message(
                embed=create_info_embed(
                    "Your Decks",
                    "No decks yet! Register one with **/deck add**."
                ),
                ephemeral=True
            )
            return

        embed = create_info_embed(f"Your Decks ({len(decks)})")
        for deck in decks[:25]:  # Discord limit is 25 fields
            details = []
            if deck.archetype:
                details.append(f"**Archetype:** {deck.archetype}")
            if deck.tags:
                details.append(f"**Tags:** {', '.join(deck.tags)}")
            if deck.notes:
                details.append(truncate_string(deck.notes, 200))

            embed.add_field(
                name=f"#{deck.id} {deck.name}",
                value="\n".join(details) or "No details",
                inline=False
            )

        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="edit", description="Edit one of your decks")
    @app_commands.describe(
        deck="Deck to edit",
        name="New name",
        archetype="New archetype",
        tags="New comma-separated tags (replaces the old ones)",
        notes="New notes"
    )
    @app_commands.autocomplete(deck=deck_autocomplete)
    async def edit(
        self,
        interaction: discord.Interaction,
        deck: int,
        name: Optional[str] = None,
        archetype: Optional[str] = None,
        tags: Optional[str] = None,
        notes: Optional[str] = None
    ) -> None:
        """Update the fields that were given."""
        owner_id = await register_caller(interaction)

        fields = {}
        if name is not None and name.strip():
            fields["name"] = name.strip()
        if archetype is not None:
            fields["archetype"] = archetype.strip()
        if tags is not None:
            fields["tags"] = parse_tags(tags)
        if notes is not None:
            fields["notes"] = notes

        if not fields:
            await interaction.response.send_message(
                embed=create_error_embed("Nothing To Change", "Give at least one field to update."),
                ephemeral=True
            )
            return

        updated = await self.bot.db.update_deck(owner_id, deck, **fields)
        if not updated:
            await interaction.response.send_message(
                embed=create_error_embed(
                    "Update Failed",
                    "That deck doesn't exist, or you already have a deck with that name."
                ),
                ephemeral=True
            )
            return

        log("DECKS", f"deck #{deck} updated: {sorted(fields)}", Colors.CYAN)
        await interaction.response.send_message(
            embed=create_success_embed("Deck Updated", f"**{updated.name}** (`#{updated.id}`)")
        )

    @app_commands.command(name="delete", description="Delete one of your decks")
    @app_commands.describe(deck="Deck to delete")
    @app_commands.autocomplete(deck=deck_autocomplete)
    async def delete(self, interaction: discord.Interaction, deck: int) -> None:
        """Delete a deck. Its duels stay and show up under the deck's ID."""
        owner_id = await register_caller(interaction)
        existing = await self.bot.db.get_deck(owner_id, deck)

        if not existing or not await self.bot.db.delete_deck(owner_id, deck):
            await interaction.response.send_message(
                embed=create_error_embed("Deck Not Found", f"You have no deck `#{deck}`."),
                ephemeral=True
            )
            return

        log("DECKS", f"deck #{deck} '{existing.name}' deleted by {interaction.user}", Colors.YELLOW)
        await interaction.response.send_message(
            embed=create_success_embed(
                "Deck Deleted",
                f"**{existing.name}** was deleted. Its duels are kept and still count in your stats."
            )
        )


async def setup(bot: commands.Bot) -> None:
    """Set up the decks cog."""
    await bot.add_cog(Decks(bot))

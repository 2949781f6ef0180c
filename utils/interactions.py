"""Interaction helpers shared by the cogs."""

import discord
from discord import app_commands

from utils.helpers import truncate_string


async def register_caller(interaction: discord.Interaction) -> str:
    """Make sure the invoking user exists and return their owner ID."""
    owner_id = str(interaction.user.id)
    await interaction.client.db.get_or_create_user(owner_id, interaction.user.display_name)
    return owner_id


async def deck_autocomplete(
    interaction: discord.Interaction,
    current: str
) -> list[app_commands.Choice[int]]:
    """Suggest the caller's decks whose name contains the typed text."""
    decks = await interaction.client.db.get_user_decks(str(interaction.user.id))
    current = current.lower()
    return [
        app_commands.Choice(name=truncate_string(deck.name, 100), value=deck.id)
        for deck in decks
        if current in deck.name.lower()
    ][:25]  # Discord limit is 25 choices


async def event_autocomplete(
    interaction: discord.Interaction,
    current: str
) -> list[app_commands.Choice[int]]:
    """Suggest the caller's events whose name contains the typed text."""
    events = await interaction.client.db.get_user_events(str(interaction.user.id))
    current = current.lower()
    choices = []
    for event in events:
        if current not in event.name.lower():
            continue
        label = f"{event.name} (active)" if event.is_active else event.name
        choices.append(app_commands.Choice(name=truncate_string(label, 100), value=event.id))
    return choices[:25]

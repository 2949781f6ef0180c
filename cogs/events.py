"""Event management cog for Duel Tracker Bot."""

import discord
from discord import app_commands, ui
from discord.ext import commands
from typing import Optional

from migration import get_migration_count, migrate_existing_duels_to_default_event
from utils import Colors, log
from utils.helpers import (
    create_error_embed,
    create_info_embed,
    create_success_embed,
    format_event_line,
)
from utils.interactions import event_autocomplete, register_caller


class ConfirmMigrationView(ui.View):
    """Asks before filing legacy duels under the default event."""

    def __init__(self, owner_id: str):
        super().__init__(timeout=120)
        self.owner_id = owner_id

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return str(interaction.user.id) == self.owner_id

    @ui.button(label="Migrate", style=discord.ButtonStyle.primary)
    async def confirm(self, interaction: discord.Interaction, button: ui.Button) -> None:
        """Run the migration."""
        migrated = await migrate_existing_duels_to_default_event(interaction.client.db, self.owner_id)
        await interaction.response.edit_message(
            embed=create_success_embed(
                "Migration Complete",
                f"Moved {migrated} duel(s) into your default event."
            ),
            view=None
        )
        self.stop()

    @ui.button(label="Cancel", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: ui.Button) -> None:
        """Leave the data as is."""
        await interaction.response.edit_message(content="Migration cancelled.", embed=None, view=None)
        self.stop()


class Events(commands.GroupCog, group_name="event", group_description="Group duels into events"):
    """Cog for creating and switching events."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="create", description="Start a new event and make it active")
    @app_commands.describe(name="Event name", description="Optional description")
    async def create(
        self,
        interaction: discord.Interaction,
        name: app_commands.Range[str, 1, 100],
        description: Optional[str] = ""
    ) -> None:
        """Create an event; it replaces the current active event."""
        owner_id = await register_caller(interaction)

        if not name.strip():
            await interaction.response.send_message(
                embed=create_error_embed("Missing Name", "Event name can't be blank."),
                ephemeral=True
            )
            return

        event = await self.bot.db.add_event(owner_id, name, description or "")
        log("EVENTS", f"event #{event.id} '{event.name}' created by {interaction.user}", Colors.CYAN)

        await interaction.response.send_message(
            embed=create_success_embed(
                "Event Started",
                f"**{event.name}** is now your active event. New duels will be filed under it."
            )
        )

    @app_commands.command(name="list", description="List your events")
    async def list_events(self, interaction: discord.Interaction) -> None:
        """Show the caller's events, newest first."""
        owner_id = await register_caller(interaction)
        events = await self.bot.db.get_user_events(owner_id)

        if not events:
            await interaction.response.send_message(
                embed=create_info_embed(
                    "Your Events",
                    "No events yet. Duels go to your default event until you **/event create** one."
                ),
                ephemeral=True
            )
            return

        embed = create_info_embed(
            f"Your Events ({len(events)})",
            "\n".join(format_event_line(event) for event in events)
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="switch", description="Make another event active")
    @app_commands.describe(event="Event to activate")
    @app_commands.autocomplete(event=event_autocomplete)
    async def switch(self, interaction: discord.Interaction, event: int) -> None:
        """Activate an event and deactivate the rest."""
        owner_id = await register_caller(interaction)
        switched = await self.bot.db.switch_active_event(owner_id, event)

        if not switched:
            await interaction.response.send_message(
                embed=create_error_embed("Event Not Found", f"You have no event `#{event}`."),
                ephemeral=True
            )
            return

        log("EVENTS", f"event #{event} activated by {interaction.user}", Colors.CYAN)
        await interaction.response.send_message(
            embed=create_success_embed("Event Switched", f"**{switched.name}** is now active."),
            ephemeral=True
        )

    @app_commands.command(name="end", description="End an event")
    @app_commands.describe(event="Event to end")
    @app_commands.autocomplete(event=event_autocomplete)
    async def end(self, interaction: discord.Interaction, event: int) -> None:
        """Stamp the end date and deactivate the event."""
        owner_id = await register_caller(interaction)
        ended = await self.bot.db.end_event(owner_id, event)

        if not ended:
            await interaction.response.send_message(
                embed=create_error_embed("Event Not Found", f"You have no event `#{event}`."),
                ephemeral=True
            )
            return

        log("EVENTS", f"event #{event} ended by {interaction.user}", Colors.CYAN)
        await interaction.response.send_message(
            embed=create_success_embed(
                "Event Ended",
                f"**{ended.name}** has ended. New duels go to your default event "
                "until you start or switch to another one."
            ),
            ephemeral=True
        )

    @app_commands.command(name="migrate", description="File old duels without an event under your default event")
    async def migrate(self, interaction: discord.Interaction) -> None:
        """Check for legacy duels and offer to migrate them."""
        owner_id = await register_caller(interaction)
        pending = await get_migration_count(self.bot.db, owner_id)

        if pending == 0:
            await interaction.response.send_message(
                embed=create_info_embed("Migration", "All of your duels already belong to an event."),
                ephemeral=True
            )
            return

        await interaction.response.send_message(
            embed=create_info_embed(
                "Migration",
                f"{pending} duel(s) have no event. Move them into your default event?"
            ),
            view=ConfirmMigrationView(owner_id),
            ephemeral=True
        )


async def setup(bot: commands.Bot) -> None:
    """Set up the events cog."""
    await bot.add_cog(Events(bot))

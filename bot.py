"""Main bot entry point for Duel Tracker."""

import asyncio
import logging

from dotenv import load_dotenv
load_dotenv()

import discord
from discord import app_commands
from discord.ext import commands

from config import Config, EMBED_COLOR
from database import Database
from utils import Colors, log

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("duel-tracker")

EXTENSIONS = (
    "cogs.decks",
    "cogs.duel_logging",
    "cogs.events",
    "cogs.stats",
)


class DuelTrackerBot(commands.Bot):
    """Duel Tracker Discord Bot."""

    def __init__(self, config: Config):
        intents = discord.Intents.default()

        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None
        )

        self.config = config
        self.db = Database(config.database_path)

    async def setup_hook(self) -> None:
        """Called when the bot is starting up."""
        log("BOT", "setup_hook starting...", Colors.GREEN)
        await self.db.connect()
        log("BOT", f"Database connected ({self.config.database_path})", Colors.GREEN)

        for extension in EXTENSIONS:
            await self.load_extension(extension)
            log("BOT", f"  Loaded {extension}", Colors.GREEN)

        self.tree.on_error = self.on_app_command_error

        log("BOT", "Syncing commands...", Colors.GREEN)
        if self.config.dev_guild_id:
            guild = discord.Object(id=self.config.dev_guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            log("BOT", f"Commands synced to guild {self.config.dev_guild_id}", Colors.GREEN)
        else:
            await self.tree.sync()
            log("BOT", "Commands synced!", Colors.GREEN)

    async def on_ready(self) -> None:
        """Called when the bot is ready."""
        log("BOT", f"Logged in as {self.user} (ID: {self.user.id})", Colors.GREEN)
        log("BOT", f"Connected to {len(self.guilds)} guild(s)", Colors.GREEN)

    async def on_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError
    ) -> None:
        """Log unexpected command failures and tell the user something went wrong."""
        logger.error("Command %s failed", interaction.command and interaction.command.name, exc_info=error)
        log("BOT", f"Command error for {interaction.user}: {error}", Colors.RED)

        embed = discord.Embed(
            title="Error: Something Went Wrong",
            description="That command failed. Please try again in a moment.",
            color=discord.Color.red()
        )
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)

    async def close(self) -> None:
        """Clean up on shutdown."""
        await self.db.close()
        await super().close()


@app_commands.command(name="help", description="Get help with Duel Tracker commands")
async def help_command(interaction: discord.Interaction) -> None:
    """Display help information about all commands."""
    embed = discord.Embed(
        title="Duel Tracker - Help",
        description="Track your ranked duels and see how your decks really perform.",
        color=EMBED_COLOR
    )

    embed.add_field(
        name="Decks",
        value=(
            "**/deck add** `name` - Register a deck\n"
            "**/deck list** - List your decks\n"
            "**/deck edit** `deck` - Edit a deck\n"
            "**/deck delete** `deck` - Delete a deck (its duels are kept)"
        ),
        inline=False
    )

    embed.add_field(
        name="Duels",
        value=(
            "**/duel log** `deck` `result` `turn_order` `opponent` - Log a duel\n"
            "**/duel recent** `[count]` - View recent duels\n"
            "**/duel edit** `duel_id` - Fix a logged duel\n"
            "**/duel delete** `duel_id` - Delete a duel"
        ),
        inline=False
    )

    embed.add_field(
        name="Events",
        value=(
            "**/event create** `name` - Start a tournament or season\n"
            "**/event list** - List your events\n"
            "**/event switch** `event` - Change the active event\n"
            "**/event end** `event` - End an event\n"
            "**/event migrate** - File old duels under your default event"
        ),
        inline=False
    )

    embed.add_field(
        name="Statistics",
        value=(
            "**/stats** `[deck]` `[event]` - Win rates overall, by deck and by opponent\n"
            "**/eventstats** - Compare events\n"
            "**/periodstats** `granularity` - Results per day, week or month\n"
            "**/opponents** `[deck]` - Results against each opponent archetype"
        ),
        inline=False
    )

    embed.set_footer(text="Good luck on the ladder!")

    await interaction.response.send_message(embed=embed, ephemeral=True)


async def main() -> None:
    """Main entry point."""
    config = Config.from_env()
    bot = DuelTrackerBot(config)

    # Add help command to tree
    bot.tree.add_command(help_command)

    async with bot:
        await bot.start(config.discord_token)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()

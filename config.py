"""Environment configuration for Duel Tracker Bot."""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class Config:
    """Bot configuration loaded from environment variables."""

    discord_token: str
    database_path: str
    dev_guild_id: Optional[int] = None

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        token = os.getenv("DISCORD_TOKEN")
        if not token:
            raise ValueError("DISCORD_TOKEN environment variable is required")

        database_path = os.getenv("DATABASE_PATH", "duel_tracker.db")

        guild_id = os.getenv("DEV_GUILD_ID")
        if guild_id:
            try:
                dev_guild_id = int(guild_id)
            except ValueError:
                raise ValueError("DEV_GUILD_ID must be a numeric Discord guild ID")
        else:
            dev_guild_id = None

        return cls(
            discord_token=token,
            database_path=database_path,
            dev_guild_id=dev_guild_id,
        )


# Duel outcomes, from the owner's point of view
RESULTS = ("win", "lose")

# Whether the owner took the first turn
TURN_ORDERS = ("first", "second")

# Supported period bucket sizes for /periodstats
PERIOD_GRANULARITIES = ("day", "week", "month")

# Catch-all event that legacy duels are migrated into
DEFAULT_EVENT_NAME = "Ranked Duels"
DEFAULT_EVENT_DESCRIPTION = "Duels logged before events were introduced"

# Display limits
MAX_RECENT_DUELS = 10
MAX_EMBED_ROWS = 10

# Embed color (teal)
EMBED_COLOR = 0x1ABC9C

"""Slash command cogs for Duel Tracker Bot."""

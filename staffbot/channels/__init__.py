"""Chat platform adapters."""

from staffbot.channels.discord_bot import DiscordPlatform, DiscordSurface, StaffBot

__all__ = ["DiscordPlatform", "DiscordSurface", "StaffBot"]

"""
Chat-platform boundary.

:class:`Platform` is the seam between the suspension core and Discord.
:class:`DiscordPlatform` implements it with py-cord.
"""

from memberwarden.platform.base import Platform
from memberwarden.platform.discord_platform import DiscordPlatform

__all__ = ["Platform", "DiscordPlatform"]

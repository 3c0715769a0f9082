"""
Type-safe wrapper classes for Discord identifiers.

Snowflakes are stored as strings so they round-trip through the record store
and through command arguments unchanged, and converted to ``int`` only at the
Discord API boundary.
"""

from __future__ import annotations

import re
from typing import ClassVar, Union

import discord

from memberwarden.errors import MalformedIdentifier


class Snowflake:
    """
    Common behaviour for the snowflake wrappers below.

    Accepts an ``int``, a digit string, an instance of the same wrapper, or a
    Discord mention (``<@123>``, ``<#123>``, ...) whose prefix matches the
    subclass. Anything else raises :class:`MalformedIdentifier`.

    Attributes:
        _value (str): The snowflake ID stored as a string.
    """

    __slots__ = ("_value",)

    kind: ClassVar[str] = "snowflake"
    mention_pattern: ClassVar[re.Pattern[str] | None] = None

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        if isinstance(value, Snowflake):
            self._value = value._value
            return
        if isinstance(value, bool):
            raise MalformedIdentifier(f"Cannot create {type(self).__name__} from bool: {value}")
        if isinstance(value, int):
            number = value
        elif isinstance(value, str):
            text = value.strip()
            if self.mention_pattern is not None:
                match = self.mention_pattern.fullmatch(text)
                if match:
                    text = match.group(1)
            if not (text.isascii() and text.isdigit()):
                raise MalformedIdentifier(f"Could not parse {self.kind} id from {value!r}")
            number = int(text)
        else:
            raise MalformedIdentifier(
                f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}"
            )
        if number <= 0:
            raise MalformedIdentifier(f"{self.kind} id must be positive, got {number}")
        self._value = str(number)

    @classmethod
    def parse(cls, value: Union[str, int, "Snowflake"]):
        """Parse user input into this wrapper, raising :class:`MalformedIdentifier`."""
        return cls(value)

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(Snowflake):
    """
    Discord user snowflake.

    Example:
        >>> UserID("<@!123456789012345678>").to_int()
        123456789012345678
        >>> str(UserID(42))
        '42'
    """

    __slots__ = ()
    kind = "user"
    mention_pattern = re.compile(r"<@!?([0-9]+)>")

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        return cls(member.id)


class GuildID(Snowflake):
    """Discord guild (server) snowflake."""

    __slots__ = ()
    kind = "guild"


class ChannelID(Snowflake):
    """Discord channel snowflake; accepts ``<#123>`` channel mentions."""

    __slots__ = ()
    kind = "channel"
    mention_pattern = re.compile(r"<#([0-9]+)>")

    @classmethod
    def from_channel(cls, channel: discord.abc.Snowflake) -> "ChannelID":
        return cls(channel.id)


class MessageID(Snowflake):
    """Discord message snowflake."""

    __slots__ = ()
    kind = "message"

    @classmethod
    def from_message(cls, message: discord.Message) -> "MessageID":
        return cls(message.id)


class RoleID(Snowflake):
    """Discord role snowflake; accepts ``<@&123>`` role mentions."""

    __slots__ = ()
    kind = "role"
    mention_pattern = re.compile(r"<@&([0-9]+)>")

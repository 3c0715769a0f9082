"""
Error taxonomy for Memberwarden.

Store failures propagate to the caller of the triggering operation. Platform
failures (direct messages, role changes, reaction removal) are raised by the
platform layer; the suspension components decide which of them to log and
swallow.
"""


class MemberwardenError(Exception):
    """Base class for all Memberwarden errors."""


class StoreIOError(MemberwardenError):
    """A durable read or write against the record store failed."""


class MalformedIdentifier(MemberwardenError, ValueError):
    """A user, channel, or message identifier could not be parsed."""


class InvalidDuration(MemberwardenError, ValueError):
    """A human-readable duration could not be parsed."""


class PlatformOpFailure(MemberwardenError):
    """The chat platform rejected or failed an operation."""


class NotificationFailure(PlatformOpFailure):
    """A best-effort direct message could not be delivered."""


class CapabilityOpFailure(PlatformOpFailure):
    """The platform rejected a member role grant or revoke."""

from datetime import datetime, timedelta, timezone

from memberwarden.datatypes.discord_datatypes import ChannelID, MessageID
from memberwarden.datatypes.suspension_datatypes import (
    GateOutcome,
    PinnedAckMessage,
    expiry_from_unix,
    expiry_to_unix,
    normalize_expiry,
)


def test_normalize_expiry_truncates_and_converts_to_utc():
    local = datetime(2026, 1, 1, 2, 0, 0, 999999, tzinfo=timezone(timedelta(hours=2)))
    assert normalize_expiry(local) == datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def test_naive_datetimes_are_treated_as_utc():
    assert normalize_expiry(datetime(2026, 1, 1)).tzinfo == timezone.utc


def test_unix_conversion():
    instant = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert expiry_to_unix(instant) == 1767225600
    assert expiry_from_unix(1767225600) == instant


def test_pinned_ack_matches_exact_message():
    pinned = PinnedAckMessage(ChannelID(7), MessageID(8))
    assert pinned.matches(ChannelID(7), MessageID(8))
    assert not pinned.matches(ChannelID(7), MessageID(9))


def test_gate_outcome_str():
    assert str(GateOutcome.ALREADY_GRANTED) == "already_granted"

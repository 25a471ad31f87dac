"""Shared constants for wallet scoring and referral analytics."""

import math
from datetime import datetime, timezone

# Utility function to get timezone-aware UTC datetime
def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from the lower neighbour (2.5 -> 3, 0.125 -> 0.13)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


SECONDS_PER_DAY = 86_400

# Ambiguous glyphs I and O are excluded so codes can be read aloud.
INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ"
INVITE_CODE_LENGTH = 8

# Sub-score ceilings of the composite wallet score.
MAX_HOLDING_CONVICTION = 30.0
MAX_TRADING_DISCIPLINE = 25.0
MAX_REALIZED_EDGE = 30.0
MAX_BEHAVIOR_QUALITY = 15.0

__all__ = [
    "utc_now",
    "round_half_up",
    "SECONDS_PER_DAY",
    "INVITE_CODE_ALPHABET",
    "INVITE_CODE_LENGTH",
    "MAX_HOLDING_CONVICTION",
    "MAX_TRADING_DISCIPLINE",
    "MAX_REALIZED_EDGE",
    "MAX_BEHAVIOR_QUALITY",
]
